"""A bounded, in-order byte stream with a writing side and a reading side."""

from __future__ import annotations


class ByteStream:
    """A flow-controlled stream of bytes with a fixed buffer capacity.

    The writer pushes bytes (as many as the remaining capacity allows) and
    eventually closes the stream; the reader peeks at and pops buffered bytes.
    """

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._buffer = bytearray()
        self._bytes_pushed = 0
        self._bytes_popped = 0
        self._closed = False
        self._error = False

    # Writing side

    def push(self, data: bytes) -> None:
        """Append as much of ``data`` as the available capacity allows."""
        if self._closed:
            return
        accepted = bytes(data[: self.available_capacity()])
        self._buffer += accepted
        self._bytes_pushed += len(accepted)

    def close(self) -> None:
        """Signal that nothing more will be written."""
        self._closed = True

    def is_closed(self) -> bool:
        """Has the writer closed the stream?"""
        return self._closed

    def available_capacity(self) -> int:
        """How many bytes can be pushed right now."""
        return self.capacity - len(self._buffer)

    def bytes_pushed(self) -> int:
        """Total number of bytes ever accepted from the writer."""
        return self._bytes_pushed

    # Reading side

    def peek(self) -> bytes:
        """Return every byte currently buffered, without removing it."""
        return bytes(self._buffer)

    def pop(self, length: int) -> None:
        """Remove up to ``length`` bytes from the front of the buffer."""
        count = min(length, len(self._buffer))
        del self._buffer[:count]
        self._bytes_popped += count

    def is_finished(self) -> bool:
        """Is the stream closed and fully drained?"""
        return self._closed and not self._buffer

    def bytes_buffered(self) -> int:
        """Number of bytes pushed but not yet popped."""
        return len(self._buffer)

    def bytes_popped(self) -> int:
        """Total number of bytes ever popped."""
        return self._bytes_popped

    # Error state shared by both sides

    def set_error(self) -> None:
        """Mark the stream as having suffered an error."""
        self._error = True

    def has_error(self) -> bool:
        """Has the stream suffered an error?"""
        return self._error


def read(stream: ByteStream, max_len: int) -> bytes:
    """Peek and pop up to ``max_len`` bytes from ``stream`` and return them."""
    out = bytearray()
    while stream.bytes_buffered() and len(out) < max_len:
        view = stream.peek()
        if not view:
            raise RuntimeError("ByteStream.peek() returned no bytes while bytes are buffered")
        chunk = view[: max_len - len(out)]
        out += chunk
        stream.pop(len(chunk))
    return bytes(out)