"""Reassembly of indexed, possibly overlapping substrings into a byte stream."""

from __future__ import annotations

from bisect import bisect_left, insort

from minnowstack.byte_stream import ByteStream


class Reassembler:
    """Puts out-of-order substrings back in order and writes them to a stream.

    Bytes that fall beyond the stream's available capacity are discarded;
    bytes inside it that cannot yet be written are held until the gap fills.
    """

    def __init__(self, output: ByteStream) -> None:
        self.output = output
        self._starts: list[int] = []
        self._segments: dict[int, bytes] = {}
        self._eof_position = 0
        self._eof_seen = False

    def insert(self, first_index: int, data: bytes, is_last_substring: bool) -> None:
        """Insert ``data`` whose first byte sits at ``first_index`` in the stream."""
        data = bytes(data)
        stream_begin = self.output.bytes_pushed()
        stream_limit = stream_begin + self.output.available_capacity()

        if is_last_substring:
            self._eof_seen = True
            self._eof_position = first_index + len(data)

        if not data:
            if self._eof_seen and stream_begin == self._eof_position:
                self.output.close()
            return

        clipped_start = max(first_index, stream_begin)
        clipped_end = min(first_index + len(data), stream_limit)
        if clipped_end <= clipped_start:
            return

        merged_start = clipped_start
        merged_end = clipped_end
        merged = data[clipped_start - first_index : clipped_end - first_index]

        starts = self._starts
        segments = self._segments
        i = bisect_left(starts, merged_start)
        if i > 0:
            prev = starts[i - 1]
            if prev + len(segments[prev]) > merged_start:
                i -= 1

        while i < len(starts) and starts[i] <= merged_end:
            start = starts.pop(i)
            existing = segments.pop(start)
            end = start + len(existing)
            if start < merged_start:
                merged = existing[: merged_start - start] + merged
                merged_start = start
            if end > merged_end:
                merged += existing[merged_end - start :]
                merged_end = end

        if merged:
            insort(starts, merged_start)
            segments[merged_start] = merged

        if starts and starts[0] == self.output.bytes_pushed():
            first = starts.pop(0)
            self.output.push(segments.pop(first))

        if self._eof_seen and self.output.bytes_pushed() >= self._eof_position:
            self.output.close()

    def count_bytes_pending(self) -> int:
        """How many bytes are held inside the reassembler."""
        return sum(len(segment) for segment in self._segments.values())