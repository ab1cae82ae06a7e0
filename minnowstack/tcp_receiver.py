"""The receiving half of a TCP endpoint."""

from __future__ import annotations

from minnowstack.byte_stream import ByteStream
from minnowstack.messages import TCPReceiverMessage, TCPSenderMessage
from minnowstack.reassembler import Reassembler
from minnowstack.wrapping_integers import Wrap32

MAX_WINDOW_SIZE = 0xFFFF


class TCPReceiver:
    """Feeds incoming segments into a reassembler and reports acknowledgments and window."""

    def __init__(self, reassembler: Reassembler) -> None:
        self.reassembler = reassembler
        self._isn: Wrap32 | None = None

    @property
    def stream(self) -> ByteStream:
        """The byte stream the reassembled data is written to."""
        return self.reassembler.output

    def receive(self, message: TCPSenderMessage) -> None:
        """Insert the payload of ``message`` at its stream index."""
        stream = self.stream
        if message.rst:
            stream.set_error()
            return

        if message.syn:
            self._isn = message.seqno
        if self._isn is None:
            return

        checkpoint = stream.bytes_pushed() + 1
        abs_seqno = message.seqno.unwrap(self._isn, checkpoint)
        first_data_index = abs_seqno + int(message.syn)
        if first_data_index == 0:
            return

        stream_index = first_data_index - 1
        first_unacceptable = stream.bytes_pushed() + stream.available_capacity()
        if stream_index >= first_unacceptable:
            return

        self.reassembler.insert(stream_index, message.payload, message.fin)

    def send(self) -> TCPReceiverMessage:
        """Build the acknowledgment and window advertisement for the peer."""
        stream = self.stream
        ackno = None
        if self._isn is not None:
            abs_ackno = 1 + stream.bytes_pushed() + int(stream.is_closed())
            ackno = Wrap32.wrap(abs_ackno, self._isn)
        return TCPReceiverMessage(
            ackno=ackno,
            window_size=min(stream.available_capacity(), MAX_WINDOW_SIZE),
            rst=stream.has_error(),
        )