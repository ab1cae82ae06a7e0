"""Segments and acknowledgments passed between the two halves of a TCP connection."""

from __future__ import annotations

from dataclasses import dataclass, field

from minnowstack.wrapping_integers import Wrap32


def _zero_seqno() -> Wrap32:
    return Wrap32(0)


@dataclass(frozen=True)
class TCPSenderMessage:
    """Outbound segment: sequence number, SYN/FIN/RST flags and payload bytes."""

    seqno: Wrap32 = field(default_factory=_zero_seqno)
    syn: bool = False
    payload: bytes = b""
    fin: bool = False
    rst: bool = False

    def sequence_length(self) -> int:
        """Sequence numbers occupied; each of SYN and FIN takes one."""
        return len(self.payload) + int(self.syn) + int(self.fin)


@dataclass(frozen=True)
class TCPReceiverMessage:
    """Feedback to the sender: ackno once known, advertised window, reset flag."""

    ackno: Wrap32 | None = None
    window_size: int = 0
    rst: bool = False