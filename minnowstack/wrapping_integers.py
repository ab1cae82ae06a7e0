"""32-bit wrapping sequence numbers and their 64-bit absolute counterparts."""

from __future__ import annotations

from dataclasses import dataclass

_MOD = 1 << 32
_MASK = _MOD - 1


def _distance(a: int, b: int) -> int:
    return a - b if a > b else b - a


@dataclass(frozen=True)
class Wrap32:
    """A 32-bit integer that wraps around modulo 2**32."""

    raw_value: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "raw_value", self.raw_value & _MASK)

    @classmethod
    def wrap(cls, n: int, zero_point: Wrap32) -> Wrap32:
        """Wrap absolute sequence number ``n`` relative to ``zero_point``."""
        return cls(zero_point.raw_value + n)

    def unwrap(self, zero_point: Wrap32, checkpoint: int) -> int:
        """Return the absolute sequence number that wraps to this value and lies closest to ``checkpoint``."""
        offset = (self.raw_value - zero_point.raw_value) & _MASK
        candidate = checkpoint - checkpoint % _MOD + offset

        result = candidate
        best = _distance(checkpoint, candidate)

        if candidate >= _MOD:
            lower = candidate - _MOD
            if _distance(checkpoint, lower) < best:
                result = lower
                best = _distance(checkpoint, lower)

        upper = candidate + _MOD
        if _distance(checkpoint, upper) < best:
            result = upper

        return result

    def __add__(self, n: int) -> Wrap32:
        return Wrap32(self.raw_value + n)