"""
Voltage / logic encoding.

A pin carries a single voltage.  Its logic view is derived on demand by comparison
with a threshold, and logic results are turned back into voltages with the family's
high and low levels.  Words are handled as plain ints, or as bit lists with bit 0
being the least significant.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

__all__ = [
    "LogicFamily",
    "from_bcd",
    "from_bits",
    "mask",
    "to_bcd",
    "to_bits",
]


@dataclass(frozen=True)
class LogicFamily:
    """The common high/low/threshold voltages shared by a group of components."""

    high: float = 5.0
    low: float = 0.0
    threshold: float = 2.5

    def __post_init__(self):
        if not self.low <= self.threshold <= self.high:
            msg = (
                f"Threshold {self.threshold} does not lie between low={self.low} "
                f"and high={self.high}."
            )
            raise ValueError(msg)

    @staticmethod
    def standard() -> LogicFamily:
        """The default 5V family."""
        return LogicFamily()

    def logic(self, voltage: float) -> bool:
        return voltage > self.threshold

    def voltage(self, level: Any) -> float:
        return self.high if level else self.low

    def create(self, component_class, *args, **kwargs):
        """Construct a component belonging to this family."""
        kwargs["family"] = self
        return component_class(*args, **kwargs)


def mask(width: int) -> int:
    return (1 << width) - 1


def to_bits(value: int, width: int) -> list[bool]:
    """Split a value into 'width' bits, LSB first.  Excess high bits are dropped."""
    return [bool((value >> i) & 1) for i in range(width)]


def from_bits(bits: Sequence[Any] | Iterable[Any]) -> int:
    """Join bits (LSB first) into an int."""
    result = 0
    for i, bit in enumerate(bits):
        if bit:
            result |= 1 << i
    return result


def to_bcd(number: int, digits: int) -> int:
    """Encode a decimal number as packed BCD, 4 bits per digit, lowest digit first."""
    result = 0
    for digit in range(digits):
        result |= (number % 10) << (4 * digit)
        number //= 10
    return result


def from_bcd(value: int, digits: int) -> int:
    """Decode packed BCD.  Nibbles above 9 are decoded as-is."""
    result = 0
    for digit in reversed(range(digits)):
        result = result * 10 + ((value >> (4 * digit)) & 0xF)
    return result
