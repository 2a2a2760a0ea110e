"""
Counters : binary (modulus) counters, BCD, ring, Johnson and ripple counters, and a
clock divider.

Counters change state only on an active clock edge, or on each tick when
'free_running'.  An active-high RESET forces the initial state immediately and holds
it while high.
"""

import logging
from typing import Any, Iterable

from tubesim.component import Pin, PinKind
from tubesim.errors import ConfigurationError
from tubesim.flipflops import Clocked, TFlipFlop
from tubesim.logic import from_bits, mask, to_bits

__all__ = [
    "BCDCounter",
    "ClockDivider",
    "Counter",
    "JohnsonCounter",
    "RingCounter",
    "RippleCounter",
]

logger = logging.getLogger(__name__)


class Counter(Clocked):
    """
    A W-bit counter with modulus M (1 <= M <= 2**W), counting in [0, M).

    Pins : CLK, RESET, EN, LOAD, UP, D0..D<w-1>, Q0..Q<w-1>, CARRY, BPLUS, GND.

    On each active edge : LOAD high pre-loads the D bus; otherwise, while EN is high,
    the count moves up (UP high) or down modulo M.  CARRY is asserted from the edge
    which wraps the count until the next edge.
    """

    OUTPUTS = ["CARRY"]

    def __init__(
        self,
        name: str,
        width: int = 4,
        modulus: int | None = None,
        *,
        count_up: bool = True,
        **kwargs,
    ):
        super().__init__(name, **kwargs)
        self.check_width(width)
        if modulus is None:
            modulus = 1 << width
        if not 1 <= modulus <= 1 << width:
            msg = f"Modulus {modulus} of {name!r} is not in [1, {1 << width}]."
            raise ConfigurationError(msg)
        self.width = width
        self.modulus = modulus
        self.add_input(self.CLOCK_PIN)
        self.add_input("RESET")
        self.add_input("EN", default=True)
        self.add_input("LOAD")
        self.add_input("UP", default=count_up)
        self.add_bus("D", width)
        self.add_bus("Q", width, PinKind.OUTPUT)
        for output in self.OUTPUTS:
            self.add_output(output)
        self.add_power()
        self.count = 0
        self.carry = False
        self._refresh()

    @property
    def value(self) -> int:
        return self.count

    def on_input(self, pin: Pin, voltage: float):
        if pin.name == "RESET" and self.level("RESET"):
            self.count = 0
            self.carry = False
            self._refresh()

    def on_edge(self):
        if self.level("RESET"):
            return
        self.carry = False
        if self.level("LOAD"):
            self.count = self._fit(self.input_word("D"))
        elif self.level("EN"):
            self.advance()
        self._refresh()

    def advance(self):
        if self.level("UP"):
            self.count += 1
            if self.count >= self.modulus:
                self.count = 0
                self.carry = True
        elif self.count == 0:
            self.count = self.modulus - 1
            self.carry = True
        else:
            self.count -= 1

    def _fit(self, value: int) -> int:
        if value >= self.modulus:
            self._out_of_range(f"Count {value} exceeds modulus {self.modulus}")
            value %= self.modulus
        return value

    def _refresh(self):
        self.set_output_word("Q", self.count)
        self.set_output("CARRY", self.carry)

    def reset(self):
        self.write_pin("RESET", self.family.high)
        self.write_pin("RESET", self.family.low)

    def preload(self, value: int):
        """Load a count in one edge."""
        self.write_bus("D", self.check_range(value, self.width, "preload"))
        self.write_pin("LOAD", self.family.high)
        self.pulse()
        self.write_pin("LOAD", self.family.low)

    def snapshot_writes(self) -> list[tuple[str, float]]:
        setup = {"RESET": self.family.low, "LOAD": self.family.high}
        for bit, level in enumerate(to_bits(self.count, self.width)):
            setup[f"D{bit}"] = self.family.voltage(level)
        return self.clocked_writes(setup)


class ClockDivider(Counter):
    """Toggles its OUT pin once every N active edges : the clock frequency / 2N."""

    OUTPUTS = ["CARRY", "OUT"]

    def __init__(self, name: str, divide_by: int = 2, **kwargs):
        if divide_by < 1:
            msg = f"Clock divider {name!r} cannot divide by {divide_by}."
            raise ConfigurationError(msg)
        self.divide_by = divide_by
        self.divided_clock = False
        width = max(1, (divide_by - 1).bit_length())
        super().__init__(name, width, modulus=divide_by, **kwargs)

    def advance(self):
        super().advance()
        if self.carry:
            self.divided_clock = not self.divided_clock

    def on_input(self, pin: Pin, voltage: float):
        if pin.name == "RESET" and self.level("RESET"):
            self.divided_clock = False
        super().on_input(pin, voltage)

    def _refresh(self):
        super()._refresh()
        self.set_output("OUT", self.divided_clock)

    def snapshot_writes(self) -> list[tuple[str, float]]:
        # From reset, the divided clock toggles after each 'divide_by' edges.
        edges = self.count + (self.divide_by if self.divided_clock else 0)
        high, low = self.family.high, self.family.low
        setup = {"RESET": low, "LOAD": low, "EN": high, "UP": high}
        return [("RESET", high)] + self.clocked_writes(setup, edges)


class BCDCounter(Clocked):
    """
    Decimal counter of one or more BCD digits, each a modulus-10 Counter.

    A digit is enabled only when all lower digits are at 9, so each digit's carry
    advances the next.  CARRY is asserted when the whole count wraps to 0.
    Pins : CLK, RESET, EN, Q0..Q<4*digits-1>, CARRY, BPLUS, GND.
    """

    def __init__(self, name: str, digits: int = 1, **kwargs):
        super().__init__(name, **kwargs)
        if digits < 1:
            msg = f"BCD counter {name!r} cannot have {digits} digits."
            raise ConfigurationError(msg)
        self.digits = digits
        self.add_input(self.CLOCK_PIN)
        self.add_input("RESET")
        self.add_input("EN", default=True)
        self.add_bus("Q", 4 * digits, PinKind.OUTPUT)
        self.add_output("CARRY")
        self.add_power()
        self.digit_counters = [
            Counter(f"{name}.digit{digit}", 4, modulus=10, family=self.family)
            for digit in range(digits)
        ]
        self._refresh()

    @property
    def value(self) -> int:
        """The count as a decimal number."""
        result = 0
        for counter in reversed(self.digit_counters):
            result = result * 10 + counter.count
        return result

    @property
    def carry(self) -> bool:
        return self.digit_counters[-1].carry

    def on_input(self, pin: Pin, voltage: float):
        if pin.name == "RESET":
            for counter in self.digit_counters:
                counter.write_pin("RESET", voltage)
            self._refresh()

    def on_edge(self):
        enable = self.level("EN")
        # Enables are all decided before any digit is clocked.
        for counter in self.digit_counters:
            counter.write_pin("EN", self.family.voltage(enable))
            enable = enable and counter.count == 9
        for counter in self.digit_counters:
            counter.pulse()
        self._refresh()

    def _refresh(self):
        packed = 0
        for digit, counter in enumerate(self.digit_counters):
            packed |= counter.count << (4 * digit)
        self.set_output_word("Q", packed)
        self.set_output("CARRY", self.carry)

    def snapshot_writes(self) -> list[tuple[str, float]]:
        edges = self.value
        if edges == 0 and self.carry:
            edges = 10**self.digits
        setup = {"RESET": self.family.low, "EN": self.family.high}
        return [("RESET", self.family.high)] + self.clocked_writes(setup, edges)


class _Sequence(Clocked):
    """A W-bit state stepped through a fixed sequence, one step per active edge.

    RESET restores (and holds) the initial state.
    """

    def __init__(self, name: str, width: int = 4, **kwargs):
        super().__init__(name, **kwargs)
        self.check_width(width)
        self.width = width
        self.add_input(self.CLOCK_PIN)
        self.add_input("RESET")
        self.add_bus("Q", width, PinKind.OUTPUT)
        self.add_power()
        self.initial_state = 0
        self.state = 0

    @property
    def value(self) -> int:
        return self.state

    def next_state(self, state: int) -> int:
        raise NotImplementedError

    def on_input(self, pin: Pin, voltage: float):
        if pin.name == "RESET" and self.level("RESET"):
            self.state = self.initial_state
            self.set_output_word("Q", self.state)

    def on_edge(self):
        if not self.level("RESET"):
            self.state = self.next_state(self.state)
            self.set_output_word("Q", self.state)

    def snapshot_writes(self) -> list[tuple[str, float]]:
        # Count the steps from the initial state.
        edges, state = 0, self.initial_state
        while state != self.state and edges <= 2 * self.width:
            state = self.next_state(state)
            edges += 1
        setup = {"RESET": self.family.low}
        return [("RESET", self.family.high)] + self.clocked_writes(setup, edges)


class RingCounter(_Sequence):
    """Rotates a (normally one-hot) pattern by one bit on each active edge.

    RESET restores the initial pattern.
    """

    def __init__(
        self, name: str, width: int = 4, pattern: int = 1, *, rotate_left=True, **kwargs
    ):
        super().__init__(name, width, **kwargs)
        self.rotate_left = rotate_left
        self.initial_state = self.check_range(pattern, width, "pattern")
        if bin(self.initial_state).count("1") != 1:
            logger.warning("Ring counter %r pattern %s is not one-hot.", name, pattern)
        self.state = self.initial_state
        self.set_output_word("Q", self.state)

    def next_state(self, state: int) -> int:
        top = self.width - 1
        if self.rotate_left:
            return ((state << 1) | (state >> top)) & mask(self.width)
        return (state >> 1) | ((state & 1) << top)


class JohnsonCounter(_Sequence):
    """Twisted ring : shifts left, taking the complement of the MSB into the LSB.

    Runs through 2W states.  RESET clears to zero.
    """

    def next_state(self, state: int) -> int:
        msb = (state >> (self.width - 1)) & 1
        return ((state << 1) | (1 - msb)) & mask(self.width)


class RippleCounter(Clocked):
    """
    Asynchronous up-counter of W T flip-flops with T tied high.

    The first stage takes the counter clock; each later stage is clocked by the QBAR
    of the stage before, so it toggles when that stage falls from 1 to 0.
    Pins : CLK, CLR, Q0..Q<w-1>, BPLUS, GND.
    """

    def __init__(self, name: str, width: int = 4, **kwargs):
        super().__init__(name, **kwargs)
        self.check_width(width)
        self.width = width
        self.add_input(self.CLOCK_PIN)
        self.add_input("CLR")
        self.add_bus("Q", width, PinKind.OUTPUT)
        self.add_power()
        self.stages = [
            TFlipFlop(
                f"{name}.t{bit}",
                family=self.family,
                edge=self.edge if bit == 0 else "rising",
            )
            for bit in range(width)
        ]
        for stage in self.stages[1:]:
            # Settle each later clock at QBAR while T is low, so the edge is a no-op.
            stage.write_pin("CLK", self.family.high)
        for stage in self.stages:
            stage.write_pin("T", self.family.high)
        self._refresh()

    @property
    def value(self) -> int:
        return from_bits(stage.q for stage in self.stages)

    def on_write(self, pin: Pin, voltage: float):
        if pin.name == self.CLOCK_PIN:
            self.clock.update(voltage)
            self._ripple(voltage)
        elif pin.name == "CLR":
            for stage in self.stages:
                stage.write_pin("RESET", voltage)
            self._ripple(self.previous_clock)

    def _ripple(self, clock_voltage: float):
        self.stages[0].write_pin("CLK", clock_voltage)
        for previous, stage in zip(self.stages, self.stages[1:]):
            stage.write_pin("CLK", previous.read_pin("QBAR"))
        self._refresh()

    def process(self):
        if self.free_running:
            self.pulse()

    def _refresh(self):
        self.set_output_word("Q", self.value)

    def preset(self, data: int | Iterable[Any]):
        """Pre-load the count, through the stage SET and RESET pins."""
        word = self.coerce_word(data, self.width)
        high, low = self.family.high, self.family.low
        for stage, bit in zip(self.stages, to_bits(word, self.width)):
            stage.write_pin("SET" if bit else "RESET", high)
        # Edges are ignored while SET or RESET is held.
        for previous, stage in zip(self.stages, self.stages[1:]):
            stage.write_pin("CLK", previous.read_pin("QBAR"))
        for stage in self.stages:
            stage.write_pin("SET", low)
            stage.write_pin("RESET", self.input_voltage("CLR"))
        self._refresh()

    def snapshot_writes(self) -> list[tuple[str, float]]:
        setup = {"CLR": self.family.low}
        return [("CLR", self.family.high)] + self.clocked_writes(setup, self.value)
