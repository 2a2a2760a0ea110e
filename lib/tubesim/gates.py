"""
Combinational primitives : logic gates, half-adder and full-adder.

All outputs settle within each write_pin call, and 'tick' is idempotent.
"""

from enum import IntEnum
from functools import reduce
import operator

from tubesim.component import Combinational
from tubesim.errors import ConfigurationError

__all__ = [
    "AndGate",
    "FullAdder",
    "Gate",
    "HalfAdder",
    "NandGate",
    "NorGate",
    "NotGate",
    "OrGate",
    "XorGate",
]

MIN_INPUTS, MAX_INPUTS = 2, 8


class Gate(Combinational):
    """An N-input gate, with pins IN0..IN<n-1>, OUT, BPLUS, GND."""

    def __init__(self, name: str, inputs: int = 2, **kwargs):
        super().__init__(name, **kwargs)
        if not MIN_INPUTS <= inputs <= MAX_INPUTS:
            msg = (
                f"{self.__class__.__name__} {name!r} cannot have {inputs} inputs : "
                f"must be {MIN_INPUTS} to {MAX_INPUTS}."
            )
            raise ConfigurationError(msg)
        self.input_count = inputs
        self.add_bus("IN", inputs)
        self.add_output("OUT")
        self.add_power()
        self.evaluate()

    def function(self, levels: list[bool]) -> bool:
        raise NotImplementedError

    def evaluate(self):
        levels = [self.level(pin_id) for pin_id in self.bus("IN")]
        self.set_output("OUT", self.function(levels))


class AndGate(Gate):
    def function(self, levels):
        return all(levels)


class OrGate(Gate):
    def function(self, levels):
        return any(levels)


class NandGate(Gate):
    def function(self, levels):
        return not all(levels)


class NorGate(Gate):
    def function(self, levels):
        return not any(levels)


class XorGate(Gate):
    def __init__(self, name: str, **kwargs):
        super().__init__(name, inputs=2, **kwargs)

    def function(self, levels):
        return reduce(operator.xor, levels)


class NotGate(Combinational):
    class Pins(IntEnum):
        IN = 0
        OUT = 1
        BPLUS = 2
        GND = 3

    def __init__(self, name: str, **kwargs):
        super().__init__(name, **kwargs)
        self.add_layout(self.Pins, outputs=["OUT"])
        self.evaluate()

    def evaluate(self):
        self.set_output("OUT", not self.level("IN"))


class HalfAdder(Combinational):
    """sum = A xor B, carry = A and B, from an XOR and an AND gate."""

    class Pins(IntEnum):
        A = 0
        B = 1
        SUM = 2
        CARRY = 3
        BPLUS = 4
        GND = 5

    def __init__(self, name: str, **kwargs):
        super().__init__(name, **kwargs)
        self.add_layout(self.Pins, outputs=["SUM", "CARRY"])
        self.xor_gate = XorGate(f"{name}.xor", family=self.family)
        self.and_gate = AndGate(f"{name}.and", family=self.family)
        self.evaluate()

    def evaluate(self):
        for gate in (self.xor_gate, self.and_gate):
            with gate.deferred():
                gate.write_pin("IN0", self._voltages[self.Pins.A])
                gate.write_pin("IN1", self._voltages[self.Pins.B])
        self.set_output("SUM", self.family.logic(self.xor_gate.read_pin("OUT")))
        self.set_output("CARRY", self.family.logic(self.and_gate.read_pin("OUT")))


class FullAdder(Combinational):
    """Two half-adders and an OR gate.

    sum = A xor B xor CIN, cout = AB or (A xor B)CIN.
    """

    class Pins(IntEnum):
        A = 0
        B = 1
        CIN = 2
        SUM = 3
        COUT = 4
        BPLUS = 5
        GND = 6

    def __init__(self, name: str, **kwargs):
        super().__init__(name, **kwargs)
        self.add_layout(self.Pins, outputs=["SUM", "COUT"])
        self.first_half = HalfAdder(f"{name}.ha1", family=self.family)
        self.second_half = HalfAdder(f"{name}.ha2", family=self.family)
        self.or_gate = OrGate(f"{name}.or", family=self.family)
        self.evaluate()

    def evaluate(self):
        ha1, ha2 = self.first_half, self.second_half
        with ha1.deferred():
            ha1.write_pin("A", self._voltages[self.Pins.A])
            ha1.write_pin("B", self._voltages[self.Pins.B])
        with ha2.deferred():
            ha2.write_pin("A", ha1.read_pin("SUM"))
            ha2.write_pin("B", self._voltages[self.Pins.CIN])
        with self.or_gate.deferred():
            self.or_gate.write_pin("IN0", ha1.read_pin("CARRY"))
            self.or_gate.write_pin("IN1", ha2.read_pin("CARRY"))
        self.set_output("SUM", self.family.logic(ha2.read_pin("SUM")))
        self.set_output("COUT", self.family.logic(self.or_gate.read_pin("OUT")))
