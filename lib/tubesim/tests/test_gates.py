from itertools import product

import pytest

from tubesim import (
    AndGate,
    ConfigurationError,
    FullAdder,
    HalfAdder,
    NandGate,
    NorGate,
    NotGate,
    OrGate,
    XorGate,
)

HIGH, LOW = 5.0, 0.0


def volts(level):
    return HIGH if level else LOW


def drive(component, **levels):
    for name, level in levels.items():
        component.write_pin(name, volts(level))


def levels(component, *names):
    return tuple(component.read_pin(name) > 2.5 for name in names)


class TestNot:
    def test_truth(self):
        gate = NotGate("inv")
        assert gate.read_pin("OUT") == HIGH
        gate.write_pin("IN", HIGH)
        assert gate.read_pin("OUT") == LOW


GATE_FUNCTIONS = {
    AndGate: all,
    OrGate: any,
    NandGate: lambda bits: not all(bits),
    NorGate: lambda bits: not any(bits),
}


class TestGates:
    @pytest.mark.parametrize("gate_class", list(GATE_FUNCTIONS))
    @pytest.mark.parametrize("inputs", [2, 3])
    def test_truth_table(self, gate_class, inputs):
        gate = gate_class("g", inputs=inputs)
        function = GATE_FUNCTIONS[gate_class]
        for bits in product([False, True], repeat=inputs):
            for bit, level in enumerate(bits):
                gate.write_pin(f"IN{bit}", volts(level))
            assert gate.read_pin("OUT") == volts(function(bits)), bits

    def test_xor(self):
        gate = XorGate("x")
        for a, b in product([False, True], repeat=2):
            drive(gate, IN0=a, IN1=b)
            assert levels(gate, "OUT") == (a != b,)

    @pytest.mark.parametrize("inputs", [1, 9])
    def test_bad_inputs(self, inputs):
        with pytest.raises(ConfigurationError, match=f"cannot have {inputs} inputs"):
            AndGate("g", inputs=inputs)

    def test_tick_idempotent(self):
        gate = NandGate("g", inputs=4)
        gate.write_bus("IN", 0b1111)
        gate.tick()
        gate.tick()
        assert gate.read_pin("OUT") == LOW


class TestAdders:
    @pytest.mark.parametrize("a, b", list(product([False, True], repeat=2)))
    def test_half_adder(self, a, b):
        adder = HalfAdder("ha")
        drive(adder, A=a, B=b)
        assert levels(adder, "SUM", "CARRY") == (a != b, a and b)

    @pytest.mark.parametrize("a, b, cin", list(product([False, True], repeat=3)))
    def test_full_adder(self, a, b, cin):
        adder = FullAdder("fa")
        drive(adder, A=a, B=b, CIN=cin)
        total = a + b + cin
        assert levels(adder, "SUM", "COUT") == (bool(total & 1), total >= 2)

    def test_full_adder_layout(self):
        names = [pin.name for pin in FullAdder("fa").pins]
        assert names == ["A", "B", "CIN", "SUM", "COUT", "BPLUS", "GND"]
