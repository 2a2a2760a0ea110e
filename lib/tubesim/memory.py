"""
Memory and accumulator.
"""

from enum import IntEnum
from typing import Any, Iterable

from tubesim.alu import ALU, AluOp
from tubesim.component import Pin, PinKind
from tubesim.flipflops import Clocked
from tubesim.muxes import Decoder
from tubesim.registers import Register

__all__ = ["AccOp", "Accumulator", "Memory"]


class Memory(Clocked):
    """
    2**A words of D bits.

    Pins : CLK, WE, RE, A0..A<a-1>, DI0..DI<d-1>, DO0..DO<d-1>, BPLUS, GND.

    With WE high, an active clock edge writes DI into the addressed word.
    With RE high, the addressed word appears on DO as soon as the address is written.
    The address is decoded by an owned Decoder.
    """

    def __init__(self, name: str, address_bits: int = 3, data_bits: int = 4, **kwargs):
        super().__init__(name, **kwargs)
        self.check_width(address_bits, "address width")
        self.check_width(data_bits, "data width")
        self.address_bits = address_bits
        self.data_bits = data_bits
        self.add_input(self.CLOCK_PIN)
        self.add_input("WE")
        self.add_input("RE")
        self.add_bus("A", address_bits)
        self.add_bus("DI", data_bits)
        self.add_bus("DO", data_bits, PinKind.OUTPUT)
        self.add_power()
        self.decoder = Decoder(f"{name}.decoder", address_bits, family=self.family)
        self.words = [0] * (1 << address_bits)

    @property
    def size(self) -> int:
        return len(self.words)

    def _address(self) -> int:
        self.decoder.write_bus("A", self.input_word("A"))
        return self.decoder.selected

    def on_edge(self):
        if self.level("WE"):
            self.words[self._address()] = self.input_word("DI")
        self._refresh()

    def on_input(self, pin: Pin, voltage: float):
        self._refresh()

    def process(self):
        super().process()
        self._refresh()

    def _refresh(self):
        if self.level("RE"):
            self.set_output_word("DO", self.words[self._address()])
        else:
            self.set_output_word("DO", 0)

    def write(self, address: int, value: int):
        """Commit one word, in one clock edge."""
        with self.deferred():
            self.write_bus("A", address)
            self.write_bus("DI", value)
        self.write_pin("WE", self.family.high)
        self.pulse()
        self.write_pin("WE", self.family.low)

    def read(self, address: int) -> int:
        read_enable = self.input_voltage("RE")
        self.write_bus("A", address)
        self.write_pin("RE", self.family.high)
        value = self.read_bus("DO")
        self.write_pin("RE", read_enable)
        return value

    def load_image(self, words: Iterable[int], base: int = 0):
        """Write a sequence of words at consecutive addresses from 'base'."""
        for address, value in enumerate(words, start=base):
            self.write(address, value)

    def dump(self) -> list[int]:
        return list(self.words)

    def snapshot_writes(self) -> list[tuple[str, float]]:
        writes = []
        voltage = self.family.voltage
        for address, value in enumerate(self.words):
            if value:
                setup = {"WE": self.family.high}
                for bit in range(self.address_bits):
                    setup[f"A{bit}"] = voltage((address >> bit) & 1)
                for bit in range(self.data_bits):
                    setup[f"DI{bit}"] = voltage((value >> bit) & 1)
                writes += self.clocked_writes(setup)
        return writes


class AccOp(IntEnum):
    NOP = 0
    LOAD = 1
    CLEAR = 2
    INC = 3
    SHL = 4
    SHR = 5
    ADD = 6
    SUB = 7


class Accumulator(Clocked):
    """
    A register and an ALU : each active edge applies the operation selected on
    OP0..OP2 (an AccOp) to the stored word, with the data bus D as second operand.

    Pins : CLK, CLR, OP0..OP2, D0..D<w-1>, Q0..Q<w-1>, COUT, OVF, ZERO, SIGN, BPLUS,
    GND.

    All updates pass through the ALU, and the flags are taken from it after each one.
    """

    OPERATIONS = {
        AccOp.LOAD: AluOp.OR,
        AccOp.CLEAR: AluOp.AND,
        AccOp.INC: AluOp.INC,
        AccOp.SHL: AluOp.SHL,
        AccOp.SHR: AluOp.SHR,
        AccOp.ADD: AluOp.ADD,
        AccOp.SUB: AluOp.SUB,
    }

    def __init__(self, name: str, width: int = 8, **kwargs):
        super().__init__(name, **kwargs)
        self.check_width(width)
        self.width = width
        self.add_input(self.CLOCK_PIN)
        self.add_input("CLR")
        self.add_bus("OP", 3)
        self.add_bus("D", width)
        self.add_bus("Q", width, PinKind.OUTPUT)
        for flag in ("COUT", "OVF", "ZERO", "SIGN"):
            self.add_output(flag)
        self.add_power()
        self.register = Register(f"{name}.register", width, family=self.family)
        self.alu = ALU(f"{name}.alu", width, family=self.family)
        self._refresh()

    @property
    def value(self) -> int:
        return self.register.value

    def on_input(self, pin: Pin, voltage: float):
        if pin.name == "CLR":
            self.register.write_pin("CLR", voltage)
            self._refresh()

    def on_edge(self):
        op = AccOp(self.input_word("OP"))
        if op is AccOp.NOP or self.level("CLR"):
            return
        # LOAD is D OR 0, CLEAR is Q AND 0.
        match op:
            case AccOp.LOAD:
                a, b = self.input_word("D"), 0
            case AccOp.CLEAR:
                a, b = self.value, 0
            case _:
                a, b = self.value, self.input_word("D")
        result = self.alu.execute(self.OPERATIONS[op], a, b)
        self.register.load(result)
        self.register.pulse()
        self._refresh()

    def _refresh(self):
        self.set_output_word("Q", self.value)
        self.set_output("COUT", self.alu.carry)
        self.set_output("OVF", self.alu.overflow)
        self.set_output("ZERO", self.value == 0)
        self.set_output("SIGN", (self.value >> (self.width - 1)) & 1)

    def _operate(self, op: AccOp, data: int | Iterable[Any] | None = None):
        with self.deferred():
            self.write_bus("OP", op)
            if data is not None:
                self.write_bus("D", self.coerce_word(data, self.width, op.name))
        self.pulse()
        self.write_bus("OP", AccOp.NOP)

    def load(self, data: int | Iterable[Any]):
        self._operate(AccOp.LOAD, data)

    def clear(self):
        self._operate(AccOp.CLEAR)

    def increment(self):
        self._operate(AccOp.INC)

    def shift_left(self):
        self._operate(AccOp.SHL)

    def shift_right(self):
        self._operate(AccOp.SHR)

    def add(self, data: int | Iterable[Any]):
        self._operate(AccOp.ADD, data)

    def subtract(self, data: int | Iterable[Any]):
        self._operate(AccOp.SUB, data)

    def snapshot_writes(self) -> list[tuple[str, float]]:
        setup = {"CLR": self.family.low}
        for bit in range(3):
            setup[f"OP{bit}"] = self.family.voltage((AccOp.LOAD >> bit) & 1)
        for bit in range(self.width):
            setup[f"D{bit}"] = self.family.voltage((self.value >> bit) & 1)
        return self.clocked_writes(setup)
