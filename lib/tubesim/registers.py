"""
Word-level storage : registers and shift registers, built from D flip-flops.

All registers share the same arrangement of pins :
    CLK, <control inputs>, <data input bus>, Q0..Q<w-1>, <taps>, BPLUS, GND
and hold their word in one D flip-flop per bit, all clocked together.
An asynchronous CLR (active high) resets every bit.
"""

from enum import IntEnum
from typing import Any, Iterable

from tubesim.component import Pin, PinKind
from tubesim.flipflops import Clocked, DFlipFlop
from tubesim.logic import from_bits, mask, to_bits

__all__ = [
    "BufferRegister",
    "Register",
    "ShiftMode",
    "ShiftRegister",
    "UniversalShiftRegister",
    "WordRegister",
]


class WordRegister(Clocked):
    """Common behaviour of clocked W-bit registers.

    Subclasses define 'next_word', the word to commit on an active edge (or None to
    hold).
    """

    CONTROLS: list[tuple[str, bool]] = [("CLR", False)]
    DATA_BUS = "D"
    TAPS: list[str] = []

    def __init__(self, name: str, width: int = 8, **kwargs):
        super().__init__(name, **kwargs)
        self.check_width(width)
        self.width = width
        self.add_input(self.CLOCK_PIN)
        for control, default in self.CONTROLS:
            self.add_input(control, default)
        self.add_bus(self.DATA_BUS, width)
        self.add_bus("Q", width, PinKind.OUTPUT)
        for tap in self.TAPS:
            self.add_output(tap)
        self.add_power()
        self.flip_flops = [
            DFlipFlop(f"{name}.ff{bit}", family=self.family) for bit in range(width)
        ]
        self._refresh()

    @property
    def value(self) -> int:
        return from_bits(ff.q for ff in self.flip_flops)

    @property
    def bits(self) -> list[bool]:
        return [ff.q for ff in self.flip_flops]

    def preset(self, data: int | Iterable[Any]):
        """Pre-load the stored word directly."""
        word = self.coerce_word(data, self.width)
        for ff, bit in zip(self.flip_flops, to_bits(word, self.width)):
            ff.preset(bit)
        self._refresh()

    def next_word(self) -> int | None:
        raise NotImplementedError

    def on_edge(self):
        word = self.next_word()
        if word is not None:
            self._commit(word)

    def on_input(self, pin: Pin, voltage: float):
        if pin.name == "CLR":
            for ff in self.flip_flops:
                ff.write_pin("RESET", voltage)
            self._refresh()

    def process(self):
        super().process()
        self._refresh()

    def _commit(self, word: int):
        for ff, bit in zip(self.flip_flops, to_bits(word, self.width)):
            ff.write_pin("D", self.family.voltage(bit))
            ff.pulse()
        self._refresh()

    def _refresh(self):
        value = self.value
        self.set_output_word("Q", value)
        if self.TAPS:
            self.set_output("SOUT_L", (value >> (self.width - 1)) & 1)
            self.set_output("SOUT_R", value & 1)

    def _load_setup(self) -> dict[str, float]:
        """Input voltages which make the next edge load the stored word."""
        setup = {"CLR": self.family.low}
        bits = to_bits(self.value, self.width)
        for bit, level in enumerate(bits):
            setup[f"{self.DATA_BUS}{bit}"] = self.family.voltage(level)
        return setup

    def snapshot_writes(self) -> list[tuple[str, float]]:
        return self.clocked_writes(self._load_setup())


class Register(WordRegister):
    """W flip-flops sharing a clock : each active edge commits D to Q.

    'load' stages a word on the D pins, and the next active clock commits it.
    """

    def load(self, data: int | Iterable[Any]):
        self.write_bus(self.DATA_BUS, self.coerce_word(data, self.width, "load"))

    def next_word(self) -> int | None:
        return self.input_word(self.DATA_BUS)


class BufferRegister(Register):
    """A register which commits only while LOAD is high, and whose outputs are low
    while the output-enable OE is low."""

    CONTROLS = [("CLR", False), ("LOAD", False), ("OE", True)]

    def next_word(self) -> int | None:
        if not self.level("LOAD"):
            return None
        return super().next_word()

    def output_voltage(self, pin: Pin) -> float:
        if not self.level("OE"):
            return self.family.low
        return super().output_voltage(pin)

    def _load_setup(self) -> dict[str, float]:
        setup = super()._load_setup()
        setup["LOAD"] = self.family.high
        return setup


class ShiftRegister(WordRegister):
    """
    Shift register with parallel load.

    On each active edge : LOAD high loads the D bus, otherwise DIR high shifts left
    (towards the MSB) and DIR low shifts right, with SIN entering the vacated bit.
    Taps SOUT_L and SOUT_R present the leftmost (MSB) and rightmost (LSB) bits.
    """

    CONTROLS = [("CLR", False), ("LOAD", False), ("DIR", False), ("SIN", False)]
    TAPS = ["SOUT_L", "SOUT_R"]

    def next_word(self) -> int | None:
        value = self.value
        if self.level("LOAD"):
            return self.input_word(self.DATA_BUS)
        serial_in = int(self.level("SIN"))
        if self.level("DIR"):
            return ((value << 1) | serial_in) & mask(self.width)
        return (value >> 1) | (serial_in << (self.width - 1))

    def shift_left(self, serial_in: bool = False):
        """Shift towards the MSB in one edge, returning the bit shifted out."""
        shifted_out = self.output_level("SOUT_L")
        self._operate(load=False, left=True, serial_in=serial_in)
        return shifted_out

    def shift_right(self, serial_in: bool = False):
        """Shift towards the LSB in one edge, returning the bit shifted out."""
        shifted_out = self.output_level("SOUT_R")
        self._operate(load=False, left=False, serial_in=serial_in)
        return shifted_out

    def load(self, data: int | Iterable[Any]):
        """Parallel load in one edge."""
        self.write_bus(self.DATA_BUS, self.coerce_word(data, self.width, "load"))
        self._operate(load=True, left=False, serial_in=False)

    def _operate(self, load: bool, left: bool, serial_in: bool):
        voltage = self.family.voltage
        self.write_pin("LOAD", voltage(load))
        self.write_pin("DIR", voltage(left))
        self.write_pin("SIN", voltage(serial_in))
        self.pulse()

    def _load_setup(self) -> dict[str, float]:
        setup = super()._load_setup()
        setup["LOAD"] = self.family.high
        return setup


class ShiftMode(IntEnum):
    NOP = 0
    RIGHT = 1
    LEFT = 2
    LOAD = 3


class UniversalShiftRegister(WordRegister):
    """
    Shift register whose operation is selected by the mode pins S1 S0 (a ShiftMode).

    Shifting right takes the new MSB from SR_IN, shifting left takes the new LSB from
    SL_IN, and loading takes the parallel data bus P.
    """

    CONTROLS = [
        ("CLR", False),
        ("S0", False),
        ("S1", False),
        ("SR_IN", False),
        ("SL_IN", False),
    ]
    DATA_BUS = "P"
    TAPS = ["SOUT_L", "SOUT_R"]

    @property
    def mode(self) -> ShiftMode:
        return ShiftMode(self.level("S0") | (self.level("S1") << 1))

    def set_mode(self, mode: ShiftMode | int):
        mode = ShiftMode(mode)
        with self.deferred():
            self.write_pin("S0", self.family.voltage(mode & 1))
            self.write_pin("S1", self.family.voltage(mode & 2))

    def set_serial(self, right: bool | None = None, left: bool | None = None):
        if right is not None:
            self.write_pin("SR_IN", self.family.voltage(right))
        if left is not None:
            self.write_pin("SL_IN", self.family.voltage(left))

    def set_parallel(self, data: int | Iterable[Any]):
        word = self.coerce_word(data, self.width, "parallel data")
        self.write_bus(self.DATA_BUS, word)

    def next_word(self) -> int | None:
        value = self.value
        match self.mode:
            case ShiftMode.NOP:
                return None
            case ShiftMode.RIGHT:
                return (value >> 1) | (int(self.level("SR_IN")) << (self.width - 1))
            case ShiftMode.LEFT:
                return ((value << 1) | int(self.level("SL_IN"))) & mask(self.width)
            case ShiftMode.LOAD:
                return self.input_word(self.DATA_BUS)

    def _load_setup(self) -> dict[str, float]:
        setup = super()._load_setup()
        setup["S0"] = setup["S1"] = self.family.high
        return setup
