import pytest

from tubesim import (
    BufferRegister,
    ConfigurationError,
    Register,
    ShiftMode,
    ShiftRegister,
    UniversalShiftRegister,
)

HIGH, LOW = 5.0, 0.0


def replayed(register, copy):
    for pin, voltage in register.snapshot_writes():
        copy.write_pin(pin, voltage)
    return copy


class TestRegister:
    def test_load_waits_for_edge(self):
        register = Register("reg", 8)
        register.load(0xA5)
        assert register.value == 0
        assert register.read_bus("Q") == 0
        register.pulse()
        assert register.value == 0xA5
        assert register.read_bus("Q") == 0xA5

    @pytest.mark.parametrize("value", [0, 1, 0x5A, 0xFF])
    def test_load_read_round_trip(self, value):
        register = Register("reg", 8)
        register.load(value)
        register.pulse()
        assert register.read_bus("Q") == value

    def test_clear(self):
        register = Register("reg", 4)
        register.preset(0b1111)
        register.write_pin("CLR", HIGH)
        assert register.value == 0
        register.load(0b0101)
        register.pulse()
        assert register.value == 0
        register.write_pin("CLR", LOW)
        register.pulse()
        assert register.value == 0b0101

    def test_bits(self):
        register = Register("reg", 4)
        register.preset(0b0110)
        assert register.bits == [False, True, True, False]

    def test_bad_width(self):
        with pytest.raises(ConfigurationError, match="cannot have width 0"):
            Register("reg", 0)

    def test_snapshot(self):
        register = Register("reg", 6)
        register.load(0b101101)
        register.pulse()
        register.load(0b000011)
        copy = replayed(register, Register("reg", 6))
        assert copy.value == 0b101101
        assert copy.input_word("D") == 0b000011


class TestBufferRegister:
    def test_load_enable(self):
        register = BufferRegister("buf", 4)
        register.load(0b1001)
        register.pulse()
        assert register.value == 0
        register.write_pin("LOAD", HIGH)
        register.pulse()
        assert register.value == 0b1001

    def test_output_enable(self):
        register = BufferRegister("buf", 4)
        register.preset(0b1111)
        assert register.read_bus("Q") == 0b1111
        register.write_pin("OE", LOW)
        assert register.read_bus("Q") == 0
        assert register.value == 0b1111


class TestShiftRegister:
    def test_shift_left(self):
        register = ShiftRegister("sr", 4)
        register.preset(0b1011)
        out = register.shift_left(serial_in=False)
        assert out is True
        assert register.value == 0b0110

    def test_shift_right(self):
        register = ShiftRegister("sr", 4)
        register.preset(0b1011)
        out = register.shift_right(serial_in=True)
        assert out is True
        assert register.value == 0b1101

    def test_taps(self):
        register = ShiftRegister("sr", 4)
        register.preset(0b1000)
        assert register.read_pin("SOUT_L") == HIGH
        assert register.read_pin("SOUT_R") == LOW

    def test_load(self):
        register = ShiftRegister("sr", 4)
        register.load(0b0110)
        assert register.value == 0b0110

    @pytest.mark.parametrize("value", [0b0000, 0b0101, 0b0111, 0b1111])
    def test_left_then_right(self, value):
        # Restores all but the bit shifted out.
        register = ShiftRegister("sr", 4)
        register.preset(value)
        register.shift_left()
        register.shift_right()
        assert register.value == value & 0b0111


class TestUniversalShiftRegister:
    def test_scenario(self):
        register = UniversalShiftRegister("usr", 4)
        register.preset(0b1011)
        register.set_mode(ShiftMode.RIGHT)
        register.set_serial(right=True)
        register.pulse()
        assert register.read_bus("Q") == 0b1101
        register.set_mode(ShiftMode.LOAD)
        register.set_parallel(0b0010)
        register.pulse()
        assert register.read_bus("Q") == 0b0010

    def test_shift_left(self):
        register = UniversalShiftRegister("usr", 4)
        register.preset(0b0011)
        register.set_mode(ShiftMode.LEFT)
        register.set_serial(left=True)
        register.pulse()
        assert register.value == 0b0111

    def test_nop(self):
        register = UniversalShiftRegister("usr", 4)
        register.preset(0b0101)
        assert register.mode is ShiftMode.NOP
        register.pulse(3)
        assert register.value == 0b0101

    def test_mode_pins(self):
        register = UniversalShiftRegister("usr", 4)
        register.set_mode(2)
        assert register.mode is ShiftMode.LEFT
        assert (register.level("S0"), register.level("S1")) == (False, True)

    def test_snapshot(self):
        register = UniversalShiftRegister("usr", 4)
        register.preset(0b1001)
        register.set_mode(ShiftMode.RIGHT)
        copy = replayed(register, UniversalShiftRegister("usr", 4))
        assert copy.value == 0b1001
        assert copy.mode is ShiftMode.RIGHT
