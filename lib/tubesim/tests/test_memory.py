import logging

import pytest

from tubesim import Accumulator, AccOp, ConfigurationError, Memory

HIGH, LOW = 5.0, 0.0


class TestMemory:
    @pytest.fixture
    def memory(self):
        return Memory("ram", address_bits=3, data_bits=4)

    def test_write_read(self, memory):
        # 8 words of 4 bits.
        memory.write_bus("A", 3)
        memory.write_bus("DI", 0b1010)
        memory.write_pin("WE", HIGH)
        memory.pulse()
        memory.write_pin("WE", LOW)
        memory.write_pin("RE", HIGH)
        assert memory.read_bus("DO") == 0b1010
        memory.write_bus("A", 5)
        assert memory.read_bus("DO") == 0b0000

    def test_write_needs_edge(self, memory):
        memory.write_bus("DI", 0b0111)
        memory.write_pin("WE", HIGH)
        assert memory.words[0] == 0
        memory.write_pin("CLK", HIGH)
        assert memory.words[0] == 0b0111

    def test_no_write_without_enable(self, memory):
        memory.write_bus("DI", 0b0111)
        memory.pulse()
        assert memory.dump() == [0] * 8

    def test_read_enable(self, memory):
        memory.write(2, 0b1001)
        memory.write_bus("A", 2)
        assert memory.read_bus("DO") == 0
        memory.write_pin("RE", HIGH)
        assert memory.read_bus("DO") == 0b1001

    @pytest.mark.parametrize("address", range(8))
    def test_reads_back_until_rewritten(self, memory, address):
        memory.write(address, 0b1100)
        memory.write((address + 1) % 8, 0b0011)
        assert memory.read(address) == 0b1100
        memory.write(address, 0b0110)
        assert memory.read(address) == 0b0110

    def test_read_restores_enable(self, memory):
        memory.write(1, 5)
        assert memory.read(1) == 5
        assert memory.level("RE") is False
        assert memory.read_bus("DO") == 0

    def test_load_image(self, memory):
        memory.load_image([1, 2, 3], base=4)
        assert memory.size == 8
        assert memory.dump() == [0, 0, 0, 0, 1, 2, 3, 0]

    def test_truncated_data(self, memory, caplog):
        with caplog.at_level(logging.WARNING, logger="tubesim.component"):
            memory.write(0, 0x1F)
        assert memory.read(0) == 0xF
        assert "does not fit in 4 bits of 'ram'" in caplog.text

    def test_bad_widths(self):
        with pytest.raises(ConfigurationError, match="cannot have address width 0"):
            Memory("ram", address_bits=0)
        with pytest.raises(ConfigurationError, match="cannot have data width 0"):
            Memory("ram", data_bits=0)

    def test_snapshot(self, memory):
        memory.load_image([0, 7, 0, 12])
        memory.write_bus("A", 6)
        copy = Memory("ram", address_bits=3, data_bits=4)
        for pin, voltage in memory.snapshot_writes():
            copy.write_pin(pin, voltage)
        assert copy.dump() == memory.dump()
        assert copy.level("WE") is False


class TestAccumulator:
    @pytest.fixture
    def acc(self):
        return Accumulator("acc", 8)

    def test_load(self, acc):
        acc.load(0x3C)
        assert acc.value == 0x3C
        assert acc.read_bus("Q") == 0x3C
        assert acc.input_word("OP") == AccOp.NOP

    def test_operations(self, acc):
        acc.load(10)
        acc.add(5)
        assert acc.value == 15
        acc.subtract(3)
        assert acc.value == 12
        acc.increment()
        assert acc.value == 13
        acc.shift_left()
        assert acc.value == 26
        acc.shift_right()
        assert acc.value == 13
        acc.clear()
        assert acc.value == 0
        assert acc.read_pin("ZERO") == HIGH

    def test_op_waits_for_edge(self, acc):
        acc.write_bus("OP", AccOp.LOAD)
        acc.write_bus("D", 9)
        assert acc.value == 0
        acc.pulse()
        assert acc.value == 9
        acc.pulse()
        assert acc.value == 9

    def test_nop(self, acc):
        acc.load(4)
        acc.write_bus("D", 1)
        acc.pulse(3)
        assert acc.value == 4

    def test_flags(self, acc):
        acc.load(0xFF)
        acc.add(1)
        assert acc.value == 0
        assert acc.read_pin("COUT") == HIGH
        assert acc.read_pin("ZERO") == HIGH
        acc.load(0x7F)
        acc.increment()
        assert acc.read_pin("OVF") == HIGH
        assert acc.read_pin("SIGN") == HIGH

    def test_borrow(self, acc):
        acc.load(5)
        acc.subtract(7)
        assert acc.value == 0xFE
        assert acc.read_pin("COUT") == LOW

    def test_clear_pin(self, acc):
        acc.load(0x55)
        acc.write_pin("CLR", HIGH)
        assert acc.value == 0
        acc.add(3)
        assert acc.value == 0
        acc.write_pin("CLR", LOW)
        acc.add(3)
        assert acc.value == 3

    def test_bit_sequence(self, acc):
        acc.load([1, 0, 1])
        assert acc.value == 0b101

    def test_snapshot(self, acc):
        acc.load(0x42)
        copy = Accumulator("acc", 8)
        for pin, voltage in acc.snapshot_writes():
            copy.write_pin(pin, voltage)
        assert copy.value == 0x42
        assert copy.input_word("OP") == AccOp.NOP
