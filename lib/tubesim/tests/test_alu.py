from itertools import product
import logging

import pytest

from tubesim import ALU, AluOp, CompareResult, InvalidOperationError

HIGH, LOW = 5.0, 0.0


@pytest.fixture
def alu():
    return ALU("alu", 8)


class TestOperations:
    @pytest.mark.parametrize(
        "op, a, b, expected",
        [
            (AluOp.ADD, 100, 27, 127),
            (AluOp.SUB, 100, 27, 73),
            (AluOp.AND, 0b1100, 0b1010, 0b1000),
            (AluOp.OR, 0b1100, 0b1010, 0b1110),
            (AluOp.XOR, 0b1100, 0b1010, 0b0110),
            (AluOp.NOT, 0b00001111, 0, 0b11110000),
            (AluOp.SHL, 0b10000001, 0, 0b00000010),
            (AluOp.SHR, 0b10000001, 0, 0b01000000),
            (AluOp.INC, 0xFF, 0, 0),
            (AluOp.DEC, 0, 0, 0xFF),
        ],
    )
    def test_result(self, alu, op, a, b, expected):
        assert alu.execute(op, a, b) == expected
        assert alu.read_bus("R") == expected

    def test_add_carry_in(self, alu):
        assert alu.execute(AluOp.ADD, 1, 2, carry_in=True) == 4

    @pytest.mark.parametrize(
        "op, a, carry",
        [
            (AluOp.SHL, 0b10000000, True),
            (AluOp.SHL, 0b01000000, False),
            (AluOp.SHR, 0b00000001, True),
            (AluOp.SHR, 0b00000010, False),
        ],
    )
    def test_shift_carry(self, alu, op, a, carry):
        alu.execute(op, a)
        assert alu.carry is carry

    def test_bitwise_clears_carry(self, alu):
        alu.execute(AluOp.ADD, 0xFF, 1)
        assert alu.carry
        alu.execute(AluOp.XOR, 0xFF, 1)
        assert not alu.carry
        assert not alu.overflow

    def test_subtract_borrow(self, alu):
        alu.execute(AluOp.SUB, 3, 5)
        assert alu.result == 0xFE
        assert not alu.carry
        assert alu.sign

    def test_decrement_carry(self, alu):
        alu.execute(AluOp.DEC, 1)
        assert alu.carry
        assert alu.zero
        alu.execute(AluOp.DEC, 0)
        assert not alu.carry

    def test_signed_overflow(self, alu):
        alu.execute(AluOp.ADD, 0x7F, 1)
        assert alu.overflow
        assert alu.sign

    @pytest.mark.parametrize(
        "op, a, b",
        list(
            product(
                [op for op in AluOp if op is not AluOp.COMPARE],
                [0, 1, 0x7F, 0x80, 0xFF],
                [0, 1, 0x80],
            )
        ),
    )
    def test_flags_follow_result(self, alu, op, a, b):
        alu.execute(op, a, b)
        result = alu.result
        assert alu.zero is (result == 0)
        assert alu.sign is bool(result >> 7)

    def test_narrow(self):
        alu = ALU("alu", 4)
        assert alu.execute("add", 9, 9) == 2
        assert alu.carry
        assert alu.read_pin("SIGN") == LOW


class TestCompare:
    @pytest.mark.parametrize(
        "a, b, expected",
        [
            (5, 5, CompareResult.EQUAL),
            (9, 5, CompareResult.GREATER),
            (5, 9, CompareResult.LESS),
            (0x80, 1, CompareResult.GREATER),
        ],
    )
    def test_compare(self, alu, a, b, expected):
        alu.execute(AluOp.COMPARE, a, b)
        assert alu.compare_result is expected
        assert alu.carry is (a >= b)

    def test_result_unchanged(self, alu):
        alu.execute(AluOp.ADD, 20, 22)
        alu.execute(AluOp.COMPARE, 7, 7)
        assert alu.result == 42
        assert alu.zero
        assert alu.read_pin("EQ") == HIGH

    def test_flags_only_set_by_compare(self, alu):
        assert alu.compare_result is None
        alu.execute(AluOp.COMPARE, 1, 2)
        alu.execute(AluOp.ADD, 9, 9)
        assert alu.compare_result is CompareResult.LESS


class TestOperationSelect:
    def test_by_name(self, alu):
        alu.set_operation("xor")
        assert alu.operation is AluOp.XOR
        assert alu.input_word("OP") == 4

    def test_by_code(self, alu):
        alu.set_operation(7)
        assert alu.operation is AluOp.SHR

    @pytest.mark.parametrize("op", ["mul", 11, 15])
    def test_unknown(self, alu, op):
        with pytest.raises(InvalidOperationError, match="has no operation"):
            alu.set_operation(op)

    def test_invalid_code_on_pins(self, alu, caplog):
        alu.execute(AluOp.ADD, 2, 3)
        with caplog.at_level(logging.WARNING, logger="tubesim.alu"):
            alu.write_bus("OP", 12)
            alu.write_bus("A", 7)
        assert alu.operation is None
        assert alu.error
        assert alu.read_pin("ERR") == HIGH
        assert alu.result == 5
        # Warned once, not on every evaluation.
        assert caplog.text.count("invalid operation code 12") == 1
        alu.set_operation(AluOp.ADD)
        assert not alu.error
        assert alu.result == 10
