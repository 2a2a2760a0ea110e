"""
The arithmetic logic unit.

Arithmetic operations go through owned ripple-carry adders, so carry and overflow
come from the adder chain.  Flags are derived in a fixed order : the result, then
carry and overflow from the operation, then ZERO and SIGN from the final result.
"""

from enum import Enum, IntEnum
import logging

from tubesim.arithmetic import Adder, AdderMode
from tubesim.component import Combinational, PinKind
from tubesim.errors import InvalidOperationError
from tubesim.logic import mask

__all__ = ["ALU", "AluOp", "CompareResult"]

logger = logging.getLogger(__name__)

OPCODE_BITS = 4


class AluOp(IntEnum):
    ADD = 0
    SUB = 1
    AND = 2
    OR = 3
    XOR = 4
    NOT = 5
    SHL = 6
    SHR = 7
    INC = 8
    DEC = 9
    COMPARE = 10


class CompareResult(Enum):
    LESS = "less"
    EQUAL = "equal"
    GREATER = "greater"


class ALU(Combinational):
    """
    W-bit ALU, with the operation selected by a 4-bit code on OP0..OP3 (an AluOp).

    Pins : A0..A<w-1>, B0..B<w-1>, CIN, OP0..OP3, R0..R<w-1>, COUT, OVF, ZERO, SIGN,
    ERR, EQ, GT, LT, BPLUS, GND.

    Notes:
        * bitwise operations clear COUT and OVF
        * shifts put the shifted-out bit in COUT, and zero-fill
        * COMPARE computes A - B without changing R, and sets the flags from the
          difference, plus EQ / GT / LT from an unsigned comparison
        * an invalid code on the OP pins raises ERR, and all other outputs hold
    """

    def __init__(self, name: str, width: int = 8, **kwargs):
        super().__init__(name, **kwargs)
        self.check_width(width)
        self.width = width
        self.add_bus("A", width)
        self.add_bus("B", width)
        self.add_input("CIN")
        self.add_bus("OP", OPCODE_BITS)
        self.add_bus("R", width, PinKind.OUTPUT)
        for flag in ("COUT", "OVF", "ZERO", "SIGN", "ERR", "EQ", "GT", "LT"):
            self.add_output(flag)
        self.add_power()
        family = self.family
        self.adder = Adder(f"{name}.adder", width, family=family)
        self.subtractor = Adder(
            f"{name}.subtractor", width, AdderMode.SUB, family=family
        )
        self.incrementer = Adder(
            f"{name}.incrementer", width, AdderMode.INC, family=family
        )
        self._invalid_code: int | None = None
        self.evaluate()

    @property
    def operation(self) -> AluOp | None:
        """The operation selected on the OP pins, or None if the code is invalid."""
        code = self.input_word("OP")
        if code in AluOp:
            return AluOp(code)
        return None

    def evaluate(self):
        op = self.operation
        if op is None:
            code = self.input_word("OP")
            if code != self._invalid_code:
                logger.warning(
                    "ALU %r : invalid operation code %d, outputs held.", self.name, code
                )
                self._invalid_code = code
            self.set_output("ERR", True)
            return
        self._invalid_code = None
        self.set_output("ERR", False)

        a, b = self.input_word("A"), self.input_word("B")
        width_mask = mask(self.width)
        carry = overflow = False
        match op:
            case AluOp.ADD:
                result, carry, overflow = self.adder.compute(a, b, self.level("CIN"))
            case AluOp.SUB | AluOp.COMPARE:
                result, carry, overflow = self.subtractor.compute(a, b)
            case AluOp.AND:
                result = a & b
            case AluOp.OR:
                result = a | b
            case AluOp.XOR:
                result = a ^ b
            case AluOp.NOT:
                result = ~a & width_mask
            case AluOp.SHL:
                result = (a << 1) & width_mask
                carry = bool(a >> (self.width - 1))
            case AluOp.SHR:
                result = a >> 1
                carry = bool(a & 1)
            case AluOp.INC:
                result, carry, overflow = self.incrementer.compute(a)
            case AluOp.DEC:
                # A + all-ones == A - 1, with carry meaning "no borrow".
                result, carry, overflow = self.adder.compute(a, width_mask)

        if op is AluOp.COMPARE:
            self.set_output("EQ", a == b)
            self.set_output("GT", a > b)
            self.set_output("LT", a < b)
        else:
            self.set_output_word("R", result)
        self.set_output("COUT", carry)
        self.set_output("OVF", overflow)
        self.set_output("ZERO", result == 0)
        self.set_output("SIGN", (result >> (self.width - 1)) & 1)

    def set_operation(self, op: AluOp | int | str):
        """Select an operation, by AluOp, code or name."""
        match op:
            case str():
                try:
                    op = AluOp[op.upper()]
                except KeyError:
                    msg = f"ALU {self.name!r} has no operation {op!r}."
                    raise InvalidOperationError(msg) from None
            case int() if op not in AluOp:
                msg = f"ALU {self.name!r} has no operation code {op}."
                raise InvalidOperationError(msg)
        self.write_bus("OP", int(op))

    def execute(self, op: AluOp | int | str, a: int, b: int = 0, carry_in=False) -> int:
        """Set up an operation with its operands, and return the result."""
        with self.deferred():
            self.set_operation(op)
            self.write_bus("A", a)
            self.write_bus("B", b)
            self.write_pin("CIN", self.family.voltage(carry_in))
        return self.result

    @property
    def result(self) -> int:
        return self.output_word("R")

    @property
    def carry(self) -> bool:
        return self.output_level("COUT")

    @property
    def overflow(self) -> bool:
        return self.output_level("OVF")

    @property
    def zero(self) -> bool:
        return self.output_level("ZERO")

    @property
    def sign(self) -> bool:
        return self.output_level("SIGN")

    @property
    def error(self) -> bool:
        return self.output_level("ERR")

    @property
    def compare_result(self) -> CompareResult | None:
        """The outcome of the last COMPARE, if any."""
        if self.output_level("EQ"):
            return CompareResult.EQUAL
        if self.output_level("GT"):
            return CompareResult.GREATER
        if self.output_level("LT"):
            return CompareResult.LESS
        return None
