"""
Arithmetic units : ripple-carry adder, multiplier, divider and BCD adder.

The adder is a chain of FullAdders.  The other units own adders, and do all their
arithmetic through them.
"""

from enum import Enum

from tubesim.component import Combinational, PinKind
from tubesim.errors import ConfigurationError
from tubesim.gates import FullAdder
from tubesim.logic import mask

__all__ = ["Adder", "AdderMode", "BCDAdder", "Divider", "Multiplier"]


class AdderMode(Enum):
    ADD = "add"
    SUB = "sub"
    INC = "inc"


class Adder(Combinational):
    """
    W-bit ripple-carry adder of W FullAdders.

    Modes :
        * ADD : R = A + B + CIN
        * SUB : R = A + not(B) + 1, so COUT is the inverse of the borrow
        * INC : R = A + 1, ignoring B

    Pins : A0..A<w-1>, B0..B<w-1>, CIN, R0..R<w-1>, COUT, OVF, BPLUS, GND.

    OVF is the signed overflow of the addition actually performed : the operand added
    to A has the same sign as A, and the result sign differs.
    """

    def __init__(
        self, name: str, width: int = 4, mode: AdderMode | str = AdderMode.ADD, **kwargs
    ):
        super().__init__(name, **kwargs)
        self.check_width(width)
        self.width = width
        self.mode = AdderMode(mode)
        self.add_bus("A", width)
        self.add_bus("B", width)
        self.add_input("CIN")
        self.add_bus("R", width, PinKind.OUTPUT)
        self.add_output("COUT")
        self.add_output("OVF")
        self.add_power()
        self.full_adders = [
            FullAdder(f"{name}.fa{bit}", family=self.family) for bit in range(width)
        ]
        self.evaluate()

    def _operand(self) -> tuple[int, bool]:
        """The word actually added to A, and the initial carry."""
        match self.mode:
            case AdderMode.ADD:
                return self.input_word("B"), self.level("CIN")
            case AdderMode.SUB:
                return ~self.input_word("B") & mask(self.width), True
            case AdderMode.INC:
                return 0, True

    def evaluate(self):
        a = self.input_word("A")
        operand, carry = self._operand()
        voltage = self.family.voltage
        a_ids = self.bus("A")
        result = 0
        for bit, full_adder in enumerate(self.full_adders):
            with full_adder.deferred():
                full_adder.write_pin("A", self._voltages[a_ids[bit]])
                full_adder.write_pin("B", voltage((operand >> bit) & 1))
                full_adder.write_pin("CIN", voltage(carry))
            if self.family.logic(full_adder.read_pin("SUM")):
                result |= 1 << bit
            carry = self.family.logic(full_adder.read_pin("COUT"))
        top = self.width - 1
        a_sign, operand_sign = (a >> top) & 1, (operand >> top) & 1
        result_sign = (result >> top) & 1
        self.set_output_word("R", result)
        self.set_output("COUT", carry)
        self.set_output("OVF", a_sign == operand_sign and result_sign != a_sign)

    @property
    def result(self) -> int:
        return self.output_word("R")

    @property
    def carry(self) -> bool:
        return self.output_level("COUT")

    @property
    def overflow(self) -> bool:
        return self.output_level("OVF")

    def compute(self, a: int, b: int = 0, carry_in: bool = False):
        """Drive the inputs, and return (result, carry-out, overflow)."""
        with self.deferred():
            self.write_bus("A", a)
            self.write_bus("B", b)
            self.write_pin("CIN", self.family.voltage(carry_in))
        return self.result, self.carry, self.overflow


class Multiplier(Combinational):
    """
    W x W bit shift-and-add multiplier.

    For each set bit i of B, A shifted by i is added into a 2W-bit product by an owned
    adder.  R is the low word and H the high word of the product.  COUT and OVF both
    flag a nonzero high word.

    Pins : A0..A<w-1>, B0..B<w-1>, R0..R<w-1>, H0..H<w-1>, COUT, OVF, BPLUS, GND.
    """

    def __init__(self, name: str, width: int = 4, **kwargs):
        super().__init__(name, **kwargs)
        self.check_width(width)
        self.width = width
        self.add_bus("A", width)
        self.add_bus("B", width)
        self.add_bus("R", width, PinKind.OUTPUT)
        self.add_bus("H", width, PinKind.OUTPUT)
        self.add_output("COUT")
        self.add_output("OVF")
        self.add_power()
        self.accumulator = Adder(f"{name}.adder", 2 * width, family=self.family)
        self.evaluate()

    def evaluate(self):
        a, b = self.input_word("A"), self.input_word("B")
        product = 0
        for shift in range(self.width):
            if (b >> shift) & 1:
                product, _, _ = self.accumulator.compute(product, a << shift)
        high = product >> self.width
        self.set_output_word("R", product & mask(self.width))
        self.set_output_word("H", high)
        self.set_output("COUT", high != 0)
        self.set_output("OVF", high != 0)

    @property
    def product(self) -> int:
        return self.output_word("R") | (self.output_word("H") << self.width)


class Divider(Combinational):
    """
    W-bit restoring divider : Q = A // B and R = A % B.

    Each quotient bit is decided by a trial subtraction in an owned (W+1)-bit
    subtractor.  Dividing by zero sets both Q and R to all ones, and latches the DBZ
    flag, which stays set until the active-high RESET.

    Pins : A0..A<w-1>, B0..B<w-1>, RESET, Q0..Q<w-1>, R0..R<w-1>, DBZ, BPLUS, GND.
    """

    def __init__(self, name: str, width: int = 4, **kwargs):
        super().__init__(name, **kwargs)
        self.check_width(width)
        self.width = width
        self.add_bus("A", width)
        self.add_bus("B", width)
        self.add_input("RESET")
        self.add_bus("Q", width, PinKind.OUTPUT)
        self.add_bus("R", width, PinKind.OUTPUT)
        self.add_output("DBZ")
        self.add_power()
        self.subtractor = Adder(
            f"{name}.subtractor", width + 1, AdderMode.SUB, family=self.family
        )
        self.div_by_zero = False
        # Construction shows the all-ones result, but asks for no division.
        self.evaluate(latch=False)

    def evaluate(self, latch: bool = True):
        if self.level("RESET"):
            self.div_by_zero = False
        a, b = self.input_word("A"), self.input_word("B")
        if b == 0:
            if latch and not self.level("RESET"):
                self.div_by_zero = True
            quotient = remainder = mask(self.width)
        else:
            quotient, remainder = 0, 0
            for bit in reversed(range(self.width)):
                remainder = (remainder << 1) | ((a >> bit) & 1)
                difference, no_borrow, _ = self.subtractor.compute(remainder, b)
                if no_borrow:
                    remainder = difference
                    quotient |= 1 << bit
        self.set_output_word("Q", quotient)
        self.set_output_word("R", remainder)
        self.set_output("DBZ", self.div_by_zero)

    @property
    def quotient(self) -> int:
        return self.output_word("Q")

    @property
    def remainder(self) -> int:
        return self.output_word("R")

    def snapshot_writes(self) -> list[tuple[str, float]]:
        names = [self.pin(pin_id).name for pin_id in self.bus("B")]
        restore_b = [(name, self.input_voltage(name)) for name in names]
        if self.div_by_zero:
            # A zero divisor re-latches the flag.
            return [(name, self.family.low) for name in names] + restore_b
        # Restoring B passes through zero, and may latch the flag.
        return restore_b + [
            ("RESET", self.family.high),
            ("RESET", self.input_voltage("RESET")),
        ]


class BCDAdder(Combinational):
    """
    Packed-BCD adder of one or more decimal digits.

    Each digit is summed by a 4-bit binary adder; a digit sum above 9, or with a binary
    carry, is corrected by adding 6 in a second adder, and passes a decimal carry to
    the next digit.
    With SUB high, B is replaced by its nine's complement and the initial carry is
    set, so R = A - B (in ten's complement) and COUT is high when there is no borrow.

    Pins : A0..A<4d-1>, B0..B<4d-1>, CIN, SUB, R0..R<4d-1>, COUT, BPLUS, GND.
    """

    def __init__(self, name: str, digits: int = 1, **kwargs):
        super().__init__(name, **kwargs)
        if digits < 1:
            msg = f"BCD adder {name!r} cannot have {digits} digits."
            raise ConfigurationError(msg)
        self.digits = digits
        width = 4 * digits
        self.add_bus("A", width)
        self.add_bus("B", width)
        self.add_input("CIN")
        self.add_input("SUB")
        self.add_bus("R", width, PinKind.OUTPUT)
        self.add_output("COUT")
        self.add_power()
        self.digit_adders = [
            Adder(f"{name}.digit{digit}", 4, family=self.family)
            for digit in range(digits)
        ]
        self.correctors = [
            Adder(f"{name}.correct{digit}", 4, family=self.family)
            for digit in range(digits)
        ]
        self.evaluate()

    def evaluate(self):
        a, b = self.input_word("A"), self.input_word("B")
        subtract = self.level("SUB")
        carry = True if subtract else self.level("CIN")
        result = 0
        for digit, (adder, corrector) in enumerate(
            zip(self.digit_adders, self.correctors)
        ):
            a_digit = (a >> (4 * digit)) & 0xF
            b_digit = (b >> (4 * digit)) & 0xF
            if subtract:
                b_digit = (9 - b_digit) & 0xF
            total, binary_carry, _ = adder.compute(a_digit, b_digit, carry)
            carry = binary_carry or total > 9
            if carry:
                total, _, _ = corrector.compute(total, 6)
            result |= total << (4 * digit)
        self.set_output_word("R", result)
        self.set_output("COUT", carry)

    @property
    def result(self) -> int:
        return self.output_word("R")

    @property
    def carry(self) -> bool:
        return self.output_level("COUT")
