from tubesim.component import Component, Pin


class ClockSource(Component):
    """
    An external square-wave oscillator, supplying one voltage per tick on OUT.

    Over each 'period' ticks, OUT is high for the first period // 2 and then low, so
    the first tick makes a rising edge.  While EN is low, OUT stays low and the
    oscillator does not advance.
    Pins : EN, OUT, BPLUS, GND.
    """

    SEQUENTIAL = True

    def __init__(self, name: str, period: int = 2, **kwargs):
        super().__init__(name, **kwargs)
        if period < 2:
            raise ValueError(f"Clock period must be at least 2 ticks, got {period}.")
        self.period = period
        self.add_input("EN", default=True)
        self.add_output("OUT")
        self.add_power()
        self.phase = 0
        self.cycles = 0

    def process(self):
        if not self.level("EN"):
            self.set_output("OUT", False)
            return
        high = self.phase < self.period // 2
        if high and self.phase == 0:
            self.cycles += 1
        self.set_output("OUT", high)
        self.phase = (self.phase + 1) % self.period


class ConstantSource(Component):
    """Ties its OUT pin to a fixed logic level, or an exact voltage."""

    def __init__(self, name: str, level: bool | float = True, **kwargs):
        super().__init__(name, **kwargs)
        match level:
            case bool():
                self.voltage = self.family.voltage(level)
            case _:
                self.voltage = float(level)
        self.add_output("OUT")
        self.add_power()

    def output_voltage(self, pin: Pin) -> float:
        return self.voltage
