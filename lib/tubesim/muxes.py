"""
Interconnect : decoder, multiplexer, demultiplexer and analog multiplexer.

All are combinational, and all have an active-high disable pin DIS which forces every
output low.  Channel selection is by k select bits S0..S<k-1>.
"""

import logging

from tubesim.component import Combinational, Pin, PinKind
from tubesim.errors import ConfigurationError

__all__ = ["AnalogMultiplexer", "Decoder", "Demultiplexer", "Multiplexer"]

logger = logging.getLogger(__name__)

MAX_SELECT_BITS = 10


def _check_select_bits(component, select_bits: int):
    if not 1 <= select_bits <= MAX_SELECT_BITS:
        msg = (
            f"{component.__class__.__name__} {component.name!r} cannot have "
            f"{select_bits} select bits."
        )
        raise ConfigurationError(msg)


class Decoder(Combinational):
    """k-to-2**k decoder : exactly the output line numbered by A is high.

    Pins : A0..A<k-1>, DIS, Y0..Y<2**k-1>, BPLUS, GND.
    """

    def __init__(self, name: str, select_bits: int = 2, **kwargs):
        super().__init__(name, **kwargs)
        _check_select_bits(self, select_bits)
        self.select_bits = select_bits
        self.line_count = 1 << select_bits
        self.add_bus("A", select_bits)
        self.add_input("DIS")
        self.add_bus("Y", self.line_count, PinKind.OUTPUT)
        self.add_power()
        self.evaluate()

    def evaluate(self):
        if self.level("DIS"):
            self.set_output_word("Y", 0)
        else:
            self.set_output_word("Y", 1 << self.input_word("A"))

    @property
    def selected(self) -> int | None:
        """The number of the high output line, if any."""
        lines = self.output_word("Y")
        return lines.bit_length() - 1 if lines else None


class _Selector(Combinational):
    """Shared select-bus handling, decoded by an owned Decoder."""

    def __init__(self, name: str, select_bits: int, **kwargs):
        super().__init__(name, **kwargs)
        _check_select_bits(self, select_bits)
        self.select_bits = select_bits
        self.channel_count = 1 << select_bits
        self.decoder = Decoder(f"{name}.decoder", select_bits, family=self.family)

    def select(self, channel: int):
        """Select a channel.  Channels beyond the range wrap around."""
        if not 0 <= channel < self.channel_count:
            wrapped = channel % self.channel_count
            logger.info(
                "%r : channel %d wraps around to %d.", self.name, channel, wrapped
            )
            channel = wrapped
        self.write_bus("S", channel)

    def _selected_channel(self) -> int | None:
        with self.decoder.deferred():
            self.decoder.write_bus("A", self.input_word("S"))
            self.decoder.write_pin("DIS", self._voltages[self.pin_id("DIS")])
        return self.decoder.selected


class Multiplexer(_Selector):
    """2**k : 1 multiplexer of D-bit words.

    Pins : S0..S<k-1>, DIS, I<ch>_0..I<ch>_<d-1> for each channel, Y0..Y<d-1>,
    BPLUS, GND.
    """

    def __init__(self, name: str, select_bits: int = 1, data_bits: int = 1, **kwargs):
        super().__init__(name, select_bits, **kwargs)
        self.data_bits = data_bits
        self.add_bus("S", select_bits)
        self.add_input("DIS")
        for channel in range(self.channel_count):
            self.add_bus(f"I{channel}_", data_bits)
        self.add_bus("Y", data_bits, PinKind.OUTPUT)
        self.add_power()
        self.evaluate()

    def evaluate(self):
        channel = self._selected_channel()
        if channel is None:
            self.set_output_word("Y", 0)
        else:
            self.set_output_word("Y", self.input_word(f"I{channel}_"))

    def set_channel(self, channel: int, value: int):
        self.write_bus(f"I{channel}_", value)

    @property
    def output(self) -> int:
        return self.output_word("Y")


class Demultiplexer(_Selector):
    """1 : 2**k demultiplexer of D-bit words : the selected channel reproduces the
    input, all others are low.

    Pins : S0..S<k-1>, DIS, I0..I<d-1>, Y<ch>_0..Y<ch>_<d-1> for each channel,
    BPLUS, GND.
    """

    def __init__(self, name: str, select_bits: int = 1, data_bits: int = 1, **kwargs):
        super().__init__(name, select_bits, **kwargs)
        self.data_bits = data_bits
        self.add_bus("S", select_bits)
        self.add_input("DIS")
        self.add_bus("I", data_bits)
        for channel in range(self.channel_count):
            self.add_bus(f"Y{channel}_", data_bits, PinKind.OUTPUT)
        self.add_power()
        self.evaluate()

    def evaluate(self):
        selected = self._selected_channel()
        data = self.input_word("I")
        for channel in range(self.channel_count):
            self.set_output_word(f"Y{channel}_", data if channel == selected else 0)

    def channel_output(self, channel: int) -> int:
        return self.output_word(f"Y{channel}_")


class AnalogMultiplexer(Combinational):
    """Passes one of n analog input voltages X0..X<n-1> straight through to Y.

    Select values beyond n wrap around modulo n.
    Pins : X0..X<n-1>, S0..S<k-1>, DIS, Y, BPLUS, GND.
    """

    def __init__(self, name: str, channels: int = 4, **kwargs):
        super().__init__(name, **kwargs)
        if channels < 2:
            msg = f"Analog multiplexer {name!r} cannot have {channels} channels."
            raise ConfigurationError(msg)
        self.channel_count = channels
        self.select_bits = (channels - 1).bit_length()
        self.add_bus("X", channels)
        self.add_bus("S", self.select_bits)
        self.add_input("DIS")
        self.add_output("Y")
        self.add_power()
        self.selected_channel = 0

    def evaluate(self):
        selector = self.input_word("S")
        if selector >= self.channel_count:
            logger.info(
                "%r : selector %d wraps around to %d.",
                self.name,
                selector,
                selector % self.channel_count,
            )
        self.selected_channel = selector % self.channel_count

    def output_voltage(self, pin: Pin) -> float:
        if self.level("DIS"):
            return self.family.low
        return self._voltages[self.bus("X")[self.selected_channel]]
