from typing import Literal

from tubesim.component import Component, PinKind
from tubesim.errors import ConfigurationError
from tubesim.logic import mask

type TriggerMode = Literal["all", "change", "nonzero", "change_nonzero"]

TRIGGER_MODES = ("all", "change", "nonzero", "change_nonzero")


class BusProbe(Component):
    """
    A logic-analyser style recorder of a slice of an input bus.

    On each tick it takes the 'n_bits' bits of IN starting from bit 'i_bit', and may
    record a sample (tick, value), and present the value on its OUT bus.
    It provides different modes to control when a sample is taken:
        - "all" means a sample on every tick
        - "change" means only changes in the value trigger a sample
        - "nonzero" means a sample only when non-zero (i.e. a pulse trigger)
        - "change_nonzero" samples only when changed AND non-zero

    Pins : IN0..IN<w-1>, OUT0..OUT<n-1>, BPLUS, GND.
    """

    def __init__(
        self,
        name: str,
        width: int = 8,
        i_bit: int = 0,
        n_bits: int | None = None,
        update_trigger_mode: TriggerMode = "change",
        **kwargs,
    ):
        super().__init__(name, **kwargs)
        self.check_width(width)
        if n_bits is None:
            n_bits = width - i_bit
        if i_bit < 0 or n_bits < 1 or i_bit + n_bits > width:
            msg = f"Cannot probe {n_bits} bits from bit {i_bit} of a {width}-bit bus."
            raise ConfigurationError(msg)
        if update_trigger_mode not in TRIGGER_MODES:
            msg = f"Unexpected trigger mode: {update_trigger_mode}"
            raise ValueError(msg)
        self.width = width
        self.i_bit = i_bit
        self.n_bits = n_bits
        self._bitmask = mask(n_bits)
        self.update_trigger_mode = update_trigger_mode
        self.add_bus("IN", width)
        self.add_bus("OUT", n_bits, PinKind.OUTPUT)
        self.add_power()
        self.samples: list[tuple[int, int]] = []

    @property
    def values(self) -> list[int]:
        return [value for _, value in self.samples]

    @property
    def last_value(self) -> int | None:
        return self.samples[-1][1] if self.samples else None

    def clear(self):
        self.samples = []

    def process(self):
        old_val = self.last_value
        new_val = (self.input_word("IN") >> self.i_bit) & self._bitmask
        match self.update_trigger_mode:
            case "all":
                update = True
            case "change":
                update = new_val != old_val
            case "nonzero":
                update = new_val != 0
            case "change_nonzero":
                update = new_val not in (old_val, 0)
        if update:
            self.samples.append((self.time.tick, new_val))
            self.set_output_word("OUT", new_val)
