from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, IntEnum
import logging
from typing import Any, Iterable

from tubesim.errors import ConfigurationError, OutOfRangeError, UnknownPinError
from tubesim.event import EventClient, TickTime, TimeTypes
from tubesim.logic import LogicFamily, from_bits, mask, to_bits
from tubesim.signal import Signal, SignalConnection

__all__ = ["Combinational", "Component", "Pin", "PinKind", "PinRef"]

logger = logging.getLogger(__name__)


class PinKind(Enum):
    INPUT = "input"
    OUTPUT = "output"
    POWER = "power"
    GROUND = "ground"


@dataclass(frozen=True)
class Pin:
    id: int
    name: str
    kind: PinKind


type PinRef = int | str


class Component:
    """
    Object to simulate an electrical component with numbered connection points.

    Every component has the same three operations :
        * 'write_pin' accepts a voltage on an input (or power/ground) pin
        * 'read_pin' returns the voltage on an output (or power/ground) pin
        * 'tick' advances one simulation step

    Pins are declared in construction order, so their integer ids are dense.  They can
    be addressed by id, by name, or by a member of the component's 'Pins' enum (for
    fixed layouts).  Multi-bit buses are named '<prefix><bit>', with bit 0 the LSB.

    Each output pin is also published as a Signal in 'self.outputs', which a circuit
    connects to the 'receive' method of downstream components.
    Any input, output or the 'tick' operation can be "hooked", and so traced.
    """

    SETTINGS: dict[str, Any] = {"strict": False}
    # Sequential components are cut points : a circuit evaluates their outputs on the
    #  next tick, so wires out of them impose no evaluation order.
    SEQUENTIAL = False
    # Deferred writes to the clock pin are reacted to after all the others.
    CLOCK_PIN: str | None = None

    def __init__(self, name: str, *, family: LogicFamily | None = None, **kwargs):
        self.name = name
        self.family = family or LogicFamily.standard()
        self.time = TickTime(0)
        self._pins: list[Pin] = []
        self._pin_ids: dict[str, int] = {}
        self._buses: dict[str, list[int]] = {}
        # Written voltages of input/power/ground pins, and logic levels of outputs.
        self._voltages: dict[int, float] = {}
        self._levels: dict[int, bool] = {}
        self.outputs: dict[str, Signal] = {}
        self._prehooks: dict[str, list[SignalConnection]] = {}
        self._posthooks: dict[str, list[SignalConnection]] = {}
        self._output_hooks: dict[str, list[SignalConnection]] = {}
        self._deferring = False
        self._deferred_writes: dict[int, tuple[Pin, float]] = {}
        self.settings = self.SETTINGS.copy()
        for setting, value in kwargs.items():
            if setting not in self.settings:
                msg = (
                    f"{self.__class__.__name__}() got an unexpected keyword argument "
                    f"{setting!r}."
                )
                raise TypeError(msg)
            self.settings[setting] = value
        for setting, value in self.settings.items():
            setattr(self, setting, value)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r})"

    # Pin declaration.
    # Subclasses declare all their pins in init, either from a 'Pins' IntEnum layout
    #  or one at a time / one bus at a time.

    def add_pin(self, name: str, kind: PinKind, default: bool = False) -> int:
        if name in self._pin_ids:
            raise ConfigurationError(f"Duplicate pin name {name!r} in {self.name!r}.")
        pin = Pin(len(self._pins), name, kind)
        self._pins.append(pin)
        self._pin_ids[name] = pin.id
        match kind:
            case PinKind.INPUT:
                self._voltages[pin.id] = self.family.voltage(default)
            case PinKind.POWER:
                self._voltages[pin.id] = self.family.high
            case PinKind.GROUND:
                self._voltages[pin.id] = self.family.low
            case PinKind.OUTPUT:
                self._levels[pin.id] = False
                self.outputs[name] = Signal(f"{self.name}.{name}")
        return pin.id

    def add_input(self, name: str, default: bool = False) -> int:
        return self.add_pin(name, PinKind.INPUT, default)

    def add_output(self, name: str) -> int:
        return self.add_pin(name, PinKind.OUTPUT)

    def add_bus(
        self, prefix: str, width: int, kind: PinKind = PinKind.INPUT
    ) -> list[int]:
        if width < 1:
            raise ConfigurationError(f"Bus {prefix!r} of {self.name!r} has no bits.")
        ids = [self.add_pin(f"{prefix}{bit}", kind) for bit in range(width)]
        self._buses[prefix] = ids
        return ids

    def add_power(self):
        self.add_pin("BPLUS", PinKind.POWER)
        self.add_pin("GND", PinKind.GROUND)

    def check_width(self, width: int, what: str = "width"):
        if width < 1:
            msg = f"{self.__class__.__name__} {self.name!r} cannot have {what} {width}."
            raise ConfigurationError(msg)

    def add_layout(
        self,
        layout: type[IntEnum],
        outputs: Iterable[str] = (),
        high: Iterable[str] = (),
    ):
        """Declare the pins of a fixed layout enum, in order.

        'BPLUS' and 'GND' are the power pins, names in 'outputs' are outputs and all
        others are inputs.  Inputs named in 'high' start at the high level.
        """
        outputs, high = set(outputs), set(high)
        for member in layout:
            match member.name:
                case "BPLUS":
                    kind = PinKind.POWER
                case "GND":
                    kind = PinKind.GROUND
                case name if name in outputs:
                    kind = PinKind.OUTPUT
                case _:
                    kind = PinKind.INPUT
            pin_id = self.add_pin(member.name, kind, default=member.name in high)
            if pin_id != member.value:
                msg = f"Pin {member.name} of {self.name!r} declared out of order."
                raise ConfigurationError(msg)

    # Pin lookup.

    @property
    def pins(self) -> list[Pin]:
        return list(self._pins)

    @property
    def input_pins(self) -> dict[str, Pin]:
        return {pin.name: pin for pin in self._pins if pin.kind is PinKind.INPUT}

    @property
    def output_pins(self) -> dict[str, Pin]:
        return {pin.name: pin for pin in self._pins if pin.kind is PinKind.OUTPUT}

    def pin(self, ref: PinRef) -> Pin:
        """Translate a pin id, enum member or name into the Pin."""
        match ref:
            case bool():
                raise TypeError(f"Pin reference {ref!r} has unsupported type.")
            case int():
                if 0 <= ref < len(self._pins):
                    return self._pins[ref]
            case str():
                pin_id = self._pin_ids.get(ref)
                if pin_id is not None:
                    return self._pins[pin_id]
            case _:
                raise TypeError(f"Pin reference {ref!r} has unsupported type.")
        raise UnknownPinError(f"Component {self.name!r} has no pin {ref!r}.")

    def pin_id(self, ref: PinRef) -> int:
        return self.pin(ref).id

    def bus(self, prefix: str) -> list[int]:
        try:
            return list(self._buses[prefix])
        except KeyError:
            msg = f"Component {self.name!r} has no bus {prefix!r}."
            raise UnknownPinError(msg) from None

    def bus_width(self, prefix: str) -> int:
        return len(self.bus(prefix))

    def bus_names(self) -> list[str]:
        return list(self._buses)

    # The component operations.

    def write_pin(self, pin: PinRef, voltage: float):
        """Accept a voltage on an input, power or ground pin."""
        the_pin = self.pin(pin)
        if the_pin.kind is PinKind.OUTPUT:
            msg = f"Pin {the_pin.name!r} of {self.name!r} is an output, not writable."
            raise UnknownPinError(msg)
        voltage = float(voltage)
        with self._run_with_hooks(the_pin.name, voltage):
            self._voltages[the_pin.id] = voltage
            if the_pin.kind is PinKind.INPUT:
                if self._deferring:
                    self._deferred_writes.pop(the_pin.id, None)
                    self._deferred_writes[the_pin.id] = (the_pin, voltage)
                else:
                    self.on_write(the_pin, voltage)

    def read_pin(self, pin: PinRef) -> float:
        """Return the voltage on an output pin, or the echo of a power/ground pin."""
        the_pin = self.pin(pin)
        match the_pin.kind:
            case PinKind.INPUT:
                msg = f"Pin {the_pin.name!r} of {self.name!r} is an input, unreadable."
                raise UnknownPinError(msg)
            case PinKind.OUTPUT:
                return self.output_voltage(the_pin)
            case _:
                return self._voltages[the_pin.id]

    def tick(self):
        """Advance one simulation step."""
        with self._run_with_hooks("tick"):
            self.process()

    # Overridden by subclasses.

    def on_write(self, pin: Pin, voltage: float):
        """React to a newly written input voltage."""

    def process(self):
        """The per-tick step."""

    def output_voltage(self, pin: Pin) -> float:
        return self.family.voltage(self._levels[pin.id])

    def snapshot_writes(self) -> list[tuple[str, float]]:
        """Pin writes which recreate the current internal state in a fresh component.

        Stateless components have none.
        """
        return []

    def input_voltage(self, pin: PinRef) -> float:
        """The voltage last written to an input, power or ground pin."""
        the_pin = self.pin(pin)
        if the_pin.kind is PinKind.OUTPUT:
            msg = f"Pin {the_pin.name!r} of {self.name!r} is an output."
            raise UnknownPinError(msg)
        return self._voltages[the_pin.id]

    # Helpers for subclass logic.

    def level(self, pin: PinRef) -> bool:
        """The logic view of an input pin."""
        return self.family.logic(self._voltages[self.pin_id(pin)])

    def input_word(self, prefix: str) -> int:
        return from_bits(self.family.logic(self._voltages[i]) for i in self.bus(prefix))

    def set_output(self, pin: PinRef, level: Any):
        self._levels[self.pin_id(pin)] = bool(level)

    def output_level(self, pin: PinRef) -> bool:
        return self._levels[self.pin_id(pin)]

    def set_output_word(self, prefix: str, value: int):
        ids = self.bus(prefix)
        for pin_id, bit in zip(ids, to_bits(value, len(ids))):
            self._levels[pin_id] = bit

    def output_word(self, prefix: str) -> int:
        return from_bits(self._levels[i] for i in self.bus(prefix))

    def check_range(self, value: int, width: int, what: str = "value") -> int:
        """Truncate a value to 'width' bits, warning (or raising, if strict) on loss.

        Negative values which fit the width in two's complement are accepted.
        """
        if not -(1 << (width - 1)) <= value <= mask(width):
            self._out_of_range(f"{what} {value} does not fit in {width} bits")
        return value & mask(width)

    def coerce_word(self, data: int | Iterable[Any], width: int, what="value") -> int:
        """Accept a word as an int, or as a sequence of bits (LSB first)."""
        if isinstance(data, int):
            return self.check_range(data, width, what)
        bits = list(data)
        if len(bits) > width:
            msg = f"{what} of {len(bits)} bits does not fit in {width} bits"
            self._out_of_range(msg)
        return from_bits(bits[:width])

    def _out_of_range(self, msg: str):
        msg = f"{msg} of {self.name!r}"
        if self.strict:
            raise OutOfRangeError(msg + ".")
        logger.warning("%s : truncated.", msg)

    @contextmanager
    def deferred(self):
        """Write several inputs, reacting only when all are written.

        Each written pin gets one reaction, to its last voltage, and the clock pin
        reacts last.
        """
        if self._deferring:
            yield
            return
        self._deferring = True
        try:
            yield
        finally:
            self._deferring = False
            pending = list(self._deferred_writes.values())
            self._deferred_writes.clear()
        if pending:
            self.on_deferred(pending)

    def on_deferred(self, writes: list[tuple[Pin, float]]):
        clocks = [write for write in writes if write[0].name == self.CLOCK_PIN]
        others = [write for write in writes if write[0].name != self.CLOCK_PIN]
        for pin, voltage in others + clocks:
            self.on_write(pin, voltage)

    def write_bus(self, prefix: str, value: int):
        """Drive a whole input bus with the bits of an int."""
        ids = self.bus(prefix)
        value = self.check_range(value, len(ids), f"{prefix} value")
        with self.deferred():
            for pin_id, bit in zip(ids, to_bits(value, len(ids))):
                self.write_pin(pin_id, self.family.voltage(bit))

    def read_bus(self, prefix: str) -> int:
        """Read a whole output bus as an int."""
        return from_bits(self.family.logic(self.read_pin(i)) for i in self.bus(prefix))

    # Signal interface.

    def receive(self, time: TimeTypes, value: float, pin: PinRef):
        """EventClient form of write_pin, for Signal connections and Events."""
        self.time = TickTime(time)
        self.write_pin(pin, value)

    def publish(self, time: TimeTypes) -> bool:
        """Send any changed output voltages to the output Signals.

        Returns whether anything was sent.
        """
        self.time = TickTime(time)
        changed = False
        for name, signal in self.outputs.items():
            value = self.read_pin(name)
            if value != signal.value:
                signal.update(self.time, value)
                changed = True
        return changed

    # Component hooks + tracing.

    def hookable_names(self) -> list[str]:
        names = [pin.name for pin in self._pins if pin.kind is not PinKind.OUTPUT]
        return ["tick"] + names + list(self.outputs)

    def hook(
        self, name: str, call: EventClient, context=None, call_after: bool = False
    ) -> SignalConnection:
        """Hook an operation of the component.

        You can hook (by name) any writable pin, any output, or the 'tick' operation.

        This installs a callback that gets called when the given operation occurs,
        either *before* (default) or *after* (alternatively) the operation takes place.
        For outputs, the callback occurs when the output Signal is updated.

        The context passed to the callback is always of the form
            {'call_context': <hooked_call_context>, 'hook_context': <context>}
        """
        if name in self.outputs:
            # Outputs are signals, so hooks are installed by just connecting
            hooklist = self._output_hooks.setdefault(name, [])
            hook_context = {"call_context": None, "hook_context": context}
            index = -1 if call_after else 0
            new_hook = self.outputs[name].connect(call, hook_context, index)
        else:
            if name not in self.hookable_names():
                raise ValueError(f"Unrecognised hook name: {name!r}")
            hookset = self._posthooks if call_after else self._prehooks
            hooklist = hookset.setdefault(name, [])
            new_hook = SignalConnection(call, context)
        hooklist.append(new_hook)
        return new_hook

    def unhook(self, name_or_hook: str | SignalConnection):
        # Discard ALL hooks for the named operation, OR just the specific one given.
        match name_or_hook:
            case str():
                name: str = name_or_hook
                for hookset in (self._prehooks, self._posthooks, self._output_hooks):
                    hooklist = hookset.pop(name, [])
                    if hooklist and hookset is self._output_hooks:
                        for a_hook in hooklist:
                            self.outputs[name].disconnect(a_hook)

            case SignalConnection():
                hook: SignalConnection = name_or_hook
                for hookset in (self._prehooks, self._posthooks, self._output_hooks):
                    for name, hooklist in hookset.items():
                        if hook in hooklist:
                            hooklist.remove(hook)
                            if hookset is self._output_hooks:
                                self.outputs[name].disconnect(hook)

    @contextmanager
    def _run_with_hooks(self, name: str, value: float | None = None, context=None):
        """Call pre/posthooks before/after a code block."""

        def call_hooks(hookset: dict[str, list[SignalConnection]]):
            for hook in hookset.get(name, []):
                hook_context = {
                    "call_context": context,
                    "hook_context": hook.call_context,
                }
                hook.call(self.time, value, hook_context)

        call_hooks(self._prehooks)
        yield
        call_hooks(self._posthooks)

    def _trace_callback(self, time: TickTime, value: float | None = None, context=None):
        trace_context = context["hook_context"]
        component_type = trace_context["component_type"]
        component_name = trace_context["component_name"]
        msg = (
            f"TRACE {time}: {self.__class__.__name__}({self.name})"
            f".{component_type}({component_name}) : "
        )
        if component_type == "input":
            msg += f"value <-- {value}"
        elif component_type == "output":
            sig = self.outputs[component_name]
            msg += f"{sig.previous_value} --> {sig.value}"
            msg = "  " + msg
        print(msg)

    def trace(self, name: str, after: bool = False) -> SignalConnection | None:
        if name == "*":
            for a_name in self.hookable_names():
                self.trace(a_name)
            return None
        if name in self.outputs:
            component_type = "output"
        elif name == "tick":
            component_type = "tick"
        elif name in self.hookable_names():
            component_type = "input"
        else:
            msg = (
                f"Cannot trace unknown component part: {name!r}, "
                "not a known input, output or 'tick'."
            )
            raise ValueError(msg)
        context = {"component_type": component_type, "component_name": name}
        return self.hook(name, self._trace_callback, context, call_after=after)

    def untrace(self, name_or_hook: str | SignalConnection):
        match name_or_hook:
            case SignalConnection():
                self.unhook(name_or_hook)
            case str():
                name: str = name_or_hook
                names = self.hookable_names() if name == "*" else [name]
                for name in names:
                    for hookset in (
                        self._prehooks,
                        self._posthooks,
                        self._output_hooks,
                    ):
                        tracehooks = [
                            hook
                            for hook in hookset.get(name, [])
                            if hook.call == self._trace_callback
                        ]
                        for tracehook in tracehooks:
                            self.unhook(tracehook)


class Combinational(Component):
    """A component whose outputs are a pure function of its current inputs.

    Outputs settle within each write_pin call, and 'tick' just re-evaluates.
    """

    def on_write(self, pin: Pin, voltage: float):
        self.evaluate()

    def on_deferred(self, writes: list[tuple[Pin, float]]):
        self.evaluate()

    def process(self):
        self.evaluate()

    def evaluate(self):
        raise NotImplementedError
