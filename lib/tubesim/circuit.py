"""
A Circuit is a graph of components, wired output-to-input by Signals, and advanced
one tick at a time.

Each tick :
    * pending primary-input drives are written to their component pins
    * every component is ticked, in evaluation order, and publishes its changed
      outputs to the input pins wired to them
    * changes are then re-published until the wiring settles

The evaluation order is a topological sort of the wiring, in which wires out of
sequential components are cut : their outputs are taken as inputs for the next tick.
"""

from dataclasses import dataclass
import logging
from typing import Iterable

from tubesim.alu import ALU
from tubesim.arithmetic import Adder, BCDAdder, Divider, Multiplier
from tubesim.component import Component, PinKind
from tubesim.counters import (
    BCDCounter,
    ClockDivider,
    Counter,
    JohnsonCounter,
    RingCounter,
    RippleCounter,
)
from tubesim.errors import ConfigurationError
from tubesim.event import PinWrite, TickTime
from tubesim.flipflops import DFlipFlop, DLatch, JKFlipFlop, SRLatch, TFlipFlop
from tubesim.gates import (
    AndGate,
    FullAdder,
    HalfAdder,
    NandGate,
    NorGate,
    NotGate,
    OrGate,
    XorGate,
)
from tubesim.logic import LogicFamily
from tubesim.memory import Accumulator, Memory
from tubesim.muxes import AnalogMultiplexer, Decoder, Demultiplexer, Multiplexer
from tubesim.pseudo_devices import BusProbe, ClockSource, ConstantSource
from tubesim.registers import (
    BufferRegister,
    Register,
    ShiftRegister,
    UniversalShiftRegister,
)
from tubesim.signal import SignalConnection

__all__ = ["COMPONENT_KINDS", "Circuit", "Wire"]

logger = logging.getLogger(__name__)

COMPONENT_KINDS: dict[str, type[Component]] = {
    "not": NotGate,
    "and": AndGate,
    "or": OrGate,
    "nand": NandGate,
    "nor": NorGate,
    "xor": XorGate,
    "half_adder": HalfAdder,
    "full_adder": FullAdder,
    "sr_latch": SRLatch,
    "d_latch": DLatch,
    "d_flip_flop": DFlipFlop,
    "jk_flip_flop": JKFlipFlop,
    "t_flip_flop": TFlipFlop,
    "register": Register,
    "buffer_register": BufferRegister,
    "shift_register": ShiftRegister,
    "universal_shift_register": UniversalShiftRegister,
    "counter": Counter,
    "bcd_counter": BCDCounter,
    "ring_counter": RingCounter,
    "johnson_counter": JohnsonCounter,
    "ripple_counter": RippleCounter,
    "clock_divider": ClockDivider,
    "decoder": Decoder,
    "multiplexer": Multiplexer,
    "demultiplexer": Demultiplexer,
    "analog_multiplexer": AnalogMultiplexer,
    "adder": Adder,
    "multiplier": Multiplier,
    "divider": Divider,
    "bcd_adder": BCDAdder,
    "alu": ALU,
    "memory": Memory,
    "accumulator": Accumulator,
    "clock_source": ClockSource,
    "constant_source": ConstantSource,
    "bus_probe": BusProbe,
}

type Handle = Component | str


@dataclass
class Wire:
    source: Component
    source_pin: str
    target: Component
    target_pin: str
    connection: SignalConnection

    def __str__(self):
        return (
            f"{self.source.name}.{self.source_pin} --> "
            f"{self.target.name}.{self.target_pin}"
        )


class Circuit:
    def __init__(self, name: str = "circuit", *, family: LogicFamily | None = None):
        self.name = name
        self.family = family or LogicFamily.standard()
        self.components: dict[str, Component] = {}
        self.wires: list[Wire] = []
        self._drivers: dict[tuple[str, str], Wire] = {}
        self._pending: list[PinWrite] = []
        self._order: list[Component] | None = None
        self._halted = False
        self.time = TickTime(0)

    def __repr__(self):
        return f"Circuit({self.name!r}, components={len(self.components)})"

    # Construction.

    def create_component(self, kind: str, name: str | None = None, **config):
        """Construct a component of a registered kind, in this circuit's family."""
        try:
            component_class = COMPONENT_KINDS[kind]
        except KeyError:
            msg = f"Unknown component kind {kind!r}."
            raise ConfigurationError(msg) from None
        if name is None:
            same_kind = [
                c for c in self.components.values() if type(c) is component_class
            ]
            name = f"{kind}{len(same_kind)}"
        component = component_class(name, family=self.family, **config)
        return self.add(component)

    def add(self, component: Component):
        if component.name in self.components:
            msg = f"Circuit {self.name!r} already has a component {component.name!r}."
            raise ConfigurationError(msg)
        if component.family != self.family:
            logger.warning(
                "Component %r has logic family %s, in circuit %r with %s.",
                component.name,
                component.family,
                self.name,
                self.family,
            )
        self.components[component.name] = component
        self._order = None
        return component

    def component(self, handle: Handle) -> Component:
        match handle:
            case Component():
                name = handle.name
            case str():
                name = handle
            case _:
                raise TypeError(f"Component handle {handle!r} has unsupported type.")
        try:
            component = self.components[name]
        except KeyError:
            msg = f"Circuit {self.name!r} has no component {name!r}."
            raise ConfigurationError(msg) from None
        if isinstance(handle, Component) and component is not handle:
            msg = f"Component {handle!r} is not the one in circuit {self.name!r}."
            raise ConfigurationError(msg)
        return component

    def connect(self, source: Handle, source_pin, target: Handle, target_pin) -> Wire:
        """Wire an output pin to an input pin.  Each input can have only one driver."""
        source, target = self.component(source), self.component(target)
        out_pin, in_pin = source.pin(source_pin), target.pin(target_pin)
        if out_pin.kind is not PinKind.OUTPUT:
            msg = f"Cannot connect from {source.name}.{out_pin.name} : not an output."
            raise ConfigurationError(msg)
        if in_pin.kind is not PinKind.INPUT:
            msg = f"Cannot connect to {target.name}.{in_pin.name} : not an input."
            raise ConfigurationError(msg)
        key = (target.name, in_pin.name)
        if key in self._drivers:
            msg = (
                f"Cannot connect {source.name}.{out_pin.name} to "
                f"{target.name}.{in_pin.name} : already driven by "
                f"{self._drivers[key].source.name}."
                f"{self._drivers[key].source_pin}."
            )
            raise ConfigurationError(msg)
        connection = source.outputs[out_pin.name].connect(target.receive, in_pin.name)
        wire = Wire(source, out_pin.name, target, in_pin.name, connection)
        self.wires.append(wire)
        self._drivers[key] = wire
        self._order = None
        return wire

    def connect_bus(
        self, source: Handle, source_bus: str, target: Handle, target_bus: str
    ) -> list[Wire]:
        """Wire a whole output bus to an input bus of the same width."""
        source, target = self.component(source), self.component(target)
        out_ids, in_ids = source.bus(source_bus), target.bus(target_bus)
        if len(out_ids) != len(in_ids):
            msg = (
                f"Cannot connect {len(out_ids)}-bit bus {source.name}.{source_bus} "
                f"to {len(in_ids)}-bit bus {target.name}.{target_bus}."
            )
            raise ConfigurationError(msg)
        return [
            self.connect(source, out_id, target, in_id)
            for out_id, in_id in zip(out_ids, in_ids)
        ]

    def disconnect(self, wire: Wire):
        wire.source.outputs[wire.source_pin].disconnect(wire.connection)
        self.wires.remove(wire)
        del self._drivers[(wire.target.name, wire.target_pin)]
        self._order = None

    # Primary inputs and outputs.

    def drive(self, handle: Handle, pin, voltage: float):
        """Set a primary input, which is written to the component on the next tick."""
        component = self.component(handle)
        the_pin = component.pin(pin)
        if the_pin.kind is PinKind.OUTPUT:
            msg = f"Cannot drive {component.name}.{the_pin.name} : it is an output."
            raise ConfigurationError(msg)
        if (component.name, the_pin.name) in self._drivers:
            msg = f"Cannot drive {component.name}.{the_pin.name} : it is wired."
            raise ConfigurationError(msg)
        self._pending.append(PinWrite(component.name, the_pin.name, float(voltage)))

    def drive_level(self, handle: Handle, pin, level: bool):
        self.drive(handle, pin, self.family.voltage(level))

    def drive_bus(self, handle: Handle, prefix: str, value: int):
        component = self.component(handle)
        ids = component.bus(prefix)
        value = component.check_range(value, len(ids), f"{prefix} value")
        for bit, pin_id in enumerate(ids):
            self.drive(component, pin_id, self.family.voltage((value >> bit) & 1))

    def observe(self, handle: Handle, pin) -> float:
        return self.component(handle).read_pin(pin)

    def observe_level(self, handle: Handle, pin) -> bool:
        return self.family.logic(self.observe(handle, pin))

    def observe_bus(self, handle: Handle, prefix: str) -> int:
        return self.component(handle).read_bus(prefix)

    # Evaluation.

    def evaluation_order(self) -> list[Component]:
        """Components sorted so that each follows its combinational drivers.

        Components in a combinational feedback loop cannot be sorted : they are
        appended in the order they were added, with a warning.
        """
        if self._order is not None:
            return self._order
        components = list(self.components.values())
        successors: dict[str, list[Component]] = {c.name: [] for c in components}
        in_degree = {c.name: 0 for c in components}
        for wire in self.wires:
            if wire.source.SEQUENTIAL:
                continue
            successors[wire.source.name].append(wire.target)
            in_degree[wire.target.name] += 1
        ready = [c for c in components if in_degree[c.name] == 0]
        order: list[Component] = []
        while ready:
            component = ready.pop(0)
            order.append(component)
            for successor in successors[component.name]:
                in_degree[successor.name] -= 1
                if in_degree[successor.name] == 0:
                    ready.append(successor)
        if len(order) < len(components):
            looped = [c for c in components if c not in order]
            logger.warning(
                "Circuit %r has a combinational feedback loop through : %s.",
                self.name,
                ", ".join(c.name for c in looped),
            )
            order += looped
        self._order = order
        return order

    def tick(self):
        """Advance the whole circuit one step."""
        self.time = self.time + 1
        pending, self._pending = self._pending, []
        for write in pending:
            self.components[write.component].receive(self.time, write.value, write.pin)
        order = self.evaluation_order()
        for component in order:
            component.time = self.time
            component.tick()
            component.publish(self.time)
        self._settle(order)

    def _settle(self, order: list[Component]):
        # Late changes, e.g. sequential outputs feeding back, re-propagate until
        #  nothing changes.
        for _ in range(len(order) + 1):
            changes = [component.publish(self.time) for component in order]
            if not any(changes):
                return
        logger.warning("Circuit %r did not settle at tick %s.", self.name, self.time)

    def tick_n(self, n: int):
        for _ in range(n):
            self.tick()

    def halt(self):
        self._halted = True

    def resume(self):
        self._halted = False

    @property
    def halted(self) -> bool:
        return self._halted

    def run(
        self,
        max_ticks: int,
        halt_on: tuple[Handle, str] | Iterable[tuple[Handle, str]] | None = None,
    ) -> int:
        """Tick until 'max_ticks' have run, or the circuit halts.

        The circuit halts when 'halt()' is called, or when any 'halt_on' pin, given as
        (component, output pin), reads high after a tick.
        Returns the number of ticks run.
        """
        match halt_on:
            case None:
                halt_pins = []
            case (Component() | str(), str()):
                halt_pins = [halt_on]
            case _:
                halt_pins = list(halt_on)
        ticks = 0
        while ticks < max_ticks and not self._halted:
            self.tick()
            ticks += 1
            if any(self.observe_level(handle, pin) for handle, pin in halt_pins):
                self.halt()
        return ticks

    # Persisted state.

    def snapshot(self) -> list[PinWrite]:
        """The pin writes which recreate the present state in an identical circuit.

        These are the component state writes, followed by the levels of all inputs.
        """
        writes = [
            PinWrite(component.name, pin, value)
            for component in self.components.values()
            for pin, value in component.snapshot_writes()
        ]
        for component in self.components.values():
            for pin in component.input_pins:
                writes.append(
                    PinWrite(component.name, pin, component.input_voltage(pin))
                )
        return writes

    def replay(self, writes: Iterable[PinWrite | tuple[str, str, float]]):
        """Re-drive recorded pin writes in order, then bring the wires up to date."""
        for write in writes:
            component, pin, value = write
            self.component(component).write_pin(pin, value)
        for component in self.evaluation_order():
            component.publish(self.time)
