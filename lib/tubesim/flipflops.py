"""
Sequential primitives : latches and edge-triggered flip-flops.

Every flip-flop has an active-high asynchronous SET and RESET (RESET dominates), a
clock pin with selectable active edge (default rising), and complementary Q / QBAR
outputs.  Clock edges are detected against an explicit 'previous clock' voltage,
and cause their state transition within the write_pin call of the clock.
"""

from enum import Enum, IntEnum

from tubesim.component import Component, Pin
from tubesim.logic import LogicFamily

__all__ = [
    "ClockEdge",
    "Clocked",
    "DFlipFlop",
    "DLatch",
    "EdgeDetector",
    "FlipFlop",
    "JKFlipFlop",
    "SRLatch",
    "TFlipFlop",
]


class ClockEdge(Enum):
    RISING = "rising"
    FALLING = "falling"


class EdgeDetector:
    """Remembers the previous clock voltage, and recognises active edges."""

    def __init__(self, family: LogicFamily, edge: ClockEdge | str = ClockEdge.RISING):
        self.family = family
        self.edge = ClockEdge(edge)
        self.previous_clock: float = family.low

    @property
    def active_level(self) -> bool:
        """The clock level following an active edge."""
        return self.edge is ClockEdge.RISING

    def update(self, voltage: float) -> bool:
        """Record a new clock voltage, and return whether it made an active edge."""
        before = self.family.logic(self.previous_clock)
        after = self.family.logic(voltage)
        self.previous_clock = voltage
        return before != after and after == self.active_level


class Clocked(Component):
    """
    Base for components with a 'CLK' pin.

    Subclasses implement 'on_edge' for the active clock edge, and 'on_input' for any
    other input write.
    With the 'free_running' setting, each tick also counts as an active edge.
    """

    SETTINGS = {"strict": False, "free_running": False}
    SEQUENTIAL = True
    CLOCK_PIN = "CLK"

    def __init__(
        self, name: str, *, edge: ClockEdge | str = ClockEdge.RISING, **kwargs
    ):
        super().__init__(name, **kwargs)
        self.clock = EdgeDetector(self.family, edge)

    @property
    def edge(self) -> ClockEdge:
        return self.clock.edge

    @property
    def previous_clock(self) -> float:
        return self.clock.previous_clock

    def on_write(self, pin: Pin, voltage: float):
        if pin.name == self.CLOCK_PIN:
            if self.clock.update(voltage):
                self.on_edge()
        else:
            self.on_input(pin, voltage)

    def on_edge(self):
        raise NotImplementedError

    def on_input(self, pin: Pin, voltage: float):
        pass

    def process(self):
        if self.free_running:
            self.on_edge()

    def pulse(self, count: int = 1):
        """Drive the clock through 'count' complete active edges."""
        active = self.clock.active_level
        for _ in range(count):
            for level in (not active, active, not active):
                self.write_pin(self.CLOCK_PIN, self.family.voltage(level))

    def edge_writes(self) -> list[tuple[str, float]]:
        """Clock writes making one active edge, leaving the clock as it was."""
        active = self.clock.active_level
        return [
            (self.CLOCK_PIN, self.family.voltage(not active)),
            (self.CLOCK_PIN, self.family.voltage(active)),
            (self.CLOCK_PIN, self.previous_clock),
        ]

    def clocked_writes(
        self, setup: dict[str, float], edges: int = 1
    ) -> list[tuple[str, float]]:
        """Writes applying 'setup' across active edges, then restoring those pins."""
        writes = list(setup.items()) + self.edge_writes() * edges
        writes += [(name, self.input_voltage(name)) for name in setup]
        return writes


class SRLatch(Component):
    """Level-sensitive set/reset latch.

    S=1,R=0 sets; S=0,R=1 resets; S=R=0 holds; S=R=1 drives both outputs low, and
    leaves Q reset once released.
    """

    class Pins(IntEnum):
        S = 0
        R = 1
        Q = 2
        QBAR = 3
        BPLUS = 4
        GND = 5

    SEQUENTIAL = True

    def __init__(self, name: str, *, initial: bool = False, **kwargs):
        super().__init__(name, **kwargs)
        self.add_layout(self.Pins, outputs=["Q", "QBAR"])
        self.q = bool(initial)
        self.invalid = False
        self._update_outputs()

    def on_write(self, pin: Pin, voltage: float):
        s, r = self.level("S"), self.level("R")
        self.invalid = s and r
        if self.invalid:
            self.q = False
        elif s:
            self.q = True
        elif r:
            self.q = False
        self._update_outputs()

    def snapshot_writes(self) -> list[tuple[str, float]]:
        name = "S" if self.q else "R"
        return [(name, self.family.high), (name, self.input_voltage(name))]

    def _update_outputs(self):
        self.set_output("Q", self.q and not self.invalid)
        self.set_output("QBAR", not self.q and not self.invalid)


class DLatch(Component):
    """While EN is high Q follows D; when EN falls, Q holds."""

    class Pins(IntEnum):
        EN = 0
        D = 1
        SET = 2
        RESET = 3
        Q = 4
        QBAR = 5
        BPLUS = 6
        GND = 7

    SEQUENTIAL = True

    def __init__(self, name: str, *, initial: bool = False, **kwargs):
        super().__init__(name, **kwargs)
        self.add_layout(self.Pins, outputs=["Q", "QBAR"])
        self._store(initial)

    @property
    def q(self) -> bool:
        return self._q

    def on_write(self, pin: Pin, voltage: float):
        if self.level("RESET"):
            self._store(False)
        elif self.level("SET"):
            self._store(True)
        elif self.level("EN"):
            self._store(self.level("D"))

    def snapshot_writes(self) -> list[tuple[str, float]]:
        name = "SET" if self._q else "RESET"
        return [(name, self.family.high), (name, self.input_voltage(name))]

    def _store(self, q: bool):
        self._q = bool(q)
        self.set_output("Q", self._q)
        self.set_output("QBAR", not self._q)


class FlipFlop(Clocked):
    """
    Common behaviour of edge-triggered flip-flops.

    Subclasses define a 'Pins' layout including CLK, SET, RESET, Q and QBAR, and a
    'next_state' function applied on each active edge.
    """

    Pins: type[IntEnum]

    def __init__(self, name: str, *, initial: bool = False, **kwargs):
        super().__init__(name, **kwargs)
        self.add_layout(self.Pins, outputs=["Q", "QBAR"])
        self._store(initial)

    @property
    def q(self) -> bool:
        return self._q

    def preset(self, q: bool):
        """Pre-load the state, as if by the asynchronous inputs."""
        self._store(q)

    def snapshot_writes(self) -> list[tuple[str, float]]:
        name = "SET" if self._q else "RESET"
        # Edges are ignored while the state is held, so the clock can be seeded.
        return [
            (name, self.family.high),
            (self.CLOCK_PIN, self.previous_clock),
            (name, self.input_voltage(name)),
        ]

    def next_state(self) -> bool:
        raise NotImplementedError

    def _store(self, q: bool):
        self._q = bool(q)
        self.set_output("Q", self._q)
        self.set_output("QBAR", not self._q)

    def _apply_async(self) -> bool:
        if self.level("RESET"):
            self._store(False)
        elif self.level("SET"):
            self._store(True)
        else:
            return False
        return True

    def on_input(self, pin: Pin, voltage: float):
        if pin.name in ("SET", "RESET"):
            self._apply_async()

    def on_edge(self):
        if not self._apply_async():
            self._store(self.next_state())

    def process(self):
        # Nothing is staged across ticks : transitions complete in write_pin.
        super().process()
        self._store(self._q)


class DFlipFlop(FlipFlop):
    """Master-slave D flip-flop : on the active edge the master samples D, and the
    slave passes the master state to Q."""

    class Pins(IntEnum):
        CLK = 0
        D = 1
        SET = 2
        RESET = 3
        Q = 4
        QBAR = 5
        BPLUS = 6
        GND = 7

    def __init__(self, name: str, **kwargs):
        self.master = False
        super().__init__(name, **kwargs)

    def _store(self, q: bool):
        self.master = bool(q)
        super()._store(q)

    def next_state(self) -> bool:
        self.master = self.level("D")
        return self.master


class JKFlipFlop(FlipFlop):
    """On the active edge: J=K=0 holds, K resets, J sets, J=K=1 toggles."""

    class Pins(IntEnum):
        CLK = 0
        J = 1
        K = 2
        SET = 3
        RESET = 4
        Q = 5
        QBAR = 6
        BPLUS = 7
        GND = 8

    def next_state(self) -> bool:
        match (self.level("J"), self.level("K")):
            case (False, False):
                return self.q
            case (False, True):
                return False
            case (True, False):
                return True
            case _:
                return not self.q


class TFlipFlop(FlipFlop):
    """On the active edge, Q toggles if T is high."""

    class Pins(IntEnum):
        CLK = 0
        T = 1
        SET = 2
        RESET = 3
        Q = 4
        QBAR = 5
        BPLUS = 6
        GND = 7

    def next_state(self) -> bool:
        return self.q != self.level("T")
