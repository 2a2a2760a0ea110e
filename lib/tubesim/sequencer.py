"""
A Sequencer is the outer loop of a simulation : it ticks a Circuit, and performs
time-ordered stimulus Events (such as primary-input drives) just before the tick they
are scheduled for.
"""

from tubesim.circuit import Circuit, Handle
from tubesim.event import Event, TickTime, TimeTypes

__all__ = ["Sequencer"]


class Sequencer:
    def __init__(
        self, circuit: Circuit, events: list[Event] | None = None, verbose=False
    ):
        self.circuit = circuit
        self._events = list(events or [])
        self.verbose = verbose

    @property
    def time(self) -> TickTime:
        return self.circuit.time

    def _sort(self):
        self._events = sorted(self._events, key=lambda event: event.time)

    @property
    def events(self) -> list[Event]:
        self._sort()
        return self._events

    def add(self, event_or_events: Event | list[Event]):
        match event_or_events:
            case Event():
                events = [event_or_events]
            case _:
                events = event_or_events
        self._events.extend(events)

    def drive(self, time: TimeTypes, handle: Handle, pin, voltage: float) -> Event:
        """Schedule a primary-input drive, to be applied at the given tick."""
        component = self.circuit.component(handle)
        event = Event(time, self._drive_action, voltage, (component.name, pin))
        self.add(event)
        return event

    def _drive_action(self, time: TickTime, value: float, context: tuple[str, str]):
        name, pin = context
        self.circuit.drive(name, pin, value)

    def clock(
        self,
        handle: Handle,
        pin="CLK",
        *,
        period: int = 2,
        start: TimeTypes = 1,
        cycles: int = 1,
    ) -> list[Event]:
        """Schedule a square-wave clock : 'cycles' rising edges, 'period' ticks apart,
        the first at tick 'start'."""
        if period < 2:
            raise ValueError(f"Clock period must be at least 2 ticks, got {period}.")
        family = self.circuit.family
        start_tick = TickTime(start).tick
        events = []
        for cycle in range(cycles):
            rise = start_tick + cycle * period
            events.append(self.drive(rise, handle, pin, family.high))
            events.append(self.drive(rise + period // 2, handle, pin, family.low))
        return events

    def run(
        self,
        steps: int | None = None,
        *,
        period: TimeTypes | None = None,
        stop: TimeTypes | None = None,
        verbose=False,
    ):
        """Tick the circuit, applying events as they fall due.

        Runs for 'steps' ticks, or for a 'period' of ticks, or until time 'stop'.
        With none of those, it runs until there are no more events.
        It always stops if the circuit halts.
        """
        verbose |= self.verbose
        if period is not None:
            stop = self.time + TickTime(period)
        ticks = 0
        while True:
            if self.circuit.halted:
                if verbose:
                    print(f"Circuit halted at time {self.time}.")
                break
            if steps is not None and ticks >= steps:
                if verbose:
                    print(f"Halted after {steps} steps.")
                break
            if stop is not None:
                stop_time = TickTime(stop)
                if self.time >= stop_time:
                    if verbose:
                        print(f"Halted at set time: {self.time} >= {stop_time}.")
                    break
            if steps is None and stop is None and not self._events:
                if verbose:
                    print("Halted with no more events.")
                break

            next_time = self.time + 1
            self._sort()
            while self._events and self._events[0].time.tick <= next_time.tick:
                event = self._events.pop(0)
                if event.time.tick < self.time.tick:
                    msg = (
                        f"Unexpected backwards step : time {self.time} --> "
                        f"{event.time}."
                    )
                    raise ValueError(msg)
                if verbose:
                    print("\nNEXT:", event)
                new_events = event.action()
                if new_events:
                    self.add(new_events)
                    self._sort()
                    if verbose:
                        print("resulting: ")
                        for new_event in new_events:
                            print("  - ", new_event)
            self.circuit.tick()
            ticks += 1
            if verbose:
                print(f"TICK {self.time}")

    def step(self, steps: int = 1, verbose: bool = False):
        self.run(steps=steps, verbose=verbose)

    def until(self, time: TimeTypes, verbose: bool = False):
        self.run(stop=time, verbose=verbose)

    def awhile(self, time: TimeTypes, verbose: bool = False):
        self.run(period=time, verbose=verbose)
