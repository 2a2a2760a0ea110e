"""
Simulation time and event classes.

TickTime is the discrete simulation clock: a whole number of ticks, with an optional
'priority' which orders events scheduled for the same tick.

The EventClient defines the basic type of callback used to deliver a voltage, which
for components is Component.receive(time, voltage, pin).

An Event describes a callback to be performed at a given TickTime, with an associated
voltage and context.  A PinWrite is the persisted form of a single pin drive, as used
by circuit snapshots.
"""

from __future__ import annotations
from functools import total_ordering
from typing import Any, Callable, NamedTuple

type TimeTypes = TickTime | int

__all__ = ["Event", "EventClient", "PinWrite", "TickTime"]


@total_ordering
class TickTime:
    """Class to define event times.

    This ensures consistent typing of times, and defines how the optional 'priority'
    affects ordering : at the same tick, higher priorities come first.

    TickTimes compare and add with plain ints, and print like a plain number (except
    when priority != 0).
    """

    tick: int = 0
    priority: int = 0

    def __init__(self, tick: TimeTypes, priority: int = 0):
        match tick:
            case TickTime():
                self.tick, self.priority = tick.tick, tick.priority
            case bool():
                raise TypeError(f"Argument 'tick', {tick!r} has unsupported type.")
            case int():
                self.tick = tick
                self.priority = int(priority)
            case _:
                raise TypeError(f"Argument 'tick', {tick!r} has unsupported type.")

    def __repr__(self):
        result = f"TickTime({self.tick}"
        if self.priority != 0:
            result += f", priority={self.priority}"
        result += ")"
        return result

    def __str__(self):
        result = str(self.tick)
        if self.priority != 0:
            result += f"(priority={self.priority})"
        return result

    def __hash__(self):
        return hash((self.tick, self.priority))

    def __eq__(self, other):
        if not isinstance(other, TickTime):
            other = TickTime(other)
        return self.tick == other.tick and self.priority == other.priority

    def __lt__(self, other):
        if not isinstance(other, TickTime):
            other = TickTime(other)
        t1, t2 = self.tick, other.tick
        p1, p2 = self.priority, other.priority
        return t1 < t2 or (t1 == t2 and p1 > p2)

    def __add__(self, other):
        if isinstance(other, TickTime):
            offset = other.tick
        else:
            offset = other
        return TickTime(self.tick + offset)

    def __radd__(self, other):
        return self.__add__(other)


EventClient = Callable[[TickTime, float | None, Any], None]


class Event:
    time: TickTime
    callback: EventClient
    value: float | None
    context: Any = None

    def __init__(
        self,
        time: TimeTypes,
        call: EventClient,
        value: float | None = None,
        context: Any = None,
    ):
        self.time = TickTime(time)
        self.callback = call
        self.value = None if value is None else float(value)
        self.context = context

    def __repr__(self):
        return f"Event(time={self.time}, value={self.value}, call={self.callback!r})"

    def action(self):
        # Only pass the args which are positively defined, as for Signal connections.
        args: tuple = (self.time,)
        if self.context is not None or self.value is not None:
            args += (self.value,)
        if self.context is not None:
            args += (self.context,)
        return self.callback(*args)


class PinWrite(NamedTuple):
    """One recorded drive of a component pin : (component id, pin name, voltage)."""

    component: str
    pin: str
    value: float
