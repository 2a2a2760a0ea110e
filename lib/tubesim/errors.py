"""
Exceptions raised by the simulation library.

Construction-time problems (bad widths, contradictory connections) abort the build of
a circuit.  Per-pin runtime problems are reported by the failing call only, and leave
the component holding its previous state.
"""

__all__ = [
    "ConfigurationError",
    "InvalidOperationError",
    "OutOfRangeError",
    "SimulationError",
    "UnknownPinError",
]


class SimulationError(Exception):
    """Base class for all simulation errors."""


class UnknownPinError(SimulationError, KeyError):
    """Addressed a pin which the component does not expose (in that direction)."""

    def __str__(self):
        # KeyError would otherwise repr() the message.
        return str(self.args[0]) if self.args else ""


class InvalidOperationError(SimulationError, ValueError):
    """An operation code is out of range for the target unit."""


class OutOfRangeError(SimulationError, ValueError):
    """A value has more bits than the register, counter or memory word can hold."""


class ConfigurationError(SimulationError, ValueError):
    """Contradictory construction, e.g. an 8-bit bus wired into a 4-bit port."""
