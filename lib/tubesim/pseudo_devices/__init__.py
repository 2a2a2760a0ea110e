"""
Pseudo devices : circuit parts which model test equipment rather than tube circuits.
"""

from .bus_probe import BusProbe
from .sources import ClockSource, ConstantSource

__all__ = ["BusProbe", "ClockSource", "ConstantSource"]
