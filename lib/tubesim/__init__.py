"""
Vacuum-tube digital logic simulation

Provides Components, with numbered pins carrying voltages, which are wired together
into a Circuit and advanced in discrete ticks.

Every component offers the same three operations :
  * 'write_pin' puts a voltage on an input pin
  * 'read_pin' returns the voltage of an output pin
  * 'tick' advances the component one step

A pin's logic level is derived from its voltage by the threshold of a LogicFamily.
Component outputs are Signals : a circuit connects a Signal to the input pins of other
components, and each tick publishes any changed outputs to them.

The components range from gates and flip-flops, through registers, counters and
multiplexers, up to adders, an ALU, memory and an accumulator.
Pseudo devices model test equipment : clock and constant sources, and bus probes.

A Sequencer ticks a circuit, applying stimulus Events at given TickTimes.
A circuit can run for a number of ticks, until a halt pin goes high, or until
'halt()' is called.

"""

# Import the major commonly used definitions into the root module.
from .alu import ALU, AluOp, CompareResult
from .arithmetic import Adder, AdderMode, BCDAdder, Divider, Multiplier
from .circuit import COMPONENT_KINDS, Circuit, Wire
from .component import Combinational, Component, Pin, PinKind
from .counters import (
    BCDCounter,
    ClockDivider,
    Counter,
    JohnsonCounter,
    RingCounter,
    RippleCounter,
)
from .errors import (
    ConfigurationError,
    InvalidOperationError,
    OutOfRangeError,
    SimulationError,
    UnknownPinError,
)
from .event import Event, PinWrite, TickTime
from .flipflops import (
    ClockEdge,
    DFlipFlop,
    DLatch,
    JKFlipFlop,
    SRLatch,
    TFlipFlop,
)
from .gates import (
    AndGate,
    FullAdder,
    HalfAdder,
    NandGate,
    NorGate,
    NotGate,
    OrGate,
    XorGate,
)
from .logic import LogicFamily
from .memory import AccOp, Accumulator, Memory
from .muxes import AnalogMultiplexer, Decoder, Demultiplexer, Multiplexer
from .pseudo_devices import BusProbe, ClockSource, ConstantSource
from .registers import (
    BufferRegister,
    Register,
    ShiftMode,
    ShiftRegister,
    UniversalShiftRegister,
)
from .sequencer import Sequencer
from .signal import Signal

__all__ = [
    "ALU",
    "AccOp",
    "Accumulator",
    "Adder",
    "AdderMode",
    "AluOp",
    "AnalogMultiplexer",
    "AndGate",
    "BCDAdder",
    "BCDCounter",
    "BufferRegister",
    "BusProbe",
    "COMPONENT_KINDS",
    "Circuit",
    "ClockDivider",
    "ClockEdge",
    "ClockSource",
    "Combinational",
    "CompareResult",
    "Component",
    "ConfigurationError",
    "ConstantSource",
    "Counter",
    "DFlipFlop",
    "DLatch",
    "Decoder",
    "Demultiplexer",
    "Divider",
    "Event",
    "FullAdder",
    "HalfAdder",
    "InvalidOperationError",
    "JKFlipFlop",
    "JohnsonCounter",
    "LogicFamily",
    "Memory",
    "Multiplexer",
    "Multiplier",
    "NandGate",
    "NorGate",
    "NotGate",
    "OrGate",
    "OutOfRangeError",
    "Pin",
    "PinKind",
    "PinWrite",
    "Register",
    "RingCounter",
    "RippleCounter",
    "SRLatch",
    "Sequencer",
    "ShiftMode",
    "ShiftRegister",
    "Signal",
    "SimulationError",
    "TFlipFlop",
    "TickTime",
    "UniversalShiftRegister",
    "UnknownPinError",
    "Wire",
    "XorGate",
]
