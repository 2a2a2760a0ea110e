"""
Signal support.

A Signal is a named wire with a current voltage "value", which notifies a list of
connections whenever a new value is sent via Signal.update(time, value).
Every component output pin is published as a Signal, and a circuit wires a Signal to
downstream input pins by connecting their Component.receive callbacks.

A signal's value is its only state, and it implements no logic or scheduling functions:
it is purely a message-passing mechanism.  A new signal's value is None (undefined),
so that its first update always counts as a change.

Connections are added with Signal.connect(client, call_context=None, index=-1).
When connection clients are called in a Signal.update(), the time and value are passed,
plus the per-connection context.

We also provide Signal.trace/untrace().
Tracing connects a standard EventClient, which emits a standard signal update message
whenever the signal is updated.
The operation of this is configurable by changing the value of TRACE_HANDLER_CLIENT :
its default is the 'default_trace_action' function, which prints to the terminal.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from tubesim.event import EventClient, TickTime, TimeTypes

__all__ = ["Signal", "SignalConnection"]


@dataclass
class SignalConnection:
    """
    A Connection is a client associated with a specific per-connection context.

    The call_context is that given when the client was connected with Signal.connect.
    For wires into components, it is the id of the receiving pin, so that one
    Component.receive method can serve all of a component's inputs.
    It is also useful to have a distinct object for each connection : at the least,
    it means that we can implement Signal.disconnect.
    """

    call: EventClient
    call_context: Any


def default_trace_action(
    time: TickTime, value: float | None = None, signal: Signal | None = None
):
    """Print one line per wire update : the tick, the wire name, and its voltage
    before and after.

    The context is the traced Signal itself.  Its earlier voltage prints as 'None'
    on the first update, which is always a change.
    """
    name = "<?missing?>" if signal is None else signal.name
    before = None if signal is None else signal.previous_value
    print(f"@{time}: Sig<{name}> : {before} ==> {value}")


# : A single common definition for what trace actions do.
TRACE_HANDLER_CLIENT: EventClient = default_trace_action


class Signal:
    def __init__(self, name: str, start_value: float | None = None):
        self.name = name
        self.value: float | None = None if start_value is None else float(start_value)
        self.previous_value: float | None = None
        self.connected_clients: list[SignalConnection] = []
        # This is a placeholder for the (unique) trace connection
        self._trace_connection: SignalConnection | None = None

    def __str__(self):
        msg = f"Signal<{self.name} = {self.value!s}>"
        return msg

    def update(self, time: TimeTypes, value: float):
        time = TickTime(time)
        self.previous_value = self.value
        self.value = float(value)
        for connection in self.connected_clients:
            connection.call(time, self.value, connection.call_context)

    def connect(
        self, call: EventClient, call_context=None, index: int = -1
    ) -> SignalConnection:
        """Create a connection to this signal.

        The 'call' callback (aka 'client') is invoked whenever the signal updates.
        The index governs where the connection is installed in the (current) connections
        list, for ordering control: -1[default] --> last; 0 --> first.
        """
        connection = SignalConnection(call, call_context)
        if connection not in self.connected_clients:
            if index == -1:
                self.connected_clients.append(connection)
            else:
                self.connected_clients[index:index] = [connection]
        return connection  # this enables us to remove it

    def disconnect(self, connection: SignalConnection):
        """Remove a given output connection."""
        while connection in self.connected_clients:
            self.connected_clients.remove(connection)

    # Tracing
    #   This operates via the public 'connection' mechanism, but uses a private
    #   instance variable "self._trace_connection", which is created in init.

    @staticmethod
    def _call_trace(time: TickTime, value: float, sig: "Signal"):
        """Pass a traced voltage change on to the current TRACE_HANDLER_CLIENT.

        The handler is looked up on every call, so replacing it retargets existing
        traces.
        """
        TRACE_HANDLER_CLIENT(time, sig.value, sig)

    def trace(self):
        """Start tracing this signal."""
        if self._trace_connection is None:
            self._trace_connection = self.connect(
                self._call_trace,
                call_context=self,
                # N.B. always insert trace at **start** of connections, so it happens
                # before other clients.
                index=0,
            )

    def untrace(self):
        """Stop tracing this signal."""
        if self._trace_connection is not None:
            self.disconnect(self._trace_connection)
        self._trace_connection = None
