import pytest

from tubesim import Circuit, Event, Sequencer

HIGH, LOW = 5.0, 0.0


@pytest.fixture
def circuit():
    circuit = Circuit("seq")
    circuit.create_component("not", "inv")
    circuit.create_component("counter", "cnt", width=4)
    return circuit


@pytest.fixture
def seq(circuit):
    return Sequencer(circuit)


class TestEvents:
    def test_drive(self, seq, circuit):
        event = seq.drive(2, "inv", "IN", HIGH)
        assert isinstance(event, Event)
        assert event.time == 2
        seq.run()
        assert seq.time == 2
        assert circuit.observe("inv", "OUT") == LOW

    def test_applied_before_tick(self, seq, circuit):
        seq.drive(1, "inv", "IN", HIGH)
        seq.step()
        assert circuit.observe("inv", "OUT") == LOW

    def test_sorted(self, seq):
        late = seq.drive(5, "inv", "IN", LOW)
        early = seq.drive(3, "inv", "IN", HIGH)
        assert seq.events == [early, late]

    def test_init_events(self, circuit):
        calls = []
        events = [Event(2, calls.append), Event(1, calls.append)]
        seq = Sequencer(circuit, events)
        seq.run()
        assert calls == [1, 2]

    def test_new_events(self, seq):
        calls = []

        def chain(time):
            calls.append(time.tick)
            if time.tick < 5:
                return [Event(time + 2, chain)]

        seq.add(Event(1, chain))
        seq.run()
        assert calls == [1, 3, 5]
        assert seq.time == 5

    def test_backwards(self, seq):
        seq.run(steps=5)
        seq.drive(3, "inv", "IN", HIGH)
        with pytest.raises(ValueError, match="Unexpected backwards step"):
            seq.step()


class TestClock:
    def test_schedule(self, seq):
        events = seq.clock("cnt", period=4, start=2, cycles=2)
        assert [event.time.tick for event in events] == [2, 4, 6, 8]
        assert [event.value for event in events] == [HIGH, LOW, HIGH, LOW]

    def test_bad_period(self, seq):
        with pytest.raises(ValueError, match="at least 2 ticks"):
            seq.clock("cnt", period=1)

    def test_counts_edges(self, seq, circuit):
        seq.clock("cnt", cycles=3)
        seq.run()
        assert seq.time == 6
        assert circuit.observe_bus("cnt", "Q") == 3


class TestRun:
    def test_steps(self, seq):
        seq.run(3)
        assert seq.time == 3
        seq.step()
        assert seq.time == 4

    def test_until(self, seq):
        seq.until(5)
        assert seq.time == 5
        seq.until(2)
        assert seq.time == 5

    def test_awhile(self, seq):
        seq.step(2)
        seq.awhile(4)
        assert seq.time == 6

    def test_no_events(self, seq):
        seq.run()
        assert seq.time == 0

    def test_stops_on_halt(self, seq, circuit):
        seq.add(Event(3, lambda time: circuit.halt()))
        seq.run(steps=10)
        assert seq.time == 3
        seq.run(steps=10)
        assert seq.time == 3

    def test_verbose(self, seq, capsys):
        seq.drive(1, "inv", "IN", HIGH)
        seq.run(steps=1, verbose=True)
        output = capsys.readouterr().out
        assert "NEXT: Event(time=1" in output
        assert "TICK 1" in output
        assert "Halted after 1 steps." in output
