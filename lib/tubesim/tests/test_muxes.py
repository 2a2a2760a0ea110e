import logging

import pytest

from tubesim import (
    AnalogMultiplexer,
    ConfigurationError,
    Decoder,
    Demultiplexer,
    Multiplexer,
)

HIGH, LOW = 5.0, 0.0


class TestDecoder:
    @pytest.mark.parametrize("select", range(8))
    def test_one_hot(self, select):
        decoder = Decoder("dec", 3)
        decoder.write_bus("A", select)
        assert decoder.read_bus("Y") == 1 << select
        assert decoder.selected == select

    def test_disable(self):
        decoder = Decoder("dec", 2)
        decoder.write_bus("A", 3)
        decoder.write_pin("DIS", HIGH)
        assert decoder.read_bus("Y") == 0
        assert decoder.selected is None

    def test_bad_select_bits(self):
        with pytest.raises(ConfigurationError, match="cannot have 0 select bits"):
            Decoder("dec", 0)


class TestMultiplexer:
    @pytest.fixture
    def mux(self):
        mux = Multiplexer("mux", select_bits=2, data_bits=4)
        for channel in range(4):
            mux.set_channel(channel, 3 * channel + 1)
        return mux

    @pytest.mark.parametrize("select", range(4))
    def test_select(self, mux, select):
        mux.select(select)
        assert mux.output == 3 * select + 1
        assert mux.read_bus("Y") == 3 * select + 1

    def test_follows_input(self, mux):
        mux.select(2)
        mux.set_channel(2, 0b1111)
        assert mux.output == 0b1111

    def test_disable(self, mux):
        mux.select(1)
        mux.write_pin("DIS", HIGH)
        assert mux.output == 0

    def test_wrap_around(self, mux, caplog):
        with caplog.at_level(logging.INFO, logger="tubesim.muxes"):
            mux.select(6)
        assert mux.output == 3 * 2 + 1
        assert "channel 6 wraps around to 2" in caplog.text

    def test_pin_names(self):
        mux = Multiplexer("mux", select_bits=1, data_bits=2)
        names = [pin.name for pin in mux.pins]
        assert names == [
            "S0",
            "DIS",
            "I0_0",
            "I0_1",
            "I1_0",
            "I1_1",
            "Y0",
            "Y1",
            "BPLUS",
            "GND",
        ]

    @pytest.mark.parametrize("line", range(4))
    def test_decoder_round_trip(self, line):
        # A decoder line, fed to a mux with the same select, comes back out.
        decoder = Decoder("dec", 2)
        decoder.write_bus("A", line)
        mux = Multiplexer("mux", select_bits=2)
        for channel, pin_id in enumerate(decoder.bus("Y")):
            mux.write_pin(f"I{channel}_0", decoder.read_pin(pin_id))
        mux.select(line)
        assert mux.output == 1


class TestDemultiplexer:
    def test_routing(self):
        # 1:4 demux, select 2, input high.
        demux = Demultiplexer("demux", select_bits=2)
        demux.select(0b10)
        demux.write_pin("I0", HIGH)
        outputs = [demux.read_pin(f"Y{channel}_0") for channel in range(4)]
        assert outputs == [LOW, LOW, HIGH, LOW]
        demux.write_pin("DIS", HIGH)
        outputs = [demux.read_pin(f"Y{channel}_0") for channel in range(4)]
        assert outputs == [LOW] * 4

    @pytest.mark.parametrize("select", range(4))
    def test_words(self, select):
        demux = Demultiplexer("demux", select_bits=2, data_bits=3)
        demux.write_bus("I", 0b101)
        demux.select(select)
        for channel in range(4):
            expected = 0b101 if channel == select else 0
            assert demux.channel_output(channel) == expected


class TestAnalogMultiplexer:
    def test_pass_through(self):
        amux = AnalogMultiplexer("amux", channels=3)
        for channel, voltage in enumerate([1.25, 3.3, 4.75]):
            amux.write_pin(f"X{channel}", voltage)
        amux.write_bus("S", 1)
        assert amux.read_pin("Y") == 3.3

    def test_wrap(self):
        amux = AnalogMultiplexer("amux", channels=3)
        amux.write_pin("X0", 1.5)
        amux.write_bus("S", 3)
        assert amux.selected_channel == 0
        assert amux.read_pin("Y") == 1.5

    def test_disable(self):
        amux = AnalogMultiplexer("amux", channels=2)
        amux.write_pin("X0", 4.0)
        amux.write_pin("DIS", HIGH)
        assert amux.read_pin("Y") == LOW

    def test_bad_channels(self):
        with pytest.raises(ConfigurationError, match="cannot have 1 channels"):
            AnalogMultiplexer("amux", channels=1)
