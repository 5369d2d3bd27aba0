"""Tests for the two-pass normalization run."""

import math

import numpy as np
import pytest

from loudnorm import (
    AudioIOError,
    DegenerateMeasurementError,
    InsufficientDataError,
    MalformedStreamError,
    Mode,
    NormalizationSettings,
    Normalizer,
    measure,
    normalize,
)
from loudnorm.analysis import Linked, PerChannel, RmsAnalyzer, to_lufs
from loudnorm.audio import ArraySink, ArraySource, StreamSpec
from loudnorm.normalization import NormalizationState, create_analyzer
from loudnorm.progress import CallbackProgress

from .conftest import FailingSource, dbfs, sine


def rms_settings(target: float = 0.0, channel_independent: bool = False, **kwargs):
    return NormalizationSettings(
        mode=Mode.RMS, target=target, channel_independent=channel_independent, **kwargs
    )


class TestEndToEnd:
    """Scenario tests on small in-memory streams."""

    def test_independent_rms(self, ramp_source, stereo_sink) -> None:
        result = normalize(ramp_source, stereo_sink, rms_settings(0.0, True))

        assert result.measurement == PerChannel((1.0, 2.0))
        assert result.gains == (1.0, 0.5)
        assert result.frames_written == 4
        np.testing.assert_array_equal(stereo_sink.to_array(), np.ones((4, 2)))

    def test_linked_rms(self, ramp_source, stereo_sink) -> None:
        """Test that one gain scales both channels and keeps their ratio."""
        result = normalize(ramp_source, stereo_sink, rms_settings(0.0, False))

        assert isinstance(result.measurement, Linked)
        assert result.measurement.value == pytest.approx(math.sqrt(2.5))
        assert result.gains[0] == result.gains[1]

        output = stereo_sink.to_array()
        gain = np.float32(result.gains[0])
        np.testing.assert_array_equal(output[:, 0], np.float32(1.0) * gain)
        np.testing.assert_array_equal(output[:, 1], np.float32(2.0) * gain)

    def test_linked_gain_identical_across_channels(self, stereo_spec) -> None:
        data = np.array([[0.1, -0.7], [0.3, 0.05], [-0.2, 0.9]], dtype=np.float32)
        sink = ArraySink(stereo_spec)

        result = normalize(ArraySource(data, stereo_spec), sink, rms_settings(-12.0))

        output = sink.to_array()
        np.testing.assert_array_equal(output, data * np.float32(result.gains[0]))

    def test_preserves_sample_count_and_order(self, stereo_spec) -> None:
        data = np.random.default_rng(2).uniform(-0.5, 0.5, size=(10001, 2)).astype(np.float32)
        sink = ArraySink(stereo_spec)

        result = normalize(
            ArraySource(data, stereo_spec), sink, rms_settings(-20.0, True, block_frames=333)
        )

        output = sink.to_array()
        assert output.shape == data.shape
        assert sink.samples_written == data.size
        np.testing.assert_allclose(output / data, np.tile(result.gains, (10001, 1)), rtol=1e-6)

    @pytest.mark.parametrize("channel_independent", [True, False])
    def test_rms_round_trip(self, stereo_spec, channel_independent) -> None:
        """Test that re-measuring the output hits the target level."""
        data = np.random.default_rng(3).normal(0.0, 0.2, size=(5000, 2)).astype(np.float32)
        data[:, 1] *= 0.1
        sink = ArraySink(stereo_spec)

        normalize(ArraySource(data, stereo_spec), sink, rms_settings(-18.0, channel_independent))

        output = ArraySource(sink.to_array(), stereo_spec)
        remeasured = RmsAnalyzer(channel_independent).analyze(output)
        for value in remeasured.values:
            assert value == pytest.approx(dbfs(-18.0), rel=1e-5)

    def test_lufs_round_trip(self, stereo_spec) -> None:
        data = sine(1000.0, dbfs(-30.0), 3.0)
        sink = ArraySink(stereo_spec)
        settings = NormalizationSettings(mode=Mode.LUFS, target=-16.0)

        result = normalize(ArraySource(data, stereo_spec), sink, settings)

        assert to_lufs(result.measurement.value) == pytest.approx(-30.0, abs=0.1)
        remeasured = measure(ArraySource(sink.to_array(), stereo_spec), settings)
        assert to_lufs(remeasured.value) == pytest.approx(-16.0, abs=0.01)

    def test_lufs_channel_independent_balances_channels(self, stereo_spec) -> None:
        data = sine(1000.0, dbfs(-30.0), 3.0)
        data[:, 1] *= dbfs(-12.0)
        sink = ArraySink(stereo_spec)
        settings = NormalizationSettings(
            mode=Mode.LUFS, target=-23.0, channel_independent=True
        )

        normalize(ArraySource(data, stereo_spec), sink, settings)

        remeasured = measure(ArraySource(sink.to_array(), stereo_spec), settings)
        for value in remeasured.values:
            assert to_lufs(value) == pytest.approx(-23.0, abs=0.01)


class TestFailures:
    """Tests for aborted runs."""

    @pytest.mark.parametrize("channel_independent", [True, False])
    def test_silence_is_degenerate(self, stereo_spec, channel_independent) -> None:
        sink = ArraySink(stereo_spec)
        source = ArraySource(np.zeros((64, 2)), stereo_spec)

        with pytest.raises(DegenerateMeasurementError):
            normalize(source, sink, rms_settings(-20.0, channel_independent))

        assert not sink.finalized
        assert sink.samples_written == 0

    def test_lufs_silence_is_degenerate(self, stereo_spec) -> None:
        settings = NormalizationSettings(mode=Mode.LUFS, target=-23.0)

        with pytest.raises(DegenerateMeasurementError):
            normalize(
                ArraySource(np.zeros((48000, 2)), stereo_spec), ArraySink(stereo_spec), settings
            )

    def test_empty_input(self, stereo_spec) -> None:
        normalizer = Normalizer(rms_settings())

        with pytest.raises(InsufficientDataError):
            normalizer.normalize(ArraySource([], stereo_spec), ArraySink(stereo_spec))

        assert normalizer.state is NormalizationState.MEASURING

    def test_unseekable_source(self, stereo_spec) -> None:
        source = ArraySource([[1.0, 2.0]] * 4, stereo_spec, seekable=False)
        sink = ArraySink(stereo_spec)
        normalizer = Normalizer(rms_settings())

        with pytest.raises(AudioIOError):
            normalizer.normalize(source, sink)

        assert normalizer.state is NormalizationState.REWOUND
        assert sink.samples_written == 0

    def test_channel_mismatch(self, ramp_source, mono_spec) -> None:
        with pytest.raises(MalformedStreamError):
            normalize(ramp_source, ArraySink(mono_spec), rms_settings())

    def test_partial_frame(self, stereo_spec) -> None:
        source = ArraySource([0.5, 0.5, 0.5], stereo_spec)

        with pytest.raises(MalformedStreamError):
            normalize(source, ArraySink(stereo_spec), rms_settings())

    def test_scaled_sample_overflow(self, mono_spec) -> None:
        """Test that a gain pushing a sample to infinity aborts the run."""
        source = ArraySource([[0.0], [2.0]], mono_spec)
        sink = ArraySink(mono_spec)
        normalizer = Normalizer(rms_settings(769.5))

        with pytest.raises(DegenerateMeasurementError, match="channel 0 of frame 1"):
            normalizer.normalize(source, sink)

        assert normalizer.state is NormalizationState.APPLYING
        assert not sink.finalized
        assert sink.samples_written == 0

    def test_read_failure(self) -> None:
        spec = StreamSpec(channels=2, sample_rate=8000)

        with pytest.raises(AudioIOError, match="device unplugged"):
            normalize(FailingSource(spec, fail_after=6), ArraySink(spec), rms_settings())


class TestNormalizer:
    """Tests for orchestration details."""

    def test_reaches_done(self, ramp_source, stereo_sink) -> None:
        normalizer = Normalizer(rms_settings())
        normalizer.normalize(ramp_source, stereo_sink)

        assert normalizer.state is NormalizationState.DONE
        assert stereo_sink.finalized

    def test_progress_reports_every_frame(self, stereo_spec) -> None:
        updates = []
        progress = CallbackProgress(lambda done, total: updates.append((done, total)))
        source = ArraySource(np.full((10, 2), 0.5), stereo_spec)

        normalize(source, ArraySink(stereo_spec), rms_settings(block_frames=3), progress)

        assert [done for done, _ in updates] == list(range(1, 11))
        assert all(total == 10 for _, total in updates)

    def test_measure_does_not_write(self, ramp_source) -> None:
        result = measure(ramp_source, rms_settings(channel_independent=True))

        assert result == PerChannel((1.0, 2.0))

    def test_create_analyzer_passes_settings(self) -> None:
        settings = NormalizationSettings(
            mode=Mode.LUFS,
            target=-23.0,
            channel_independent=True,
            strict_ebur128=True,
            channel_weights=(1.0, 1.0),
        )
        analyzer = create_analyzer(settings)

        assert analyzer.channel_independent
        assert analyzer.strict_ebur128
        assert analyzer.channel_weights == (1.0, 1.0)
