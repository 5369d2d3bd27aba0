"""Two-pass loudness normalization of audio streams."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np
import torch

from ..analysis import (
    AmplitudeAnalyzer,
    IntegratedLoudnessAnalyzer,
    LoudnessAnalyzer,
    LoudnessMeasurement,
    RmsAnalyzer,
)
from ..audio.frames import iter_blocks
from ..audio.stream import AudioSink, AudioSource
from ..errors import DegenerateMeasurementError, MalformedStreamError
from ..progress import NullProgress, ProgressReporter
from .gain import resolve_gains
from .settings import Mode, NormalizationSettings

logger = logging.getLogger(__name__)


class NormalizationState(Enum):
    """Stages of a normalization run, entered strictly in order."""

    IDLE = "idle"
    MEASURING = "measuring"
    GAIN_RESOLVED = "gain_resolved"
    REWOUND = "rewound"
    APPLYING = "applying"
    DONE = "done"


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of a completed normalization run."""

    measurement: LoudnessMeasurement
    gains: Tuple[float, ...]
    frames_written: int


def create_analyzer(settings: NormalizationSettings) -> LoudnessAnalyzer:
    """Instantiate the analyzer selected by the settings' mode."""
    if settings.mode is Mode.AMPLITUDE:
        return AmplitudeAnalyzer(settings.channel_independent, settings.block_frames)
    if settings.mode is Mode.LUFS:
        return IntegratedLoudnessAnalyzer(
            channel_independent=settings.channel_independent,
            strict_ebur128=settings.strict_ebur128,
            channel_weights=settings.channel_weights,
            block_frames=settings.block_frames,
        )
    if settings.mode is Mode.RMS:
        return RmsAnalyzer(settings.channel_independent, settings.block_frames)
    raise ValueError(f"Unsupported normalization mode: {settings.mode}")


class Normalizer:
    """Measures a source, then rewrites it with the gain reaching the target.

    The first pass runs the configured analyzer to end of stream. The source
    is then rewound and streamed a second time through the resolved gains
    into the sink. Any failure aborts the run; the sink is left unfinalized
    and must be discarded by the caller.
    """

    def __init__(
        self,
        settings: NormalizationSettings,
        progress: Optional[ProgressReporter] = None,
    ):
        """Initialize the normalizer.

        Args:
            settings: Algorithm, target and channel handling
            progress: Observer for the second pass, silent if None
        """
        self.settings = settings
        self.progress = progress or NullProgress()
        self.state = NormalizationState.IDLE

    def measure(self, source: AudioSource) -> LoudnessMeasurement:
        """Run the configured analyzer from the source's current position."""
        analyzer = create_analyzer(self.settings)
        measurement = analyzer.analyze(source)
        logger.info(
            "Measured %s loudness: %s",
            self.settings.mode.value,
            ", ".join(f"{value:.6g}" for value in measurement.values),
        )
        return measurement

    def normalize(self, source: AudioSource, sink: AudioSink) -> NormalizationResult:
        """Normalize ``source`` into ``sink``.

        Args:
            source: Seekable input stream
            sink: Output stream with the same channel layout

        Returns:
            Measurement, applied gains and number of frames written

        Raises:
            AudioIOError: If reading, rewinding or writing fails
            UnimplementedCapabilityError: If the mode has no analyzer
            MalformedStreamError: If the streams' layouts disagree
            DegenerateMeasurementError: If no finite gain reaches the target or a
                scaled sample leaves 32-bit float range
        """
        channels = source.spec.channels
        if sink.spec.channels != channels:
            raise MalformedStreamError(
                f"Sink has {sink.spec.channels} channels, source has {channels}"
            )

        self._enter(NormalizationState.MEASURING)
        measurement = self.measure(source)

        self._enter(NormalizationState.GAIN_RESOLVED)
        gains = resolve_gains(
            measurement, self.settings.target, self.settings.mode, channels
        )
        logger.info("Resolved gains: %s", ", ".join(f"{g:.6g}" for g in gains.tolist()))

        self._enter(NormalizationState.REWOUND)
        source.rewind()

        self._enter(NormalizationState.APPLYING)
        frames_written = self._apply(source, sink, gains)

        sink.finalize()
        self._enter(NormalizationState.DONE)

        return NormalizationResult(
            measurement=measurement,
            gains=tuple(gains.tolist()),
            frames_written=frames_written,
        )

    def _apply(self, source: AudioSource, sink: AudioSink, gains: torch.Tensor) -> int:
        frame_gains = gains if self.settings.channel_independent else gains[0]

        frames_written = 0
        self.progress.start(source.frame_count)
        try:
            for block in iter_blocks(source.frames(), self.settings.block_frames):
                scaled = torch.from_numpy(block.astype(np.float32)) * frame_gains
                self._check_finite(scaled, gains, frames_written)
                sink.write_samples(scaled.numpy())

                for _ in range(block.shape[0]):
                    self.progress.advance()
                frames_written += block.shape[0]
        finally:
            self.progress.close()

        return frames_written

    def _check_finite(
        self, scaled: torch.Tensor, gains: torch.Tensor, first_frame: int
    ) -> None:
        finite = torch.isfinite(scaled)
        if bool(finite.all()):
            return

        frame, channel = (~finite).nonzero()[0].tolist()
        gain = gains[channel] if self.settings.channel_independent else gains[0]
        raise DegenerateMeasurementError(
            f"Gain {gain.item():.6g} drives channel {channel} of frame "
            f"{first_frame + frame} out of 32-bit float range"
        )

    def _enter(self, state: NormalizationState) -> None:
        logger.debug("Normalization %s -> %s", self.state.value, state.value)
        self.state = state


def normalize(
    source: AudioSource,
    sink: AudioSink,
    settings: NormalizationSettings,
    progress: Optional[ProgressReporter] = None,
) -> NormalizationResult:
    """Normalize ``source`` into ``sink`` according to ``settings``."""
    return Normalizer(settings, progress).normalize(source, sink)


def measure(source: AudioSource, settings: NormalizationSettings) -> LoudnessMeasurement:
    """Measure the loudness of ``source`` without writing any output."""
    return Normalizer(settings).measure(source)
