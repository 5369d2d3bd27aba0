"""Integrated loudness analysis with K-weighting and block gating.

Follows the ITU-R BS.1770 / EBU R128 measurement: every channel passes
through the two-stage K-weighting pre-filter, mean-square power is taken over
400 ms blocks overlapping by 75 %, and blocks are gated first against an
absolute floor of -70 LUFS and then against a threshold 10 LU below the mean
of the survivors.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from scipy import signal

from ..audio.stream import AudioSource
from ..errors import InsufficientDataError, MalformedStreamError
from .base import LoudnessAnalyzer
from .measurement import (
    LUFS_OFFSET_DB,
    Linked,
    LoudnessMeasurement,
    PerChannel,
    mean_square_to_lufs,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoudnessConfig:
    """Block and gate constants of the integrated loudness measurement.

    Attributes:
        block_seconds: Length of one gating block
        overlap: Fraction of a block shared with the next one
        absolute_gate_lufs: Blocks at or below this loudness are discarded
        relative_gate_lu: Offset of the relative gate from the ungated mean
    """

    block_seconds: float = 0.4
    overlap: float = 0.75
    absolute_gate_lufs: float = -70.0
    relative_gate_lu: float = -10.0


def k_weighting_sos(sample_rate: int) -> np.ndarray:
    """Design the K-weighting pre-filter for a sample rate.

    Args:
        sample_rate: Sample rate in Hz

    Returns:
        Second-order sections (high shelf, then high pass) for scipy.signal
    """
    # Stage 1: high shelf modelling the acoustic effect of the head
    f0 = 1681.974450955533
    gain_db = 3.999843853973347
    q = 0.7071752369554196

    k = np.tan(np.pi * f0 / sample_rate)
    vh = 10.0 ** (gain_db / 20.0)
    vb = vh**0.4996667741545416
    a0 = 1.0 + k / q + k * k
    shelf = [
        (vh + vb * k / q + k * k) / a0,
        2.0 * (k * k - vh) / a0,
        (vh - vb * k / q + k * k) / a0,
        1.0,
        2.0 * (k * k - 1.0) / a0,
        (1.0 - k / q + k * k) / a0,
    ]

    # Stage 2: RLB high pass
    f0 = 38.13547087602444
    q = 0.5003270373238773

    k = np.tan(np.pi * f0 / sample_rate)
    a0 = 1.0 + k / q + k * k
    high_pass = [
        1.0,
        -2.0,
        1.0,
        1.0,
        2.0 * (k * k - 1.0) / a0,
        (1.0 - k / q + k * k) / a0,
    ]

    return np.array([shelf, high_pass])


class BlockPowerMeter:
    """Streams K-weighted samples into overlapping mean-square blocks.

    Filter state and partially filled hops carry over between calls to
    ``feed``, so the result does not depend on how the stream is chunked.
    """

    def __init__(
        self, sample_rate: int, channels: int, config: Optional[LoudnessConfig] = None
    ):
        self.config = config or LoudnessConfig()
        self.channels = channels
        step_seconds = self.config.block_seconds * (1.0 - self.config.overlap)
        self.hop = max(1, int(round(sample_rate * step_seconds)))
        self.hops_per_block = max(1, int(round(1.0 / (1.0 - self.config.overlap))))

        self._sos = k_weighting_sos(sample_rate)
        self._zi = np.zeros((self._sos.shape[0], 2, channels))
        self._recent_hops = deque(maxlen=self.hops_per_block)
        self._partial = np.zeros(channels)
        self._partial_count = 0
        self._blocks: List[np.ndarray] = []

    def feed(self, block: np.ndarray) -> None:
        """Filter a (frames, channels) block and collect completed blocks."""
        filtered, self._zi = signal.sosfilt(self._sos, block, axis=0, zi=self._zi)
        squared = filtered**2

        position = 0
        while position < squared.shape[0]:
            take = min(self.hop - self._partial_count, squared.shape[0] - position)
            self._partial += squared[position : position + take].sum(axis=0)
            self._partial_count += take
            position += take

            if self._partial_count == self.hop:
                self._recent_hops.append(self._partial)
                self._partial = np.zeros(self.channels)
                self._partial_count = 0

                if len(self._recent_hops) == self.hops_per_block:
                    window = self.hop * self.hops_per_block
                    self._blocks.append(np.sum(self._recent_hops, axis=0) / window)

    def block_powers(self) -> np.ndarray:
        """Mean-square power per completed block, shaped (blocks, channels)."""
        if not self._blocks:
            return np.zeros((0, self.channels))
        return np.vstack(self._blocks)


def gated_loudness(block_powers: np.ndarray, config: Optional[LoudnessConfig] = None) -> float:
    """Apply the absolute and relative gates to channel-summed block powers.

    Args:
        block_powers: One weighted mean-square power per block
        config: Gate constants

    Returns:
        Linear loudness power 10^(L/10) of the gated mean, 0.0 when no block
        survives the absolute gate
    """
    config = config or LoudnessConfig()
    if not block_powers.size:
        return 0.0

    above_absolute = block_powers[mean_square_to_lufs(block_powers) > config.absolute_gate_lufs]
    if not above_absolute.size:
        return 0.0

    relative_gate = mean_square_to_lufs(above_absolute.mean()) + config.relative_gate_lu
    kept = above_absolute[mean_square_to_lufs(above_absolute) > relative_gate]

    return float(10.0 ** (LUFS_OFFSET_DB / 10.0) * kept.mean())


class IntegratedLoudnessAnalyzer(LoudnessAnalyzer):
    """Gated, K-weighted integrated loudness.

    Unless ``strict_ebur128`` is set, a measurement covering a single channel
    (mono input, or every channel in channel-independent mode) is treated as
    dual mono and reads 3 LU louder, matching the level the same programme
    reaches when played on a stereo pair.
    """

    def __init__(
        self,
        channel_independent: bool = False,
        strict_ebur128: bool = False,
        channel_weights: Optional[Sequence[float]] = None,
        config: Optional[LoudnessConfig] = None,
        block_frames: int = 4096,
    ):
        """Initialize the analyzer.

        Args:
            channel_independent: Measure and gate every channel on its own
            strict_ebur128: Skip the dual-mono adjustment of single channels
            channel_weights: Per-channel weights for the linked sum, unity if None
            config: Block and gate constants
            block_frames: Frames stacked per vectorised processing step
        """
        super().__init__(channel_independent, block_frames)
        self.strict_ebur128 = strict_ebur128
        self.channel_weights = channel_weights
        self.config = config or LoudnessConfig()

    def analyze(self, source: AudioSource) -> LoudnessMeasurement:
        spec = source.spec
        weights = self._weights(spec.channels)
        meter = BlockPowerMeter(spec.sample_rate, spec.channels, self.config)

        frame_count = 0
        for block in self._blocks(source):
            meter.feed(block)
            frame_count += block.shape[0]

        if frame_count == 0:
            raise InsufficientDataError("Cannot measure loudness of an empty stream")

        powers = meter.block_powers()
        logger.debug(
            "Collected %d gating blocks from %d frames", powers.shape[0], frame_count
        )

        if self.channel_independent:
            return PerChannel(
                tuple(
                    self._integrate(powers[:, channel], single_channel=True)
                    for channel in range(spec.channels)
                )
            )
        return Linked(self._integrate(powers @ weights, single_channel=spec.channels == 1))

    def _integrate(self, block_powers: np.ndarray, single_channel: bool) -> float:
        if single_channel and not self.strict_ebur128:
            block_powers = block_powers * 2.0
        return gated_loudness(block_powers, self.config)

    def _weights(self, channels: int) -> np.ndarray:
        if self.channel_weights is None:
            if channels > 2 and not self.channel_independent:
                logger.info(
                    "Using unity weights for %d linked channels; pass channel_weights "
                    "for surround layouts",
                    channels,
                )
            return np.ones(channels)

        if len(self.channel_weights) != channels:
            raise MalformedStreamError(
                f"Got {len(self.channel_weights)} channel weights for a "
                f"{channels}-channel stream"
            )
        return np.asarray(self.channel_weights, dtype=np.float64)
