"""RMS power analysis."""

import logging

import numpy as np

from ..audio.stream import AudioSource
from ..errors import InsufficientDataError
from .base import LoudnessAnalyzer
from .measurement import Linked, LoudnessMeasurement, PerChannel

logger = logging.getLogger(__name__)


class RmsAnalyzer(LoudnessAnalyzer):
    """Unweighted, ungated root mean square of the whole stream.

    In linked mode the mean is taken over every sample of every channel, so
    a constant amplitude on all channels measures the same in both modes.
    """

    def analyze(self, source: AudioSource) -> LoudnessMeasurement:
        channels = source.spec.channels
        sums = np.zeros(channels, dtype=np.float64)
        frame_count = 0

        for block in self._blocks(source):
            sums += np.sum(block**2, axis=0)
            frame_count += block.shape[0]

        if frame_count == 0:
            raise InsufficientDataError("Cannot measure RMS of an empty stream")

        logger.debug("RMS accumulated over %d frames", frame_count)

        if self.channel_independent:
            return PerChannel(tuple(np.sqrt(sums / frame_count).tolist()))
        return Linked(float(np.sqrt(sums.sum() / (frame_count * channels))))
