"""Common behaviour shared by the loudness analyzers."""

from typing import Iterator

import numpy as np

from ..audio.frames import iter_blocks
from ..audio.stream import AudioSource
from .measurement import LoudnessMeasurement


class LoudnessAnalyzer:
    """Consumes a source once and reports its loudness.

    Analyzers read from the source's current position to end of stream and
    never rewind it themselves.
    """

    def __init__(self, channel_independent: bool = False, block_frames: int = 4096):
        """Initialize the analyzer.

        Args:
            channel_independent: Measure every channel on its own
            block_frames: Frames stacked per vectorised processing step
        """
        self.channel_independent = channel_independent
        self.block_frames = block_frames

    def analyze(self, source: AudioSource) -> LoudnessMeasurement:
        raise NotImplementedError

    def _blocks(self, source: AudioSource) -> Iterator[np.ndarray]:
        return iter_blocks(source.frames(), self.block_frames)
