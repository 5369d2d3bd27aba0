"""Demultiplexing of interleaved sample streams into multi-channel frames."""

from typing import Iterable, Iterator, List, Tuple

import numpy as np

from ..errors import MalformedStreamError

Frame = Tuple[float, ...]


class FrameIterator:
    """Groups a flat stream of interleaved samples into frames.

    Each frame holds one sample per channel in channel order. The iterator
    pulls exactly ``channels`` samples from the underlying source per frame
    and never reads further ahead than the frame it is building.
    """

    def __init__(self, samples: Iterable[float], channels: int):
        """Initialize the iterator.

        Args:
            samples: Interleaved sample stream
            channels: Number of channels per frame
        """
        if channels < 1:
            raise MalformedStreamError(f"Channel count must be positive, got {channels}")

        self._samples = iter(samples)
        self.channels = channels
        self.frames_read = 0
        self._exhausted = False

    def __iter__(self) -> Iterator[Frame]:
        return self

    def __next__(self) -> Frame:
        if self._exhausted:
            raise StopIteration

        frame: List[float] = []
        for sample in self._samples:
            frame.append(sample)
            if len(frame) == self.channels:
                self.frames_read += 1
                return tuple(frame)

        self._exhausted = True
        if frame:
            raise MalformedStreamError(
                f"Incomplete frame {self.frames_read}: got {len(frame)} of "
                f"{self.channels} samples"
            )
        raise StopIteration


def iter_blocks(frames: Iterable[Frame], block_frames: int) -> Iterator[np.ndarray]:
    """Stack consecutive frames into arrays for vectorised processing.

    Args:
        frames: Frame sequence, usually a FrameIterator
        block_frames: Maximum number of frames per block

    Returns:
        Iterator of float64 arrays shaped (frames, channels); the last block
        may be shorter
    """
    pending: List[Frame] = []
    for frame in frames:
        pending.append(frame)
        if len(pending) == block_frames:
            yield np.asarray(pending, dtype=np.float64)
            pending = []

    if pending:
        yield np.asarray(pending, dtype=np.float64)
