"""Configuration of a normalization run."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Mode(Enum):
    """Available loudness measurement algorithms."""

    AMPLITUDE = "amplitude"
    LUFS = "lufs"
    RMS = "rms"


@dataclass(frozen=True)
class NormalizationSettings:
    """Settings for one normalization run.

    Attributes:
        mode: Algorithm used to measure loudness
        target: Target level; dBFS for RMS, LUFS for integrated loudness
        channel_independent: Measure and gain every channel separately
        strict_ebur128: Keep single-channel loudness as measured instead of
            treating it as dual mono
        channel_weights: Per-channel weights for linked integrated loudness
        block_frames: Frames processed per vectorised step
    """

    mode: Mode
    target: float
    channel_independent: bool = False
    strict_ebur128: bool = False
    channel_weights: Optional[Tuple[float, ...]] = None
    block_frames: int = 4096
