"""Loudness analyzers and their measurement results."""

from .amplitude import AmplitudeAnalyzer
from .base import LoudnessAnalyzer
from .loudness import (
    BlockPowerMeter,
    IntegratedLoudnessAnalyzer,
    LoudnessConfig,
    gated_loudness,
    k_weighting_sos,
)
from .measurement import (
    Linked,
    LoudnessMeasurement,
    PerChannel,
    amplitude_to_db,
    from_lufs,
    to_lufs,
)
from .rms import RmsAnalyzer

__all__ = [
    "AmplitudeAnalyzer",
    "BlockPowerMeter",
    "IntegratedLoudnessAnalyzer",
    "Linked",
    "LoudnessAnalyzer",
    "LoudnessConfig",
    "LoudnessMeasurement",
    "PerChannel",
    "RmsAnalyzer",
    "amplitude_to_db",
    "from_lufs",
    "gated_loudness",
    "k_weighting_sos",
    "to_lufs",
]
