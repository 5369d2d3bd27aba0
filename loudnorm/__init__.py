"""Loudness measurement and normalization of multi-channel audio streams."""

from .errors import (
    AudioIOError,
    DegenerateMeasurementError,
    InsufficientDataError,
    MalformedStreamError,
    NormalizationError,
    UnimplementedCapabilityError,
)
from .normalization import (
    Mode,
    NormalizationResult,
    NormalizationSettings,
    Normalizer,
    measure,
    normalize,
)

__version__ = "0.1.0"

__all__ = [
    "AudioIOError",
    "DegenerateMeasurementError",
    "InsufficientDataError",
    "MalformedStreamError",
    "Mode",
    "NormalizationError",
    "NormalizationResult",
    "NormalizationSettings",
    "Normalizer",
    "UnimplementedCapabilityError",
    "measure",
    "normalize",
]
