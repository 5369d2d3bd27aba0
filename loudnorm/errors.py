"""Exceptions raised by the loudness normalization pipeline."""


class NormalizationError(Exception):
    """Base class for every fault raised by a normalization run."""


class AudioIOError(NormalizationError, OSError):
    """Reading, writing, seeking or finalizing an audio stream failed."""


class UnimplementedCapabilityError(NormalizationError, NotImplementedError):
    """The selected algorithm has no implementation."""


class MalformedStreamError(NormalizationError, ValueError):
    """Sample data does not line up with the stream's channel layout."""


class DegenerateMeasurementError(NormalizationError, ArithmeticError):
    """A measurement cannot be turned into a finite gain."""


class InsufficientDataError(DegenerateMeasurementError):
    """The stream holds no frames to measure."""
