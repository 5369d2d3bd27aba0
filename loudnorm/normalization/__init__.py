"""Gain resolution and two-pass normalization."""

from .gain import db_to_linear, resolve_gains
from .normalizer import (
    NormalizationResult,
    NormalizationState,
    Normalizer,
    create_analyzer,
    measure,
    normalize,
)
from .settings import Mode, NormalizationSettings

__all__ = [
    "Mode",
    "NormalizationResult",
    "NormalizationSettings",
    "NormalizationState",
    "Normalizer",
    "create_analyzer",
    "db_to_linear",
    "measure",
    "normalize",
    "resolve_gains",
]
