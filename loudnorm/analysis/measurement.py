"""Loudness measurement results and unit conversions."""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

LUFS_OFFSET_DB = -0.691


@dataclass(frozen=True)
class LoudnessMeasurement:
    """Result of one analyzer run."""

    @property
    def values(self) -> Tuple[float, ...]:
        raise NotImplementedError

    def broadcast(self, channels: int) -> Tuple[float, ...]:
        """Expand the measurement to one value per channel."""
        raise NotImplementedError


@dataclass(frozen=True)
class Linked(LoudnessMeasurement):
    """Single measurement covering all channels together."""

    value: float

    @property
    def values(self) -> Tuple[float, ...]:
        return (self.value,)

    def broadcast(self, channels: int) -> Tuple[float, ...]:
        return (self.value,) * channels


@dataclass(frozen=True)
class PerChannel(LoudnessMeasurement):
    """Independent measurement for every channel, in channel order."""

    channel_values: Tuple[float, ...]

    @property
    def values(self) -> Tuple[float, ...]:
        return self.channel_values

    def broadcast(self, channels: int) -> Tuple[float, ...]:
        if channels != len(self.channel_values):
            raise ValueError(
                f"Measurement covers {len(self.channel_values)} channels, "
                f"not {channels}"
            )
        return self.channel_values


def to_lufs(power: float) -> float:
    """Convert a linear integrated-loudness power to LUFS.

    Args:
        power: Linear loudness as returned by the integrated-loudness analyzer

    Returns:
        Loudness in LUFS, -inf for silence
    """
    if power <= 0.0:
        return float("-inf")
    return 10.0 * math.log10(power)


def from_lufs(lufs: float) -> float:
    """Convert LUFS to the linear loudness power used for gain resolution."""
    return 10.0 ** (lufs / 10.0)


def mean_square_to_lufs(mean_square: np.ndarray) -> np.ndarray:
    """Convert K-weighted mean-square power to LUFS, element-wise."""
    with np.errstate(divide="ignore"):
        return LUFS_OFFSET_DB + 10.0 * np.log10(mean_square)


def amplitude_to_db(amplitude: float) -> float:
    """Convert a linear amplitude such as an RMS value to dBFS."""
    if amplitude <= 0.0:
        return float("-inf")
    return 20.0 * math.log10(amplitude)
