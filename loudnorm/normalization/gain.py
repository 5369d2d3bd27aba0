"""Conversion of loudness measurements into per-channel gain factors."""

import math

import numpy as np
import torch

from ..analysis.measurement import LoudnessMeasurement
from ..errors import DegenerateMeasurementError, UnimplementedCapabilityError
from .settings import Mode

FLOAT32_MAX = float(np.finfo(np.float32).max)


def db_to_linear(db_value: float) -> float:
    """Convert a decibel value to a linear amplitude ratio."""
    return 10.0 ** (db_value / 20.0)


def _gain_for(value: float, target: float, mode: Mode) -> float:
    if mode is Mode.LUFS:
        # Power-domain ratio, square root brings it back to amplitude
        return math.sqrt(10.0 ** (target / 10.0) / value)
    if mode is Mode.RMS:
        return db_to_linear(target) / value
    raise UnimplementedCapabilityError(f"No gain rule for {mode.value} measurements")


def resolve_gains(
    measurement: LoudnessMeasurement, target: float, mode: Mode, channels: int
) -> torch.Tensor:
    """Derive the gain multiplier of every channel.

    A linked measurement yields the same gain for all channels.

    Args:
        measurement: Analyzer result
        target: Target level in the unit of the mode
        mode: Algorithm that produced the measurement
        channels: Channel count of the stream

    Returns:
        Float32 tensor with one gain per channel

    Raises:
        DegenerateMeasurementError: If a measurement is zero, negative or not
            finite, or the gain does not fit a 32-bit float
    """
    gains = []
    for channel, value in enumerate(measurement.broadcast(channels)):
        if not math.isfinite(value) or value <= 0.0:
            raise DegenerateMeasurementError(
                f"Cannot derive a gain for channel {channel} from a "
                f"{mode.value} measurement of {value!r}"
            )

        try:
            gain = _gain_for(value, target, mode)
        except (OverflowError, ZeroDivisionError) as exc:
            raise DegenerateMeasurementError(
                f"Gain for channel {channel} is not representable: {exc}"
            ) from exc

        if not math.isfinite(gain) or gain > FLOAT32_MAX:
            raise DegenerateMeasurementError(
                f"Gain for channel {channel} is not representable: {gain!r}"
            )
        gains.append(gain)

    return torch.tensor(gains, dtype=torch.float32)
