"""Shared fixtures and signal generators for the test suite."""

from pathlib import Path
from typing import Iterator, List

import numpy as np
import pytest
import soundfile as sf

from loudnorm.audio import ArraySink, ArraySource, AudioSource, StreamSpec
from loudnorm.errors import AudioIOError


def sine(
    frequency: float,
    amplitude: float,
    seconds: float,
    sample_rate: int = 48000,
    channels: int = 2,
) -> np.ndarray:
    """Generate a sine on every channel, shaped (frames, channels)."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    tone = amplitude * np.sin(2 * np.pi * frequency * t)
    return np.repeat(tone[:, None], channels, axis=1).astype(np.float32)


def dbfs(level_db: float) -> float:
    return 10.0 ** (level_db / 20.0)


class FailingSource(AudioSource):
    """Source whose read fails after a number of samples."""

    def __init__(self, spec: StreamSpec, fail_after: int):
        self.spec = spec
        self.fail_after = fail_after

    @property
    def frame_count(self) -> int:
        return self.fail_after // self.spec.channels + 1

    def samples(self) -> Iterator[float]:
        for _ in range(self.fail_after):
            yield 0.5
        raise AudioIOError("device unplugged")

    def rewind(self) -> None:
        pass


class CountingSamples:
    """Iterator recording how many samples have been pulled."""

    def __init__(self, samples: List[float]):
        self._samples = iter(samples)
        self.consumed = 0

    def __iter__(self):
        return self

    def __next__(self) -> float:
        value = next(self._samples)
        self.consumed += 1
        return value


@pytest.fixture
def stereo_spec() -> StreamSpec:
    return StreamSpec(channels=2, sample_rate=48000)


@pytest.fixture
def mono_spec() -> StreamSpec:
    return StreamSpec(channels=1, sample_rate=48000)


@pytest.fixture
def ramp_source(stereo_spec: StreamSpec) -> ArraySource:
    """Four stereo frames of (1, 2)."""
    return ArraySource([[1.0, 2.0]] * 4, stereo_spec)


@pytest.fixture
def stereo_sink(stereo_spec: StreamSpec) -> ArraySink:
    return ArraySink(stereo_spec)


@pytest.fixture
def wav_file(tmp_path: Path) -> Path:
    """Two seconds of a -20 dBFS 1 kHz stereo sine on disk."""
    path = tmp_path / "input.wav"
    sf.write(str(path), sine(1000.0, dbfs(-20.0), 2.0), 48000, subtype="FLOAT")
    return path
