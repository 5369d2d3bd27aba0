"""Seekable audio sources and sinks exchanging interleaved float samples."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

import numpy as np
import soundfile as sf

from ..errors import AudioIOError, MalformedStreamError
from .frames import Frame, FrameIterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamSpec:
    """Layout of an audio stream.

    Attributes:
        channels: Number of interleaved channels
        sample_rate: Frames per second
        sample_format: Sample representation, always 32-bit float here
    """

    channels: int
    sample_rate: int
    sample_format: str = "FLOAT"


class AudioSource:
    """Readable, rewindable stream of interleaved samples."""

    spec: StreamSpec

    @property
    def frame_count(self) -> int:
        raise NotImplementedError

    def samples(self) -> Iterator[float]:
        """Yield samples from the current read position to end of stream."""
        raise NotImplementedError

    def frames(self) -> Iterator[Frame]:
        """Yield frames from the current read position to end of stream."""
        return FrameIterator(self.samples(), self.spec.channels)

    def rewind(self) -> None:
        """Move the read position back to the first sample."""
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class AudioSink:
    """Writable stream accepting one interleaved sample at a time.

    Samples are buffered until whole frames can be handed to the backing
    store. ``finalize`` must be called exactly once after the last write.
    """

    def __init__(self, spec: StreamSpec, buffer_frames: int = 4096):
        self.spec = spec
        self.buffer_frames = buffer_frames
        self.samples_written = 0
        self.finalized = False
        self._pending: List[float] = []

    def write_sample(self, value: float) -> None:
        self._check_open()
        self._pending.append(value)
        self.samples_written += 1
        if len(self._pending) >= self.buffer_frames * self.spec.channels:
            self._flush()

    def write_samples(self, values: Union[Sequence[float], np.ndarray]) -> None:
        """Write a run of interleaved samples in order."""
        self._check_open()
        if isinstance(values, np.ndarray):
            values = values.ravel().tolist()
        self._pending.extend(values)
        self.samples_written += len(values)
        if len(self._pending) >= self.buffer_frames * self.spec.channels:
            self._flush()

    def finalize(self) -> None:
        """Flush buffered samples and complete the stream."""
        self._check_open()
        if len(self._pending) % self.spec.channels:
            raise MalformedStreamError(
                f"{len(self._pending) % self.spec.channels} trailing samples do not "
                f"form a complete {self.spec.channels}-channel frame"
            )
        self._flush()
        self._close()
        self.finalized = True

    def close(self) -> None:
        """Release the sink without finalizing it."""
        if not self.finalized:
            self._close()

    def _check_open(self) -> None:
        if self.finalized:
            raise AudioIOError("Sink has already been finalized")

    def _flush(self) -> None:
        channels = self.spec.channels
        complete = len(self._pending) - len(self._pending) % channels
        if not complete:
            return
        block = np.asarray(self._pending[:complete], dtype=np.float32)
        self._pending = self._pending[complete:]
        self._write_frames(block.reshape(-1, channels))

    def _write_frames(self, frames: np.ndarray) -> None:
        raise NotImplementedError

    def _close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class SoundFileSource(AudioSource):
    """Audio file read through libsndfile in blocks of frames."""

    def __init__(self, path: Union[str, Path], block_frames: int = 4096):
        """Open an audio file for reading.

        Args:
            path: Audio file path
            block_frames: Frames fetched from disk per read call

        Raises:
            AudioIOError: If the file cannot be opened
        """
        self.path = Path(path)
        self.block_frames = block_frames
        try:
            self._file = sf.SoundFile(str(self.path), mode="r")
        except (RuntimeError, OSError) as exc:
            raise AudioIOError(f"Failed to open audio file {self.path}: {exc}") from exc

        self.spec = StreamSpec(
            channels=self._file.channels, sample_rate=self._file.samplerate
        )
        logger.debug(
            "Opened %s: %d channels at %d Hz, %d frames",
            self.path,
            self.spec.channels,
            self.spec.sample_rate,
            self._file.frames,
        )

    @property
    def frame_count(self) -> int:
        return self._file.frames

    def samples(self) -> Iterator[float]:
        for block in self._read_blocks():
            yield from block.ravel().tolist()

    def frames(self) -> Iterator[Frame]:
        # libsndfile only returns whole frames, rows need no demultiplexing
        for block in self._read_blocks():
            yield from map(tuple, block.tolist())

    def _read_blocks(self) -> Iterator[np.ndarray]:
        while True:
            try:
                block = self._file.read(
                    self.block_frames, dtype="float32", always_2d=True
                )
            except (RuntimeError, OSError, ValueError) as exc:
                raise AudioIOError(f"Failed to read {self.path}: {exc}") from exc

            if not len(block):
                return
            yield block

    def rewind(self) -> None:
        if not self._file.seekable():
            raise AudioIOError(f"Audio source {self.path} is not seekable")
        try:
            self._file.seek(0)
        except (RuntimeError, OSError, ValueError) as exc:
            raise AudioIOError(f"Failed to rewind {self.path}: {exc}") from exc

    def close(self) -> None:
        self._file.close()


class SoundFileSink(AudioSink):
    """Audio file written as 32-bit float samples."""

    def __init__(
        self,
        path: Union[str, Path],
        spec: StreamSpec,
        file_format: Optional[str] = None,
        buffer_frames: int = 4096,
    ):
        """Create an audio file for writing.

        Args:
            path: Output file path
            spec: Channel count and sample rate of the written stream
            file_format: libsndfile container name, guessed from the suffix if None
            buffer_frames: Frames buffered before each disk write

        Raises:
            AudioIOError: If the file cannot be created
        """
        super().__init__(spec, buffer_frames)
        self.path = Path(path)
        try:
            self._file = sf.SoundFile(
                str(self.path),
                mode="w",
                samplerate=spec.sample_rate,
                channels=spec.channels,
                subtype=spec.sample_format,
                format=file_format,
            )
        except (RuntimeError, OSError, TypeError, ValueError) as exc:
            raise AudioIOError(f"Failed to create audio file {self.path}: {exc}") from exc

    def _write_frames(self, frames: np.ndarray) -> None:
        try:
            self._file.write(frames)
        except (RuntimeError, OSError) as exc:
            raise AudioIOError(f"Failed to write {self.path}: {exc}") from exc

    def _close(self) -> None:
        try:
            self._file.close()
        except (RuntimeError, OSError) as exc:
            raise AudioIOError(f"Failed to close {self.path}: {exc}") from exc


class ArraySource(AudioSource):
    """In-memory source backed by interleaved or (frames, channels) data."""

    def __init__(self, data, spec: StreamSpec, seekable: bool = True):
        """Wrap sample data.

        Args:
            data: Interleaved 1-D samples or a 2-D (frames, channels) array
            spec: Layout of the data
            seekable: Whether rewind is permitted

        Raises:
            MalformedStreamError: If a 2-D array's width disagrees with the stream layout
        """
        array = np.asarray(data, dtype=np.float32)
        if array.ndim == 2 and array.shape[1] != spec.channels:
            raise MalformedStreamError(
                f"Data has {array.shape[1]} channels, stream spec declares "
                f"{spec.channels}"
            )

        self.spec = spec
        self.seekable = seekable
        self._data = array.ravel().tolist()
        self._position = 0

    @property
    def frame_count(self) -> int:
        return len(self._data) // self.spec.channels

    def samples(self) -> Iterator[float]:
        while self._position < len(self._data):
            value = self._data[self._position]
            self._position += 1
            yield value

    def rewind(self) -> None:
        if not self.seekable:
            raise AudioIOError("Audio source is not seekable")
        self._position = 0


class ArraySink(AudioSink):
    """In-memory sink collecting written frames."""

    def __init__(self, spec: StreamSpec, buffer_frames: int = 4096):
        super().__init__(spec, buffer_frames)
        self._blocks: List[np.ndarray] = []

    def _write_frames(self, frames: np.ndarray) -> None:
        self._blocks.append(frames)

    def to_array(self) -> np.ndarray:
        """Return the flushed frames as a float32 (frames, channels) array."""
        if not self._blocks:
            return np.zeros((0, self.spec.channels), dtype=np.float32)
        return np.concatenate(self._blocks, axis=0)
