"""Sample stream I/O and frame demultiplexing."""

from .frames import FrameIterator, iter_blocks
from .stream import (
    ArraySink,
    ArraySource,
    AudioSink,
    AudioSource,
    SoundFileSink,
    SoundFileSource,
    StreamSpec,
)

__all__ = [
    "ArraySink",
    "ArraySource",
    "AudioSink",
    "AudioSource",
    "FrameIterator",
    "SoundFileSink",
    "SoundFileSource",
    "StreamSpec",
    "iter_blocks",
]
