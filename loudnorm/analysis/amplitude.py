"""Peak amplitude analysis."""

from ..audio.stream import AudioSource
from ..errors import UnimplementedCapabilityError
from .base import LoudnessAnalyzer
from .measurement import LoudnessMeasurement


class AmplitudeAnalyzer(LoudnessAnalyzer):
    """Peak absolute sample value per channel.

    Not available yet. Analysis fails before touching the source so callers
    never receive a partial or zero result.
    """

    def analyze(self, source: AudioSource) -> LoudnessMeasurement:
        raise UnimplementedCapabilityError(
            "Peak amplitude normalization is not implemented"
        )
