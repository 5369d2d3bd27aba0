"""Progress reporting for long normalization runs."""

from typing import Callable, Optional

from tqdm import tqdm


class ProgressReporter:
    """Observer told how many frames have been processed.

    Reporters only observe; they cannot influence the run.
    """

    def start(self, total: int) -> None:
        pass

    def advance(self, count: int = 1) -> None:
        pass

    def close(self) -> None:
        pass


class NullProgress(ProgressReporter):
    """Discards all progress updates."""


class TqdmProgress(ProgressReporter):
    """Progress bar on stderr."""

    def __init__(self, description: str = "Processing sample", unit: str = "frame"):
        self.description = description
        self.unit = unit
        self._bar: Optional[tqdm] = None

    def start(self, total: int) -> None:
        self._bar = tqdm(total=total, desc=self.description, unit=self.unit)

    def advance(self, count: int = 1) -> None:
        if self._bar is not None:
            self._bar.update(count)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


class CallbackProgress(ProgressReporter):
    """Forwards the running frame count to ``callback(done, total)``."""

    def __init__(self, callback: Callable[[int, int], None]):
        self.callback = callback
        self.total = 0
        self.done = 0

    def start(self, total: int) -> None:
        self.total = total
        self.done = 0

    def advance(self, count: int = 1) -> None:
        self.done += count
        self.callback(self.done, self.total)
