from typing import List

from nmdpy.nmf.base import IterativeMethodBase


class DummyCallback:
    def __init__(self) -> None:
        self.n_calls = 0

    def __call__(self, method: IterativeMethodBase) -> None:
        self.n_calls += 1


class DummyProgressObserver:
    def __init__(self) -> None:
        self.progress: List[float] = []

    def __call__(self, progress: float) -> None:
        self.progress.append(progress)


def dummy_function(method: IterativeMethodBase) -> None:
    pass
