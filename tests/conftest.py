from __future__ import annotations

from typing import List

import pytest


class ScriptedRNG:
    """Stand-in for numpy.random.Generator that replays fixed draws."""

    def __init__(self, *values: float, fill: float = 0.5) -> None:
        self.values: List[float] = list(values)
        self.fill = fill
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return self.fill


@pytest.fixture
def scripted_rng():
    return ScriptedRNG
