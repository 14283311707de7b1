from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence


class RandomSource(Protocol):
    def uniform(self, a: float, b: float) -> float:
        ...

    def choice(self, seq: Sequence[Any]) -> Any:
        ...


@dataclass(slots=True)
class DeterministicRNG:
    seed: Optional[int]
    _random: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._random = random.Random(self.seed)

    def choice(self, seq):
        if not seq:
            raise ValueError("choice on empty sequence")
        return self._random.choice(seq)

    def uniform(self, a: float, b: float) -> float:
        return self._random.uniform(a, b)


__all__ = ["DeterministicRNG", "RandomSource"]
