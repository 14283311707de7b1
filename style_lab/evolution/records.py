from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..errors import InvalidArgument
from ..style import Style


class EngineState(str, Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    SELECTING = "selecting"


@dataclass(frozen=True)
class GenerationRecord:
    """One step of the evolution loop."""

    generation: int
    style: Style
    fitness: float = math.nan

    def __post_init__(self) -> None:
        if int(self.generation) < 0:
            raise InvalidArgument(f"generation must be >= 0, got {self.generation}")

    @property
    def has_fitness(self) -> bool:
        return not math.isnan(self.fitness)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generation": self.generation,
            "fitness": self.fitness if self.has_fitness else None,
            "style": self.style.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GenerationRecord":
        fitness = data.get("fitness")
        return cls(
            generation=int(data["generation"]),
            style=Style.from_dict(data["style"]),
            fitness=float(fitness) if fitness is not None else math.nan,
        )


@dataclass(frozen=True)
class Candidate:
    """A scored option considered during selection."""

    label: str
    style: Style
    score: float
    distance: float
    order: int
    parent: Optional[Style] = None


__all__ = ["Candidate", "EngineState", "GenerationRecord"]
