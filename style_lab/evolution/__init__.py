"""Style evolution engine and its generation records."""

from .engine import StyleEvolutionEngine
from .records import Candidate, EngineState, GenerationRecord

__all__ = [
    "Candidate",
    "EngineState",
    "GenerationRecord",
    "StyleEvolutionEngine",
]
