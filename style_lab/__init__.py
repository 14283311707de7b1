"""Style evolution toolkit for generative-art pipelines."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - type checking helper
    from .config import LabConfig, load_config
    from .evolution import GenerationRecord, StyleEvolutionEngine
    from .feedback import FeedbackAggregator, FeedbackSample
    from .style import Style

__all__ = [
    "FeedbackAggregator",
    "FeedbackSample",
    "GenerationRecord",
    "LabConfig",
    "Style",
    "StyleEvolutionEngine",
    "load_config",
]

_EXPORTS = {
    "LabConfig": ".config",
    "load_config": ".config",
    "GenerationRecord": ".evolution",
    "StyleEvolutionEngine": ".evolution",
    "FeedbackAggregator": ".feedback",
    "FeedbackSample": ".feedback",
    "Style": ".style",
}


def __getattr__(name: str) -> Any:  # pragma: no cover - dispatch helper
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(name)
    value = getattr(import_module(module_name, __name__), name)
    globals()[name] = value
    return value
