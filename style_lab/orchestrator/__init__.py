"""Boundary layer that drives the engine with external model providers."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - type checking helper
    from .adapter import ChatCompletionClient, DryRunRenderClient, OfflineCompletionClient, ReplicateRenderClient
    from .creative import ArtworkResult, CreativeOrchestrator

__all__ = [
    "ArtworkResult",
    "ChatCompletionClient",
    "CreativeOrchestrator",
    "DryRunRenderClient",
    "OfflineCompletionClient",
    "ReplicateRenderClient",
]


def __getattr__(name: str) -> Any:  # pragma: no cover - dispatch helper
    if name in {"ArtworkResult", "CreativeOrchestrator"}:
        module = import_module(".creative", __name__)
    elif name in {"ChatCompletionClient", "DryRunRenderClient", "OfflineCompletionClient", "ReplicateRenderClient"}:
        module = import_module(".adapter", __name__)
    else:
        raise AttributeError(name)

    value = getattr(module, name)
    globals()[name] = value
    return value
