from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from ..style import Style

TERMINAL_STATUSES = frozenset({"succeeded", "failed", "canceled"})


@dataclass(frozen=True)
class CompletionRequest:
    model: str
    messages: Sequence[Mapping[str, str]]
    temperature: float = 0.7
    max_tokens: int = 400


@dataclass(frozen=True)
class RenderResult:
    status: str
    output: Sequence[str] = field(default_factory=tuple)
    error: str | None = None
    prediction_id: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded" and bool(self.output)


class CompletionClientProtocol(Protocol):
    def get_completion(self, request: CompletionRequest) -> str:
        """Return the language model's text for ``request``."""


class RenderClientProtocol(Protocol):
    def run_prediction(self, model_id: str, input: Mapping[str, Any]) -> RenderResult:
        """Render ``input`` with ``model_id`` and wait for a terminal status."""


class TrendSourceProtocol(Protocol):
    def signals(self, style: Style) -> Sequence[float]:
        """Pre-normalised trend/social scores in ``[0, 1]`` for ``style``."""
