"""Render/feedback/evolve cycle built around a :class:`StyleEvolutionEngine`.

The orchestrator owns the things the engine deliberately does not: the lock
that serialises engine access, the evolution cadence, and retry with
exponential backoff around provider calls.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, TypeVar

from ..config import OrchestratorConfig, ProviderConfig
from ..errors import InvalidState, ProviderError
from ..evolution import Candidate, GenerationRecord, StyleEvolutionEngine
from ..feedback import FeedbackAggregator, FeedbackSample
from ..logging_utils import RunLogger
from ..prompting import build_expansion_request, build_render_input, extract_final_prompt, fallback_prompt
from ..style import Style
from .interfaces import CompletionClientProtocol, RenderClientProtocol, RenderResult, TrendSourceProtocol

LOGGER = logging.getLogger("style_lab.orchestrator")

T = TypeVar("T")


@dataclass(frozen=True)
class ArtworkResult:
    concept: str
    prompt: str
    style: Style
    generation: int
    render: RenderResult

    @property
    def image_urls(self) -> Sequence[str]:
        return self.render.output


class CreativeOrchestrator:
    def __init__(
        self,
        engine: StyleEvolutionEngine,
        aggregator: FeedbackAggregator,
        completion: CompletionClientProtocol,
        renderer: RenderClientProtocol,
        *,
        config: Optional[OrchestratorConfig] = None,
        providers: Optional[ProviderConfig] = None,
        trends: Optional[TrendSourceProtocol] = None,
        social_weight: float = 0.75,
        logger: Optional[RunLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._engine = engine
        self._aggregator = aggregator
        self._completion = completion
        self._renderer = renderer
        self._config = config or OrchestratorConfig()
        self._providers = providers or ProviderConfig()
        self._trends = trends
        self._social_weight = float(social_weight)
        self._logger = logger
        self._sleep = sleep
        self._lock = threading.RLock()
        self._renders_since_evolve = 0

    # ------------------------------------------------------------------
    # Engine access
    # ------------------------------------------------------------------
    def current_style(self) -> Style:
        with self._lock:
            return self._engine.get_current_style()

    def history(self) -> Sequence[GenerationRecord]:
        with self._lock:
            return self._engine.get_history()

    def submit(self, samples: Sequence[FeedbackSample], *, generation: Optional[int] = None) -> None:
        """Forward samples to the engine.

        ``generation`` pins the samples to the generation that was rendered;
        feedback for a generation that is no longer current is refused.
        """

        with self._lock:
            if generation is not None and generation != self._engine.generation:
                raise InvalidState(
                    f"Feedback is for generation {generation} but generation {self._engine.generation} is current"
                )
            self._engine.submit_feedback(samples)

    def evolve(self) -> GenerationRecord:
        with self._lock:
            record, candidates = self._evolve_locked()
        self._report(record, candidates)
        return record

    def complete_cycle(self) -> Optional[GenerationRecord]:
        """Close a render/feedback cycle and evolve once the cadence is due."""

        with self._lock:
            due = self._config.evolve_every > 0 and self._renders_since_evolve >= self._config.evolve_every
            if not due:
                return None
            record, candidates = self._evolve_locked()
        self._report(record, candidates)
        return record

    def _evolve_locked(self) -> Tuple[GenerationRecord, Sequence[Candidate]]:
        record = self._engine.evolve()
        self._renders_since_evolve = 0
        return record, self._engine.last_candidates

    def _report(self, record: GenerationRecord, candidates: Sequence[Candidate]) -> None:
        if self._logger is not None:
            self._logger.candidates(candidates)
            self._logger.generation(record)

    # ------------------------------------------------------------------
    # Feedback intake
    # ------------------------------------------------------------------
    def record_rating(self, score: float, out_of: float = 10.0, *, generation: Optional[int] = None) -> FeedbackSample:
        sample = self._aggregator.from_rating(score, out_of)
        self.submit([sample], generation=generation)
        return sample

    def record_comment(self, comment: str, *, generation: Optional[int] = None) -> FeedbackSample:
        sample = self._aggregator.from_text(comment)
        self.submit([sample], generation=generation)
        return sample

    def record_social_signal(
        self,
        value: float,
        weight: Optional[float] = None,
        *,
        generation: Optional[int] = None,
    ) -> FeedbackSample:
        sample = self._aggregator.from_social_signal(value, self._social_weight if weight is None else weight)
        self.submit([sample], generation=generation)
        return sample

    def collect_trends(self) -> list[FeedbackSample]:
        if self._trends is None:
            return []
        style = self.current_style()
        samples = self._aggregator.from_social_signals(list(self._trends.signals(style)), self._social_weight)
        self.submit(samples)
        return samples

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def create_art(self, concept: str) -> ArtworkResult:
        with self._lock:
            style = self._engine.get_current_style()
            generation = self._engine.generation

        prompt = self._expand(concept, style)
        render_input = build_render_input(prompt, style, self._providers.render_defaults)
        render = self._with_retry(
            "render",
            lambda: self._renderer.run_prediction(self._providers.render_model, render_input),
        )
        if not render.succeeded:
            LOGGER.warning("render finished with status=%s error=%s", render.status, render.error)
        self._log("render", f"generation={generation} status={render.status} outputs={len(render.output)}")

        with self._lock:
            self._renders_since_evolve += 1
        return ArtworkResult(
            concept=concept,
            prompt=prompt,
            style=style,
            generation=generation,
            render=render,
        )

    def _expand(self, concept: str, style: Style) -> str:
        request = build_expansion_request(
            concept,
            style,
            model=self._providers.completion_model,
            temperature=self._providers.temperature,
            max_tokens=self._providers.max_tokens,
        )
        try:
            text = self._with_retry("prompt", lambda: self._completion.get_completion(request))
        except ProviderError as exc:
            LOGGER.warning("prompt expansion failed, using style notes: %s", exc)
            return fallback_prompt(concept, style)
        prompt = extract_final_prompt(text)
        return prompt or fallback_prompt(concept, style)

    def _with_retry(self, step: str, call: Callable[[], T]) -> T:
        delay = self._config.backoff_s
        attempts = self._config.max_retries
        for attempt in range(1, attempts + 1):
            try:
                if self._logger is not None:
                    return self._logger.timed(step, f"attempt {attempt} ok", call, level="DEBUG")  # type: ignore[return-value]
                return call()
            except ProviderError as exc:
                if attempt >= attempts:
                    self._log(step, f"giving up after {attempt} attempts: {exc}", level="ERROR")
                    raise
                self._log(step, f"attempt {attempt}/{attempts} failed: {exc}; retrying in {delay:.1f}s", level="WARN")
                self._sleep(delay)
                delay *= self._config.backoff_factor
        raise ProviderError(f"{step} was not attempted")  # pragma: no cover - attempts >= 1

    def _log(self, step: str, message: str, level: str = "INFO") -> None:
        if self._logger is not None:
            self._logger.log(step, message, level=level)
        else:
            LOGGER.log(logging.WARNING if level == "WARN" else getattr(logging, level, logging.INFO), message)


__all__ = ["ArtworkResult", "CreativeOrchestrator"]
