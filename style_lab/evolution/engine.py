"""Stateful selection loop that decides which style drives the next render.

The engine keeps a bounded history of :class:`GenerationRecord` objects.  The
newest record is the current generation.  ``submit_feedback`` refines the
current record's fitness; ``evolve`` derives candidates from the current style,
scores them and appends the winner as the next generation.

The engine has no lock of its own.  Callers sharing one instance across
threads must serialise access (see :class:`CreativeOrchestrator`).
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import EvolutionConfig
from ..errors import InvalidArgument, InvalidState
from ..feedback import FeedbackSample
from ..rng import RandomSource
from ..style import Style, validate_style
from ..style_math import interpolate, mutate, parameter_distance, score, score_breakdown
from .records import Candidate, EngineState, GenerationRecord

LOGGER = logging.getLogger("style_lab.evolution")


class StyleEvolutionEngine:
    def __init__(self, *, rng: RandomSource, config: Optional[EvolutionConfig] = None) -> None:
        self._rng = rng
        self._config = config or EvolutionConfig()
        self._history: List[GenerationRecord] = []
        self._pending: List[FeedbackSample] = []
        self._parents: Dict[str, Style] = {}
        self._state = EngineState.IDLE
        self._last_candidates: Tuple[Candidate, ...] = ()

    @classmethod
    def from_history(
        cls,
        records: Sequence[GenerationRecord],
        *,
        rng: RandomSource,
        config: Optional[EvolutionConfig] = None,
    ) -> "StyleEvolutionEngine":
        """Rebuild an engine from externally persisted records (oldest first)."""

        if not records:
            raise InvalidArgument("Cannot restore an engine from an empty history")
        first = records[0].generation
        for offset, record in enumerate(records):
            if record.generation != first + offset:
                raise InvalidArgument(
                    f"History is not contiguous: expected generation {first + offset}, got {record.generation}"
                )
            validate_style(record.style)
        engine = cls(rng=rng, config=config)
        kept = list(records)[-engine._config.history_size :]
        engine._history = kept
        engine._remember_parents(kept[-1].style, (rec.style for rec in records))
        LOGGER.info("restored %d generations (current=%d)", len(kept), kept[-1].generation)
        return engine

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def config(self) -> EvolutionConfig:
        return self._config

    @property
    def generation(self) -> int:
        return self._require_current().generation

    @property
    def pending_feedback(self) -> Tuple[FeedbackSample, ...]:
        return tuple(self._pending)

    @property
    def last_candidates(self) -> Tuple[Candidate, ...]:
        return self._last_candidates

    def get_current_style(self) -> Style:
        return self._require_current().style

    def get_history(self) -> Tuple[GenerationRecord, ...]:
        return tuple(self._history)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def seed(self, style: Style) -> None:
        if self._history:
            raise InvalidState("Engine is already seeded")
        validate_style(style)
        self._history.append(GenerationRecord(generation=0, style=style))
        self._parents = {}
        LOGGER.info("seeded generation 0 with style '%s' (v%d)", style.name, style.version)

    def submit_feedback(self, samples: Iterable[FeedbackSample]) -> None:
        batch = list(samples)
        if not batch:
            return
        for sample in batch:
            if not isinstance(sample, FeedbackSample):
                raise InvalidArgument(f"Expected FeedbackSample, got {type(sample).__name__}")
        current = self._require_current()

        self._state = EngineState.EVALUATING
        try:
            accumulated = [*self._pending, *batch]
            fitness = score(
                current.style,
                accumulated,
                self._config.weights,
                parent=self._parent_of(current.style),
                reference_tags=self._config.reference_tags,
            )
            self._history[-1] = dataclasses.replace(current, fitness=fitness)
            self._pending = accumulated
            LOGGER.debug(
                "generation %d fitness=%.3f after %d samples",
                current.generation,
                fitness,
                len(accumulated),
            )
        finally:
            self._state = EngineState.IDLE

    def evolve(self) -> GenerationRecord:
        current = self._require_current()
        self._state = EngineState.SELECTING
        try:
            candidates = self._score_candidates(current, self._build_candidates(current))
            winner = max(candidates, key=lambda cand: (cand.score, -cand.distance, -cand.order))
            record = GenerationRecord(
                generation=current.generation + 1,
                style=winner.style,
                fitness=winner.score,
            )
            # Commit only once every candidate has been built and scored.
            self._history.append(record)
            self._last_candidates = tuple(candidates)
            if winner.label != "elite":
                self._pending = []
                self._parents = self._remember(winner)
            # an unchanged style keeps its samples as the prior for the next generation
            self._evict()
        finally:
            self._state = EngineState.IDLE

        LOGGER.info(
            "generation %d -> %d: picked %s '%s' fitness=%.3f",
            current.generation,
            record.generation,
            winner.label,
            winner.style.name,
            winner.score,
        )
        return record

    # ------------------------------------------------------------------
    # Candidate generation
    # ------------------------------------------------------------------
    def _build_candidates(self, current: GenerationRecord) -> List[Tuple[str, Style, Optional[Style]]]:
        cfg = self._config
        style = current.style
        built: List[Tuple[str, Style, Optional[Style]]] = [
            ("elite", style, self._parent_of(style)),
            ("mutation_low", mutate(style, cfg.low_strength, rng=self._rng), style),
            ("mutation_high", mutate(style, cfg.high_strength, rng=self._rng), style),
        ]
        partner = self._interpolation_partner()
        if partner is not None:
            blended = interpolate(style, partner, cfg.interpolation_ratio)
            built.append(("interpolation", blended, style))
        else:
            LOGGER.debug("no interpolation partner for generation %d", current.generation)

        extra = cfg.candidate_count - len(built)
        for idx in range(max(0, extra)):
            fraction = (idx + 1) / (extra + 1)
            strength = cfg.low_strength + (cfg.high_strength - cfg.low_strength) * fraction
            built.append((f"mutation_{strength:.2f}", mutate(style, strength, rng=self._rng), style))
        return built[: cfg.candidate_count]

    def _interpolation_partner(self) -> Optional[Style]:
        prior = self._history[:-1]
        if prior:
            return self._rng.choice(prior).style
        current = self._history[-1].style
        return self._parent_of(current)

    def _score_candidates(
        self,
        current: GenerationRecord,
        built: Sequence[Tuple[str, Style, Optional[Style]]],
    ) -> List[Candidate]:
        cfg = self._config
        scored: List[Candidate] = []
        for order, (label, style, parent) in enumerate(built):
            if label == "elite" and current.has_fitness:
                value = current.fitness
            else:
                value = score_breakdown(
                    style,
                    (),
                    cfg.weights,
                    parent=parent,
                    reference_tags=cfg.reference_tags,
                ).total
            distance = parameter_distance(style, current.style)
            scored.append(
                Candidate(
                    label=label,
                    style=style,
                    score=value,
                    distance=0.0 if label == "elite" else (distance if distance is not None else 1.0),
                    order=order,
                    parent=parent,
                )
            )
            LOGGER.debug("candidate %s score=%.4f distance=%.4f", label, value, scored[-1].distance)
        return scored

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------
    def _require_current(self) -> GenerationRecord:
        if not self._history:
            raise InvalidState("Engine has no history; call seed() first")
        return self._history[-1]

    def _parent_of(self, style: Style) -> Optional[Style]:
        if not style.lineage:
            return None
        for parent_id in style.lineage:
            parent = self._parents.get(parent_id)
            if parent is not None:
                return parent
        for record in reversed(self._history):
            if record.style.style_id in style.lineage:
                return record.style
        return None

    def _remember(self, winner: Candidate) -> Dict[str, Style]:
        remembered: Dict[str, Style] = {}
        if winner.parent is not None:
            remembered[winner.parent.style_id] = winner.parent
        return remembered

    def _remember_parents(self, style: Style, pool: Iterable[Style]) -> None:
        lineage = set(style.lineage or ())
        self._parents = {candidate.style_id: candidate for candidate in pool if candidate.style_id in lineage}

    def _evict(self) -> None:
        while len(self._history) > self._config.history_size:
            evicted = self._history.pop(0)
            LOGGER.debug("evicted generation %d", evicted.generation)


__all__ = ["StyleEvolutionEngine"]
