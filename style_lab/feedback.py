"""Turns heterogeneous raw feedback into weighted, normalised samples.

Feedback is advisory: parsing problems degrade to a neutral sample with a
reduced weight instead of raising, so a malformed comment can never stall the
evolution loop.  Only :meth:`FeedbackAggregator.from_social_signal` rejects
out-of-range input, because its values are expected to arrive pre-normalised.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, Optional, Sequence, Union

from .config import FeedbackConfig
from .errors import InvalidArgument

LOGGER = logging.getLogger("style_lab.feedback")

NEUTRAL_SCORE = 0.5

_RATIO_PATTERN = re.compile(
    r"(?<![\d/.])(\d+(?:\.\d+)?)\s*(?:/|\bout\s+of\b)\s*(\d+(?:\.\d+)?)(?![\d/])(?!\.\d)",
    re.IGNORECASE,
)


class FeedbackSource(str, Enum):
    EXPLICIT_RATING = "explicit-rating"
    FREE_TEXT_SENTIMENT = "free-text-sentiment"
    SOCIAL_SIGNAL = "social-signal"


class FeedbackScore(IntEnum):
    """Community rating scale used by the social collaborator."""

    POOR = 1
    FAIR = 2
    GOOD = 3
    EXCELLENT = 4
    OUTSTANDING = 5


@dataclass(frozen=True)
class FeedbackSample:
    source: FeedbackSource
    raw_value: Union[str, float]
    normalized_score: float
    weight: float

    def __post_init__(self) -> None:
        score = float(self.normalized_score)
        weight = float(self.weight)
        if not (0.0 <= score <= 1.0):
            raise InvalidArgument(f"normalized_score must be within [0, 1], got {score}")
        if not (weight > 0.0 and math.isfinite(weight)):
            raise InvalidArgument(f"weight must be a positive number, got {weight}")
        object.__setattr__(self, "normalized_score", score)
        object.__setattr__(self, "weight", weight)


def feedback_fitness(samples: Iterable[FeedbackSample]) -> float:
    """Weighted mean of ``normalized_score``; neutral 0.5 for no samples."""

    total = 0.0
    weight_sum = 0.0
    for sample in samples:
        total += sample.normalized_score * sample.weight
        weight_sum += sample.weight
    if weight_sum <= 0.0:
        return NEUTRAL_SCORE
    return max(0.0, min(1.0, total / weight_sum))


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


class FeedbackAggregator:
    """Builds :class:`FeedbackSample` objects from ratings, comments and signals."""

    def __init__(self, config: Optional[FeedbackConfig] = None) -> None:
        cfg = config or FeedbackConfig()
        self._positive = frozenset(word.lower() for word in cfg.positive_words)
        self._negative = frozenset(word.lower() for word in cfg.negative_words)
        self._step = float(cfg.sentiment_step)
        self._rating_weight = float(cfg.rating_weight)
        self._text_weight = float(cfg.text_weight)

    # ------------------------------------------------------------------
    # Fallbacks
    # ------------------------------------------------------------------
    def _neutral(self, source: FeedbackSource, raw: object, weight: float, reason: str) -> FeedbackSample:
        LOGGER.warning("feedback fallback (%s): %s; raw=%r", source.value, reason, raw)
        return FeedbackSample(
            source=source,
            raw_value=raw if isinstance(raw, (str, float, int)) else repr(raw),
            normalized_score=NEUTRAL_SCORE,
            weight=weight * 0.5,
        )

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------
    def from_rating(self, score: object, out_of: object) -> FeedbackSample:
        source = FeedbackSource.EXPLICIT_RATING
        try:
            value = float(score)  # type: ignore[arg-type]
            scale = float(out_of)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return self._neutral(source, score, self._rating_weight, "rating is not numeric")
        if not (math.isfinite(value) and math.isfinite(scale)) or scale <= 0.0:
            return self._neutral(source, score, self._rating_weight, f"unusable rating {value}/{scale}")
        return FeedbackSample(
            source=source,
            raw_value=f"{score}/{out_of}",
            normalized_score=_clamp_unit(value / scale),
            weight=self._rating_weight,
        )

    def from_feedback_score(self, score: FeedbackScore | int) -> FeedbackSample:
        try:
            level = FeedbackScore(int(score))
        except (TypeError, ValueError):
            return self._neutral(FeedbackSource.EXPLICIT_RATING, score, self._rating_weight, "unknown score level")
        return self.from_rating(int(level), len(FeedbackScore))

    def from_text(self, comment: object) -> FeedbackSample:
        source = FeedbackSource.FREE_TEXT_SENTIMENT
        if not isinstance(comment, str):
            return self._neutral(source, comment, self._text_weight, "comment is not text")

        for match in _RATIO_PATTERN.finditer(comment):
            numerator = float(match.group(1))
            denominator = float(match.group(2))
            if denominator <= 0.0:
                return self._neutral(source, comment, self._text_weight, "rating denominator is zero")
            if numerator > denominator:
                # dates and fractions like 2024/05 are not ratings
                continue
            return FeedbackSample(
                source=source,
                raw_value=comment,
                normalized_score=_clamp_unit(numerator / denominator),
                weight=self._text_weight,
            )

        score = NEUTRAL_SCORE
        for word in re.split(r"\W+", comment.lower()):
            if word in self._positive:
                score += self._step
            if word in self._negative:
                score -= self._step
        return FeedbackSample(
            source=source,
            raw_value=comment,
            normalized_score=_clamp_unit(score),
            weight=self._text_weight,
        )

    def from_social_signal(self, value: object, weight: object) -> FeedbackSample:
        source = FeedbackSource.SOCIAL_SIGNAL
        try:
            trust = float(weight)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise InvalidArgument(f"social signal weight must be numeric, got {weight!r}") from exc
        if not (trust > 0.0 and math.isfinite(trust)):
            raise InvalidArgument(f"social signal weight must be positive, got {trust}")
        try:
            signal = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return self._neutral(source, value, trust, "signal is not numeric")
        if not (0.0 <= signal <= 1.0):
            raise InvalidArgument(f"social signal must be within [0, 1], got {signal}")
        return FeedbackSample(source=source, raw_value=signal, normalized_score=signal, weight=trust)

    def from_social_signals(self, values: Sequence[object], weight: float) -> list[FeedbackSample]:
        return [self.from_social_signal(value, weight) for value in values]


__all__ = [
    "FeedbackAggregator",
    "FeedbackSample",
    "FeedbackScore",
    "FeedbackSource",
    "NEUTRAL_SCORE",
    "feedback_fitness",
]
