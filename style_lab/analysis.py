"""Descriptive analysis of styles and multi-style composition.

Statistics are computed on domain-normalised values so that a ``steps`` dial
in ``[10, 150]`` and a ``brightness`` dial in ``[0, 1]`` are comparable.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .errors import InvalidArgument
from .feedback import NEUTRAL_SCORE
from .style import Style, clamp, is_numeric
from .style_math import coherence, interpolate_sequence, mix

LOGGER = logging.getLogger("style_lab.analysis")

LOW_COMPATIBILITY = 0.3
DOMINANT_IMPORTANCE = 0.7
HIGH_VARIANCE = 0.1

BLEND_MODES = ("average", "weighted")

_LIST_IMPORTANCE = 0.8
_TEXT_LIST_IMPORTANCE = 0.7
_CATEGORICAL_IMPORTANCE = 0.5


@dataclass(frozen=True)
class ParameterStats:
    importance: float
    mean: Optional[float] = None
    variance: Optional[float] = None
    low: Optional[float] = None
    high: Optional[float] = None
    distribution: Optional[str] = None
    value: Any = None

    @property
    def has_range(self) -> bool:
        return self.low is not None and self.high is not None


@dataclass(frozen=True)
class StyleMetrics:
    complexity: float
    diversity: float
    coherence: float
    stability: float
    compatibility: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "complexity": self.complexity,
            "diversity": self.diversity,
            "coherence": self.coherence,
            "stability": self.stability,
            "compatibility": self.compatibility,
        }


@dataclass(frozen=True)
class StyleAnalysis:
    metrics: StyleMetrics
    parameter_stats: Dict[str, ParameterStats] = field(default_factory=dict)
    dominant_features: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Per-parameter statistics
# ---------------------------------------------------------------------------


def _normalise(style: Style, key: str, value: float) -> float:
    lo, hi = style.domain_for(key)
    if hi <= lo:
        return 0.5
    return clamp((float(value) - lo) / (hi - lo), 0.0, 1.0)


def _distribution(values: Sequence[float]) -> str:
    """Shape of a numeric list judged by how evenly its values are spaced."""

    if len(values) < 3:
        return "uniform"
    gaps = np.diff(np.sort(np.asarray(values, dtype=float)))
    mean_gap = float(np.mean(gaps))
    if mean_gap <= 0.0:
        return "clustered"
    spread = float(np.std(gaps)) / mean_gap
    if spread < 0.25:
        return "uniform"
    if spread < 0.75:
        return "normal"
    return "clustered"


def parameter_stats(style: Style) -> Dict[str, ParameterStats]:
    stats: Dict[str, ParameterStats] = {}
    for key, value in style.parameters.items():
        if is_numeric(value):
            position = _normalise(style, key, value)
            stats[key] = ParameterStats(
                # dials pushed towards either end of their domain say more about the style
                importance=clamp(abs(position - 0.5) * 2.0, 0.1, 1.0),
                mean=position,
                variance=0.0,
                low=position,
                high=position,
                distribution="uniform",
            )
        elif isinstance(value, (list, tuple)):
            numbers = [_normalise(style, key, item) for item in value if is_numeric(item)]
            if not numbers:
                stats[key] = ParameterStats(importance=_TEXT_LIST_IMPORTANCE, value=tuple(value))
                continue
            arr = np.asarray(numbers, dtype=float)
            stats[key] = ParameterStats(
                importance=_LIST_IMPORTANCE,
                mean=float(np.mean(arr)),
                variance=float(np.var(arr)),
                low=float(np.min(arr)),
                high=float(np.max(arr)),
                distribution=_distribution(numbers),
            )
        else:
            stats[key] = ParameterStats(importance=_CATEGORICAL_IMPORTANCE, value=value)
    return stats


def _parameter_compatibility(a: ParameterStats, b: ParameterStats) -> float:
    if not (a.has_range and b.has_range):
        return 1.0 if a.value == b.value else 0.0
    span = max(a.high, b.high) - min(a.low, b.low)  # type: ignore[type-var]
    overlap = max(0.0, min(a.high, b.high) - max(a.low, b.low))  # type: ignore[type-var]
    closeness = clamp(1.0 - (span - overlap), 0.0, 1.0)
    same_shape = 1.0 if a.distribution == b.distribution else 0.5
    return (closeness + same_shape) / 2.0


# ---------------------------------------------------------------------------
# Whole-style analysis
# ---------------------------------------------------------------------------


def _metrics(style: Style, stats: Dict[str, ParameterStats]) -> StyleMetrics:
    numeric = [stat for stat in stats.values() if stat.variance is not None]
    complexity = (
        clamp(float(np.mean([stat.importance + math.log1p(stat.variance or 0.0) for stat in numeric])), 0.0, 1.0)
        if numeric
        else 0.0
    )
    shapes = [stat.distribution for stat in stats.values() if stat.distribution]
    diversity = len(set(shapes)) / len(shapes) if shapes else 0.0
    # normalised variance peaks at 0.25, which maps to zero stability
    stability = (
        float(np.mean([clamp(1.0 - 4.0 * (stat.variance or 0.0), 0.0, 1.0) for stat in stats.values()]))
        if stats
        else 1.0
    )
    compatibility = float(np.mean([stat.importance for stat in stats.values()])) if stats else NEUTRAL_SCORE
    return StyleMetrics(
        complexity=complexity,
        diversity=diversity,
        coherence=coherence(style),
        stability=stability,
        compatibility=compatibility,
    )


def _suggestions(metrics: StyleMetrics, stats: Dict[str, ParameterStats]) -> Tuple[str, ...]:
    notes: List[str] = []
    if metrics.complexity > 0.8:
        notes.append("Consider simplifying complex parameters")
    if metrics.coherence < 0.4:
        notes.append("Parameters may need better coordination")
    if metrics.stability < 0.3:
        notes.append("Style might be too sensitive to parameter changes")
    for key, stat in stats.items():
        if stat.variance is not None and stat.variance > HIGH_VARIANCE:
            notes.append(f'High variance in parameter "{key}"')
    return tuple(notes)


def analyze_style(style: Style) -> StyleAnalysis:
    """Per-parameter statistics, summary metrics, dominant features and suggestions."""

    stats = parameter_stats(style)
    metrics = _metrics(style, stats)
    dominant = tuple(sorted(key for key, stat in stats.items() if stat.importance > DOMINANT_IMPORTANCE))
    return StyleAnalysis(
        metrics=metrics,
        parameter_stats=stats,
        dominant_features=dominant,
        suggestions=_suggestions(metrics, stats),
    )


def analyze_compatibility(a: Style, b: Style) -> float:
    """Importance-weighted agreement of the parameters both styles define.

    Styles with no parameter in common score 0.
    """

    stats_a = parameter_stats(a)
    stats_b = parameter_stats(b)
    total = 0.0
    weight_sum = 0.0
    for key in stats_a.keys() & stats_b.keys():
        weight = (stats_a[key].importance + stats_b[key].importance) / 2.0
        total += weight * _parameter_compatibility(stats_a[key], stats_b[key])
        weight_sum += weight
    return total / weight_sum if weight_sum > 0.0 else 0.0


def variation_strength(style: Style) -> float:
    """Mutation strength suited to the style: unstable styles get gentler changes."""

    return max(0.1, 0.3 * (1.0 - analyze_style(style).metrics.stability))


# ---------------------------------------------------------------------------
# Multi-style composition
# ---------------------------------------------------------------------------


def find_optimal_path(styles: Sequence[Style]) -> List[Style]:
    """Greedy ordering that always steps to the most compatible remaining style.

    The first style stays first; ties keep input order.
    """

    if len(styles) <= 2:
        return list(styles)
    ordered = [styles[0]]
    remaining = list(styles[1:])
    while remaining:
        current = ordered[-1]
        best = max(range(len(remaining)), key=lambda idx: (analyze_compatibility(current, remaining[idx]), -idx))
        ordered.append(remaining.pop(best))
    return ordered


def create_style_sequence(styles: Sequence[Style], steps_per_transition: int = 5) -> List[Style]:
    """Interpolated frames through ``styles`` along the most compatible path.

    Adjacent transitions share their joint frame, so ``n`` styles give
    ``(n - 1) * steps_per_transition + 1`` frames.  Two or fewer styles are
    returned unchanged.
    """

    if int(steps_per_transition) < 1:
        raise InvalidArgument(f"steps_per_transition must be at least 1, got {steps_per_transition}")
    if len(styles) <= 2:
        return list(styles)
    path = find_optimal_path(styles)
    frames: List[Style] = []
    for a, b in zip(path, path[1:]):
        score = analyze_compatibility(a, b)
        if score < LOW_COMPATIBILITY:
            LOGGER.warning(
                "low compatibility %.2f between '%s' and '%s'; transition may look abrupt", score, a.name, b.name
            )
        transition = interpolate_sequence(a, b, steps_per_transition)
        frames.extend(transition if not frames else transition[1:])
    return frames


def blend(styles: Sequence[Style], mode: str = "average") -> Style:
    """Mix several styles.

    ``average`` starts from equal weights, ``weighted`` from each style's mean
    of coherence and stability.  Either way each weight is then scaled by
    ``1 + compatibility`` of the style it belongs to.
    """

    if not styles:
        raise InvalidArgument("No styles provided for blending")
    if mode not in BLEND_MODES:
        raise InvalidArgument(f"Unknown blend mode '{mode}', expected one of {BLEND_MODES}")
    if len(styles) == 1:
        return styles[0]

    analyses = [analyze_style(style) for style in styles]
    if mode == "average":
        base = [1.0 / len(styles)] * len(styles)
    else:
        base = [(item.metrics.coherence + item.metrics.stability) / 2.0 for item in analyses]
    weighted = [
        (style, weight * (1.0 + item.metrics.compatibility)) for style, weight, item in zip(styles, base, analyses)
    ]
    LOGGER.debug("blend %s weights=%s", mode, [round(weight, 4) for _, weight in weighted])
    return mix(weighted)


__all__ = [
    "BLEND_MODES",
    "ParameterStats",
    "StyleAnalysis",
    "StyleMetrics",
    "analyze_compatibility",
    "analyze_style",
    "blend",
    "create_style_sequence",
    "find_optimal_path",
    "parameter_stats",
    "variation_strength",
]
