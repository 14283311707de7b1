"""Pure style arithmetic: interpolation, mutation, mixing and scoring.

Every function here is side-effect free.  Randomness only enters through the
``rng`` argument of :func:`mutate`.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import StructuralWeights
from .errors import InvalidArgument
from .feedback import NEUTRAL_SCORE, FeedbackSample, feedback_fitness
from .rng import RandomSource
from .style import Style, clamp, ensure_finite, is_numeric, merged_domains

FEEDBACK_SHARE = 0.5


@dataclass(frozen=True)
class ScoreBreakdown:
    feedback: float
    coherence: float
    stability: float
    compatibility: float
    structural: float
    total: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "feedback": self.feedback,
            "coherence": self.coherence,
            "stability": self.stability,
            "compatibility": self.compatibility,
            "structural": self.structural,
            "total": self.total,
        }


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


def interpolate(a: Style, b: Style, t: float) -> Style:
    """Blend ``a`` towards ``b``; ``t == 0`` keeps ``a`` and ``t == 1`` yields ``b``."""

    t = float(t)
    if not (0.0 <= t <= 1.0):
        raise InvalidArgument(f"Interpolation ratio must be within [0, 1], got {t}")
    ensure_finite(a)
    ensure_finite(b)

    domains = merged_domains((a, b))
    bounds = Style(name="bounds", domains=domains)
    params: Dict[str, Any] = {}
    for key in list(dict.fromkeys([*a.parameters.keys(), *b.parameters.keys()])):
        in_a = key in a.parameters
        in_b = key in b.parameters
        if in_a and not in_b:
            params[key] = a.parameters[key]
            continue
        if in_b and not in_a:
            params[key] = b.parameters[key]
            continue
        va = a.parameters[key]
        vb = b.parameters[key]
        if is_numeric(va) and is_numeric(vb):
            if va == vb:
                params[key] = va
                continue
            lo, hi = bounds.domain_for(key)
            params[key] = clamp(float(va) * (1.0 - t) + float(vb) * t, lo, hi)
        else:
            params[key] = va if t < 0.5 else vb

    pct = int(round(t * 100))
    now = time.time()
    return Style(
        name=f"Interpolated Style ({pct}%)",
        description=f"Interpolation between {a.name} and {b.name} at {pct}%",
        parameters=params,
        tags=a.tags | b.tags,
        version=max(a.version, b.version) + 1,
        domains=domains,
        lineage=(a.style_id, b.style_id),
        created_at=now,
        modified_at=now,
    )


def interpolate_sequence(a: Style, b: Style, steps: int) -> List[Style]:
    """Evenly spaced transition from ``a`` to ``b`` (``steps + 1`` styles)."""

    if int(steps) < 1:
        raise InvalidArgument(f"steps must be at least 1, got {steps}")
    return [interpolate(a, b, i / steps) for i in range(int(steps) + 1)]


def mix(weighted: Sequence[Tuple[Style, float]]) -> Style:
    """Weighted blend of several styles.

    Numeric values are averaged over the styles that define them; categorical
    values come from the heaviest style defining the key.
    """

    if not weighted:
        raise InvalidArgument("No styles provided for mixing")
    weights = [float(w) for _, w in weighted]
    if any(w < 0.0 or not math.isfinite(w) for w in weights) or sum(weights) <= 0.0:
        raise InvalidArgument("Mixing weights must be non-negative with a positive total")
    styles = [style for style, _ in weighted]
    for style in styles:
        ensure_finite(style)

    domains = merged_domains(styles)
    bounds = Style(name="bounds", domains=domains)
    numeric_sums: Dict[str, float] = {}
    numeric_weights: Dict[str, float] = {}
    categorical: Dict[str, Tuple[float, Any]] = {}
    for style, weight in zip(styles, weights):
        for key, value in style.parameters.items():
            if is_numeric(value):
                numeric_sums[key] = numeric_sums.get(key, 0.0) + float(value) * weight
                numeric_weights[key] = numeric_weights.get(key, 0.0) + weight
            elif key not in categorical or weight > categorical[key][0]:
                categorical[key] = (weight, value)

    params: Dict[str, Any] = {key: value for key, (_, value) in categorical.items()}
    for key, total in numeric_sums.items():
        if numeric_weights[key] > 0.0:
            lo, hi = bounds.domain_for(key)
            params[key] = clamp(total / numeric_weights[key], lo, hi)
        else:
            params[key] = next(s.parameters[key] for s in styles if key in s.parameters)

    tags: frozenset[str] = frozenset()
    for style in styles:
        tags = tags | style.tags
    now = time.time()
    return Style(
        name=f"Mixed Style ({len(styles)} sources)",
        description=f"A style created by mixing {len(styles)} different styles",
        parameters=params,
        tags=tags,
        version=max(style.version for style in styles) + 1,
        domains=domains,
        lineage=tuple(style.style_id for style in styles),
        created_at=now,
        modified_at=now,
    )


def mutate(style: Style, strength: float, *, rng: RandomSource) -> Style:
    """Perturb each numeric parameter by up to ``strength`` of its domain width."""

    strength = float(strength)
    if not (0.0 < strength <= 1.0):
        raise InvalidArgument(f"Mutation strength must be within (0, 1], got {strength}")
    ensure_finite(style)

    params: Dict[str, Any] = {}
    for key, value in style.parameters.items():
        if not is_numeric(value):
            params[key] = value
            continue
        lo, hi = style.domain_for(key)
        delta = rng.uniform(-strength, strength) * (hi - lo)
        params[key] = clamp(float(value) + delta, lo, hi)

    now = time.time()
    return Style(
        name=f"{style.name} (Variation)",
        description=style.description or f'A variation of the "{style.name}" style',
        parameters=params,
        tags=style.tags,
        version=style.version + 1,
        domains=style.domains,
        lineage=(style.style_id,),
        created_at=now,
        modified_at=now,
    )


# ---------------------------------------------------------------------------
# Structural metrics
# ---------------------------------------------------------------------------


def _normalised_values(style: Style, keys: Optional[Iterable[str]] = None) -> Dict[str, float]:
    numeric = style.numeric_parameters()
    selected = numeric.keys() if keys is None else keys
    result: Dict[str, float] = {}
    for key in selected:
        value = numeric.get(key)
        if value is None or not math.isfinite(value):
            continue
        lo, hi = style.domain_for(key)
        width = hi - lo
        if width <= 0.0 or not math.isfinite(width):
            continue
        result[key] = clamp((value - lo) / width, 0.0, 1.0)
    return result


def coherence(style: Style) -> float:
    """Low spread across the normalised numeric dials scores high."""

    values = list(_normalised_values(style).values())
    if not values:
        return NEUTRAL_SCORE
    spread = float(np.std(np.asarray(values, dtype=float)))
    return clamp(1.0 - 2.0 * spread, 0.0, 1.0)


def stability(style: Style, parent: Optional[Style]) -> float:
    """Small distance from the lineage parent scores high; seeds are neutral."""

    if parent is None:
        return NEUTRAL_SCORE
    distance = parameter_distance(style, parent)
    if distance is None:
        return NEUTRAL_SCORE
    return clamp(1.0 - distance, 0.0, 1.0)


def compatibility(style: Style, reference_tags: Optional[Iterable[str]]) -> float:
    """Jaccard overlap between the style tags and the caller's reference tags."""

    reference = frozenset(reference_tags or ())
    if not reference:
        return NEUTRAL_SCORE
    union = style.tags | reference
    return len(style.tags & reference) / len(union)


def parameter_distance(a: Style, b: Style) -> Optional[float]:
    """RMS of domain-normalised differences over shared numeric keys."""

    shared = set(a.numeric_parameters()) & set(b.numeric_parameters())
    if not shared:
        return None
    left = _normalised_values(a, shared)
    right = _normalised_values(b, shared)
    keys = sorted(set(left) & set(right))
    if not keys:
        return None
    diffs = np.asarray([left[key] - right[key] for key in keys], dtype=float)
    return float(np.sqrt(np.mean(diffs**2)))


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def score_breakdown(
    style: Style,
    feedback: Sequence[FeedbackSample],
    weights: StructuralWeights | Mapping[str, float] | None = None,
    *,
    parent: Optional[Style] = None,
    reference_tags: Optional[Iterable[str]] = None,
) -> ScoreBreakdown:
    resolved = StructuralWeights.from_mapping(weights)
    fitness = feedback_fitness(feedback)
    coh = coherence(style)
    stab = stability(style, parent)
    compat = compatibility(style, reference_tags)
    structural = resolved.coherence * coh + resolved.stability * stab + resolved.compatibility * compat
    total = FEEDBACK_SHARE * fitness + (1.0 - FEEDBACK_SHARE) * structural
    return ScoreBreakdown(
        feedback=fitness,
        coherence=coh,
        stability=stab,
        compatibility=compat,
        structural=clamp(structural, 0.0, 1.0),
        total=clamp(total, 0.0, 1.0),
    )


def score(
    style: Style,
    feedback: Sequence[FeedbackSample],
    weights: StructuralWeights | Mapping[str, float] | None = None,
    *,
    parent: Optional[Style] = None,
    reference_tags: Optional[Iterable[str]] = None,
) -> float:
    """Blended fitness in ``[0, 1]``: half feedback, half structural quality."""

    return score_breakdown(
        style,
        feedback,
        weights,
        parent=parent,
        reference_tags=reference_tags,
    ).total


__all__ = [
    "ScoreBreakdown",
    "coherence",
    "compatibility",
    "interpolate",
    "interpolate_sequence",
    "mix",
    "mutate",
    "parameter_distance",
    "score",
    "score_breakdown",
    "stability",
]
