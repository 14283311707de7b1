import math
import random

import pytest

from style_lab.config import StructuralWeights
from style_lab.errors import InvalidArgument
from style_lab.feedback import FeedbackAggregator
from style_lab.rng import DeterministicRNG
from style_lab.style import Style
from style_lab.style_math import (
    coherence,
    compatibility,
    interpolate,
    interpolate_sequence,
    mix,
    mutate,
    score,
    score_breakdown,
    stability,
)


@pytest.fixture()
def warm() -> Style:
    return Style(
        name="Warm",
        parameters={"brightness": 0.8, "contrast": 0.4, "texture": "impasto", "grain": 0.1},
        tags=frozenset({"warm", "painterly"}),
        version=2,
    )


@pytest.fixture()
def cold() -> Style:
    return Style(
        name="Cold",
        parameters={"brightness": 0.2, "contrast": 0.6, "texture": "glass", "blur": 0.7},
        tags=frozenset({"cold"}),
        version=5,
    )


@pytest.mark.parametrize("t", [0.0, 0.25, 0.5, 0.9, 1.0])
def test_interpolating_a_style_with_itself_is_identity(warm, t):
    result = interpolate(warm, warm, t)
    assert result.parameters == warm.parameters


def test_interpolation_boundaries(warm, cold):
    start = interpolate(warm, cold, 0.0)
    end = interpolate(warm, cold, 1.0)
    assert start.parameters["brightness"] == warm.parameters["brightness"]
    assert start.parameters["texture"] == "impasto"
    assert end.parameters["brightness"] == cold.parameters["brightness"]
    assert end.parameters["contrast"] == cold.parameters["contrast"]
    assert end.parameters["texture"] == "glass"


def test_interpolation_blends_numeric_and_carries_one_sided_keys(warm, cold):
    result = interpolate(warm, cold, 0.25)
    assert result.parameters["brightness"] == pytest.approx(0.8 * 0.75 + 0.2 * 0.25)
    assert result.parameters["grain"] == 0.1
    assert result.parameters["blur"] == 0.7
    assert result.parameters["texture"] == "impasto"


def test_interpolation_categorical_tie_break_resolves_to_b(warm, cold):
    assert interpolate(warm, cold, 0.5).parameters["texture"] == "glass"
    assert interpolate(warm, cold, 0.49).parameters["texture"] == "impasto"


def test_interpolation_bookkeeping(warm, cold):
    result = interpolate(warm, cold, 0.3)
    assert result.version == 6
    assert result.tags == {"warm", "painterly", "cold"}
    assert result.lineage == (warm.style_id, cold.style_id)
    assert "30%" in result.name
    assert "Warm" in result.description and "Cold" in result.description


@pytest.mark.parametrize("t", [-0.01, 1.01, math.nan])
def test_interpolation_rejects_bad_ratio(warm, cold, t):
    with pytest.raises(InvalidArgument):
        interpolate(warm, cold, t)


def test_interpolation_rejects_non_finite_parameters(warm):
    broken = Style(name="Broken", parameters={"brightness": math.inf})
    with pytest.raises(InvalidArgument):
        interpolate(warm, broken, 0.5)


def test_interpolate_sequence_spans_both_ends(warm, cold):
    frames = interpolate_sequence(warm, cold, 4)
    assert len(frames) == 5
    assert frames[0].parameters["brightness"] == 0.8
    assert frames[-1].parameters["brightness"] == 0.2
    with pytest.raises(InvalidArgument):
        interpolate_sequence(warm, cold, 0)


def test_mix_weights_numeric_values_and_picks_heaviest_categorical(warm, cold):
    mixed = mix([(warm, 3.0), (cold, 1.0)])
    assert mixed.parameters["brightness"] == pytest.approx((0.8 * 3 + 0.2) / 4)
    assert mixed.parameters["texture"] == "impasto"
    assert mixed.parameters["blur"] == pytest.approx(0.7)
    assert mixed.lineage == (warm.style_id, cold.style_id)
    with pytest.raises(InvalidArgument):
        mix([])
    with pytest.raises(InvalidArgument):
        mix([(warm, 0.0)])


@pytest.mark.parametrize("strength", [0.01, 0.1, 0.3, 1.0])
def test_mutation_stays_within_domain(strength):
    style = Style(
        name="Edge",
        parameters={"low": 0.0, "high": 1.0, "mid": 0.5, "steps": 150, "wide": -4.0, "mood": "calm"},
        domains={"wide": (-5.0, 5.0)},
    )
    rng = DeterministicRNG(7)
    for _ in range(50):
        mutated = mutate(style, strength, rng=rng)
        for key, value in mutated.numeric_parameters().items():
            lo, hi = style.domain_for(key)
            assert lo <= value <= hi
        assert mutated.parameters["mood"] == "calm"


def test_mutation_bookkeeping_and_injected_randomness(warm):
    first = mutate(warm, 0.2, rng=random.Random(3))
    second = mutate(warm, 0.2, rng=random.Random(3))
    assert first.parameters == second.parameters
    assert first.version == warm.version + 1
    assert first.lineage == (warm.style_id,)
    assert first.tags == warm.tags
    assert first.parameters["texture"] == "impasto"


def test_mutation_varies_between_calls(warm):
    rng = DeterministicRNG(11)
    outcomes = {tuple(sorted(mutate(warm, 0.3, rng=rng).numeric_parameters().items())) for _ in range(5)}
    assert len(outcomes) > 1


@pytest.mark.parametrize("strength", [0.0, -0.1, 1.5])
def test_mutation_rejects_bad_strength(warm, rng, strength):
    with pytest.raises(InvalidArgument):
        mutate(warm, strength, rng=rng)


def test_structural_metrics_default_to_neutral():
    empty = Style(name="Empty")
    assert coherence(empty) == 0.5
    assert stability(empty, None) == 0.5
    assert compatibility(empty, None) == 0.5


def test_coherence_prefers_low_spread():
    tight = Style(name="tight", parameters={"a": 0.5, "b": 0.52})
    spread = Style(name="spread", parameters={"a": 0.0, "b": 1.0})
    assert coherence(tight) > coherence(spread)
    assert coherence(spread) == pytest.approx(0.0)


def test_stability_prefers_small_distance_from_parent(warm, rng):
    close = mutate(warm, 0.01, rng=rng)
    far = Style(name="far", parameters={"brightness": 0.0, "contrast": 1.0, "grain": 1.0})
    assert stability(close, warm) > stability(far, warm)
    assert stability(warm, warm) == 1.0


def test_compatibility_uses_tag_overlap(warm):
    assert compatibility(warm, {"warm", "painterly"}) == 1.0
    assert compatibility(warm, {"cold"}) == 0.0
    assert compatibility(warm, {"warm"}) == pytest.approx(0.5)


def test_score_uses_neutral_feedback_when_empty(warm):
    breakdown = score_breakdown(warm, [], StructuralWeights())
    assert breakdown.feedback == 0.5
    assert breakdown.total == pytest.approx(0.5 * 0.5 + 0.5 * breakdown.structural)


def test_score_blends_feedback_half_and_half(warm):
    agg = FeedbackAggregator()
    samples = [agg.from_rating(10, 10), agg.from_rating(0, 10), agg.from_text("7/10")]
    breakdown = score_breakdown(warm, samples, {"coherence": 0.5, "stability": 0.25, "compatibility": 0.25})
    expected_feedback = (1.0 + 0.0 + 0.7 * 0.5) / 2.5
    assert breakdown.feedback == pytest.approx(expected_feedback)
    assert breakdown.total == pytest.approx(0.5 * expected_feedback + 0.5 * breakdown.structural)


def test_score_rejects_weights_not_summing_to_one(warm):
    with pytest.raises(InvalidArgument):
        score(warm, [], {"coherence": 0.5, "stability": 0.5, "compatibility": 0.5})
    with pytest.raises(InvalidArgument):
        StructuralWeights(coherence=1.2, stability=-0.2, compatibility=0.0)


def test_score_is_always_within_unit_interval(rng):
    agg = FeedbackAggregator()
    styles = [
        Style(name="empty"),
        Style(name="extreme", parameters={"a": 0.0, "b": 1.0}, tags=frozenset({"x"})),
        Style(name="tags", parameters={"mood": "calm"}, tags=frozenset({"y"})),
    ]
    feedback_sets = [[], [agg.from_rating(10, 10)], [agg.from_rating(0, 10), agg.from_text("awful")]]
    for style in styles:
        for feedback in feedback_sets:
            value = score(style, feedback, parent=styles[1], reference_tags={"x"})
            assert 0.0 <= value <= 1.0
