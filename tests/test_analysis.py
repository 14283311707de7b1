import logging

import pytest

from style_lab.analysis import (
    analyze_compatibility,
    analyze_style,
    blend,
    create_style_sequence,
    find_optimal_path,
    variation_strength,
)
from style_lab.errors import InvalidArgument
from style_lab.style import Style
from style_lab.style_math import coherence


@pytest.fixture()
def poster() -> Style:
    return Style(
        name="Poster",
        parameters={
            "brightness": 0.9,
            "contrast": 0.5,
            "steps": 150,
            "texture": "impasto",
            "palette": [0.0, 0.1, 0.9, 1.0],
        },
    )


def _dial(name: str, **params) -> Style:
    return Style(name=name, parameters=params)


def test_parameter_stats_are_domain_normalised(poster):
    stats = analyze_style(poster).parameter_stats
    assert stats["steps"].mean == pytest.approx(1.0)
    assert stats["steps"].importance == pytest.approx(1.0)
    assert stats["brightness"].importance == pytest.approx(0.8)
    assert stats["contrast"].importance == pytest.approx(0.1)
    assert stats["texture"].importance == pytest.approx(0.5)
    assert stats["texture"].variance is None

    palette = stats["palette"]
    assert palette.mean == pytest.approx(0.5)
    assert palette.variance == pytest.approx(0.205)
    assert (palette.low, palette.high) == (0.0, 1.0)
    assert palette.distribution == "clustered"


def test_analysis_reports_dominant_features_and_metrics(poster):
    analysis = analyze_style(poster)
    assert analysis.dominant_features == ("brightness", "palette", "steps")
    metrics = analysis.metrics
    assert metrics.diversity == pytest.approx(0.5)
    assert metrics.compatibility == pytest.approx((0.8 + 0.1 + 1.0 + 0.5 + 0.8) / 5)
    assert metrics.stability == pytest.approx((4 + (1 - 4 * 0.205)) / 5)
    assert metrics.coherence == pytest.approx(coherence(poster))
    assert 0.0 < metrics.complexity < 0.8
    assert set(metrics.as_dict()) == {"complexity", "diversity", "coherence", "stability", "compatibility"}
    assert analysis.suggestions == ('High variance in parameter "palette"',)


def test_extreme_and_scattered_dials_get_suggestions():
    analysis = analyze_style(_dial("Split", shadows=0.0, highlights=1.0))
    assert "Consider simplifying complex parameters" in analysis.suggestions
    assert "Parameters may need better coordination" in analysis.suggestions

    jittery = analyze_style(_dial("Jitter", palette=[0.0, 1.0], accents=[0.0, 1.0]))
    assert jittery.metrics.stability == pytest.approx(0.0)
    assert "Style might be too sensitive to parameter changes" in jittery.suggestions


def test_empty_style_analysis_is_neutral():
    analysis = analyze_style(Style(name="Blank"))
    assert analysis.parameter_stats == {}
    assert analysis.dominant_features == ()
    assert analysis.suggestions == ()
    assert analysis.metrics.stability == 1.0
    assert analysis.metrics.complexity == 0.0
    assert analysis.metrics.compatibility == pytest.approx(0.5)


def test_compatibility_of_a_style_with_itself_is_full(poster):
    assert analyze_compatibility(poster, poster) == pytest.approx(1.0)


def test_compatibility_prefers_nearby_values():
    base = _dial("Base", brightness=0.9)
    near = _dial("Near", brightness=0.8)
    far = _dial("Far", brightness=0.1)
    assert analyze_compatibility(base, near) == pytest.approx(0.95)
    assert analyze_compatibility(base, far) == pytest.approx(0.6)
    assert analyze_compatibility(base, near) == pytest.approx(analyze_compatibility(near, base))


def test_compatibility_without_shared_parameters_is_zero():
    assert analyze_compatibility(_dial("A", brightness=0.5), _dial("B", grain=0.5)) == 0.0
    assert analyze_compatibility(_dial("A", texture="ink"), _dial("B", texture="glass")) == 0.0


def test_optimal_path_steps_to_the_most_compatible_style():
    dark, light, mid = _dial("Dark", brightness=0.0), _dial("Light", brightness=1.0), _dial("Mid", brightness=0.5)
    assert [s.name for s in find_optimal_path([dark, light, mid])] == ["Dark", "Mid", "Light"]
    assert find_optimal_path([light, dark]) == [light, dark]


def test_style_sequence_interpolates_along_the_path():
    dark, light, mid = _dial("Dark", brightness=0.0), _dial("Light", brightness=1.0), _dial("Mid", brightness=0.5)
    frames = create_style_sequence([dark, light, mid], steps_per_transition=2)
    assert len(frames) == 5
    assert [f.parameters["brightness"] for f in frames] == pytest.approx([0.0, 0.25, 0.5, 0.75, 1.0])


def test_style_sequence_short_inputs_and_bad_steps():
    a, b = _dial("A", brightness=0.1), _dial("B", brightness=0.9)
    assert create_style_sequence([a, b]) == [a, b]
    with pytest.raises(InvalidArgument):
        create_style_sequence([a, b, a], steps_per_transition=0)


def test_style_sequence_warns_about_incompatible_neighbours(caplog):
    styles = [_dial("A", brightness=0.5), _dial("B", grain=0.5), _dial("C", contrast=0.5)]
    with caplog.at_level(logging.WARNING, logger="style_lab.analysis"):
        frames = create_style_sequence(styles, steps_per_transition=1)
    assert len(frames) == 3
    assert "low compatibility" in caplog.text


def test_blend_modes_take_weights_from_metrics():
    bright = _dial("Bright", brightness=1.0)
    split = _dial("Split", brightness=0.0, contrast=1.0)

    averaged = blend([bright, split], mode="average")
    assert averaged.parameters["brightness"] == pytest.approx(0.5)

    # the scattered style has zero coherence, so it carries half the base weight
    weighted = blend([bright, split], mode="weighted")
    assert weighted.parameters["brightness"] == pytest.approx(2.0 / 3.0)
    assert weighted.parameters["contrast"] == pytest.approx(1.0)
    assert weighted.lineage == (bright.style_id, split.style_id)


def test_blend_edge_cases(poster):
    assert blend([poster]) is poster
    with pytest.raises(InvalidArgument):
        blend([])
    with pytest.raises(InvalidArgument):
        blend([poster, poster], mode="median")


def test_variation_strength_grows_with_instability():
    assert variation_strength(_dial("Calm", brightness=0.5)) == pytest.approx(0.1)
    assert variation_strength(_dial("Jitter", palette=[0.0, 1.0])) == pytest.approx(0.3)
