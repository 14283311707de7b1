from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from style_lab.feedback import FeedbackAggregator
from style_lab.rng import DeterministicRNG
from style_lab.style import Style


@pytest.fixture()
def rng() -> DeterministicRNG:
    return DeterministicRNG(1234)


@pytest.fixture()
def aggregator() -> FeedbackAggregator:
    return FeedbackAggregator()


@pytest.fixture()
def seed_style() -> Style:
    return Style(
        name="Seed",
        parameters={"brightness": 0.5, "contrast": 0.5},
        tags=frozenset({"seed"}),
    )


@pytest.fixture()
def rich_style() -> Style:
    return Style(
        name="Noir",
        parameters={
            "brightness": 0.2,
            "contrast": 0.9,
            "guidance": 7.5,
            "texture": "film grain",
            "color_palette": "monochrome",
        },
        domains={"contrast": (0.0, 2.0)},
        tags=frozenset({"noir", "moody"}),
    )
