from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import json
import math
import yaml

from .errors import InvalidArgument


DEFAULT_POSITIVE_WORDS: tuple[str, ...] = (
    "great",
    "good",
    "excellent",
    "amazing",
    "love",
    "perfect",
    "beautiful",
    "stunning",
)
DEFAULT_NEGATIVE_WORDS: tuple[str, ...] = (
    "bad",
    "poor",
    "terrible",
    "hate",
    "awful",
    "worst",
    "ugly",
    "boring",
)


@dataclass(frozen=True)
class StructuralWeights:
    """Blend of the three structural style metrics; must sum to 1.0."""

    coherence: float = 0.4
    stability: float = 0.3
    compatibility: float = 0.3

    def __post_init__(self) -> None:
        values = (self.coherence, self.stability, self.compatibility)
        if any(not math.isfinite(float(v)) or float(v) < 0.0 for v in values):
            raise InvalidArgument(f"Structural weights must be non-negative numbers, got {values}")
        if not math.isclose(sum(float(v) for v in values), 1.0, abs_tol=1e-6):
            raise InvalidArgument(f"Structural weights must sum to 1.0, got {sum(values):.6f}")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | "StructuralWeights" | None) -> "StructuralWeights":
        if raw is None:
            return cls()
        if isinstance(raw, StructuralWeights):
            return raw
        return cls(
            coherence=float(raw.get("coherence", 0.4)),
            stability=float(raw.get("stability", 0.3)),
            compatibility=float(raw.get("compatibility", 0.3)),
        )

    def as_dict(self) -> Dict[str, float]:
        return {
            "coherence": self.coherence,
            "stability": self.stability,
            "compatibility": self.compatibility,
        }


@dataclass
class EvolutionConfig:
    history_size: int = 50
    candidate_count: int = 4
    low_strength: float = 0.1
    high_strength: float = 0.3
    interpolation_ratio: float = 0.5
    weights: StructuralWeights = field(default_factory=StructuralWeights)
    reference_tags: tuple[str, ...] = field(default_factory=tuple)
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.weights, StructuralWeights):
            self.weights = StructuralWeights.from_mapping(self.weights)
        self.reference_tags = tuple(str(tag) for tag in self.reference_tags)
        if int(self.history_size) < 1:
            raise InvalidArgument("history_size must be at least 1")
        if int(self.candidate_count) < 1:
            raise InvalidArgument("candidate_count must be at least 1")
        for name in ("low_strength", "high_strength"):
            value = float(getattr(self, name))
            if not (0.0 < value <= 1.0):
                raise InvalidArgument(f"{name} must be within (0, 1], got {value}")
        if not (0.0 <= float(self.interpolation_ratio) <= 1.0):
            raise InvalidArgument("interpolation_ratio must be within [0, 1]")

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any] | None) -> "EvolutionConfig":
        if not raw:
            return cls()
        seed = raw.get("seed")
        return cls(
            history_size=int(raw.get("history_size", 50)),
            candidate_count=int(raw.get("candidate_count", 4)),
            low_strength=float(raw.get("low_strength", 0.1)),
            high_strength=float(raw.get("high_strength", 0.3)),
            interpolation_ratio=float(raw.get("interpolation_ratio", 0.5)),
            weights=StructuralWeights.from_mapping(raw.get("weights")),
            reference_tags=tuple(raw.get("reference_tags") or ()),
            seed=int(seed) if seed is not None else None,
        )


@dataclass
class FeedbackConfig:
    positive_words: tuple[str, ...] = DEFAULT_POSITIVE_WORDS
    negative_words: tuple[str, ...] = DEFAULT_NEGATIVE_WORDS
    sentiment_step: float = 0.1
    rating_weight: float = 1.0
    text_weight: float = 0.5
    social_weight: float = 0.75

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any] | None) -> "FeedbackConfig":
        if not raw:
            return cls()
        return cls(
            positive_words=tuple(raw.get("positive_words") or DEFAULT_POSITIVE_WORDS),
            negative_words=tuple(raw.get("negative_words") or DEFAULT_NEGATIVE_WORDS),
            sentiment_step=float(raw.get("sentiment_step", 0.1)),
            rating_weight=float(raw.get("rating_weight", 1.0)),
            text_weight=float(raw.get("text_weight", 0.5)),
            social_weight=float(raw.get("social_weight", 0.75)),
        )


@dataclass
class ProviderConfig:
    completion_url: str = "https://api.openai.com/v1/chat/completions"
    completion_model: str = "gpt-4o-mini"
    completion_key_env: str = "OPENAI_API_KEY"
    temperature: float = 0.7
    max_tokens: int = 400
    render_url: str = "https://api.replicate.com/v1"
    render_model: str = "stability-ai/sdxl"
    render_key_env: str = "REPLICATE_API_TOKEN"
    render_defaults: Dict[str, Any] = field(default_factory=dict)
    timeout_s: float = 60.0
    poll_interval_s: float = 1.0

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any] | None) -> "ProviderConfig":
        if not raw:
            return cls()
        defaults = cls()
        completion = _nested_mapping(raw, "completion")
        render = _nested_mapping(raw, "render")
        return cls(
            completion_url=str(completion.get("url", defaults.completion_url)),
            completion_model=str(completion.get("model", defaults.completion_model)),
            completion_key_env=str(completion.get("key_env", defaults.completion_key_env)),
            temperature=float(completion.get("temperature", defaults.temperature)),
            max_tokens=int(completion.get("max_tokens", defaults.max_tokens)),
            render_url=str(render.get("url", defaults.render_url)),
            render_model=str(render.get("model", defaults.render_model)),
            render_key_env=str(render.get("key_env", defaults.render_key_env)),
            render_defaults=dict(render.get("defaults") or {}),
            timeout_s=float(raw.get("timeout_s", defaults.timeout_s)),
            poll_interval_s=float(raw.get("poll_interval_s", defaults.poll_interval_s)),
        )


@dataclass
class OrchestratorConfig:
    evolve_every: int = 1
    max_retries: int = 3
    backoff_s: float = 1.0
    backoff_factor: float = 2.0

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any] | None) -> "OrchestratorConfig":
        if not raw:
            return cls()
        return cls(
            evolve_every=max(0, int(raw.get("evolve_every", 1))),
            max_retries=max(1, int(raw.get("max_retries", 3))),
            backoff_s=max(0.0, float(raw.get("backoff_s", 1.0))),
            backoff_factor=max(1.0, float(raw.get("backoff_factor", 2.0))),
        )


@dataclass
class LoggingConfig:
    level: str = "INFO"
    logfile: Path | None = None

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any] | None) -> "LoggingConfig":
        if not raw:
            return cls()
        return cls(
            level=str(raw.get("level", "INFO")),
            logfile=_optional_path(raw.get("logfile")),
        )


@dataclass
class LabConfig:
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)
    providers: ProviderConfig = field(default_factory=ProviderConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    seed_style: Path | None = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "LabConfig":
        return cls(
            evolution=EvolutionConfig.from_mapping(_nested_mapping(raw, "evolution")),
            feedback=FeedbackConfig.from_mapping(_nested_mapping(raw, "feedback")),
            providers=ProviderConfig.from_mapping(_nested_mapping(raw, "providers")),
            orchestrator=OrchestratorConfig.from_mapping(_nested_mapping(raw, "orchestrator")),
            logging=LoggingConfig.from_mapping(_nested_mapping(raw, "logging")),
            seed_style=_optional_path(raw.get("seed_style")),
        )


def load_config(path: Path) -> LabConfig:
    data = load_mapping(path)
    config = LabConfig.from_dict(data)
    if config.seed_style is not None and not config.seed_style.is_absolute():
        config.seed_style = path.parent / config.seed_style
    return config


def load_mapping(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


def _optional_path(value: Any) -> Path | None:
    if value in (None, "", False):
        return None
    return Path(str(value))


def _nested_mapping(source: Any, key: str) -> Dict[str, Any]:
    if not isinstance(source, Mapping):
        return {}
    value = source.get(key, {})
    return dict(value) if isinstance(value, Mapping) else {}


__all__ = [
    "EvolutionConfig",
    "FeedbackConfig",
    "LabConfig",
    "LoggingConfig",
    "OrchestratorConfig",
    "ProviderConfig",
    "StructuralWeights",
    "load_config",
    "load_mapping",
]
