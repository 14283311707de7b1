"""Style entity: a named, versioned parameter vector plus descriptive metadata."""

from __future__ import annotations

import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .errors import InvalidArgument

ParameterValue = Union[float, int, str]
Domain = Tuple[float, float]

UNIT_DOMAIN: Domain = (0.0, 1.0)

# Render dials whose natural range is not the unit interval.
KNOWN_DOMAINS: Dict[str, Domain] = {
    "guidance": (1.0, 30.0),
    "steps": (10.0, 150.0),
    "strength": (0.0, 1.0),
    "noise": (0.0, 1.0),
    "scale": (1.0, 20.0),
}


def is_numeric(value: object) -> bool:
    """Numeric parameters are evolvable; ``bool`` counts as a categorical tag."""

    return isinstance(value, (int, float)) and not isinstance(value, bool)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Style:
    """Immutable snapshot of a visual style.

    Derivation (interpolation, mutation, mixing) always produces a new
    ``Style``; nothing mutates an existing instance.
    """

    name: str
    parameters: Mapping[str, ParameterValue] = field(default_factory=dict)
    tags: frozenset[str] = field(default_factory=frozenset)
    version: int = 1
    domains: Mapping[str, Domain] = field(default_factory=dict)
    description: str = ""
    lineage: Optional[Tuple[str, ...]] = None
    style_id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=time.time)
    modified_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", dict(self.parameters))
        object.__setattr__(self, "tags", frozenset(str(tag) for tag in self.tags))
        object.__setattr__(
            self,
            "domains",
            {str(key): (float(lo), float(hi)) for key, (lo, hi) in dict(self.domains).items()},
        )
        if self.lineage is not None:
            object.__setattr__(self, "lineage", tuple(str(parent) for parent in self.lineage))

    def __hash__(self) -> int:
        return hash(self.style_id)

    def domain_for(self, key: str) -> Domain:
        """Declared domain, then the known render dials, then ``[0, 1]``."""

        declared = self.domains.get(key)
        if declared is not None:
            return declared
        return KNOWN_DOMAINS.get(key, UNIT_DOMAIN)

    def numeric_parameters(self) -> Dict[str, float]:
        return {key: float(value) for key, value in self.parameters.items() if is_numeric(value)}

    def categorical_parameters(self) -> Dict[str, Any]:
        return {key: value for key, value in self.parameters.items() if not is_numeric(value)}

    def same_parameters(self, other: "Style") -> bool:
        return dict(self.parameters) == dict(other.parameters)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "style_id": self.style_id,
            "name": self.name,
            "description": self.description,
            "parameters": dict(self.parameters),
            "domains": {key: [lo, hi] for key, (lo, hi) in self.domains.items()},
            "tags": sorted(self.tags),
            "version": self.version,
            "lineage": list(self.lineage) if self.lineage is not None else None,
            "created_at": self.created_at,
            "modified_at": self.modified_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Style":
        if not isinstance(data, Mapping):
            raise InvalidArgument("Style payload must be a mapping")
        lineage = data.get("lineage")
        now = time.time()
        raw_domains = data.get("domains") or {}
        domains: Dict[str, Domain] = {}
        for key, bounds in dict(raw_domains).items():
            if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
                raise InvalidArgument(f"Domain for '{key}' must be a [lo, hi] pair")
            domains[str(key)] = (float(bounds[0]), float(bounds[1]))
        return cls(
            name=str(data.get("name", "")),
            description=str(data.get("description", "") or ""),
            parameters=dict(data.get("parameters") or {}),
            domains=domains,
            tags=frozenset(data.get("tags") or ()),
            version=int(data.get("version", 1)),
            lineage=tuple(lineage) if lineage else None,
            style_id=str(data.get("style_id") or _new_id()),
            created_at=float(data.get("created_at", now)),
            modified_at=float(data.get("modified_at", now)),
        )


def ensure_finite(style: Style) -> None:
    for key, value in style.numeric_parameters().items():
        if not math.isfinite(value):
            raise InvalidArgument(f"Style '{style.name}' has a non-finite value for '{key}'")


def validate_style(style: Style) -> None:
    """Raise :class:`InvalidArgument` unless ``style`` is well formed."""

    if not isinstance(style, Style):
        raise InvalidArgument(f"Expected a Style, got {type(style).__name__}")
    if not style.name or not style.name.strip():
        raise InvalidArgument("Style must have a name")
    if style.version < 1:
        raise InvalidArgument(f"Style version must be >= 1, got {style.version}")
    ensure_finite(style)
    for key, (lo, hi) in style.domains.items():
        if not (math.isfinite(lo) and math.isfinite(hi)) or lo >= hi:
            raise InvalidArgument(f"Invalid domain for '{key}': [{lo}, {hi}]")
    for key, value in style.numeric_parameters().items():
        lo, hi = style.domain_for(key)
        if not lo <= value <= hi:
            raise InvalidArgument(f"Parameter '{key}'={value} is outside its domain [{lo}, {hi}]")


def merged_domains(styles: Iterable[Style]) -> Dict[str, Domain]:
    """Union of declared domains: the widest bounds win for shared keys."""

    merged: Dict[str, Domain] = {}
    for style in styles:
        for key, (lo, hi) in style.domains.items():
            if key in merged:
                cur_lo, cur_hi = merged[key]
                merged[key] = (min(cur_lo, lo), max(cur_hi, hi))
            else:
                merged[key] = (lo, hi)
    return merged


__all__ = [
    "Domain",
    "KNOWN_DOMAINS",
    "ParameterValue",
    "Style",
    "UNIT_DOMAIN",
    "clamp",
    "ensure_finite",
    "is_numeric",
    "merged_domains",
    "validate_style",
]
