"""Translate a :class:`Style` into provider-facing prompt text and render input."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

from .orchestrator.interfaces import CompletionRequest
from .style import Style, is_numeric

MOVEMENT_DETAILS: Dict[str, str] = {
    "impressionism": "loose brushstrokes, vibrant colors, emphasis on light and movement",
    "cubism": "geometric shapes, multiple perspectives, fragmented forms",
    "surrealism": "dreamlike imagery, unexpected juxtapositions, subconscious elements",
    "abstract expressionism": "emotional, gestural brushwork, non-representational forms",
    "pop art": "bold colors, popular culture references, commercial imagery",
    "minimalism": "simplified forms, limited color palette, geometric precision",
    "baroque": "dramatic lighting, rich colors, dynamic composition",
    "art nouveau": "organic, flowing lines, decorative elements, natural forms",
    "cyberpunk": "neon colors, futuristic technology, urban dystopia",
    "art deco": "geometric patterns, bold colors, symmetrical designs",
}

MEDIUM_DETAILS: Dict[str, str] = {
    "oil painting": "visible brushstrokes, rich textures and depth",
    "watercolor": "transparent washes, soft edges and flowing colors",
    "digital": "clean lines, perfect gradients, high resolution",
    "photography": "realistic lighting, depth of field, natural detail",
    "charcoal": "rich blacks, smudged textures, dramatic contrasts",
    "ink": "bold lines, precise details, strong contrasts",
    "3d render": "realistic lighting, textures and perspective",
}

# Style dials understood by image providers, keyed by style parameter name.
RENDER_PARAMETER_MAP: Dict[str, str] = {
    "strength": "prompt_strength",
    "steps": "num_inference_steps",
    "guidance": "guidance_scale",
    "seed": "seed",
    "width": "width",
    "height": "height",
    "scheduler": "scheduler",
    "noise": "noise_aug_strength",
}

_INTEGER_INPUTS = {"num_inference_steps", "seed", "width", "height"}

SYSTEM_PROMPT = (
    "You are an art director. Expand the concept into one detailed image prompt that "
    "honours the style notes. Answer with 'FINAL PROMPT:' followed by the prompt."
)

_FINAL_PROMPT = re.compile(r"FINAL PROMPT:([\s\S]*?)(?:$|REASONING:)")


def _band(position: float) -> str:
    if position < 1.0 / 3.0:
        return "low"
    if position > 2.0 / 3.0:
        return "high"
    return "balanced"


def _humanize(key: str) -> str:
    return key.replace("_", " ").replace("-", " ").strip()


def describe_style(style: Style) -> List[str]:
    """Prompt fragments for the style's dials and descriptors."""

    fragments: List[str] = []
    for key, value in style.parameters.items():
        if key in RENDER_PARAMETER_MAP:
            continue
        if is_numeric(value):
            lo, hi = style.domain_for(key)
            position = (float(value) - lo) / (hi - lo) if hi > lo else 0.5
            fragments.append(f"{_band(position)} {_humanize(key)}")
            continue
        if key == "movement" and isinstance(value, str):
            detail = MOVEMENT_DETAILS.get(value.lower())
            fragments.append(f"{value} style, {detail}" if detail else f"in {value} style")
        elif key == "medium" and isinstance(value, str):
            detail = MEDIUM_DETAILS.get(value.lower())
            fragments.append(f"{value}, {detail}" if detail else str(value))
        elif isinstance(value, (list, tuple)):
            items = ", ".join(str(item) for item in value if item)
            if items:
                fragments.append(f"{_humanize(key)}: {items}")
        elif value not in (None, ""):
            fragments.append(f"{_humanize(key)}: {value}")
    return fragments


def build_expansion_request(
    concept: str,
    style: Style,
    *,
    model: str,
    temperature: float = 0.7,
    max_tokens: int = 400,
) -> CompletionRequest:
    notes = "; ".join(describe_style(style)) or "no specific style notes"
    tags = ", ".join(sorted(style.tags))
    user = f"Concept: {concept.strip()}\nStyle '{style.name}': {notes}"
    if tags:
        user += f"\nTags: {tags}"
    return CompletionRequest(
        model=model,
        messages=(
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user},
        ),
        temperature=temperature,
        max_tokens=max_tokens,
    )


def extract_final_prompt(text: str) -> str:
    match = _FINAL_PROMPT.search(text or "")
    if match and match.group(1).strip():
        return match.group(1).strip()
    return (text or "").strip()


def fallback_prompt(concept: str, style: Style) -> str:
    fragments = describe_style(style)
    return ", ".join([concept.strip(), *fragments]) if fragments else concept.strip()


def build_render_input(
    prompt: str,
    style: Style,
    defaults: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = dict(defaults or {})
    for key, target in RENDER_PARAMETER_MAP.items():
        if key not in style.parameters:
            continue
        value = style.parameters[key]
        if target in _INTEGER_INPUTS and is_numeric(value):
            value = int(round(float(value)))
        payload[target] = value
    payload["prompt"] = prompt
    return payload


__all__ = [
    "MEDIUM_DETAILS",
    "MOVEMENT_DETAILS",
    "RENDER_PARAMETER_MAP",
    "build_expansion_request",
    "build_render_input",
    "describe_style",
    "extract_final_prompt",
    "fallback_prompt",
]
