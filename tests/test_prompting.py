from style_lab.prompting import (
    build_expansion_request,
    build_render_input,
    describe_style,
    extract_final_prompt,
    fallback_prompt,
)
from style_lab.style import Style


def test_describe_style_bands_dials_and_expands_descriptors():
    style = Style(
        name="Dream",
        parameters={
            "brightness": 0.9,
            "contrast": 0.1,
            "saturation": 0.5,
            "movement": "Surrealism",
            "medium": "watercolor",
            "color_palette": ["teal", "gold"],
            "texture": "paper",
            "guidance": 9.0,
        },
    )
    fragments = describe_style(style)
    assert "high brightness" in fragments
    assert "low contrast" in fragments
    assert "balanced saturation" in fragments
    assert any(f.startswith("Surrealism style, dreamlike imagery") for f in fragments)
    assert any(f.startswith("watercolor, transparent washes") for f in fragments)
    assert "color palette: teal, gold" in fragments
    assert "texture: paper" in fragments
    # render dials go to the provider input, not the prose
    assert not any("guidance" in f for f in fragments)


def test_unknown_movement_is_still_described():
    fragments = describe_style(Style(name="x", parameters={"movement": "vaporwave"}))
    assert fragments == ["in vaporwave style"]


def test_expansion_request_carries_concept_and_style_notes(rich_style):
    request = build_expansion_request("lighthouse at dusk", rich_style, model="writer", temperature=0.2, max_tokens=50)
    assert request.model == "writer"
    assert request.temperature == 0.2
    assert request.max_tokens == 50
    roles = [message["role"] for message in request.messages]
    assert roles == ["system", "user"]
    user = request.messages[1]["content"]
    assert "lighthouse at dusk" in user
    assert "Noir" in user
    assert "texture: film grain" in user
    assert "Tags: moody, noir" in user


def test_extract_final_prompt():
    assert extract_final_prompt("FINAL PROMPT: a misty harbour REASONING: moody") == "a misty harbour"
    assert extract_final_prompt("notes first\nFINAL PROMPT: a misty harbour") == "a misty harbour"
    assert extract_final_prompt("just a prompt") == "just a prompt"
    assert extract_final_prompt("") == ""


def test_fallback_prompt_appends_style_notes(seed_style):
    assert fallback_prompt("  a fox ", seed_style) == "a fox, balanced brightness, balanced contrast"
    assert fallback_prompt("a fox", Style(name="empty")) == "a fox"


def test_render_input_maps_dials_and_keeps_defaults():
    style = Style(
        name="r",
        parameters={"guidance": 7.5, "steps": 29.6, "strength": 0.8, "brightness": 0.4},
    )
    payload = build_render_input("a fox", style, {"width": 1024, "num_inference_steps": 10})
    assert payload["prompt"] == "a fox"
    assert payload["guidance_scale"] == 7.5
    assert payload["num_inference_steps"] == 30
    assert payload["prompt_strength"] == 0.8
    assert payload["width"] == 1024
    assert "brightness" not in payload
