from __future__ import annotations

from digitalbloom.prompts import (
    SITE_SCHEMA,
    SUGGESTION_SCHEMA,
    build_site_prompt,
    build_suggestion_prompt,
    contact_email,
)
from digitalbloom.schemas import BusinessProfile


def test_site_prompt_interpolates_every_profile_field(profile: BusinessProfile) -> None:
    prompt = build_site_prompt(profile)
    for value in (
        profile.name,
        profile.type,
        profile.description,
        profile.target_audience,
        profile.services,
        profile.style,
        profile.color_scheme,
    ):
        assert value in prompt


def test_site_prompt_states_the_image_and_contact_rules(profile: BusinessProfile) -> None:
    prompt = build_site_prompt(profile)
    assert 'src="[AI_IMAGE_PROMPT: Your descriptive image prompt here]"' in prompt
    assert 'id="ai-image-0"' in prompt and 'id="ai-image-1"' in prompt
    assert "MUST NOT** include an embedded map or a physical address" in prompt
    assert "no markdown backticks" in prompt
    assert "contact@bloomcafe.com" in prompt


def test_site_prompt_is_deterministic(profile: BusinessProfile) -> None:
    assert build_site_prompt(profile) == build_site_prompt(profile.model_copy())


def test_site_prompt_keeps_braces_in_user_input(profile: BusinessProfile) -> None:
    braced = profile.model_copy(update={"description": "We {love} coffee {0}"})
    assert "We {love} coffee {0}" in build_site_prompt(braced)


def test_suggestion_prompt_quotes_name_and_type() -> None:
    prompt = build_suggestion_prompt("Bloom Cafe", "Coffee Shop")
    assert 'Business Name: "Bloom Cafe"' in prompt
    assert 'Business Type: "Coffee Shop"' in prompt


def test_contact_email_strips_whitespace_and_lowercases() -> None:
    assert contact_email("Green  Leaf\tStudio") == "contact@greenleafstudio.com"


def test_schemas_require_exactly_their_string_fields() -> None:
    assert SUGGESTION_SCHEMA["required"] == ["businessDescription", "targetAudience", "services"]
    assert SITE_SCHEMA["required"] == ["html", "css", "js"]
    for schema in (SUGGESTION_SCHEMA, SITE_SCHEMA):
        assert schema["type"] == "OBJECT"
        assert set(schema["properties"]) == set(schema["required"])
        assert all(prop["type"] == "STRING" for prop in schema["properties"].values())
