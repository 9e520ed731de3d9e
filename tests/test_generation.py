from __future__ import annotations

import asyncio

import pytest

from conftest import FakeGeminiClient, encode
from digitalbloom.config import Settings
from digitalbloom.errors import MalformedResponse, UpstreamError
from digitalbloom.generation import GenerationService
from digitalbloom.prompts import SITE_SCHEMA, SUGGESTION_SCHEMA
from digitalbloom.schemas import BusinessProfile, ImageStatus


def _service(client: FakeGeminiClient, settings: Settings) -> GenerationService:
    return GenerationService(client=client, settings=settings)


def test_suggest_content_maps_wire_fields(fake_client: FakeGeminiClient, settings: Settings) -> None:
    suggestions = asyncio.run(_service(fake_client, settings).suggest_content("Bloom Cafe", "Coffee Shop"))

    assert suggestions.description == "Specialty coffee in the heart of town."
    assert suggestions.target_audience == "Coffee lovers"
    assert suggestions.services == "Espresso, Cold Brew, Pastries"
    call = fake_client.json_calls[0]
    assert call["model"] == settings.suggestion_model
    assert call["schema"] is SUGGESTION_SCHEMA
    assert call["temperature"] == 0.7
    assert '"Bloom Cafe"' in call["prompt"]


@pytest.mark.parametrize(
    "payload",
    [
        {"businessDescription": "x", "targetAudience": "y"},
        {"businessDescription": "x", "targetAudience": "y", "services": ["a", "b"]},
        {"businessDescription": 3, "targetAudience": "y", "services": "z"},
    ],
)
def test_suggest_content_rejects_missing_or_non_string_fields(settings: Settings, payload: dict) -> None:
    client = FakeGeminiClient(settings, suggestions=payload)
    with pytest.raises(MalformedResponse):
        asyncio.run(_service(client, settings).suggest_content("Bloom Cafe", "Coffee Shop"))


def test_suggest_content_propagates_upstream_errors(settings: Settings) -> None:
    client = FakeGeminiClient(settings, suggestions=UpstreamError("quota exceeded", status_code=429))
    with pytest.raises(UpstreamError):
        asyncio.run(_service(client, settings).suggest_content("Bloom Cafe", "Coffee Shop"))
    assert len(client.json_calls) == 1


def test_generate_image_wraps_payload_as_png_data_uri(fake_client: FakeGeminiClient, settings: Settings) -> None:
    result = asyncio.run(_service(fake_client, settings).generate_image("a red bicycle"))

    assert result.status == ImageStatus.RESOLVED
    assert result.uri == f"data:image/png;base64,{encode('a red bicycle')}"
    assert result.error is None


def test_generate_image_failure_degrades_to_fallback(settings: Settings) -> None:
    client = FakeGeminiClient(settings, failing_prompts=["a red bicycle"])
    result = asyncio.run(_service(client, settings).generate_image("a red bicycle"))

    assert result.degraded
    assert result.uri == "https://placehold.test/failed.png"
    assert "Image data not found" in result.error


def test_generate_site_resolves_every_placeholder(
    fake_client: FakeGeminiClient, settings: Settings, profile: BusinessProfile
) -> None:
    result = asyncio.run(_service(fake_client, settings).generate_site(profile))

    assert fake_client.json_calls[0]["model"] == settings.site_model
    assert fake_client.json_calls[0]["schema"] is SITE_SCHEMA
    assert sorted(fake_client.image_calls) == ["a barista pouring latte art", "a sunny cafe terrace"]
    assert "AI_IMAGE_PROMPT" not in result.site.markup
    assert f'id="ai-image-0" src="data:image/png;base64,{encode("a sunny cafe terrace")}"' in result.site.markup
    assert f'id="ai-image-1" src="data:image/png;base64,{encode("a barista pouring latte art")}"' in result.site.markup
    assert result.site.styles == "body { color: green; }"
    assert result.site.script == "console.log('hi');"
    assert result.degraded_count == 0
    assert result.unresolved == []


def test_generate_site_keeps_document_order_when_images_finish_out_of_order(
    settings: Settings, profile: BusinessProfile
) -> None:
    markup = "".join(f'<img id="ai-image-{i}" src="[AI_IMAGE_PROMPT: shot {i}]">' for i in range(4))
    delays = {f"shot {i}": 0.02 * (4 - i) for i in range(4)}
    client = FakeGeminiClient(settings, site={"html": markup, "css": "a{}", "js": ""}, delays=delays)

    result = asyncio.run(_service(client, settings).generate_site(profile))

    expected = "".join(
        f'<img id="ai-image-{i}" src="data:image/png;base64,{encode(f"shot {i}")}">' for i in range(4)
    )
    assert result.site.markup == expected
    assert [image.prompt for image in result.images] == [f"shot {i}" for i in range(4)]


def test_generate_site_survives_a_failed_image(settings: Settings, profile: BusinessProfile) -> None:
    client = FakeGeminiClient(settings, failing_prompts=["a sunny cafe terrace"])

    result = asyncio.run(_service(client, settings).generate_site(profile))

    assert 'id="ai-image-0" src="https://placehold.test/failed.png"' in result.site.markup
    assert f'src="data:image/png;base64,{encode("a barista pouring latte art")}"' in result.site.markup
    assert [image.status for image in result.images] == [ImageStatus.DEGRADED, ImageStatus.RESOLVED]
    assert result.degraded_count == 1


def test_generate_site_reports_unrecognized_placeholders(settings: Settings, profile: BusinessProfile) -> None:
    markup = "<img id='ai-image-0' src='[AI_IMAGE_PROMPT: quoted wrong]'>"
    client = FakeGeminiClient(settings, site={"html": markup, "css": "a{}", "js": ""})

    result = asyncio.run(_service(client, settings).generate_site(profile))

    assert client.image_calls == []
    assert result.site.markup == markup
    assert result.unresolved == ["[AI_IMAGE_PROMPT: quoted wrong]"]


@pytest.mark.parametrize(
    "payload",
    [
        {"html": "<p>x</p>", "css": "a{}"},
        {"html": "<p>x</p>", "css": None, "js": ""},
        {"html": ["<p>x</p>"], "css": "a{}", "js": ""},
    ],
)
def test_generate_site_rejects_malformed_payloads(settings: Settings, profile: BusinessProfile, payload: dict) -> None:
    client = FakeGeminiClient(settings, site=payload)
    with pytest.raises(MalformedResponse):
        asyncio.run(_service(client, settings).generate_site(profile))
    assert client.image_calls == []


def test_generate_image_degrades_on_unexpected_errors(settings: Settings) -> None:
    class BrokenClient(FakeGeminiClient):
        async def generate_image(self, model: str, prompt: str) -> str:
            raise AttributeError("'str' object has no attribute 'get'")

    result = asyncio.run(_service(BrokenClient(settings), settings).generate_image("a cat"))

    assert result.status == ImageStatus.DEGRADED
    assert result.uri == "https://placehold.test/failed.png"
    assert "has no attribute" in result.error


def test_generate_site_survives_a_malformed_image_response(settings: Settings, profile: BusinessProfile) -> None:
    class HalfBrokenClient(FakeGeminiClient):
        async def generate_image(self, model: str, prompt: str) -> str:
            if prompt == "a sunny cafe terrace":
                raise AttributeError("'str' object has no attribute 'get'")
            return await super().generate_image(model, prompt)

    result = asyncio.run(_service(HalfBrokenClient(settings), settings).generate_site(profile))

    assert [image.status for image in result.images] == [ImageStatus.DEGRADED, ImageStatus.RESOLVED]
    assert 'id="ai-image-0" src="https://placehold.test/failed.png"' in result.site.markup
