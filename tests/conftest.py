from __future__ import annotations

import asyncio
import base64
from typing import Any, Dict, Iterable, List, Optional

import pytest

from digitalbloom.config import Settings
from digitalbloom.errors import ImageResolutionFailure
from digitalbloom.schemas import BusinessProfile

SITE_MARKUP = (
    "<title>Bloom Cafe</title>\n"
    "<nav>Bloom Cafe</nav>\n"
    '<section id="hero"><img id="ai-image-0" src="[AI_IMAGE_PROMPT: a sunny cafe terrace]" alt="Terrace"></section>\n'
    '<section id="about"><img class="round" id="ai-image-1" src="[AI_IMAGE_PROMPT: a barista pouring latte art]" alt="Barista"></section>\n'
    '<section id="contact"><form><input name="email"></form></section>'
)


def encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        gemini_api_key="test-key",
        api_base_url="https://gemini.test/v1beta",
        fallback_image_url="https://placehold.test/failed.png",
    )


@pytest.fixture
def profile() -> BusinessProfile:
    return BusinessProfile(
        businessName="Bloom Cafe",
        businessType="Coffee Shop",
        businessDescription="A neighbourhood cafe serving single-origin coffee.",
        targetAudience="Remote workers and students",
        services="Espresso, Pastries, Catering",
        style="Playful & Creative",
        colorScheme="Forest Green & Cream",
    )


class FakeGeminiClient:
    """Stands in for GeminiClient; image payloads are the base64 of the prompt."""

    def __init__(
        self,
        settings: Settings,
        *,
        site: Optional[Any] = None,
        suggestions: Optional[Any] = None,
        failing_prompts: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.settings = settings
        self.site = site if site is not None else {"html": SITE_MARKUP, "css": "body { color: green; }", "js": "console.log('hi');"}
        self.suggestions = suggestions if suggestions is not None else {
            "businessDescription": "Specialty coffee in the heart of town.",
            "targetAudience": "Coffee lovers",
            "services": "Espresso, Cold Brew, Pastries",
        }
        self.failing_prompts = set(failing_prompts)
        self.delays = delays or {}
        self.json_calls: List[Dict[str, Any]] = []
        self.image_calls: List[str] = []

    async def generate_json(self, model: str, prompt: str, schema: Dict[str, Any], *, temperature: float) -> Dict[str, Any]:
        self.json_calls.append({"model": model, "prompt": prompt, "schema": schema, "temperature": temperature})
        payload = self.suggestions if model == self.settings.suggestion_model else self.site
        if isinstance(payload, Exception):
            raise payload
        return payload

    async def generate_image(self, model: str, prompt: str) -> str:
        self.image_calls.append(prompt)
        await asyncio.sleep(self.delays.get(prompt, 0))
        if prompt in self.failing_prompts:
            raise ImageResolutionFailure("Image data not found in AI response")
        return encode(prompt)


@pytest.fixture
def fake_client(settings: Settings) -> FakeGeminiClient:
    return FakeGeminiClient(settings)
