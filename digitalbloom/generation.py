import logging
from typing import Optional

from pydantic import ValidationError

from .config import Settings
from .errors import GenerationError, MalformedResponse
from .gemini_client import GeminiClient, gemini_client
from .markup import find_unresolved_sentinels, resolve_placeholders
from .prompts import SITE_SCHEMA, SUGGESTION_SCHEMA, build_site_prompt, build_suggestion_prompt
from .schemas import (
    BusinessProfile,
    ContentSuggestions,
    GeneratedSite,
    ImageResult,
    ImageStatus,
    SiteGenerationResult,
)

logger = logging.getLogger(__name__)


class GenerationService:
    """
    The three generation operations behind the wizard.

    Every call is attempted once. Suggestion and site failures propagate as
    GenerationError subclasses; image failures never propagate and come back
    as degraded ImageResult values instead.
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.client = client or gemini_client
        self.settings = settings or self.client.settings

    async def suggest_content(self, name: str, business_type: str) -> ContentSuggestions:
        payload = await self.client.generate_json(
            self.settings.suggestion_model,
            build_suggestion_prompt(name, business_type),
            SUGGESTION_SCHEMA,
            temperature=self.settings.temperature,
        )
        try:
            suggestions = ContentSuggestions.model_validate(payload)
        except ValidationError as exc:
            raise MalformedResponse("AI suggestion response did not match the expected format.") from exc

        logger.info("Content suggestions generated for name=%r type=%r", name, business_type)
        return suggestions

    async def generate_image(self, prompt: str) -> ImageResult:
        try:
            data = await self.client.generate_image(self.settings.image_model, prompt)
        except GenerationError as exc:
            logger.warning("Image generation failed for prompt %r: %s", prompt, exc)
            return ImageResult(
                prompt=prompt,
                uri=self.settings.fallback_image_url,
                status=ImageStatus.DEGRADED,
                error=str(exc),
            )
        except Exception as exc:
            logger.exception("Unexpected error generating image for prompt %r", prompt)
            return ImageResult(
                prompt=prompt,
                uri=self.settings.fallback_image_url,
                status=ImageStatus.DEGRADED,
                error=f"Unexpected error: {exc}",
            )
        return ImageResult(prompt=prompt, uri=f"data:image/png;base64,{data}")

    async def generate_site(self, profile: BusinessProfile) -> SiteGenerationResult:
        logger.info("Generating site for name=%r style=%r", profile.name, profile.style)
        payload = await self.client.generate_json(
            self.settings.site_model,
            build_site_prompt(profile),
            SITE_SCHEMA,
            temperature=self.settings.temperature,
        )
        try:
            site = GeneratedSite.model_validate(payload)
        except ValidationError as exc:
            raise MalformedResponse("AI response did not match the expected format.") from exc

        markup, images = await resolve_placeholders(site.markup, self.generate_image)
        unresolved = find_unresolved_sentinels(markup)
        if unresolved:
            logger.warning("Left %d unrecognized image placeholders in markup", len(unresolved))

        result = SiteGenerationResult(
            site=site.model_copy(update={"markup": markup}),
            images=images,
            unresolved=unresolved,
        )
        logger.info(
            "Site generated name=%r images=%d degraded=%d",
            profile.name,
            len(images),
            result.degraded_count,
        )
        return result


generation_service = GenerationService()
