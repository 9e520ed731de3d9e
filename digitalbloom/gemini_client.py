import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings, get_settings
from .errors import ImageResolutionFailure, MalformedResponse, UpstreamError

logger = logging.getLogger(__name__)


class GeminiClient:
    """
    Minimal client for the Gemini `generateContent` REST endpoint.

    This client:
      - sends one request per call, with no retries
      - maps transport and HTTP failures to UpstreamError
      - maps unusable response bodies to MalformedResponse
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    def _endpoint(self, model: str) -> str:
        base = self.settings.api_base_url.rstrip("/")
        return f"{base}/models/{model}:generateContent"

    async def _post(self, model: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if not self.settings.gemini_api_key:
            raise UpstreamError("No Gemini API key configured (set BLOOM_GEMINI_API_KEY)")

        url = self._endpoint(model)
        logger.info("Calling generateContent model=%s", model)

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.request_timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    url,
                    headers={
                        "x-goog-api-key": self.settings.gemini_api_key,
                        "Content-Type": "application/json",
                    },
                    json=body,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.error("generateContent failed model=%s status=%s", model, status_code)
            raise UpstreamError(
                f"Gemini API returned HTTP {status_code}",
                status_code=status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("generateContent transport error model=%s: %s", model, exc)
            raise UpstreamError(f"Gemini API request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponse("Gemini API returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise MalformedResponse("Gemini API returned an unexpected body")
        return data

    @staticmethod
    def _first_candidate_parts(data: Dict[str, Any]) -> List[Dict[str, Any]]:
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback")
            reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            raise MalformedResponse(
                f"Gemini API returned no candidates (blockReason={reason})" if reason
                else "Gemini API returned no candidates"
            )
        candidate = candidates[0] if isinstance(candidates, list) else None
        if not isinstance(candidate, dict):
            raise MalformedResponse("Gemini API returned a malformed candidate")
        content = candidate.get("content") or {}
        if not isinstance(content, dict):
            raise MalformedResponse("Gemini API returned malformed candidate content")
        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise MalformedResponse("Gemini API returned malformed content parts")
        return [part for part in parts if isinstance(part, dict)]

    async def generate_json(
        self,
        model: str,
        prompt: str,
        schema: Dict[str, Any],
        *,
        temperature: float,
    ) -> Dict[str, Any]:
        data = await self._post(
            model,
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "responseMimeType": "application/json",
                    "responseSchema": schema,
                    "temperature": temperature,
                },
            },
        )
        text = "".join(
            part["text"] for part in self._first_candidate_parts(data) if isinstance(part.get("text"), str)
        ).strip()
        try:
            parsed = json.loads(text)
        except ValueError as exc:
            logger.warning("Structured output was not valid JSON model=%s: %.200s", model, text)
            raise MalformedResponse("Model output was not valid JSON") from exc
        if not isinstance(parsed, dict):
            raise MalformedResponse("Model output was not a JSON object")
        return parsed

    async def generate_image(self, model: str, prompt: str) -> str:
        """Return the base64 payload of the first inline image in the response."""
        data = await self._post(
            model,
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"responseModalities": ["IMAGE"]},
            },
        )
        for part in self._first_candidate_parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if isinstance(inline, dict) and isinstance(inline.get("data"), str) and inline["data"]:
                return inline["data"]
        raise ImageResolutionFailure("Image data not found in AI response")


gemini_client = GeminiClient()
