from __future__ import annotations
import json
import logging
from typing import Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from caption_rewriter.config import (
    GENERATION_TEMPERATURE,
    IMAGE_ANALYSIS_PROMPT,
    IMAGE_ONLY_TASK,
    IMAGE_WITH_TEXT_TASK,
    JSON_RESPONSE_INSTRUCTIONS,
    TEXT_REWRITE_PROMPT,
)
from caption_rewriter.exceptions import InputValidationError, ProviderError
from caption_rewriter.providers.base import RewriteRequest, RewriteResult
from caption_rewriter.services.image_service import split_data_url

logger = logging.getLogger(__name__)


def image_prompt(text: Optional[str]) -> str:
    """Prompt for the vision modes: review a given caption, or extract one from the image."""
    prompt = IMAGE_ANALYSIS_PROMPT
    if text:
        prompt += "\n\n" + IMAGE_WITH_TEXT_TASK.format(text=text)
        hint = "the caption provided by the user"
    else:
        prompt += "\n\n" + IMAGE_ONLY_TASK
        hint = "the caption found in the image, if any"
    return prompt + "\n\n" + JSON_RESPONSE_INSTRUCTIONS.format(original_hint=hint)


def parse_vision_response(raw: Optional[str], text: Optional[str]) -> RewriteResult:
    """Decode the JSON answer of a vision call, falling back to the raw text."""
    raw = raw or "{}"
    try:
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError("expected a JSON object")
    except ValueError:
        logger.warning("Gemini returned non-JSON output, using raw text")
        return RewriteResult(rewritten=raw, extracted_original=text)
    rewritten = parsed.get("rewritten")
    if rewritten is not None and not isinstance(rewritten, str):
        logger.warning("Gemini returned a non-string report, keeping it as JSON")
        rewritten = json.dumps(rewritten, ensure_ascii=False)
    extracted = parsed.get("extractedOriginal")
    if not isinstance(extracted, str):
        extracted = None
    return RewriteResult(
        rewritten=rewritten or "Failed to generate caption",
        extracted_original=extracted or text or "",
    )


class GeminiProvider:
    name = "gemini"
    supports_vision = True

    def __init__(self, api_key: str | None, timeout: float | None = None):
        if not api_key:
            raise InputValidationError("Gemini API key is missing")
        http_options = types.HttpOptions(timeout=int(timeout * 1000)) if timeout else None
        self.client = genai.Client(api_key=api_key, http_options=http_options)

    async def rewrite(self, model: str, request: RewriteRequest) -> RewriteResult:
        try:
            if request.image_data:
                return await self._rewrite_image(model, request)
            if request.text:
                return await self._rewrite_text(model, request)
        except genai_errors.APIError as exc:
            logger.error("Gemini API error for %s: %s", model, exc)
            raise ProviderError(getattr(exc, "message", None) or str(exc)) from exc
        raise ProviderError("No input provided")

    async def _rewrite_image(self, model: str, request: RewriteRequest) -> RewriteResult:
        mime, data = split_data_url(request.image_data)
        response = await self.client.aio.models.generate_content(
            model=model,
            contents=[
                types.Content(
                    role="user",
                    parts=[
                        types.Part.from_bytes(data=data, mime_type=mime),
                        types.Part.from_text(text=image_prompt(request.text)),
                    ],
                )
            ],
            config=types.GenerateContentConfig(
                system_instruction=request.system_instruction,
                response_mime_type="application/json",
                temperature=GENERATION_TEMPERATURE,
            ),
        )
        return parse_vision_response(response.text, request.text)

    async def _rewrite_text(self, model: str, request: RewriteRequest) -> RewriteResult:
        response = await self.client.aio.models.generate_content(
            model=model,
            contents=[
                types.Content(
                    role="user",
                    parts=[types.Part.from_text(text=TEXT_REWRITE_PROMPT.format(text=request.text))],
                )
            ],
            config=types.GenerateContentConfig(
                system_instruction=request.system_instruction,
                temperature=GENERATION_TEMPERATURE,
            ),
        )
        return RewriteResult(
            rewritten=response.text or "No response generated",
            extracted_original=request.text,
        )
