from __future__ import annotations
import logging

from openai import AsyncOpenAI, OpenAIError

from caption_rewriter.config import GENERATION_TEMPERATURE, TEXT_REWRITE_PROMPT
from caption_rewriter.exceptions import InputValidationError, ProviderError
from caption_rewriter.providers.base import RewriteRequest, RewriteResult

logger = logging.getLogger(__name__)

DEEPSEEK_BASE_URL = "https://api.deepseek.com"
MOONSHOT_BASE_URL = "https://api.moonshot.cn/v1"


class OpenAICompatibleProvider:
    """Text-only chat-completions provider (DeepSeek, Moonshot/Kimi)."""

    supports_vision = False

    def __init__(self, name: str, base_url: str, api_key: str | None, timeout: float | None = None):
        if not api_key:
            raise InputValidationError(f"{name} API key is missing")
        self.name = name
        # no automatic retries: failed rows are re-run by the user
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    async def rewrite(self, model: str, request: RewriteRequest) -> RewriteResult:
        if request.image_data:
            raise ProviderError(
                f"{model} only supports text rewriting (spreadsheet mode). "
                "Switch to a Gemini model to process images."
            )
        if not request.text:
            raise ProviderError("No text input provided for text-only model.")

        messages = [
            {"role": "system", "content": request.system_instruction},
            {"role": "user", "content": TEXT_REWRITE_PROMPT.format(text=request.text)},
        ]
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=GENERATION_TEMPERATURE,
                stream=False,
            )
        except OpenAIError as exc:
            logger.error("%s API error for %s: %s", self.name, model, exc)
            raise ProviderError(str(exc) or f"Failed to rewrite caption via {self.name}") from exc

        content = None
        if response.choices:
            content = response.choices[0].message.content
        return RewriteResult(rewritten=content or "No response generated", extracted_original=request.text)
