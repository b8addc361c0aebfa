from __future__ import annotations

import logging
from typing import Optional

from caption_rewriter.config import CUSTOM_RULES_HEADER, DEFAULT_SYSTEM_PROMPT
from caption_rewriter.exceptions import InputValidationError, ProviderError
from caption_rewriter.models import CaptionRow
from caption_rewriter.providers import (
    RewriteProvider,
    RewriteRequest,
    RewriteResult,
    get_provider,
    provider_for_model,
)

logger = logging.getLogger(__name__)


def build_system_instruction(custom_rules: str = "") -> str:
    """Default prompt, followed by the rules text extracted from a PDF when present."""
    if custom_rules and custom_rules.strip():
        return f"{DEFAULT_SYSTEM_PROMPT}\n\n{CUSTOM_RULES_HEADER}\n{custom_rules}"
    return DEFAULT_SYSTEM_PROMPT


def build_request(row: CaptionRow, system_instruction: str) -> RewriteRequest:
    return RewriteRequest(
        system_instruction=system_instruction,
        text=row.original or None,
        image_data=row.image_data or None,
    )


class RewriteService:
    """Per-row transform handed to the batch processor.

    The provider client is created on first use, inside the event loop that
    runs the batch.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        custom_rules: str = "",
        *,
        timeout: Optional[float] = None,
    ) -> None:
        if not api_key:
            raise InputValidationError("API key is missing. Enter it in the sidebar settings to start.")
        self.spec = provider_for_model(model)
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.system_instruction = build_system_instruction(custom_rules)
        self._provider: Optional[RewriteProvider] = None

    @property
    def provider(self) -> RewriteProvider:
        if self._provider is None:
            self._provider = get_provider(self.spec.name, api_key=self.api_key, timeout=self.timeout)
        return self._provider

    async def __call__(self, row: CaptionRow) -> RewriteResult:
        request = build_request(row, self.system_instruction)
        if request.image_data and not self.spec.supports_vision:
            raise ProviderError(
                f"{self.model} only supports text rewriting (spreadsheet mode). "
                "Switch to a Gemini model to process images."
            )
        if not request.text and not request.image_data:
            raise ProviderError("No input provided")
        logger.debug("Rewriting row %s with %s", row.id, self.model)
        return await self.provider.rewrite(self.model, request)
