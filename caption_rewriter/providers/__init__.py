from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from caption_rewriter.exceptions import UnknownModelError
from .base import RewriteProvider, RewriteRequest, RewriteResult
from .gemini_provider import GeminiProvider
from .openai_compat_provider import DEEPSEEK_BASE_URL, MOONSHOT_BASE_URL, OpenAICompatibleProvider


@dataclass(frozen=True)
class ProviderSpec:
    name: str
    model_prefixes: Tuple[str, ...]
    supports_vision: bool
    factory: Callable[..., RewriteProvider]


REGISTRY: Dict[str, ProviderSpec] = {
    "gemini": ProviderSpec(
        name="gemini",
        model_prefixes=("gemini",),
        supports_vision=True,
        factory=lambda **kw: GeminiProvider(api_key=kw["api_key"], timeout=kw.get("timeout")),
    ),
    "deepseek": ProviderSpec(
        name="deepseek",
        model_prefixes=("deepseek",),
        supports_vision=False,
        factory=lambda **kw: OpenAICompatibleProvider(
            "deepseek", DEEPSEEK_BASE_URL, api_key=kw["api_key"], timeout=kw.get("timeout")
        ),
    ),
    "moonshot": ProviderSpec(
        name="moonshot",
        model_prefixes=("moonshot", "kimi"),
        supports_vision=False,
        factory=lambda **kw: OpenAICompatibleProvider(
            "moonshot", MOONSHOT_BASE_URL, api_key=kw["api_key"], timeout=kw.get("timeout")
        ),
    ),
}


def provider_for_model(model: str) -> ProviderSpec:
    normalized = (model or "").strip().lower()
    for spec in REGISTRY.values():
        if any(normalized.startswith(prefix) for prefix in spec.model_prefixes):
            return spec
    raise UnknownModelError(f"Unknown model provider for '{model}'")


def get_provider(name: str, **kwargs) -> RewriteProvider:
    try:
        spec = REGISTRY[name]
    except KeyError:
        raise UnknownModelError(f"Unknown provider: {name}")
    return spec.factory(**kwargs)


__all__ = [
    "REGISTRY", "ProviderSpec", "provider_for_model", "get_provider",
    "RewriteProvider", "RewriteRequest", "RewriteResult",
]
