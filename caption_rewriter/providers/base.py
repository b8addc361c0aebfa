from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class RewriteRequest:
    system_instruction: str
    text: Optional[str] = None
    image_data: Optional[str] = None  # full data URL


@dataclass(frozen=True)
class RewriteResult:
    rewritten: str
    extracted_original: Optional[str] = None


class RewriteProvider(Protocol):
    name: str
    supports_vision: bool

    async def rewrite(self, model: str, request: RewriteRequest) -> RewriteResult:
        ...
