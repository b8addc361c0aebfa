from __future__ import annotations

import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RowStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


def new_row_id() -> str:
    return str(uuid.uuid4())


class CaptionRow(BaseModel):
    """One caption to rewrite. Rows are replaced, never mutated in place."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str = Field(default_factory=new_row_id)
    original: str = ""
    rewritten: Optional[str] = None
    status: RowStatus = RowStatus.PENDING
    image_path: Optional[str] = None
    image_data: Optional[str] = None  # data URL for preview and upload
    error: Optional[str] = None


class ProcessingStats(BaseModel):
    total: int = 0
    completed: int = 0
    failed: int = 0


class HistorySession(BaseModel):
    id: str = Field(default_factory=new_row_id)
    timestamp: int  # epoch milliseconds
    name: str
    stats: ProcessingStats
    data: List[CaptionRow]  # image_data stripped before persistence
