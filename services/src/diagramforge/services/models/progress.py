"""Progress update model."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ProgressStage = Literal["preparing", "rendering", "processing", "finalizing", "complete", "error"]

__all__ = ["ExportProgress", "ProgressStage"]


class ExportProgress(BaseModel):
    """A single checkpoint broadcast to progress subscribers."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    stage: ProgressStage
    progress: float = Field(ge=0.0, le=100.0)
    message: str
    time_elapsed: float = Field(ge=0.0)
    estimated_time_remaining: float | None = None
