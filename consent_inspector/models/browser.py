"""Pydantic models for browser sessions and navigation."""

from __future__ import annotations

from typing import Literal

import pydantic

SessionStatus = Literal["running", "completed", "timed-out", "failed"]


class ViewportSize(pydantic.BaseModel):
    """Viewport dimensions for browser emulation."""

    width: int = pydantic.Field(gt=0)
    height: int = pydantic.Field(gt=0)


class NavigationResult(pydantic.BaseModel):
    """Result of a navigation attempt."""

    success: bool
    status_code: int | None = None
    status_text: str | None = None
    final_url: str | None = None
    error_message: str | None = None
