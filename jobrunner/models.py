"""Data models for runner configuration and dead letters."""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Config(BaseModel):
    """Runner defaults."""
    max_retries: int = Field(default=3, ge=0)
    backoff_ms: int = Field(default=2000, ge=0)  # linear: backoff_ms * attempt
    timeout_ms: int = Field(default=5000, gt=0)  # per attempt


class DeadLetter(BaseModel):
    """A job invocation that exhausted its attempts."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    job_name: str
    reason: str
    error_type: str
    payload: Any = Field(default_factory=dict)
    attempts: int
    created_at: datetime = Field(default_factory=_utcnow)
