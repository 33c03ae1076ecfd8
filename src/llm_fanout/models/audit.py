"""
Audit event model.

One structured record of request/response/error metadata, written by an
audit sink as a JSON line.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditError(BaseModel):
	"""Error details attached to a failed operation."""

	kind: str
	message: str


class AuditEvent(BaseModel):
	"""A single audit log entry."""

	model_config = ConfigDict(protected_namespaces=())

	timestamp: datetime = Field(
	    default_factory=lambda: datetime.now(timezone.utc))
	run_id: str | None = None
	operation: str = Field(description="e.g. GenerateContent, SaveOutput")
	status: str = Field(description="InProgress, Success, Failure...")
	model_name: str | None = None
	duration_ms: int | None = None
	inputs: dict[str, Any] = Field(default_factory=dict)
	outputs: dict[str, Any] = Field(default_factory=dict)
	error: AuditError | None = None
	message: str | None = None


__all__ = ["AuditError", "AuditEvent"]
