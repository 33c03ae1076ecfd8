"""
Per-model outcome models.

A ``ModelOutcome`` is the terminal, immutable result of attempting one
model. ``SynthesisResult`` has the same shape plus the list of models
whose output fed the synthesis prompt.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import ErrorKind
from .usage import TokenUsage


class OutcomeStatus(str, Enum):
	"""
	Terminal status of one model task.

	SUCCESS: Content generated and written.
	PARTIAL_SUCCESS: Usable but truncated or filtered content.
	FAILURE: No usable result; ``error_kind`` says why.
	SKIPPED: Never started because the run was cancelled.
	"""

	SUCCESS = "success"
	PARTIAL_SUCCESS = "partial_success"
	FAILURE = "failure"
	SKIPPED = "skipped"


class GenerationResult(BaseModel):
	"""Raw response of one provider call, before classification."""

	model_config = ConfigDict(frozen=True, protected_namespaces=())

	content: str = ""
	token_usage: TokenUsage | None = None
	finish_reason: str | None = Field(
	    default=None, description="Provider finish reason, lowercased")


class ModelOutcome(BaseModel):
	"""Result of one ModelTask."""

	model_config = ConfigDict(frozen=True, protected_namespaces=())

	model_name: str
	status: OutcomeStatus
	content: str | None = None
	error_kind: ErrorKind | None = None
	error_detail: str | None = Field(
	    default=None, description="Sanitized error or warning message")
	token_usage: TokenUsage | None = None
	finish_reason: str | None = None
	duration_seconds: float = 0.0
	output_path: str | None = None

	@model_validator(mode="after")
	def check_status_fields(self) -> "ModelOutcome":
		if self.status == OutcomeStatus.SUCCESS:
			if not self.content:
				raise ValueError("success outcome requires content")
			if self.error_kind is not None:
				raise ValueError("success outcome cannot carry an error kind")
		elif self.status == OutcomeStatus.PARTIAL_SUCCESS:
			if not self.content:
				raise ValueError("partial outcome requires content")
		elif self.status == OutcomeStatus.FAILURE:
			if self.error_kind is None:
				raise ValueError("failure outcome requires an error kind")
		return self

	@property
	def succeeded(self) -> bool:
		"""True for Success and PartialSuccess."""
		return self.status in (OutcomeStatus.SUCCESS,
		                       OutcomeStatus.PARTIAL_SUCCESS)

	@property
	def cancelled(self) -> bool:
		return (self.status == OutcomeStatus.SKIPPED
		        or self.error_kind == ErrorKind.CANCELLED)

	@classmethod
	def skipped(cls, model_name: str,
	            detail: str = "run cancelled before start") -> "ModelOutcome":
		return cls(model_name=model_name, status=OutcomeStatus.SKIPPED,
		           error_detail=detail)


class SynthesisResult(ModelOutcome):
	"""Outcome of the synthesis call plus the models it combined."""

	source_models: list[str] = Field(default_factory=list)

	@classmethod
	def from_outcome(cls, outcome: ModelOutcome,
	                 source_models: list[str]) -> "SynthesisResult":
		return cls(**outcome.model_dump(), source_models=list(source_models))


__all__ = [
    "OutcomeStatus",
    "GenerationResult",
    "ModelOutcome",
    "SynthesisResult",
]
