"""
Run parameters model.

Defines validated run parameters for CLI invocation and the per-run
options consumed by the orchestrator.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_core.core_schema import ValidationInfo

from .context_filter import split_values
from .task import ModelSpec


class RunParams(BaseModel):
	"""Validated run parameters for CLI/runner.

	Only non-None overrides are applied onto the environment-based
	configuration.
	"""

	instructions_file: Path = Field(description="Instructions file path")
	context_paths: list[Path] = Field(default_factory=list,
	                                  description="Files/dirs for context")
	models: list[str] = Field(default_factory=list,
	                          description="Model overrides")
	synthesis_model: Optional[str] = Field(default=None,
	                                       description="Synthesis model")
	models_file: Optional[str] = Field(default=None,
	                                   description="Model definition file")
	output_dir: Optional[str] = Field(default=None,
	                                  description="Output directory")
	timeout: Optional[int] = Field(default=None,
	                               description="Run deadline in seconds")
	max_concurrent: Optional[int] = Field(
	    default=None, description="Max concurrent requests per provider")
	rpm: Optional[int] = Field(default=None,
	                           description="Requests per minute override")
	audit_log: Optional[str] = Field(default=None,
	                                 description="Audit log file")
	include: Optional[list[str]] = Field(
	    default=None, description="Extensions to include in context")
	exclude: Optional[list[str]] = Field(
	    default=None, description="Extensions to exclude from context")
	exclude_names: Optional[list[str]] = Field(
	    default=None, description="File/dir names to exclude from context")

	@field_validator('instructions_file')
	@classmethod
	def validate_instructions_file(cls, v: Path) -> Path:
		if not v.is_file():
			raise ValueError(f"instructions file not found: {v}")
		return v

	@field_validator('include', 'exclude', 'exclude_names', mode='before')
	@classmethod
	def split_csv(cls, v: Any) -> Optional[list[str]]:
		if v is None:
			return None
		return list(split_values(v))

	@field_validator('timeout', 'max_concurrent', 'rpm')
	@classmethod
	def validate_positive(cls, v: Optional[int],
	                      info: ValidationInfo) -> Optional[int]:
		if v is None:
			return v
		if v <= 0:
			raise ValueError(f"{info.field_name} must be > 0")
		return v


class RunOptions(BaseModel):
	"""Per-run options for ``Orchestrator.execute``."""

	synthesis_model: ModelSpec | None = None
	deadline_seconds: float | None = Field(
	    default=None, description="Run-wide deadline; None disables it")
	run_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12],
	                    description="Correlation id for logs and audit")

	@field_validator('deadline_seconds')
	@classmethod
	def validate_deadline(cls, v: float | None) -> float | None:
		if v is not None and v <= 0:
			raise ValueError("deadline_seconds must be > 0")
		return v


__all__ = ["RunParams", "RunOptions"]
