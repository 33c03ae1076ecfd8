from __future__ import annotations

from pathlib import Path
from typing import Any, TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator
from pydantic_core.core_schema import ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

from .context_filter import ContextFilter, DEFAULT_MAX_FILE_BYTES
from .task import ModelSpec

if TYPE_CHECKING:
	from .run_params import RunParams

# Requests per minute applied per provider unless RATE_LIMIT_RPM is set.
PROVIDER_DEFAULT_RPM: dict[str, int] = {
    "openai": 3000,
    "gemini": 60,
    "openrouter": 20,
}


def load_env(env_file: str | Path | None = None) -> None:
	"""Load environment variables from an `.env` file if present."""
	env_path = Path(env_file) if env_file else Path(".env")
	if env_path.exists():
		load_dotenv(env_path)


def _split_list(v: Any) -> list[str]:
	if v is None or v == "":
		return []
	if isinstance(v, (list, tuple)):
		return [str(p).strip() for p in v if str(p).strip()]
	# fallback: comma-separated string
	return [p.strip() for p in str(v).split(",") if p.strip()]


class RateLimitSettings(BaseModel):
	"""Configuration for one rate limiter."""

	max_concurrent: int = Field(5, ge=1)
	requests_per_interval: int | None = Field(default=None, ge=1)
	interval_seconds: float = Field(60.0, gt=0)


class Config(BaseSettings):
	"""Runtime configuration loaded from environment variables."""

	model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

	openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY",
	                                   description="OpenAI API key")
	gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY",
	                                   description="Gemini API key")
	openrouter_api_key: str | None = Field(
	    default=None,
	    alias="OPENROUTER_API_KEY",
	    description="OpenRouter API key",
	)
	openai_base_url: str = Field(
	    "https://api.openai.com/v1",
	    alias="OPENAI_BASE_URL",
	    description="OpenAI-compatible API base URL",
	)
	openrouter_base_url: str = Field(
	    "https://openrouter.ai/api/v1",
	    alias="OPENROUTER_BASE_URL",
	    description="OpenRouter API base URL",
	)
	gemini_base_url: str = Field(
	    "https://generativelanguage.googleapis.com/v1beta",
	    alias="GEMINI_BASE_URL",
	    description="Gemini API base URL",
	)
	models: Any = Field(
	    default_factory=list,
	    alias="FANOUT_MODELS",
	    description="Models to query (provider:model_id, comma-separated)",
	)
	synthesis_model: str | None = Field(
	    default=None,
	    alias="SYNTHESIS_MODEL",
	    description="Model used to synthesize the outputs",
	)
	models_file: str | None = Field(
	    default=None,
	    alias="MODELS_FILE",
	    description="YAML/JSON model definition file",
	)
	output_dir: str = Field("output", alias="OUTPUT_DIR",
	                        description="Base output directory")
	max_concurrent_requests: int = Field(
	    5,
	    alias="MAX_CONCURRENT_REQUESTS",
	    description="Max in-flight requests per provider",
	)
	rate_limit_rpm: int | None = Field(
	    default=None,
	    alias="RATE_LIMIT_RPM",
	    description="Requests per minute for every provider (overrides defaults)",
	)
	run_timeout_seconds: int | None = Field(
	    default=None,
	    alias="RUN_TIMEOUT_SECONDS",
	    description="Deadline for the whole run",
	)
	request_timeout_seconds: int = Field(
	    300,
	    alias="REQUEST_TIMEOUT_SECONDS",
	    description="HTTP timeout for a single provider request",
	)
	audit_log_file: str | None = Field(
	    default=None,
	    alias="AUDIT_LOG_FILE",
	    description="JSON lines audit log path",
	)
	context_include: Any = Field(
	    default_factory=list,
	    alias="CONTEXT_INCLUDE",
	    description="Only send files with these extensions (comma-separated)",
	)
	context_exclude: Any = Field(
	    default=None,
	    alias="CONTEXT_EXCLUDE",
	    description="Extensions never sent (replaces the defaults)",
	)
	context_exclude_names: Any = Field(
	    default=None,
	    alias="CONTEXT_EXCLUDE_NAMES",
	    description="File or directory names never sent (replaces the defaults)",
	)
	max_context_file_bytes: int = Field(
	    DEFAULT_MAX_FILE_BYTES,
	    alias="MAX_CONTEXT_FILE_BYTES",
	    description="Context files larger than this are skipped",
	)
	log_level: str = Field("info", alias="LOG_LEVEL",
	                       description="Log level")

	@field_validator("models", mode="before")
	@classmethod
	def split_models(cls, v: Any) -> list[str]:
		"""Normalize model strings to a list regardless of input format."""
		return _split_list(v)

	@field_validator("context_include", mode="before")
	@classmethod
	def split_include(cls, v: Any) -> list[str]:
		return _split_list(v)

	@field_validator("context_exclude", "context_exclude_names", mode="before")
	@classmethod
	def split_excludes(cls, v: Any) -> list[str] | None:
		# unset keeps the built-in defaults
		if v is None or v == "":
			return None
		return _split_list(v)

	@field_validator("max_concurrent_requests", "rate_limit_rpm",
	                 "run_timeout_seconds", "request_timeout_seconds",
	                 "max_context_file_bytes")
	@classmethod
	def validate_positive(cls, v: Any, info: ValidationInfo) -> Any:
		if v is None:
			return v
		if int(v) <= 0:
			raise ValueError(f"{info.field_name} must be > 0")
		return v

	@property
	def output_path(self) -> Path:
		"""Return output_dir as Path."""
		return Path(self.output_dir)

	def api_key_for(self, provider: str) -> str | None:
		return getattr(self, f"{provider}_api_key", None)

	def base_url_for(self, provider: str) -> str | None:
		return getattr(self, f"{provider}_base_url", None)

	def provider_rpm(self, provider: str) -> int | None:
		"""Requests-per-minute cap for a provider, None when uncapped."""
		if self.rate_limit_rpm is not None:
			return self.rate_limit_rpm
		return PROVIDER_DEFAULT_RPM.get(provider)

	def model_specs(self) -> list[ModelSpec]:
		"""Parse the configured model strings into specs."""
		return [ModelSpec.parse(m) for m in self.models]

	def synthesis_spec(self) -> ModelSpec | None:
		if not self.synthesis_model:
			return None
		return ModelSpec.parse(self.synthesis_model)

	def context_filter(self) -> ContextFilter:
		"""Build the context selection rules from this configuration."""
		values: dict[str, Any] = {
		    "include_exts": self.context_include,
		    "max_file_bytes": self.max_context_file_bytes,
		}
		if self.context_exclude is not None:
			values["exclude_exts"] = self.context_exclude
		if self.context_exclude_names is not None:
			values["exclude_names"] = self.context_exclude_names
		return ContextFilter(**values)

	def apply_overrides(self, run_params: "RunParams") -> None:
		"""Apply CLI overrides from RunParams onto this config.

		Only non-None fields in run_params are applied, preserving
		environment-based defaults for anything the user didn't explicitly set.

		Parameters:
			run_params: Validated run parameters with optional overrides.
		"""
		_OVERRIDES: list[tuple[str, str]] = [
		    ("synthesis_model", "synthesis_model"),
		    ("models_file", "models_file"),
		    ("output_dir", "output_dir"),
		    ("timeout", "run_timeout_seconds"),
		    ("max_concurrent", "max_concurrent_requests"),
		    ("rpm", "rate_limit_rpm"),
		    ("audit_log", "audit_log_file"),
		    ("include", "context_include"),
		    ("exclude", "context_exclude"),
		    ("exclude_names", "context_exclude_names"),
		]
		for param_field, config_field in _OVERRIDES:
			value = getattr(run_params, param_field)
			if value is not None:
				setattr(self, config_field, value)
		if run_params.models:
			self.models = list(run_params.models)


__all__ = ["Config", "RateLimitSettings", "load_env", "PROVIDER_DEFAULT_RPM"]
