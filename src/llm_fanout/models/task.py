"""
Model definition and task models.

``ModelSpec`` is one configured model as resolved by the configuration
layer; ``ModelTask`` is the immutable unit of work the orchestrator builds
from it for a single run.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Scalar = Union[str, int, float, bool, None]

KNOWN_PROVIDERS = ("openai", "gemini", "openrouter")

_OPENAI_PREFIXES = ("gpt-", "o1", "o3", "o4", "chatgpt-")


def infer_provider(model_id: str) -> str:
	"""
	Infer the provider for a bare model identifier.

	Parameters:
		model_id: Model identifier such as ``gpt-4.1`` or
			``meta-llama/llama-4-maverick``.

	Returns:
		Provider name.

	Raises:
		ValueError: If the provider cannot be inferred.
	"""
	lowered = model_id.lower()
	if "/" in lowered:
		return "openrouter"
	if lowered.startswith("gemini"):
		return "gemini"
	if lowered.startswith(_OPENAI_PREFIXES):
		return "openai"
	raise ValueError(
	    f"cannot infer provider for model '{model_id}', use provider:model")


class ModelSpec(BaseModel):
	"""One configured model eligible to receive the shared prompt."""

	model_config = ConfigDict(frozen=True, protected_namespaces=())

	name: str = Field(description="Unique model name within a run")
	provider: str = Field(description="Provider name used to pick a client")
	model_id: str = Field(
	    default="",
	    description="Identifier sent to the provider (defaults to name)",
	)
	options: dict[str, Scalar] = Field(
	    default_factory=dict,
	    description="Opaque generation options (temperature, max_tokens...)",
	)
	rate_limit_key: str | None = Field(
	    default=None,
	    description="Rate limiter key (defaults to provider)",
	)

	@field_validator("name", "provider")
	@classmethod
	def validate_not_blank(cls, v: str) -> str:
		if not v or not v.strip():
			raise ValueError("must not be blank")
		return v.strip()

	@field_validator("provider")
	@classmethod
	def normalize_provider(cls, v: str) -> str:
		return v.lower()

	@model_validator(mode="before")
	@classmethod
	def default_model_id(cls, data: Any) -> Any:
		if isinstance(data, dict) and not data.get("model_id"):
			data = {**data, "model_id": data.get("name", "")}
		return data

	@property
	def limiter_key(self) -> str:
		return self.rate_limit_key or self.provider

	@classmethod
	def parse(cls, value: str) -> "ModelSpec":
		"""
		Parse ``provider:model_id`` or a bare model id into a spec.

		Parameters:
			value: Model string from the CLI or environment.

		Returns:
			ModelSpec named after the model id.
		"""
		text = value.strip()
		provider, sep, model_id = text.partition(":")
		if sep and provider.lower() in KNOWN_PROVIDERS:
			return cls(name=model_id, provider=provider, model_id=model_id)
		return cls(name=text, provider=infer_provider(text), model_id=text)


class ModelTask(BaseModel):
	"""One unit of work: a fully assembled prompt for one model."""

	model_config = ConfigDict(frozen=True, protected_namespaces=())

	model_name: str
	provider: str
	model_id: str
	prompt: str
	options: dict[str, Scalar] = Field(default_factory=dict)
	rate_limit_key: str

	@classmethod
	def from_spec(cls, spec: ModelSpec, prompt: str,
	              name: str | None = None) -> "ModelTask":
		return cls(
		    model_name=name or spec.name,
		    provider=spec.provider,
		    model_id=spec.model_id,
		    prompt=prompt,
		    options=dict(spec.options),
		    rate_limit_key=spec.limiter_key,
		)


__all__ = [
    "Scalar",
    "KNOWN_PROVIDERS",
    "infer_provider",
    "ModelSpec",
    "ModelTask",
]
