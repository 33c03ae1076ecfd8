"""
Model definition file loader.

Reads a YAML (or JSON) file listing the models to query, an optional
synthesis model and optional per-key rate limits::

    models:
      - gpt-4.1
      - gemini:gemini-2.5-pro
      - name: llama
        provider: openrouter
        model_id: meta-llama/llama-4-maverick
        options: {temperature: 0.2}
    synthesis_model: gemini-2.5-pro
    rate_limits:
      openrouter: {max_concurrent: 2, requests_per_interval: 20}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..models.config import RateLimitSettings
from ..models.errors import ConfigurationError
from ..models.task import ModelSpec
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ModelsFile(BaseModel):
	"""Parsed contents of a model definition file."""

	models: list[ModelSpec] = Field(default_factory=list)
	synthesis_model: ModelSpec | None = None
	rate_limits: dict[str, RateLimitSettings] = Field(default_factory=dict)


def _to_spec(entry: Any) -> ModelSpec:
	if isinstance(entry, str):
		return ModelSpec.parse(entry)
	if isinstance(entry, dict):
		data = dict(entry)
		if not data.get("provider"):
			model_id = data.get("model_id") or data.get("name") or ""
			data["provider"] = ModelSpec.parse(model_id).provider
		if not data.get("name"):
			data["name"] = data.get("model_id", "")
		return ModelSpec.model_validate(data)
	raise ValueError(f"unsupported model entry: {entry!r}")


def parse_models_data(data: Any) -> ModelsFile:
	"""
	Validate already-decoded model definition data.

	Parameters:
		data: Mapping decoded from YAML/JSON.

	Returns:
		Parsed ModelsFile.

	Raises:
		ConfigurationError: If the structure or any entry is invalid.
	"""
	if data is None:
		data = {}
	if not isinstance(data, dict):
		raise ConfigurationError("models file must contain a mapping")
	try:
		models = [_to_spec(e) for e in data.get("models") or []]
		synthesis = data.get("synthesis_model")
		return ModelsFile(
		    models=models,
		    synthesis_model=_to_spec(synthesis) if synthesis else None,
		    rate_limits=data.get("rate_limits") or {},
		)
	except (ValidationError, ValueError) as exc:
		raise ConfigurationError(f"invalid models file: {exc}") from exc


def load_models_file(path: str | Path) -> ModelsFile:
	"""
	Load a model definition file.

	Parameters:
		path: YAML or JSON file path.

	Returns:
		Parsed ModelsFile.

	Raises:
		ConfigurationError: If the file is missing or invalid.
	"""
	p = Path(path)
	if not p.is_file():
		raise ConfigurationError(f"models file not found: {p}")
	try:
		data = yaml.safe_load(p.read_text(encoding="utf-8"))
	except yaml.YAMLError as exc:
		raise ConfigurationError(f"cannot parse models file {p}: {exc}") from exc
	parsed = parse_models_data(data)
	logger.debug("loaded %d models from %s", len(parsed.models), p)
	return parsed


__all__ = ["ModelsFile", "load_models_file", "parse_models_data"]
