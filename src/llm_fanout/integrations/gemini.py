"""
Gemini ``generateContent`` client.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from ..models.errors import ErrorKind
from ..models.outcome import GenerationResult
from ..models.usage import TokenUsage
from ..utils.logging import get_logger
from .errors import classify_gemini_error, decode_body, provider_error

logger = get_logger(__name__)

# Option name -> generationConfig field
GENERATION_CONFIG_OPTIONS = {
    "temperature": "temperature",
    "top_p": "topP",
    "top_k": "topK",
    "max_output_tokens": "maxOutputTokens",
    "max_tokens": "maxOutputTokens",
    "stop": "stopSequences",
    "seed": "seed",
}


def build_generate_body(prompt: str,
                        options: Mapping[str, Any]) -> dict[str, Any]:
	"""Build the generateContent request body."""
	config: dict[str, Any] = {}
	for key, field in GENERATION_CONFIG_OPTIONS.items():
		value = options.get(key)
		if value is None or field in config:
			continue
		if field == "stopSequences" and isinstance(value, str):
			value = [value]
		config[field] = value
	body: dict[str, Any] = {
	    "contents": [{
	        "role": "user",
	        "parts": [{
	            "text": prompt
	        }]
	    }],
	}
	if config:
		body["generationConfig"] = config
	return body


def parse_generate_response(provider: str, data: Any) -> GenerationResult:
	"""
	Extract content, usage and finish reason from a Gemini response.

	A prompt blocked before generation (``promptFeedback.blockReason``)
	is reported as a content-filter failure.

	Raises:
		ProviderError: If the payload has no candidates.
	"""
	if not isinstance(data, dict):
		raise provider_error(provider, ErrorKind.UNKNOWN,
		                     "unexpected response payload")
	usage_meta = data.get("usageMetadata")
	token_usage = None
	if isinstance(usage_meta, dict):
		token_usage = TokenUsage(
		    input_tokens=int(usage_meta.get("promptTokenCount") or 0),
		    output_tokens=int(usage_meta.get("candidatesTokenCount") or 0),
		)
	candidates = data.get("candidates") or []
	if not candidates:
		block = (data.get("promptFeedback") or {}).get("blockReason")
		if block:
			raise provider_error(provider, ErrorKind.CONTENT_FILTERED,
			                     f"prompt blocked: {block}")
		raise provider_error(provider, ErrorKind.UNKNOWN,
		                     "response contained no candidates")
	candidate = candidates[0]
	parts = (candidate.get("content") or {}).get("parts") or []
	content = "".join(
	    p.get("text", "") for p in parts
	    if isinstance(p, dict) and not p.get("thought"))
	finish = candidate.get("finishReason")
	return GenerationResult(content=content, token_usage=token_usage,
	                        finish_reason=str(finish).lower() if finish else None)


class GeminiClient:
	"""Client for ``POST {base_url}/models/{model}:generateContent``."""

	provider = "gemini"

	def __init__(
	    self,
	    api_key: str | None,
	    base_url: str = "https://generativelanguage.googleapis.com/v1beta",
	    *,
	    timeout: float = 300.0,
	    http_client: httpx.AsyncClient | None = None,
	) -> None:
		self.base_url = base_url.rstrip("/")
		self._api_key = api_key
		self._client = http_client or httpx.AsyncClient(timeout=timeout)

	async def generate(self, prompt: str, model_id: str,
	                   options: Mapping[str, Any]) -> GenerationResult:
		if not self._api_key:
			raise provider_error(self.provider, ErrorKind.AUTH,
			                     "no API key configured for gemini")
		if not prompt:
			raise provider_error(self.provider, ErrorKind.INVALID_REQUEST,
			                     "prompt cannot be empty")
		model = model_id if model_id.startswith("models/") else (
		    f"models/{model_id}")
		url = f"{self.base_url}/{model}:generateContent"
		logger.debug("gemini request model=%s", model_id)
		response = await self._client.post(
		    url,
		    json=build_generate_body(prompt, options),
		    headers={"x-goog-api-key": self._api_key},
		)
		if response.status_code >= 400:
			kind, message = classify_gemini_error(response.status_code,
			                                      decode_body(response))
			raise provider_error(self.provider, kind, message,
			                     status_code=response.status_code)
		return parse_generate_response(self.provider, decode_body(response))

	async def aclose(self) -> None:
		await self._client.aclose()


__all__ = [
    "GeminiClient",
    "build_generate_body",
    "parse_generate_response",
]
