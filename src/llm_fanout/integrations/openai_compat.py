"""
OpenAI-compatible chat completions client.

Used for OpenAI itself and for OpenRouter, which speaks the same wire
format.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from ..models.errors import ErrorKind
from ..models.outcome import GenerationResult
from ..models.usage import TokenUsage
from ..utils.logging import get_logger
from .errors import classify_openai_error, decode_body, provider_error

logger = get_logger(__name__)

# Options forwarded verbatim into the request body.
PASSTHROUGH_OPTIONS = (
    "temperature",
    "top_p",
    "presence_penalty",
    "frequency_penalty",
    "max_tokens",
    "max_completion_tokens",
    "reasoning_effort",
    "seed",
    "stop",
)


def build_chat_body(prompt: str, model_id: str,
                    options: Mapping[str, Any]) -> dict[str, Any]:
	"""Build the chat completions request body."""
	body: dict[str, Any] = {
	    "model": model_id,
	    "messages": [{
	        "role": "user",
	        "content": prompt
	    }],
	}
	for key in PASSTHROUGH_OPTIONS:
		if options.get(key) is not None:
			body[key] = options[key]
	if "max_tokens" not in body and options.get("max_output_tokens"):
		body["max_tokens"] = options["max_output_tokens"]
	return body


def parse_chat_response(provider: str, data: Any) -> GenerationResult:
	"""
	Extract content, usage and finish reason from a completions response.

	Raises:
		ProviderError: If the payload carries an error or no choices.
	"""
	if not isinstance(data, dict):
		raise provider_error(provider, ErrorKind.UNKNOWN,
		                     "unexpected response payload")
	if isinstance(data.get("error"), dict):
		# OpenRouter reports some upstream failures with HTTP 200
		code = data["error"].get("code")
		status = code if isinstance(code, int) else 0
		kind, message = classify_openai_error(status, data)
		raise provider_error(provider, kind, message,
		                     status_code=status or None)
	choices = data.get("choices") or []
	if not choices:
		raise provider_error(provider, ErrorKind.UNKNOWN,
		                     "response contained no choices")
	choice = choices[0]
	message = choice.get("message") or {}
	content = message.get("content") or ""
	if isinstance(content, list):
		content = "".join(
		    p.get("text", "") for p in content if isinstance(p, dict))
	usage = data.get("usage")
	token_usage = None
	if isinstance(usage, dict):
		token_usage = TokenUsage(
		    input_tokens=int(usage.get("prompt_tokens") or 0),
		    output_tokens=int(usage.get("completion_tokens") or 0),
		)
	finish = choice.get("finish_reason")
	return GenerationResult(content=content, token_usage=token_usage,
	                        finish_reason=str(finish).lower() if finish else None)


class OpenAICompatibleClient:
	"""Client for ``POST {base_url}/chat/completions``."""

	def __init__(
	    self,
	    provider: str,
	    api_key: str | None,
	    base_url: str,
	    *,
	    timeout: float = 300.0,
	    http_client: httpx.AsyncClient | None = None,
	    extra_headers: Mapping[str, str] | None = None,
	) -> None:
		self.provider = provider
		self.base_url = base_url.rstrip("/")
		self._api_key = api_key
		headers = {"Content-Type": "application/json"}
		if api_key:
			headers["Authorization"] = f"Bearer {api_key}"
		headers.update(extra_headers or {})
		self._headers = headers
		self._client = http_client or httpx.AsyncClient(timeout=timeout)

	async def generate(self, prompt: str, model_id: str,
	                   options: Mapping[str, Any]) -> GenerationResult:
		if not self._api_key:
			raise provider_error(self.provider, ErrorKind.AUTH,
			                     f"no API key configured for {self.provider}")
		body = build_chat_body(prompt, model_id, options)
		url = f"{self.base_url}/chat/completions"
		logger.debug("%s request model=%s", self.provider, model_id)
		response = await self._client.post(url, json=body,
		                                   headers=self._headers)
		if response.status_code >= 400:
			kind, message = classify_openai_error(response.status_code,
			                                      decode_body(response))
			raise provider_error(self.provider, kind, message,
			                     status_code=response.status_code)
		return parse_chat_response(self.provider, decode_body(response))

	async def aclose(self) -> None:
		await self._client.aclose()


__all__ = [
    "OpenAICompatibleClient",
    "build_chat_body",
    "parse_chat_response",
]
