"""
Provider error classification.

Maps HTTP status codes, provider error payloads and error text onto the
shared ``ErrorKind`` taxonomy so adapters can raise ``ProviderError``
with the kind already decided.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..models.errors import ErrorKind, ProviderError
from ..utils.logging import sanitize_text

# Checked in order; the first matching group wins.
_MESSAGE_PATTERNS: list[tuple[ErrorKind, tuple[str, ...]]] = [
    (ErrorKind.INPUT_TOO_LARGE, ("token limit", "tokens exceeds",
                                 "maximum context length",
                                 "context_length_exceeded")),
    (ErrorKind.INSUFFICIENT_CREDITS, ("credit", "payment", "billing",
                                      "insufficient_quota")),
    (ErrorKind.RATE_LIMITED, ("rate limit", "quota", "too many requests")),
    (ErrorKind.AUTH, ("unauthorized", "invalid key", "api key",
                      "authentication", "auth")),
    (ErrorKind.CONTENT_FILTERED, ("safety", "content_filter",
                                  "content filter", "content policy",
                                  "blocked", "filtered", "moderation")),
    (ErrorKind.NETWORK_ERROR, ("network", "connection", "timeout")),
    (ErrorKind.CANCELLED, ("canceled", "cancelled", "deadline exceeded")),
]

_OPENAI_TYPES = {
    "authentication_error": ErrorKind.AUTH,
    "permission_error": ErrorKind.AUTH,
    "invalid_request_error": ErrorKind.INVALID_REQUEST,
    "rate_limit_error": ErrorKind.RATE_LIMITED,
    "server_error": ErrorKind.SERVER_ERROR,
}
_OPENAI_CODES = {
    "context_length_exceeded": ErrorKind.INPUT_TOO_LARGE,
    "insufficient_quota": ErrorKind.INSUFFICIENT_CREDITS,
    "content_filter": ErrorKind.CONTENT_FILTERED,
    "invalid_api_key": ErrorKind.AUTH,
    "rate_limit_exceeded": ErrorKind.RATE_LIMITED,
}
_GEMINI_STATUSES = {
    "UNAUTHENTICATED": ErrorKind.AUTH,
    "PERMISSION_DENIED": ErrorKind.AUTH,
    "RESOURCE_EXHAUSTED": ErrorKind.RATE_LIMITED,
    "INVALID_ARGUMENT": ErrorKind.INVALID_REQUEST,
    "FAILED_PRECONDITION": ErrorKind.INVALID_REQUEST,
    "NOT_FOUND": ErrorKind.INVALID_REQUEST,
    "OUT_OF_RANGE": ErrorKind.INPUT_TOO_LARGE,
    "UNAVAILABLE": ErrorKind.SERVER_ERROR,
    "INTERNAL": ErrorKind.SERVER_ERROR,
    "DEADLINE_EXCEEDED": ErrorKind.CANCELLED,
}


def classify_message(text: str) -> ErrorKind:
	"""Classify free-form error text; UNKNOWN when nothing matches."""
	lowered = text.lower()
	for kind, needles in _MESSAGE_PATTERNS:
		if any(n in lowered for n in needles):
			return kind
	return ErrorKind.UNKNOWN


def classify_status(status_code: int) -> ErrorKind:
	"""Classify an HTTP status code."""
	if status_code in (401, 403):
		return ErrorKind.AUTH
	if status_code == 402:
		return ErrorKind.INSUFFICIENT_CREDITS
	if status_code == 429:
		return ErrorKind.RATE_LIMITED
	if status_code == 413:
		return ErrorKind.INPUT_TOO_LARGE
	if status_code in (400, 404, 422):
		return ErrorKind.INVALID_REQUEST
	if status_code == 408:
		return ErrorKind.NETWORK_ERROR
	if 500 <= status_code < 600:
		return ErrorKind.SERVER_ERROR
	return ErrorKind.UNKNOWN


def _error_payload(body: Any) -> dict[str, Any]:
	if isinstance(body, list) and body:
		body = body[0]
	if isinstance(body, dict) and isinstance(body.get("error"), dict):
		return body["error"]
	return {}


def classify_openai_error(status_code: int, body: Any) -> tuple[ErrorKind, str]:
	"""
	Classify an OpenAI-compatible error response.

	Parameters:
		status_code: HTTP status.
		body: Decoded JSON body, or raw text.

	Returns:
		Tuple of error kind and message.
	"""
	err = _error_payload(body)
	message = str(err.get("message") or (body if isinstance(body, str) else
	                                     "") or f"HTTP {status_code}")
	code = str(err.get("code") or "")
	etype = str(err.get("type") or "")
	if code in _OPENAI_CODES:
		return _OPENAI_CODES[code], message
	# these statuses are more specific than the generic error type
	by_status = classify_status(status_code)
	if by_status in (ErrorKind.AUTH, ErrorKind.RATE_LIMITED,
	                 ErrorKind.INSUFFICIENT_CREDITS):
		return by_status, message
	by_message = classify_message(message)
	if by_message in (ErrorKind.INPUT_TOO_LARGE, ErrorKind.CONTENT_FILTERED,
	                  ErrorKind.INSUFFICIENT_CREDITS):
		return by_message, message
	if etype in _OPENAI_TYPES:
		return _OPENAI_TYPES[etype], message
	if by_status != ErrorKind.UNKNOWN:
		return by_status, message
	return by_message, message


def classify_gemini_error(status_code: int, body: Any) -> tuple[ErrorKind, str]:
	"""
	Classify a Gemini ``generateContent`` error response.

	Parameters:
		status_code: HTTP status.
		body: Decoded JSON body, or raw text.

	Returns:
		Tuple of error kind and message.
	"""
	err = _error_payload(body)
	message = str(err.get("message") or (body if isinstance(body, str) else
	                                     "") or f"HTTP {status_code}")
	by_message = classify_message(message)
	if by_message in (ErrorKind.CONTENT_FILTERED, ErrorKind.INPUT_TOO_LARGE):
		return by_message, message
	status = str(err.get("status") or "")
	if status in _GEMINI_STATUSES:
		kind = _GEMINI_STATUSES[status]
		# API key problems are reported as INVALID_ARGUMENT
		if kind == ErrorKind.INVALID_REQUEST and by_message == ErrorKind.AUTH:
			return ErrorKind.AUTH, message
		return kind, message
	by_status = classify_status(status_code)
	if by_status != ErrorKind.UNKNOWN:
		return by_status, message
	return by_message, message


def decode_body(response: httpx.Response) -> Any:
	"""Decoded JSON body, or the raw text when it is not JSON."""
	try:
		return response.json()
	except ValueError:
		return response.text


def provider_error(provider: str, kind: ErrorKind, message: str, *,
                   status_code: int | None = None,
                   partial_content: str | None = None) -> ProviderError:
	"""Build a ProviderError with a sanitized message."""
	return ProviderError(kind, sanitize_text(message), provider=provider,
	                     status_code=status_code,
	                     partial_content=partial_content)


__all__ = [
    "classify_message",
    "classify_status",
    "classify_openai_error",
    "classify_gemini_error",
    "decode_body",
    "provider_error",
]
