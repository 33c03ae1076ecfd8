"""
Error taxonomy shared by the executor, aggregator and synthesis stage.

Provider adapters classify their failures into one ``ErrorKind`` before
raising ``ProviderError``; nothing downstream of the adapters invents new
kinds.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
	"""Categories every per-model failure is mapped into."""

	AUTH = "auth"
	RATE_LIMITED = "rate_limited"
	INVALID_REQUEST = "invalid_request"
	SERVER_ERROR = "server_error"
	NETWORK_ERROR = "network_error"
	INPUT_TOO_LARGE = "input_too_large"
	CONTENT_FILTERED = "content_filtered"
	INSUFFICIENT_CREDITS = "insufficient_credits"
	CANCELLED = "cancelled"
	WRITE_ERROR = "write_error"
	UNKNOWN = "unknown"


class LLMFanoutError(Exception):
	"""Base class for errors raised by llm_fanout."""


class ConfigurationError(LLMFanoutError):
	"""Raised before any work starts when a run cannot be configured."""


class RunCancelledError(LLMFanoutError):
	"""Raised at a suspension point once the run context has ended."""

	def __init__(self, reason: str = "cancelled") -> None:
		super().__init__(reason)
		self.reason = reason


class ProviderError(LLMFanoutError):
	"""
	A provider failure already classified into the shared taxonomy.

	Attributes:
		kind: Classified error kind.
		provider: Provider name the error originated from.
		status_code: HTTP status code when one was available.
		partial_content: Content returned alongside a non-fatal error
			(e.g. a filtered but usable answer).
	"""

	def __init__(
	    self,
	    kind: ErrorKind,
	    message: str,
	    *,
	    provider: str | None = None,
	    status_code: int | None = None,
	    partial_content: str | None = None,
	) -> None:
		super().__init__(message)
		self.kind = kind
		self.message = message
		self.provider = provider
		self.status_code = status_code
		self.partial_content = partial_content

	def __str__(self) -> str:
		prefix = f"{self.provider}: " if self.provider else ""
		return f"{prefix}{self.message}"


class DuplicateOutcomeError(ValueError):
	"""Raised when an outcome is recorded twice for the same model."""


class UnknownModelError(ValueError):
	"""Raised when an outcome is recorded for a model outside the run."""


__all__ = [
    "ErrorKind",
    "LLMFanoutError",
    "ConfigurationError",
    "RunCancelledError",
    "ProviderError",
    "DuplicateOutcomeError",
    "UnknownModelError",
]
