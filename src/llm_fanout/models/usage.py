from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field


class TokenUsage(BaseModel):
	"""Token counts as reported by the provider for one call.

	Never derived locally; adapters copy whatever the provider returns.
	"""

	model_config = ConfigDict(frozen=True)

	input_tokens: int = Field(0, ge=0, description="Prompt tokens")
	output_tokens: int = Field(0, ge=0, description="Completion tokens")

	@property
	def total_tokens(self) -> int:
		return self.input_tokens + self.output_tokens


def aggregate(usages: Iterable[TokenUsage | None]) -> TokenUsage:
	"""Sum token usage across calls, ignoring missing entries."""
	input_tokens = 0
	output_tokens = 0
	for u in usages:
		if u is None:
			continue
		input_tokens += u.input_tokens
		output_tokens += u.output_tokens
	return TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens)


def format_duration(seconds: float) -> str:
	"""Format duration in seconds to a human-readable string.

	Returns a string like "1m 23s", "45s", "2h 5m" or "850ms".

	Parameters:
		seconds: Duration in seconds.

	Returns:
		Formatted duration string.
	"""
	if seconds < 0:
		return "0s"
	if seconds < 1:
		return f"{int(seconds * 1000)}ms"
	total_seconds = int(seconds)
	hours = total_seconds // 3600
	minutes = (total_seconds % 3600) // 60
	secs = total_seconds % 60
	if hours > 0:
		return f"{hours}h {minutes}m"
	elif minutes > 0:
		return f"{minutes}m {secs}s"
	else:
		return f"{secs}s"


__all__ = ["TokenUsage", "aggregate", "format_duration"]
