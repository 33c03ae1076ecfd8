"""
Protocol definitions for dependency injection.

Defines Protocol classes for every collaborator the orchestrator talks
to, so tests and alternate front-ends can supply their own
implementations.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
	from ..models.audit import AuditEvent
	from ..models.outcome import GenerationResult
	from ..models.run_progress import ProgressStatus


class Client(Protocol):
	"""
	Protocol for a provider client.

	Implementations raise ``ProviderError`` already classified into the
	shared ``ErrorKind`` taxonomy.
	"""

	async def generate(self, prompt: str, model_id: str,
	                   options: Mapping[str, Any]) -> "GenerationResult":
		"""Generate content for a prompt."""
		...


class ResultWriter(Protocol):
	"""
	Protocol for persisting generated content.

	Called concurrently for different model names, never for the same one.
	"""

	async def write(self, model_name: str, content: str) -> str | None:
		"""Persist content, returning the output location if any."""
		...


class ProgressSink(Protocol):
	"""Fire-and-forget progress updates."""

	def update(self, model_name: str, status: "ProgressStatus",
	           message: str = "") -> None:
		...


class AuditSink(Protocol):
	"""Structured audit trail."""

	def log(self, event: "AuditEvent") -> None:
		...


class PromptBuilder(Protocol):
	"""Builds model and synthesis prompts."""

	def build(self, instructions: str, shared_context: str) -> str:
		...

	def build_synthesis(self, instructions: str,
	                    outputs: Sequence[tuple[str, str]]) -> str:
		"""Build a synthesis prompt from (model_name, content) pairs."""
		...


__all__ = [
    "Client",
    "ResultWriter",
    "ProgressSink",
    "AuditSink",
    "PromptBuilder",
]
