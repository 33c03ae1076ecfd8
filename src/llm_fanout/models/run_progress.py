"""
Run progress tracking models.

Defines the status vocabulary emitted to progress sinks while a model
task moves through its lifecycle.
"""

from __future__ import annotations

from enum import Enum

from .outcome import OutcomeStatus


class ProgressStatus(str, Enum):
	"""
	Lifecycle states reported for a model.

	QUEUED: Task created, not yet holding a rate-limit slot.
	WAITING: Blocked on the rate limiter.
	RUNNING: Provider call in flight.
	SUCCEEDED / PARTIAL / FAILED / SKIPPED: Final states.
	"""

	QUEUED = "queued"
	WAITING = "waiting"
	RUNNING = "running"
	SUCCEEDED = "succeeded"
	PARTIAL = "partial"
	FAILED = "failed"
	SKIPPED = "skipped"

	@property
	def is_final(self) -> bool:
		return self in (ProgressStatus.SUCCEEDED, ProgressStatus.PARTIAL,
		                ProgressStatus.FAILED, ProgressStatus.SKIPPED)

	@classmethod
	def from_outcome(cls, status: OutcomeStatus) -> "ProgressStatus":
		return {
		    OutcomeStatus.SUCCESS: cls.SUCCEEDED,
		    OutcomeStatus.PARTIAL_SUCCESS: cls.PARTIAL,
		    OutcomeStatus.FAILURE: cls.FAILED,
		    OutcomeStatus.SKIPPED: cls.SKIPPED,
		}[status]


__all__ = ["ProgressStatus"]
