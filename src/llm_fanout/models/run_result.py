"""
Run result models.

Defines the frozen aggregate of per-model outcomes and the top-level
value returned by ``Orchestrator.execute``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .outcome import ModelOutcome, OutcomeStatus, SynthesisResult
from .usage import TokenUsage, aggregate


class OverallStatus(str, Enum):
	"""Summary status of a whole run."""

	ALL_SUCCEEDED = "all_succeeded"
	PARTIAL_FAILURE = "partial_failure"
	ALL_FAILED = "all_failed"
	CANCELLED = "cancelled"


class AggregateResult(BaseModel):
	"""
	Read-only snapshot of every model outcome of a run.

	``outcomes`` iterates in configured model order, independent of the
	order in which tasks completed.
	"""

	model_config = ConfigDict(frozen=True)

	outcomes: dict[str, ModelOutcome] = Field(default_factory=dict)

	def _count(self, status: OutcomeStatus) -> int:
		return sum(1 for o in self.outcomes.values() if o.status == status)

	@computed_field
	@property
	def success_count(self) -> int:
		return self._count(OutcomeStatus.SUCCESS)

	@computed_field
	@property
	def partial_count(self) -> int:
		return self._count(OutcomeStatus.PARTIAL_SUCCESS)

	@computed_field
	@property
	def failure_count(self) -> int:
		return self._count(OutcomeStatus.FAILURE)

	@computed_field
	@property
	def skipped_count(self) -> int:
		return self._count(OutcomeStatus.SKIPPED)

	def __len__(self) -> int:
		return len(self.outcomes)

	def in_report_order(self) -> list[ModelOutcome]:
		return list(self.outcomes.values())

	def get(self, model_name: str) -> ModelOutcome | None:
		return self.outcomes.get(model_name)

	def successful(self) -> list[ModelOutcome]:
		"""Success and PartialSuccess outcomes in configured order."""
		return [o for o in self.outcomes.values() if o.succeeded]

	def total_usage(self) -> TokenUsage:
		return aggregate(o.token_usage for o in self.outcomes.values())


class RunResult(BaseModel):
	"""Top-level result of one run."""

	run_id: str
	aggregate: AggregateResult
	synthesis: SynthesisResult | None = None
	overall_status: OverallStatus
	cancel_reason: str | None = None
	started_at: datetime
	finished_at: datetime

	@property
	def duration_seconds(self) -> float:
		return (self.finished_at - self.started_at).total_seconds()

	def first_failure(self) -> ModelOutcome | None:
		"""First failed outcome in configured order, then synthesis."""
		for outcome in self.aggregate.in_report_order():
			if outcome.status == OutcomeStatus.FAILURE:
				return outcome
		if self.synthesis and self.synthesis.status == OutcomeStatus.FAILURE:
			return self.synthesis
		return None


__all__ = ["OverallStatus", "AggregateResult", "RunResult"]
