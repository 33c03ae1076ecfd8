"""
Concurrency-safe collector of per-model outcomes.
"""

from __future__ import annotations

import threading
from typing import Iterable

from ..models.errors import DuplicateOutcomeError, UnknownModelError
from ..models.outcome import ModelOutcome
from ..models.run_result import AggregateResult
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ResultAggregator:
	"""
	Collects exactly one outcome per configured model.

	``record`` may be called from any task or thread; ``snapshot`` is read
	after the orchestrator's barrier and is ordered by the configured model
	sequence, not by completion time.
	"""

	def __init__(self, model_names: Iterable[str]) -> None:
		self._order = list(model_names)
		if len(set(self._order)) != len(self._order):
			raise ValueError("model names must be unique")
		self._known = set(self._order)
		self._outcomes: dict[str, ModelOutcome] = {}
		self._lock = threading.Lock()

	@property
	def model_names(self) -> list[str]:
		return list(self._order)

	def record(self, outcome: ModelOutcome) -> None:
		"""
		Store the outcome for ``outcome.model_name``.

		Raises:
			UnknownModelError: The model is not part of this run.
			DuplicateOutcomeError: An outcome was already recorded; this
				means a task ran twice.
		"""
		name = outcome.model_name
		with self._lock:
			if name not in self._known:
				logger.error("outcome for unknown model %s rejected", name)
				raise UnknownModelError(f"unknown model: {name}")
			if name in self._outcomes:
				logger.error(
				    "duplicate outcome for %s rejected (existing=%s, new=%s)",
				    name, self._outcomes[name].status.value,
				    outcome.status.value)
				raise DuplicateOutcomeError(
				    f"outcome already recorded for model: {name}")
			self._outcomes[name] = outcome

	def has(self, model_name: str) -> bool:
		with self._lock:
			return model_name in self._outcomes

	def missing(self) -> list[str]:
		"""Configured models without an outcome, in configured order."""
		with self._lock:
			return [n for n in self._order if n not in self._outcomes]

	def snapshot(self) -> AggregateResult:
		"""Frozen copy of the recorded outcomes in configured order."""
		with self._lock:
			ordered = {
			    n: self._outcomes[n]
			    for n in self._order if n in self._outcomes
			}
		return AggregateResult(outcomes=ordered)


__all__ = ["ResultAggregator"]
