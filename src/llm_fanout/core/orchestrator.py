"""
Run orchestrator.

Fans one prompt out to every configured model, waits for all of them at a
single barrier, then optionally synthesizes the usable outputs and
returns one ``RunResult``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Optional, Sequence

from ..models.errors import ConfigurationError, ErrorKind, RunCancelledError
from ..models.outcome import ModelOutcome, OutcomeStatus, SynthesisResult
from ..models.run_params import RunOptions
from ..models.run_result import AggregateResult, OverallStatus, RunResult
from ..models.task import ModelSpec, ModelTask
from ..prompting import XmlPromptBuilder
from ..utils.logging import get_logger, sanitize_text
from ..utils.paths import sanitize_filename
from ..utils.protocols import (
    AuditSink,
    Client,
    ProgressSink,
    PromptBuilder,
    ResultWriter,
)
from .aggregator import ResultAggregator
from .context import RunContext
from .executor import run_model
from .rate_limit import RateLimiterPool
from .synthesis import run_synthesis, synthesis_task_name

logger = get_logger(__name__)


class RunState(str, Enum):
	"""Lifecycle of one orchestrator run."""

	INITIALIZED = "initialized"
	FANNING_OUT = "fanning_out"
	AGGREGATING = "aggregating"
	SYNTHESIZING = "synthesizing"
	COMPLETED = "completed"
	CANCELLED = "cancelled"


def compute_overall_status(aggregate: AggregateResult,
                           synthesis: Optional[SynthesisResult],
                           synthesis_configured: bool,
                           cancelled: bool) -> OverallStatus:
	"""
	Derive the run status from the final outcomes.

	Parameters:
		aggregate: Per-model outcomes.
		synthesis: Synthesis result, if the stage ran.
		synthesis_configured: Whether a synthesis model was requested.
		cancelled: Whether the run context was cancelled.

	Returns:
		Overall status; Cancelled wins when cancellation cut any work short.
	"""
	outcomes = aggregate.in_report_order()
	if cancelled:
		cut_short = any(o.cancelled for o in outcomes)
		if synthesis is not None and synthesis.cancelled:
			cut_short = True
		if cut_short:
			return OverallStatus.CANCELLED
	if outcomes and all(o.status == OutcomeStatus.FAILURE for o in outcomes):
		return OverallStatus.ALL_FAILED
	all_success = all(o.status == OutcomeStatus.SUCCESS for o in outcomes)
	if synthesis_configured:
		all_success = all_success and synthesis is not None and (
		    synthesis.status == OutcomeStatus.SUCCESS)
	if all_success:
		return OverallStatus.ALL_SUCCEEDED
	return OverallStatus.PARTIAL_FAILURE


class Orchestrator:
	"""
	Owns the per-run lifecycle.

	Parameters:
		clients: Provider name to Client, built once at process start.
		limiters: Rate limiters keyed by rate-limit key.
		writer: Destination for generated content.
		prompt_builder: Builds model and synthesis prompts; defaults to
			``XmlPromptBuilder``.
		progress: Optional progress sink.
		audit: Optional audit sink.

	An instance runs one execution at a time; ``state`` describes the
	current or most recent run.
	"""

	def __init__(
	    self,
	    clients: Mapping[str, Client],
	    limiters: Optional[RateLimiterPool],
	    writer: Optional[ResultWriter],
	    prompt_builder: Optional[PromptBuilder] = None,
	    progress: Optional[ProgressSink] = None,
	    audit: Optional[AuditSink] = None,
	) -> None:
		self.clients = dict(clients or {})
		self.limiters = limiters
		self.writer = writer
		self.prompt_builder = prompt_builder or XmlPromptBuilder()
		self.progress = progress
		self.audit = audit
		self._state = RunState.INITIALIZED
		self._running = False

	@property
	def state(self) -> RunState:
		return self._state

	def _transition(self, run_id: str, state: RunState) -> None:
		logger.info("run %s: %s -> %s", run_id, self._state.value, state.value)
		self._state = state

	def _validate(self, models: Sequence[ModelSpec],
	              synthesis: Optional[ModelSpec]) -> None:
		if self.writer is None:
			raise ConfigurationError("a result writer is required")
		if self.limiters is None:
			raise ConfigurationError("rate limiters are required")
		if not models:
			raise ConfigurationError("at least one model must be configured")
		names = [m.name for m in models]
		dupes = sorted({n for n in names if names.count(n) > 1})
		if dupes:
			raise ConfigurationError(
			    f"duplicate model names: {', '.join(dupes)}")
		specs = list(models) + ([synthesis] if synthesis else [])
		missing = sorted({s.provider for s in specs} - set(self.clients))
		if missing:
			raise ConfigurationError(
			    f"no client configured for provider(s): {', '.join(missing)}")
		if synthesis and synthesis_task_name(synthesis) in names:
			raise ConfigurationError(
			    f"synthesis task name collides with model "
			    f"'{synthesis_task_name(synthesis)}'")
		task_names = names + ([synthesis_task_name(synthesis)]
		                      if synthesis else [])
		# compared case-insensitively; some filesystems fold case
		files: dict[str, str] = {}
		for name in task_names:
			try:
				key = sanitize_filename(name).lower()
			except ValueError as exc:
				raise ConfigurationError(str(exc)) from exc
			if key in files:
				raise ConfigurationError(
				    f"models '{files[key]}' and '{name}' would write the "
				    f"same output file")
			files[key] = name

	async def execute(
	    self,
	    instructions: str,
	    shared_context: str,
	    models: Sequence[ModelSpec],
	    options: Optional[RunOptions] = None,
	    ctx: Optional[RunContext] = None,
	) -> RunResult:
		"""
		Run every model and the optional synthesis.

		Parameters:
			instructions: User instructions.
			shared_context: Context appended to every model's prompt.
			models: Configured models, in report order.
			options: Synthesis model, deadline and run id.
			ctx: Run context; a new one is created when omitted.

		Returns:
			RunResult accounting for every configured model.

		Raises:
			ConfigurationError: Empty or duplicate model list, colliding
				output files, missing client, writer or limiters, or
				another run still in progress on this instance.
			RunCancelledError: ``ctx`` was already cancelled.
		"""
		if self._running:
			raise ConfigurationError("orchestrator is already running a run")
		opts = options or RunOptions()
		run_id = opts.run_id
		self._validate(models, opts.synthesis_model)
		ctx = ctx or RunContext()
		ctx.raise_if_cancelled()
		self._state = RunState.INITIALIZED

		started_at = datetime.now(timezone.utc)
		logger.info("run %s start models=%s synthesis=%s", run_id,
		            ", ".join(m.name for m in models),
		            opts.synthesis_model.name if opts.synthesis_model else None)
		ctx.start_deadline(opts.deadline_seconds)
		self._running = True
		try:
			prompt = self.prompt_builder.build(instructions, shared_context)
			tasks = [ModelTask.from_spec(m, prompt) for m in models]
			aggregator = ResultAggregator(t.model_name for t in tasks)

			self._transition(run_id, RunState.FANNING_OUT)
			await self._fan_out(run_id, tasks, aggregator, ctx)

			self._transition(run_id, RunState.AGGREGATING)
			for name in aggregator.missing():
				aggregator.record(
				    ModelOutcome.skipped(
				        name, ctx.reason or "task did not report an outcome"))
			aggregate = aggregator.snapshot()
			logger.info(
			    "run %s aggregated: success=%d partial=%d failure=%d skipped=%d",
			    run_id, aggregate.success_count, aggregate.partial_count,
			    aggregate.failure_count, aggregate.skipped_count)

			synthesis: Optional[SynthesisResult] = None
			if opts.synthesis_model is not None and not ctx.is_cancelled:
				self._transition(run_id, RunState.SYNTHESIZING)
				spec = opts.synthesis_model
				synthesis = await run_synthesis(
				    spec,
				    aggregate,
				    instructions,
				    client=self.clients[spec.provider],
				    limiter=self.limiters.for_key(spec.limiter_key),
				    writer=self.writer,
				    prompt_builder=self.prompt_builder,
				    progress=self.progress,
				    audit=self.audit,
				    ctx=ctx,
				    run_id=run_id,
				)
			elif opts.synthesis_model is not None:
				logger.info("run %s: cancelled, synthesis skipped", run_id)

			status = compute_overall_status(
			    aggregate, synthesis, opts.synthesis_model is not None,
			    ctx.is_cancelled)
		finally:
			ctx.close()
			self._running = False

		self._transition(
		    run_id, RunState.CANCELLED
		    if status == OverallStatus.CANCELLED else RunState.COMPLETED)
		result = RunResult(
		    run_id=run_id,
		    aggregate=aggregate,
		    synthesis=synthesis,
		    overall_status=status,
		    cancel_reason=ctx.reason if ctx.is_cancelled else None,
		    started_at=started_at,
		    finished_at=datetime.now(timezone.utc),
		)
		logger.info("run %s done status=%s in %.2fs", run_id,
		            status.value, result.duration_seconds)
		return result

	async def _fan_out(self, run_id: str, tasks: list[ModelTask],
	                   aggregator: ResultAggregator, ctx: RunContext) -> None:
		"""Launch one task per model and wait for all of them."""

		async def run_one(task: ModelTask) -> None:
			outcome = await run_model(
			    task,
			    client=self.clients[task.provider],
			    limiter=self.limiters.for_key(task.rate_limit_key),
			    writer=self.writer,
			    progress=self.progress,
			    audit=self.audit,
			    ctx=ctx,
			    run_id=run_id,
			)
			aggregator.record(outcome)

		pending = [
		    asyncio.create_task(run_one(t), name=f"model:{t.model_name}")
		    for t in tasks
		]
		try:
			results = await asyncio.gather(*pending, return_exceptions=True)
		except asyncio.CancelledError:
			ctx.cancel("interrupted")
			for p in pending:
				p.cancel()
			await asyncio.gather(*pending, return_exceptions=True)
			raise
		for task, res in zip(tasks, results):
			if isinstance(res, BaseException) and not aggregator.has(
			    task.model_name):
				logger.error("run %s: task for %s crashed: %r", run_id,
				             task.model_name, res)
				aggregator.record(
				    ModelOutcome(model_name=task.model_name,
				                 status=OutcomeStatus.FAILURE,
				                 error_kind=ErrorKind.CANCELLED if isinstance(
				                     res, (RunCancelledError,
				                           asyncio.CancelledError)) else
				                 ErrorKind.UNKNOWN,
				                 error_detail=sanitize_text(
				                     f"{type(res).__name__}: {res}")))


__all__ = ["Orchestrator", "RunState", "compute_overall_status"]
