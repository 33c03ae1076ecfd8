"""
Single-model executor.

Runs one ModelTask through rate limiting, the provider call,
classification and persistence, and always returns a ModelOutcome.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Optional

import httpx

from ..models.audit import AuditError, AuditEvent
from ..models.errors import ErrorKind, ProviderError, RunCancelledError
from ..models.outcome import GenerationResult, ModelOutcome, OutcomeStatus
from ..models.run_progress import ProgressStatus
from ..models.task import ModelTask
from ..utils.logging import get_logger, sanitize_text
from ..utils.protocols import AuditSink, Client, ProgressSink, ResultWriter
from .context import RunContext
from .rate_limit import RateLimiter

logger = get_logger(__name__)

# Rate-limit waits longer than this are reported as WAITING.
WAIT_NOTICE_SECONDS = 0.1

TRUNCATION_REASONS = frozenset({"length", "max_tokens", "max_output_tokens"})
FILTER_REASONS = frozenset({
    "content_filter",
    "safety",
    "blocked",
    "prohibited_content",
    "recitation",
})

_AUDIT_STATUS = {
    OutcomeStatus.SUCCESS: "Success",
    OutcomeStatus.PARTIAL_SUCCESS: "PartialSuccess",
    OutcomeStatus.FAILURE: "Failure",
    OutcomeStatus.SKIPPED: "Skipped",
}


def classify_error(exc: BaseException) -> tuple[ErrorKind, str]:
	"""
	Map an exception raised by a client into the shared taxonomy.

	Provider adapters raise ``ProviderError`` with the kind already
	decided; only transport-level failures are classified here.

	Parameters:
		exc: Exception raised by ``Client.generate``.

	Returns:
		Tuple of error kind and sanitized detail.
	"""
	if isinstance(exc, ProviderError):
		kind = exc.kind
		detail = str(exc)
	elif isinstance(exc, RunCancelledError):
		kind = ErrorKind.CANCELLED
		detail = exc.reason
	elif isinstance(exc, (TimeoutError, ConnectionError, httpx.TransportError)):
		kind = ErrorKind.NETWORK_ERROR
		detail = f"{type(exc).__name__}: {exc}"
	else:
		kind = ErrorKind.UNKNOWN
		detail = f"{type(exc).__name__}: {exc}"
	return kind, sanitize_text(detail)


def classify_result(model_name: str, result: GenerationResult) -> ModelOutcome:
	"""
	Turn a provider response into an outcome.

	Truncated or filtered responses that still carry content become
	PartialSuccess; a response without content is a Failure.
	"""
	reason = (result.finish_reason or "").lower() or None
	content = result.content or ""
	common: dict[str, Any] = {
	    "model_name": model_name,
	    "token_usage": result.token_usage,
	    "finish_reason": reason,
	}
	if reason in FILTER_REASONS:
		if content.strip():
			return ModelOutcome(status=OutcomeStatus.PARTIAL_SUCCESS,
			                    content=content,
			                    error_kind=ErrorKind.CONTENT_FILTERED,
			                    error_detail=f"content filtered ({reason})",
			                    **common)
		return ModelOutcome(status=OutcomeStatus.FAILURE,
		                    error_kind=ErrorKind.CONTENT_FILTERED,
		                    error_detail=f"response blocked ({reason})",
		                    **common)
	if not content.strip():
		return ModelOutcome(status=OutcomeStatus.FAILURE,
		                    error_kind=ErrorKind.UNKNOWN,
		                    error_detail="empty response", **common)
	if reason in TRUNCATION_REASONS:
		return ModelOutcome(status=OutcomeStatus.PARTIAL_SUCCESS,
		                    content=content, error_detail="output truncated",
		                    **common)
	return ModelOutcome(status=OutcomeStatus.SUCCESS, content=content,
	                    **common)


def outcome_from_error(model_name: str, exc: BaseException) -> ModelOutcome:
	"""Build the outcome for a failed provider call."""
	kind, detail = classify_error(exc)
	partial = getattr(exc, "partial_content", None)
	if partial and kind == ErrorKind.CONTENT_FILTERED:
		return ModelOutcome(model_name=model_name,
		                    status=OutcomeStatus.PARTIAL_SUCCESS,
		                    content=partial, error_kind=kind,
		                    error_detail=detail)
	return ModelOutcome(model_name=model_name, status=OutcomeStatus.FAILURE,
	                    error_kind=kind, error_detail=detail)


def _notify(progress: Optional[ProgressSink], model_name: str,
            status: ProgressStatus, message: str = "") -> None:
	if progress is None:
		return
	try:
		progress.update(model_name, status, message)
	except Exception:
		logger.debug("progress sink failed for %s", model_name, exc_info=True)


def _record_audit(audit: Optional[AuditSink], progress: Optional[ProgressSink],
                  event: AuditEvent, status: ProgressStatus) -> None:
	if audit is None:
		return
	try:
		audit.log(event)
	except Exception as exc:
		msg = sanitize_text(f"audit_log_failed: {exc}")
		logger.warning("%s: %s", event.model_name, msg)
		_notify(progress, event.model_name or "", status, msg)


async def _guarded(aw: Awaitable, ctx: Optional[RunContext]):
	if ctx is None:
		return await aw
	return await ctx.guard(aw)


async def _persist(writer: ResultWriter, outcome: ModelOutcome,
                   ctx: Optional[RunContext]) -> ModelOutcome:
	"""Write generated content; a failed write downgrades the outcome."""
	try:
		path = await _guarded(writer.write(outcome.model_name, outcome.content),
		                      ctx)
	except RunCancelledError:
		raise
	except Exception as exc:
		detail = sanitize_text(f"write failed: {type(exc).__name__}: {exc}")
		logger.error("%s: %s", outcome.model_name, detail)
		return ModelOutcome(
		    model_name=outcome.model_name,
		    status=OutcomeStatus.FAILURE,
		    error_kind=ErrorKind.WRITE_ERROR,
		    error_detail=detail,
		    token_usage=outcome.token_usage,
		    finish_reason=outcome.finish_reason,
		)
	return outcome.model_copy(
	    update={"output_path": str(path) if path else None})


async def run_model(
    task: ModelTask,
    *,
    client: Client,
    limiter: RateLimiter,
    writer: ResultWriter,
    progress: Optional[ProgressSink] = None,
    audit: Optional[AuditSink] = None,
    ctx: Optional[RunContext] = None,
    run_id: Optional[str] = None,
) -> ModelOutcome:
	"""
	Run one model task to completion.

	Never raises for per-model failures: every path ends in a recorded
	outcome. Cancellation while waiting for a rate-limit slot yields
	Skipped; cancellation during the call or the write yields
	Failure/Cancelled.

	Parameters:
		task: The unit of work.
		client: Provider client for ``task.provider``.
		limiter: Rate limiter for ``task.rate_limit_key``.
		writer: Destination for generated content.
		progress: Optional progress sink.
		audit: Optional audit sink.
		ctx: Run context carrying cancellation and the deadline.
		run_id: Correlation id for logs and audit events.

	Returns:
		The task's outcome.
	"""
	name = task.model_name
	started = time.monotonic()
	_notify(progress, name, ProgressStatus.QUEUED, "queued")
	loop = asyncio.get_running_loop()
	notice = loop.call_later(WAIT_NOTICE_SECONDS, _notify, progress, name,
	                         ProgressStatus.WAITING,
	                         f"waiting for {limiter.name} rate limit")
	acquired = False
	generated: Optional[str] = None
	try:
		async with limiter.slot(ctx):
			acquired = True
			notice.cancel()
			logger.info("run %s: %s start (%s/%s)", run_id, name,
			            task.provider, task.model_id)
			_notify(progress, name, ProgressStatus.RUNNING, "generating")
			_record_audit(
			    audit, progress,
			    AuditEvent(run_id=run_id, operation="GenerateContent",
			               status="InProgress", model_name=name,
			               inputs=_audit_inputs(task),
			               message=f"calling {task.provider}"),
			    ProgressStatus.RUNNING)
			try:
				result = await _guarded(
				    client.generate(task.prompt, task.model_id,
				                    dict(task.options)), ctx)
				outcome = classify_result(name, result)
			except RunCancelledError:
				raise
			except Exception as exc:
				outcome = outcome_from_error(name, exc)
			if outcome.content:
				generated = outcome.content
				outcome = await _persist(writer, outcome, ctx)
	except RunCancelledError as exc:
		if acquired:
			outcome = ModelOutcome(model_name=name,
			                       status=OutcomeStatus.FAILURE,
			                       error_kind=ErrorKind.CANCELLED,
			                       error_detail=exc.reason)
		else:
			outcome = ModelOutcome.skipped(
			    name, f"cancelled before start: {exc.reason}")
	finally:
		notice.cancel()

	duration = time.monotonic() - started
	outcome = outcome.model_copy(update={"duration_seconds": duration})
	_finish(task, outcome, progress, audit, run_id, generated)
	return outcome


def _audit_inputs(task: ModelTask) -> dict[str, Any]:
	return {
	    "provider": task.provider,
	    "model_id": task.model_id,
	    "prompt_chars": len(task.prompt),
	    "options": dict(task.options),
	}


def _finish(task: ModelTask, outcome: ModelOutcome,
            progress: Optional[ProgressSink], audit: Optional[AuditSink],
            run_id: Optional[str], generated: Optional[str]) -> None:
	name = outcome.model_name
	status = ProgressStatus.from_outcome(outcome.status)
	if outcome.status == OutcomeStatus.FAILURE:
		logger.warning("run %s: %s failed (%s): %s", run_id, name,
		               outcome.error_kind.value, outcome.error_detail)
	else:
		logger.info("run %s: %s finished %s in %.2fs", run_id, name,
		            outcome.status.value, outcome.duration_seconds)

	outputs: dict[str, Any] = {"finish_reason": outcome.finish_reason}
	if outcome.content:
		outputs["content_chars"] = len(outcome.content)
	if outcome.token_usage:
		outputs["token_usage"] = outcome.token_usage.model_dump()
	if outcome.output_path:
		outputs["output_path"] = outcome.output_path
	if outcome.error_kind == ErrorKind.WRITE_ERROR and generated:
		outputs["content"] = generated
	error = None
	if outcome.error_kind is not None:
		error = AuditError(kind=outcome.error_kind.value,
		                   message=outcome.error_detail or "")
	_record_audit(
	    audit, progress,
	    AuditEvent(run_id=run_id, operation="GenerateContent",
	               status=_AUDIT_STATUS[outcome.status], model_name=name,
	               duration_ms=int(outcome.duration_seconds * 1000),
	               inputs=_audit_inputs(task), outputs=outputs, error=error,
	               message=outcome.error_detail), status)
	_notify(progress, name, status, _final_message(outcome))


def _final_message(outcome: ModelOutcome) -> str:
	if outcome.status == OutcomeStatus.SUCCESS:
		return outcome.output_path or "done"
	if outcome.error_kind is not None:
		return f"{outcome.error_kind.value}: {outcome.error_detail or ''}".strip()
	return outcome.error_detail or outcome.status.value


__all__ = [
    "run_model",
    "classify_error",
    "classify_result",
    "outcome_from_error",
    "WAIT_NOTICE_SECONDS",
]
