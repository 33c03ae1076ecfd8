"""
Synthesis stage.

Combines the usable outputs of a run into one prompt and sends it to the
synthesis model through the same executor as any other model.
"""

from __future__ import annotations

from typing import Optional

from ..models.run_result import AggregateResult
from ..models.outcome import SynthesisResult
from ..models.task import ModelSpec, ModelTask
from ..utils.logging import get_logger
from ..utils.protocols import (
    AuditSink,
    Client,
    ProgressSink,
    PromptBuilder,
    ResultWriter,
)
from .context import RunContext
from .executor import run_model
from .rate_limit import RateLimiter

logger = get_logger(__name__)


def synthesis_task_name(spec: ModelSpec) -> str:
	return f"{spec.name}-synthesis"


def select_sources(aggregate: AggregateResult) -> list[tuple[str, str]]:
	"""(model_name, content) of Success and PartialSuccess outcomes in configured order."""
	return [(o.model_name, o.content or "") for o in aggregate.successful()]


async def run_synthesis(
    spec: Optional[ModelSpec],
    aggregate: AggregateResult,
    instructions: str,
    *,
    client: Client,
    limiter: RateLimiter,
    writer: ResultWriter,
    prompt_builder: PromptBuilder,
    progress: Optional[ProgressSink] = None,
    audit: Optional[AuditSink] = None,
    ctx: Optional[RunContext] = None,
    run_id: Optional[str] = None,
) -> SynthesisResult | None:
	"""
	Run the synthesis call over the aggregated outputs.

	Parameters:
		spec: Synthesis model; None disables the stage.
		aggregate: Frozen per-model results.
		instructions: Original user instructions.
		client: Client for the synthesis model's provider.
		limiter: Rate limiter for the synthesis model's key.
		writer: Destination for the synthesized content.
		prompt_builder: Builds the synthesis prompt.
		progress: Optional progress sink.
		audit: Optional audit sink.
		ctx: Run context.
		run_id: Correlation id.

	Returns:
		SynthesisResult, or None when there is nothing to synthesize.
	"""
	if spec is None:
		return None
	sources = select_sources(aggregate)
	if not sources:
		logger.info("run %s: no usable outputs, skipping synthesis", run_id)
		return None

	source_names = [name for name, _ in sources]
	logger.info("run %s: synthesizing %d outputs with %s: %s", run_id,
	            len(sources), spec.name, ", ".join(source_names))
	prompt = prompt_builder.build_synthesis(instructions, sources)
	task = ModelTask.from_spec(spec, prompt, name=synthesis_task_name(spec))
	outcome = await run_model(task, client=client, limiter=limiter,
	                          writer=writer, progress=progress, audit=audit,
	                          ctx=ctx, run_id=run_id)
	return SynthesisResult.from_outcome(outcome, source_names)


__all__ = ["run_synthesis", "select_sources", "synthesis_task_name"]
