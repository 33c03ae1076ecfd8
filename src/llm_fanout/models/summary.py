"""
Summary data model for TUI rendering.

Pure data extraction for the final summary display,
separating data logic from Rich rendering.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .run_result import RunResult
from .usage import aggregate, format_duration


class OutcomeRow(BaseModel):
	"""One row of the per-model outcome table."""

	model_config = ConfigDict(protected_namespaces=())

	model_name: str
	status: str
	error_kind: str | None = None
	detail: str | None = None
	duration: str = ""
	input_tokens: int | None = None
	output_tokens: int | None = None
	output_path: str | None = None


class SynthesisInfo(BaseModel):
	"""Extracted synthesis fields for display."""

	model_config = ConfigDict(protected_namespaces=())

	model_name: str
	status: str
	error_kind: str | None = None
	detail: str | None = None
	source_models: list[str] = Field(default_factory=list)
	output_path: str | None = None


class SummaryData(BaseModel):
	"""All data needed to render the final summary.

	This model is populated by `build_summary_data()` and consumed
	by `_render_summary()`, separating data extraction from rendering.
	"""

	run_id: str
	overall_status: str
	cancel_reason: str | None = None
	duration: str = ""
	output_dir: str
	rows: list[OutcomeRow] = Field(default_factory=list)
	synthesis: SynthesisInfo | None = None
	total_input_tokens: int = 0
	total_output_tokens: int = 0
	success_count: int = 0
	partial_count: int = 0
	failure_count: int = 0
	skipped_count: int = 0


def build_summary_data(run_result: RunResult, output_dir: Path) -> SummaryData:
	"""Extract display data from a run result.

	Pure function with no rendering side effects; returns a SummaryData
	model that can be unit tested independently.

	Parameters:
		run_result: Result returned by the orchestrator.
		output_dir: Base output directory path.

	Returns:
		Populated SummaryData model.
	"""
	agg = run_result.aggregate
	data = SummaryData(
	    run_id=run_result.run_id,
	    overall_status=run_result.overall_status.value,
	    cancel_reason=run_result.cancel_reason,
	    duration=format_duration(run_result.duration_seconds),
	    output_dir=str(output_dir),
	    success_count=agg.success_count,
	    partial_count=agg.partial_count,
	    failure_count=agg.failure_count,
	    skipped_count=agg.skipped_count,
	)

	for outcome in agg.in_report_order():
		usage = outcome.token_usage
		data.rows.append(
		    OutcomeRow(
		        model_name=outcome.model_name,
		        status=outcome.status.value,
		        error_kind=outcome.error_kind.value
		        if outcome.error_kind else None,
		        detail=outcome.error_detail,
		        duration=format_duration(outcome.duration_seconds),
		        input_tokens=usage.input_tokens if usage else None,
		        output_tokens=usage.output_tokens if usage else None,
		        output_path=outcome.output_path,
		    ))

	syn = run_result.synthesis
	if syn is not None:
		data.synthesis = SynthesisInfo(
		    model_name=syn.model_name,
		    status=syn.status.value,
		    error_kind=syn.error_kind.value if syn.error_kind else None,
		    detail=syn.error_detail,
		    source_models=list(syn.source_models),
		    output_path=syn.output_path,
		)

	total = aggregate([agg.total_usage(), syn.token_usage if syn else None])
	data.total_input_tokens = total.input_tokens
	data.total_output_tokens = total.output_tokens
	return data


__all__ = [
    "SummaryData",
    "OutcomeRow",
    "SynthesisInfo",
    "build_summary_data",
]
