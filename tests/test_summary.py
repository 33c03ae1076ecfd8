"""Tests for SummaryData model and build_summary_data extraction."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

from llm_fanout.models.errors import ErrorKind
from llm_fanout.models.outcome import ModelOutcome, OutcomeStatus, SynthesisResult
from llm_fanout.models.run_result import (
    AggregateResult,
    OverallStatus,
    RunResult,
)
from llm_fanout.models.summary import build_summary_data
from llm_fanout.models.usage import TokenUsage, format_duration


def _make_result(synthesis: SynthesisResult | None = None,
                 status: OverallStatus = OverallStatus.PARTIAL_FAILURE,
                 cancel_reason: str | None = None) -> RunResult:
	"""Helper to build a RunResult with one success and one failure."""
	outcomes = [
	    ModelOutcome(model_name="a", status=OutcomeStatus.SUCCESS,
	                 content="A", output_path="out/a.md",
	                 duration_seconds=2.5,
	                 token_usage=TokenUsage(input_tokens=10, output_tokens=4)),
	    ModelOutcome(model_name="b", status=OutcomeStatus.FAILURE,
	                 error_kind=ErrorKind.RATE_LIMITED,
	                 error_detail="openai: slow down"),
	]
	start = datetime(2026, 1, 1, tzinfo=timezone.utc)
	return RunResult(
	    run_id="run1",
	    aggregate=AggregateResult(outcomes={o.model_name: o for o in outcomes}),
	    synthesis=synthesis,
	    overall_status=status,
	    cancel_reason=cancel_reason,
	    started_at=start,
	    finished_at=start + timedelta(seconds=75),
	)


def test_build_summary_data_rows():
	"""Rows follow configured order and carry usage and errors."""
	data = build_summary_data(_make_result(), Path("out"))
	assert data.run_id == "run1"
	assert data.overall_status == "partial_failure"
	assert data.duration == "1m 15s"
	assert data.output_dir == "out"
	assert [r.model_name for r in data.rows] == ["a", "b"]
	a, b = data.rows
	assert a.status == "success"
	assert a.input_tokens == 10
	assert a.output_path == "out/a.md"
	assert a.duration == "2s"
	assert b.error_kind == "rate_limited"
	assert b.detail == "openai: slow down"
	assert b.input_tokens is None
	assert data.success_count == 1
	assert data.failure_count == 1
	assert data.synthesis is None
	assert data.total_input_tokens == 10
	assert data.total_output_tokens == 4


def test_build_summary_data_includes_synthesis_usage():
	"""Synthesis info is extracted and its tokens counted in the total."""
	synth = SynthesisResult(
	    model_name="judge-synthesis",
	    status=OutcomeStatus.SUCCESS,
	    content="merged",
	    output_path="out/judge-synthesis.md",
	    token_usage=TokenUsage(input_tokens=100, output_tokens=20),
	    source_models=["a"],
	)
	data = build_summary_data(_make_result(synthesis=synth), Path("out"))
	assert data.synthesis.model_name == "judge-synthesis"
	assert data.synthesis.source_models == ["a"]
	assert data.total_input_tokens == 110
	assert data.total_output_tokens == 24


def test_build_summary_data_cancelled():
	data = build_summary_data(
	    _make_result(status=OverallStatus.CANCELLED,
	                 cancel_reason="deadline exceeded"), Path("out"))
	assert data.overall_status == "cancelled"
	assert data.cancel_reason == "deadline exceeded"


def test_format_duration():
	assert format_duration(0.25) == "250ms"
	assert format_duration(45) == "45s"
	assert format_duration(83) == "1m 23s"
	assert format_duration(7500) == "2h 5m"
	assert format_duration(-1) == "0s"
