"""
Terminal UI for run progress visualization.

Provides a Rich-based TUI that implements the ``ProgressSink`` protocol,
showing one row per model while the run is in flight, and renders the
final summary.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text
from rich import box

from ..models.run_progress import ProgressStatus
from ..models.run_result import RunResult
from ..models.summary import SummaryData, build_summary_data
from ..models.usage import format_duration

_MAX_MESSAGES = 3

_STATUS_STYLES = {
    ProgressStatus.QUEUED: "dim",
    ProgressStatus.WAITING: "yellow",
    ProgressStatus.RUNNING: "cyan",
    ProgressStatus.SUCCEEDED: "green",
    ProgressStatus.PARTIAL: "yellow",
    ProgressStatus.FAILED: "red",
    ProgressStatus.SKIPPED: "magenta",
}

_OUTCOME_STYLES = {
    "success": "green",
    "partial_success": "yellow",
    "failure": "red",
    "skipped": "magenta",
    "all_succeeded": "green",
    "partial_failure": "yellow",
    "all_failed": "red",
    "cancelled": "magenta",
}


@dataclass
class ModelDisplayState:
	"""State for a single model row in the TUI."""

	model_name: str
	status: ProgressStatus = ProgressStatus.QUEUED
	started: float | None = None
	finished: float | None = None
	messages: deque[str] = field(
	    default_factory=lambda: deque(maxlen=_MAX_MESSAGES))

	def add_message(self, msg: str) -> None:
		"""Add a message to the scrolling log."""
		if msg:
			self.messages.append(msg)

	def elapsed(self, now: float | None = None) -> str:
		if self.started is None:
			return ""
		end = self.finished or now or time.monotonic()
		return format_duration(end - self.started)

	def render_message(self) -> Text:
		text = Text()
		for i, msg in enumerate(self.messages):
			clean = msg.strip()
			if "error" in clean.lower() or "failed" in clean.lower():
				style = "red"
			else:
				style = "dim"
			text.append(("\n" if i else "") + clean, style=style)
		return text


class TUI:
	"""
	Rich-based TUI for streaming run progress.

	Uses Rich's Live display with auto-refresh to update in place.
	"""

	def __init__(self, model_names: list[str], show_usage: bool = True,
	             console: Console | None = None):
		self.console = console or Console()
		self.show_usage = show_usage
		self.states: dict[str, ModelDisplayState] = {
		    name: ModelDisplayState(model_name=name)
		    for name in model_names
		}
		self.live: Live | None = None

	def _build_table(self) -> Table:
		"""Build the progress table."""
		table = Table(box=box.ROUNDED, expand=True, show_header=True)
		table.add_column("Model", style="bold", no_wrap=True)
		table.add_column("Status", no_wrap=True)
		table.add_column("Time", justify="right", no_wrap=True)
		table.add_column("Message", ratio=1)
		now = time.monotonic()
		for state in self.states.values():
			table.add_row(
			    state.model_name,
			    Text(state.status.value,
			         style=_STATUS_STYLES.get(state.status, "")),
			    state.elapsed(now),
			    state.render_message(),
			)
		return table

	def __enter__(self):
		"""Start the Live display."""
		self.live = Live(
		    self._build_table(),
		    console=self.console,
		    refresh_per_second=4,
		)
		self.live.start()
		return self

	def __exit__(self, exc_type, exc, tb):
		"""Stop the Live display."""
		self.finalize()

	def update(self, model_name: str, status: ProgressStatus,
	           message: str = "") -> None:
		"""Update state for a model and refresh display."""
		state = self.states.get(model_name)
		if state is None:
			# synthesis and other late rows are added on first update
			state = ModelDisplayState(model_name=model_name)
			self.states[model_name] = state
		now = time.monotonic()
		if status == ProgressStatus.RUNNING and state.started is None:
			state.started = now
		if status.is_final:
			state.finished = now
			if state.started is None:
				state.started = now
		state.status = status
		state.add_message(message)
		self.refresh()

	def refresh(self):
		"""Force a display refresh."""
		if self.live:
			self.live.update(self._build_table())

	def finalize(self):
		"""Stop the live display."""
		if self.live:
			self.live.stop()
			self.live = None

	def print_summary(self, run_result: RunResult, output_dir: Path):
		"""Print final summary after the run completes."""
		self.finalize()
		self.console.print()
		self._render_summary(build_summary_data(run_result, output_dir))

	def _render_summary(self, data: SummaryData):
		"""Render the summary to console using pre-extracted data.

		Parameters:
			data: SummaryData model with all display values.
		"""
		table = Table(
		    title="Model Outcomes",
		    box=box.ROUNDED,
		    expand=True,
		    title_style="bold cyan",
		)
		table.add_column("Model", style="bold")
		table.add_column("Status")
		table.add_column("Time", justify="right")
		if self.show_usage:
			table.add_column("In", justify="right")
			table.add_column("Out", justify="right")
		table.add_column("Output / Error")
		for row in data.rows:
			cells: list = [
			    row.model_name,
			    Text(row.status, style=_OUTCOME_STYLES.get(row.status, "")),
			    row.duration,
			]
			if self.show_usage:
				cells.append("" if row.input_tokens is None else
				             str(row.input_tokens))
				cells.append("" if row.output_tokens is None else
				             str(row.output_tokens))
			detail = row.output_path or ""
			if row.error_kind or row.detail:
				extra = ": ".join(p for p in (row.error_kind, row.detail) if p)
				detail = f"{detail}\n{extra}" if detail else extra
			cells.append(detail)
			table.add_row(*cells)
		self.console.print(table)

		if data.synthesis:
			s = data.synthesis
			syn_table = Table(
			    title="Synthesis",
			    box=box.ROUNDED,
			    show_header=False,
			    expand=True,
			    title_style="bold yellow",
			)
			syn_table.add_column("Field", style="bold")
			syn_table.add_column("Value")
			syn_table.add_row("Model", s.model_name)
			syn_table.add_row(
			    "Status", Text(s.status,
			                   style=_OUTCOME_STYLES.get(s.status, "")))
			syn_table.add_row("Sources", ", ".join(s.source_models))
			if s.output_path:
				syn_table.add_row("Output", s.output_path)
			if s.error_kind or s.detail:
				syn_table.add_row(
				    "Error", ": ".join(p for p in (s.error_kind, s.detail) if p))
			self.console.print(syn_table)

		status = Text(data.overall_status,
		              style=_OUTCOME_STYLES.get(data.overall_status, "bold"))
		line = Text("\nRun ")
		line.append(data.run_id, style="dim")
		line.append(": ")
		line.append_text(status)
		line.append(
		    f" ({data.success_count} ok, {data.partial_count} partial, "
		    f"{data.failure_count} failed, {data.skipped_count} skipped) "
		    f"in {data.duration}")
		self.console.print(line)
		if data.cancel_reason:
			self.console.print(f"[magenta]Cancelled:[/magenta] {data.cancel_reason}")
		if self.show_usage:
			self.console.print(
			    f"[dim]Tokens: {data.total_input_tokens} in, "
			    f"{data.total_output_tokens} out[/dim]")
		self.console.print(f"[dim]Output directory: {data.output_dir}[/dim]")


__all__ = ["TUI", "ModelDisplayState"]
