from __future__ import annotations

import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from typer.main import get_command

from llm_fanout.core.context import RunContext
from llm_fanout.core.orchestrator import Orchestrator
from llm_fanout.core.rate_limit import build_limiters
from llm_fanout.integrations.clients import build_clients, close_clients
from llm_fanout.loaders.context import (
    iter_context_files,
    render_context_files,
)
from llm_fanout.loaders.models import ModelsFile, load_models_file
from llm_fanout.models.config import Config, load_env
from llm_fanout.models.errors import ConfigurationError, ErrorKind
from llm_fanout.models.run_params import RunOptions, RunParams
from llm_fanout.models.run_result import OverallStatus, RunResult
from llm_fanout.models.task import ModelSpec
from llm_fanout.ui.reporting import FileResultWriter
from llm_fanout.ui.tui import TUI
from llm_fanout.utils.audit import JsonlAuditLogger
from llm_fanout.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

cli = typer.Typer(add_completion=False, no_args_is_help=True)

EXIT_SUCCESS = 0
EXIT_GENERIC = 1
EXIT_CANCELLED = 10

DRY_RUN_LISTED_FILES = 10

EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.AUTH: 2,
    ErrorKind.RATE_LIMITED: 3,
    ErrorKind.INVALID_REQUEST: 4,
    ErrorKind.SERVER_ERROR: 5,
    ErrorKind.NETWORK_ERROR: 6,
    ErrorKind.INPUT_TOO_LARGE: 7,
    ErrorKind.CONTENT_FILTERED: 8,
    ErrorKind.INSUFFICIENT_CREDITS: 9,
    ErrorKind.CANCELLED: EXIT_CANCELLED,
    ErrorKind.WRITE_ERROR: EXIT_GENERIC,
    ErrorKind.UNKNOWN: EXIT_GENERIC,
}


@cli.callback()
def root() -> None:
	"""
	Root callback for the llm-fanout CLI.

	Sets up the Typer application with no-args-is-help behavior.
	"""
	return None


def exit_code_for(result: RunResult, partial_success_ok: bool = False) -> int:
	"""
	Map a run result to a process exit code.

	Parameters:
		result: Result of the run.
		partial_success_ok: Exit 0 when some models failed but the run
			still produced usable output.

	Returns:
		0 on success; otherwise the code of the first failure in
		configured order (10 when cancelled).
	"""
	status = result.overall_status
	if status == OverallStatus.ALL_SUCCEEDED:
		return EXIT_SUCCESS
	if status == OverallStatus.CANCELLED:
		return EXIT_CANCELLED
	if status == OverallStatus.PARTIAL_FAILURE and partial_success_ok:
		return EXIT_SUCCESS
	failure = result.first_failure()
	if failure is None or failure.error_kind is None:
		return EXIT_GENERIC
	return EXIT_CODES.get(failure.error_kind, EXIT_GENERIC)


def resolve_models(
    params: RunParams, config: Config
) -> tuple[list[ModelSpec], Optional[ModelSpec], ModelsFile | None]:
	"""
	Pick the models for this run.

	Precedence: ``--model`` flags, then the models file, then
	``FANOUT_MODELS``; the synthesis model follows the same order.
	"""
	models_file = (load_models_file(config.models_file)
	               if config.models_file else None)
	try:
		if params.models:
			models = [ModelSpec.parse(m) for m in params.models]
		elif models_file and models_file.models:
			models = list(models_file.models)
		else:
			models = config.model_specs()
		if params.synthesis_model:
			synthesis = ModelSpec.parse(params.synthesis_model)
		elif models_file and models_file.synthesis_model:
			synthesis = models_file.synthesis_model
		else:
			synthesis = config.synthesis_spec()
	except (ValidationError, ValueError) as exc:
		raise ConfigurationError(str(exc)) from exc
	if not models:
		raise ConfigurationError(
		    "no models configured; use --model, --models-file or FANOUT_MODELS")
	return models, synthesis, models_file


def _install_signal_handlers(ctx: RunContext) -> list[signal.Signals]:
	loop = asyncio.get_running_loop()
	installed = []
	for sig in (signal.SIGINT, signal.SIGTERM):
		try:
			loop.add_signal_handler(sig, ctx.cancel, "interrupted")
			installed.append(sig)
		except (NotImplementedError, RuntimeError):
			logger.debug("signal handler for %s unavailable", sig)
	return installed


async def execute_run(
    config: Config,
    models: list[ModelSpec],
    synthesis: Optional[ModelSpec],
    instructions: str,
    shared_context: str,
    models_file: ModelsFile | None = None,
    progress=None,
    audit=None,
) -> RunResult:
	"""Build the collaborators from configuration and run the orchestrator."""
	clients = build_clients(config)
	limiters = build_limiters(config,
	                          models_file.rate_limits if models_file else None)
	orchestrator = Orchestrator(
	    clients,
	    limiters,
	    FileResultWriter(config.output_path),
	    progress=progress,
	    audit=audit,
	)
	ctx = RunContext()
	installed = _install_signal_handlers(ctx)
	try:
		return await orchestrator.execute(
		    instructions,
		    shared_context,
		    models,
		    RunOptions(synthesis_model=synthesis,
		               deadline_seconds=config.run_timeout_seconds),
		    ctx,
		)
	finally:
		loop = asyncio.get_running_loop()
		for sig in installed:
			loop.remove_signal_handler(sig)
		await close_clients(clients)


def print_dry_run(specs: list[ModelSpec], synthesis: Optional[ModelSpec],
                  files: list[Path], shared_context: str) -> None:
	"""Show what a run would send without calling any provider."""
	typer.echo("Dry run: no API calls will be made.")
	typer.echo(f"Models ({len(specs)}):")
	for spec in specs:
		typer.echo(f"  - {spec.name} ({spec.provider}/{spec.model_id})")
	if synthesis:
		typer.echo(f"Synthesis model: {synthesis.name} ({synthesis.provider})")
	else:
		typer.echo("Synthesis model: none")
	if not files:
		typer.echo("No context files matched the current filters.")
	else:
		typer.echo(f"Context files ({len(files)}):")
		for i, f in enumerate(files[:DRY_RUN_LISTED_FILES], start=1):
			typer.echo(f"  {i}. {f}")
		if len(files) > DRY_RUN_LISTED_FILES:
			typer.echo(f"  ... and {len(files) - DRY_RUN_LISTED_FILES} more")
	lines = shared_context.count("\n")
	typer.echo(f"Context: {lines} lines, {len(shared_context)} characters")


def run_impl(
    instructions_file: Path,
    context_paths: list[Path] | None = None,
    models: list[str] | None = None,
    synthesis_model: str | None = None,
    models_file: str | None = None,
    output_dir: str | None = None,
    timeout: int | None = None,
    max_concurrent: int | None = None,
    rpm: int | None = None,
    audit_log: str | None = None,
    include: str | None = None,
    exclude: str | None = None,
    exclude_names: str | None = None,
    dry_run: bool = False,
    partial_success_ok: bool = False,
    quiet: bool = False,
) -> int:
	"""
	Query every configured model and optionally synthesize the results.

	Loads configuration, gathers context, runs the orchestrator under the
	TUI and prints the summary. With ``dry_run`` it stops after listing
	the models and context files.

	Returns:
		Process exit code.
	"""
	load_env()
	params = RunParams(
	    instructions_file=instructions_file,
	    context_paths=list(context_paths or []),
	    models=list(models or []),
	    synthesis_model=synthesis_model,
	    models_file=models_file,
	    output_dir=output_dir,
	    timeout=timeout,
	    max_concurrent=max_concurrent,
	    rpm=rpm,
	    audit_log=audit_log,
	    include=include,
	    exclude=exclude,
	    exclude_names=exclude_names,
	)
	config = Config()
	config.apply_overrides(params)
	configure_logging(config.log_level)

	specs, synthesis, mf = resolve_models(params, config)
	instructions = params.instructions_file.read_text(encoding="utf-8")
	files = iter_context_files(params.context_paths, config.context_filter())
	shared_context = render_context_files(files)
	if dry_run:
		print_dry_run(specs, synthesis, files, shared_context)
		return EXIT_SUCCESS
	if not quiet:
		typer.echo(
		    f"Running {len(specs)} model(s): "
		    f"{', '.join(s.name for s in specs)}; "
		    f"synthesis={synthesis.name if synthesis else 'none'}, "
		    f"output_dir={config.output_dir}, "
		    f"timeout={config.run_timeout_seconds or 'none'}")

	audit = JsonlAuditLogger(
	    config.audit_log_file) if config.audit_log_file else None
	try:
		if quiet:
			result = asyncio.run(
			    execute_run(config, specs, synthesis, instructions,
			                shared_context, mf, audit=audit))
			typer.echo(result.overall_status.value)
		else:
			with TUI([s.name for s in specs]) as ui:
				result = asyncio.run(
				    execute_run(config, specs, synthesis, instructions,
				                shared_context, mf, progress=ui,
				                audit=audit))
				ui.print_summary(result, config.output_path)
	finally:
		if audit is not None:
			audit.close()
	code = exit_code_for(result, partial_success_ok)
	if code and result.overall_status == OverallStatus.PARTIAL_FAILURE:
		typer.echo(
		    "Some models failed, but partial results were written. "
		    "Use --partial-success-ok to exit 0 in this case.",
		    err=True)
	return code


@cli.command()
def run(
    instructions_file: Path = typer.Argument(...,
                                             help="File with instructions"),
    context_paths: Optional[List[Path]] = typer.Argument(
        None, help="Files or directories to include as context"),
    model: Optional[List[str]] = typer.Option(
        None, "--model", "-m", help="Model to query (repeatable)"),
    synthesis_model: Optional[str] = typer.Option(
        None, "--synthesis-model", help="Model that synthesizes the outputs"),
    models_file: Optional[str] = typer.Option(
        None, "--models-file", help="YAML/JSON model definition file"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir",
                                             help="Output directory"),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="Deadline for the whole run in seconds"),
    max_concurrent: Optional[int] = typer.Option(
        None, "--max-concurrent", help="Max concurrent requests per provider"),
    rpm: Optional[int] = typer.Option(
        None, "--rpm", help="Requests per minute for every provider"),
    audit_log: Optional[str] = typer.Option(None, "--audit-log",
                                            help="JSON lines audit log file"),
    include: Optional[str] = typer.Option(
        None,
        "--include",
        help="Comma-separated extensions to include (e.g. .py,.md)",
    ),
    exclude: Optional[str] = typer.Option(
        None, "--exclude", help="Comma-separated extensions to exclude"),
    exclude_names: Optional[str] = typer.Option(
        None,
        "--exclude-names",
        help="Comma-separated file or directory names to exclude",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="List the models and context files without calling any API",
    ),
    partial_success_ok: bool = typer.Option(
        False,
        "--partial-success-ok",
        help="Exit 0 when some models fail but usable output was produced",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q",
                               help="Only print the overall status"),
) -> None:
	"""
	Send the same instructions to several models and collect the results.
	"""
	try:
		code = run_impl(
		    instructions_file,
		    context_paths,
		    models=model,
		    synthesis_model=synthesis_model,
		    models_file=models_file,
		    output_dir=output_dir,
		    timeout=timeout,
		    max_concurrent=max_concurrent,
		    rpm=rpm,
		    audit_log=audit_log,
		    include=include,
		    exclude=exclude,
		    exclude_names=exclude_names,
		    dry_run=dry_run,
		    partial_success_ok=partial_success_ok,
		    quiet=quiet,
		)
	except (ConfigurationError, ValidationError) as exc:
		typer.echo(f"error: {exc}", err=True)
		raise typer.Exit(EXIT_GENERIC)
	if code:
		raise typer.Exit(code)


def entrypoint(argv=None, *, standalone_mode: bool = True):
	"""
	Typer entrypoint that defaults to `run` when appropriate.

	Allows calling 'llm-fanout instructions.md src/' without explicitly
	specifying the 'run' subcommand.

	Parameters:
		argv: Command-line arguments. Defaults to sys.argv[1:].
		standalone_mode: If True, Click handles exit codes.

	Returns:
		Result of the Click application main invocation.
	"""
	args = sys.argv[1:] if argv is None else list(argv)

	_click_app = get_command(cli)
	commands = getattr(_click_app, "commands", {}).keys()
	# default to run when first arg is not a command/option
	if args and not args[0].startswith("-") and args[0] not in commands:
		args = ["run"] + args
	return _click_app.main(
	    args=args,
	    prog_name="llm-fanout",
	    standalone_mode=standalone_mode,
	)


if __name__ == "__main__":
	entrypoint()
