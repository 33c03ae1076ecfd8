"""
LLM Fanout models.

This subpackage contains Pydantic models for configuration, tasks,
outcomes, run results and other data structures used throughout the
application.

Key models:
    - Config: Application configuration loaded from environment
    - RunParams: Validated CLI parameters for a run
    - ModelSpec / ModelTask: Configured model and its unit of work
    - ModelOutcome / SynthesisResult: Terminal per-model results
    - AggregateResult / RunResult: Collected results of one run
    - ErrorKind: Shared error taxonomy
    - ContextFilter: Which files are sent as context
"""

from .errors import (
    ErrorKind,
    LLMFanoutError,
    ConfigurationError,
    RunCancelledError,
    ProviderError,
    DuplicateOutcomeError,
    UnknownModelError,
)
from .usage import TokenUsage, aggregate, format_duration
from .task import ModelSpec, ModelTask, infer_provider
from .outcome import (
    OutcomeStatus,
    GenerationResult,
    ModelOutcome,
    SynthesisResult,
)
from .run_result import OverallStatus, AggregateResult, RunResult
from .run_progress import ProgressStatus
from .audit import AuditError, AuditEvent
from .context_filter import ContextFilter
from .config import Config, RateLimitSettings, load_env, PROVIDER_DEFAULT_RPM
from .run_params import RunParams, RunOptions
from .summary import SummaryData, OutcomeRow, SynthesisInfo, build_summary_data

__all__ = [
    "ErrorKind",
    "LLMFanoutError",
    "ConfigurationError",
    "RunCancelledError",
    "ProviderError",
    "DuplicateOutcomeError",
    "UnknownModelError",
    "TokenUsage",
    "aggregate",
    "format_duration",
    "ModelSpec",
    "ModelTask",
    "infer_provider",
    "OutcomeStatus",
    "GenerationResult",
    "ModelOutcome",
    "SynthesisResult",
    "OverallStatus",
    "AggregateResult",
    "RunResult",
    "ProgressStatus",
    "AuditError",
    "AuditEvent",
    "ContextFilter",
    "Config",
    "RateLimitSettings",
    "load_env",
    "PROVIDER_DEFAULT_RPM",
    "RunParams",
    "RunOptions",
    "SummaryData",
    "OutcomeRow",
    "SynthesisInfo",
    "build_summary_data",
]
