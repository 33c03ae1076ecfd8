"""Core fan-out logic.

This subpackage contains the orchestration and execution logic for
querying several models concurrently and synthesizing their outputs.

Key modules:
    - orchestrator: Run state machine via Orchestrator.execute()
    - executor: Single model execution and outcome classification
    - rate_limit: Per-provider concurrency and request-rate limits
    - aggregator: Collects per-model outcomes
    - synthesis: Optional synthesis stage over successful outputs
    - context: Cancellation and deadline handling
"""

from llm_fanout.core.context import RunContext, DEADLINE_EXCEEDED
from llm_fanout.core.rate_limit import (
    RateLimiter,
    RateLimiterPool,
    build_limiters,
)
from llm_fanout.core.aggregator import ResultAggregator
from llm_fanout.core.executor import (
    run_model,
    classify_error,
    classify_result,
    outcome_from_error,
)
from llm_fanout.core.synthesis import (
    run_synthesis,
    select_sources,
    synthesis_task_name,
)
from llm_fanout.core.orchestrator import (
    Orchestrator,
    RunState,
    compute_overall_status,
)

__all__ = [
    # context
    "RunContext",
    "DEADLINE_EXCEEDED",
    # rate_limit
    "RateLimiter",
    "RateLimiterPool",
    "build_limiters",
    # aggregator
    "ResultAggregator",
    # executor
    "run_model",
    "classify_error",
    "classify_result",
    "outcome_from_error",
    # synthesis
    "run_synthesis",
    "select_sources",
    "synthesis_task_name",
    # orchestrator
    "Orchestrator",
    "RunState",
    "compute_overall_status",
]
