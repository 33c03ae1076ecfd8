import asyncio
import random

import pytest

from llm_fanout.core.context import RunContext
from llm_fanout.core.orchestrator import (
    Orchestrator,
    RunState,
    compute_overall_status,
)
from llm_fanout.core.rate_limit import RateLimiter, RateLimiterPool
from llm_fanout.models.config import RateLimitSettings
from llm_fanout.models.errors import (
    ConfigurationError,
    ErrorKind,
    ProviderError,
    RunCancelledError,
)
from llm_fanout.models.outcome import (
    GenerationResult,
    ModelOutcome,
    OutcomeStatus,
    SynthesisResult,
)
from llm_fanout.models.run_params import RunOptions
from llm_fanout.models.run_result import AggregateResult, OverallStatus
from llm_fanout.models.task import ModelSpec
from llm_fanout.models.usage import TokenUsage


class ScriptedClient:
	"""Returns canned answers per model id, optionally after a delay."""

	def __init__(self, script=None, delays=None):
		self.script = script or {}
		self.delays = delays or {}
		self.prompts = {}
		self.active = 0
		self.peak = 0

	async def generate(self, prompt, model_id, options):
		self.prompts[model_id] = prompt
		self.active += 1
		self.peak = max(self.peak, self.active)
		try:
			await asyncio.sleep(self.delays.get(model_id, 0))
		finally:
			self.active -= 1
		result = self.script.get(model_id, f"answer from {model_id}")
		if isinstance(result, Exception):
			raise result
		if isinstance(result, GenerationResult):
			return result
		return GenerationResult(
		    content=result,
		    token_usage=TokenUsage(input_tokens=10, output_tokens=5),
		    finish_reason="stop",
		)


class MemoryWriter:

	def __init__(self):
		self.files = {}

	async def write(self, model_name, content):
		self.files[model_name] = content
		return f"mem://{model_name}"


def _specs(*names, provider="openai"):
	return [ModelSpec(name=n, provider=provider) for n in names]


def _orchestrator(clients, limiters=None, writer=None):
	return Orchestrator(clients, limiters or RateLimiterPool(),
	                    writer or MemoryWriter())


@pytest.mark.asyncio
async def test_every_model_gets_exactly_one_outcome():
	client = ScriptedClient()
	writer = MemoryWriter()
	orch = _orchestrator({"openai": client}, writer=writer)
	result = await orch.execute("do it", "ctx", _specs("a", "b", "c"))
	assert result.overall_status == OverallStatus.ALL_SUCCEEDED
	assert list(result.aggregate.outcomes) == ["a", "b", "c"]
	assert set(writer.files) == {"a", "b", "c"}
	assert result.synthesis is None
	assert result.cancel_reason is None
	assert orch.state == RunState.COMPLETED


@pytest.mark.asyncio
async def test_every_model_receives_the_same_prompt():
	client = ScriptedClient()
	orch = _orchestrator({"openai": client})
	await orch.execute("summarize", "<path>a.py</path>\nprint()\n",
	                   _specs("a", "b"))
	assert client.prompts["a"] == client.prompts["b"]
	assert "<instructions>\nsummarize\n</instructions>" in client.prompts["a"]
	assert "<path>a.py</path>" in client.prompts["a"]


@pytest.mark.asyncio
async def test_report_order_ignores_completion_order():
	names = [f"m{i}" for i in range(8)]
	delays = {n: random.uniform(0, 0.03) for n in names}
	delays["m0"] = 0.05
	client = ScriptedClient(delays=delays)
	orch = _orchestrator({"openai": client})
	result = await orch.execute("x", "", _specs(*names))
	assert [o.model_name for o in result.aggregate.in_report_order()] == names


@pytest.mark.asyncio
async def test_failure_of_one_model_does_not_affect_others():
	client = ScriptedClient(script={
	    "b": ProviderError(ErrorKind.AUTH, "bad key", provider="openai"),
	})
	orch = _orchestrator({"openai": client})
	result = await orch.execute("x", "", _specs("a", "b", "c"))
	agg = result.aggregate
	assert agg.get("a").status == OutcomeStatus.SUCCESS
	assert agg.get("c").status == OutcomeStatus.SUCCESS
	assert agg.get("b").status == OutcomeStatus.FAILURE
	assert agg.get("b").error_kind == ErrorKind.AUTH
	assert result.overall_status == OverallStatus.PARTIAL_FAILURE
	assert result.first_failure().model_name == "b"


@pytest.mark.asyncio
async def test_concurrency_bounded_across_many_models():
	client = ScriptedClient(delays={f"m{i}": 0.01 for i in range(10)})
	limiter = RateLimiter(RateLimitSettings(max_concurrent=2), name="openai")
	pool = RateLimiterPool(per_key={"openai": limiter})
	orch = _orchestrator({"openai": client}, limiters=pool)
	result = await orch.execute("x", "", _specs(*[f"m{i}" for i in range(10)]))
	assert result.aggregate.success_count == 10
	assert client.peak == 2
	assert limiter.max_observed == 2


@pytest.mark.asyncio
async def test_synthesis_uses_only_usable_outputs():
	models = ScriptedClient(script={
	    "a": "alpha",
	    "b": ProviderError(ErrorKind.SERVER_ERROR, "500", provider="openai"),
	    "c": GenerationResult(content="gamma", finish_reason="length"),
	})
	synth = ScriptedClient(script={"judge": "merged"})
	writer = MemoryWriter()
	orch = _orchestrator({"openai": models, "gemini": synth}, writer=writer)
	opts = RunOptions(synthesis_model=ModelSpec(name="judge",
	                                            provider="gemini"))
	result = await orch.execute("x", "", _specs("a", "b", "c"), opts)
	assert result.synthesis is not None
	assert result.synthesis.source_models == ["a", "c"]
	assert result.synthesis.status == OutcomeStatus.SUCCESS
	assert writer.files["judge-synthesis"] == "merged"
	prompt = synth.prompts["judge"]
	assert '<model_result model="a">\nalpha\n</model_result>' in prompt
	assert '<model_result model="c">\ngamma\n</model_result>' in prompt
	assert 'model="b"' not in prompt
	assert prompt.index('model="a"') < prompt.index('model="c"')
	assert result.overall_status == OverallStatus.PARTIAL_FAILURE


@pytest.mark.asyncio
async def test_all_succeeded_requires_synthesis_success():
	models = ScriptedClient()
	synth = ScriptedClient(script={
	    "judge": ProviderError(ErrorKind.RATE_LIMITED, "slow down",
	                           provider="gemini"),
	})
	orch = _orchestrator({"openai": models, "gemini": synth})
	opts = RunOptions(synthesis_model=ModelSpec(name="judge",
	                                            provider="gemini"))
	result = await orch.execute("x", "", _specs("a", "b"), opts)
	assert result.aggregate.success_count == 2
	assert result.synthesis.status == OutcomeStatus.FAILURE
	assert result.overall_status == OverallStatus.PARTIAL_FAILURE


@pytest.mark.asyncio
async def test_all_failed_skips_synthesis():
	models = ScriptedClient(script={
	    n: ProviderError(ErrorKind.SERVER_ERROR, "down", provider="openai")
	    for n in ("a", "b")
	})
	synth = ScriptedClient()
	orch = _orchestrator({"openai": models, "gemini": synth})
	opts = RunOptions(synthesis_model=ModelSpec(name="judge",
	                                            provider="gemini"))
	result = await orch.execute("x", "", _specs("a", "b"), opts)
	assert result.overall_status == OverallStatus.ALL_FAILED
	assert result.synthesis is None
	assert synth.prompts == {}


@pytest.mark.asyncio
async def test_cancelled_context_rejected_before_any_work():
	client = ScriptedClient()
	ctx = RunContext()
	ctx.cancel("early")
	orch = _orchestrator({"openai": client})
	with pytest.raises(RunCancelledError):
		await orch.execute("x", "", _specs("a"), ctx=ctx)
	assert client.prompts == {}


@pytest.mark.asyncio
async def test_deadline_cancels_in_flight_and_skips_queued():
	client = ScriptedClient(delays={"a": 5, "b": 5, "c": 5})
	pool = RateLimiterPool(
	    RateLimiter(RateLimitSettings(max_concurrent=1), name="default"))
	synth = ScriptedClient()
	orch = _orchestrator({"openai": client, "gemini": synth}, limiters=pool)
	opts = RunOptions(deadline_seconds=0.05,
	                  synthesis_model=ModelSpec(name="judge",
	                                            provider="gemini"))
	result = await orch.execute("x", "", _specs("a", "b", "c"), opts)
	agg = result.aggregate
	assert len(agg) == 3
	assert agg.get("a").status == OutcomeStatus.FAILURE
	assert agg.get("a").error_kind == ErrorKind.CANCELLED
	assert agg.get("b").status == OutcomeStatus.SKIPPED
	assert agg.get("c").status == OutcomeStatus.SKIPPED
	assert result.overall_status == OverallStatus.CANCELLED
	assert result.cancel_reason == "deadline exceeded"
	assert result.synthesis is None
	assert synth.prompts == {}
	assert orch.state == RunState.CANCELLED


@pytest.mark.asyncio
async def test_external_cancel_mid_run():
	client = ScriptedClient(delays={"a": 0, "b": 5})
	ctx = RunContext()
	orch = _orchestrator({"openai": client})
	run = asyncio.create_task(orch.execute("x", "", _specs("a", "b"), ctx=ctx))
	await asyncio.sleep(0.05)
	ctx.cancel("interrupted")
	result = await run
	assert result.aggregate.get("a").status == OutcomeStatus.SUCCESS
	assert result.aggregate.get("b").error_kind == ErrorKind.CANCELLED
	assert result.overall_status == OverallStatus.CANCELLED
	assert result.cancel_reason == "interrupted"


@pytest.mark.asyncio
async def test_configuration_errors():
	client = ScriptedClient()
	orch = _orchestrator({"openai": client})
	with pytest.raises(ConfigurationError):
		await orch.execute("x", "", [])
	with pytest.raises(ConfigurationError):
		await orch.execute("x", "", _specs("a", "a"))
	with pytest.raises(ConfigurationError):
		await orch.execute("x", "", _specs("g", provider="gemini"))
	with pytest.raises(ConfigurationError):
		await orch.execute(
		    "x", "", _specs("a"),
		    RunOptions(synthesis_model=ModelSpec(name="s", provider="gemini")))
	with pytest.raises(ConfigurationError):
		await orch.execute(
		    "x", "", _specs("a", "j-synthesis"),
		    RunOptions(synthesis_model=ModelSpec(name="j", provider="openai")))
	with pytest.raises(ConfigurationError):
		await Orchestrator({"openai": client}, RateLimiterPool(),
		                   None).execute("x", "", _specs("a"))
	assert client.prompts == {}


@pytest.mark.asyncio
async def test_models_sharing_an_output_file_are_rejected():
	client = ScriptedClient()
	writer = MemoryWriter()
	orch = _orchestrator({"openai": client}, writer=writer)
	with pytest.raises(ConfigurationError, match="same output file"):
		await orch.execute("x", "", _specs("meta/llama", "meta-llama"))
	with pytest.raises(ConfigurationError, match="same output file"):
		await orch.execute("x", "", _specs("GPT-4.1", "gpt-4.1"))
	# the synthesis output takes part in the check
	with pytest.raises(ConfigurationError, match="same output file"):
		await orch.execute(
		    "x", "", _specs("a", "j:synthesis"),
		    RunOptions(synthesis_model=ModelSpec(name="j", provider="openai")))
	with pytest.raises(ConfigurationError):
		await orch.execute("x", "", _specs(".."))
	assert client.prompts == {}
	assert writer.files == {}


@pytest.mark.asyncio
async def test_concurrent_execute_on_one_instance_is_rejected():
	client = ScriptedClient(delays={"a": 0.05})
	orch = _orchestrator({"openai": client})
	first = asyncio.create_task(
	    orch.execute("x", "", _specs("a"), RunOptions(run_id="first")))
	await asyncio.sleep(0.01)
	with pytest.raises(ConfigurationError, match="already running"):
		await orch.execute("x", "", _specs("b"), RunOptions(run_id="second"))
	result = await first
	assert result.run_id == "first"
	assert list(result.aggregate.outcomes) == ["a"]
	assert orch.state == RunState.COMPLETED
	# the instance is reusable once the run finished
	again = await orch.execute("x", "", _specs("b"))
	assert again.overall_status == OverallStatus.ALL_SUCCEEDED


def _outcome(name, status, kind=None):
	content = "x" if status in (OutcomeStatus.SUCCESS,
	                            OutcomeStatus.PARTIAL_SUCCESS) else None
	return ModelOutcome(model_name=name, status=status, content=content,
	                    error_kind=kind)


def test_compute_overall_status_table():
	ok = _outcome("a", OutcomeStatus.SUCCESS)
	partial = _outcome("b", OutcomeStatus.PARTIAL_SUCCESS)
	fail = _outcome("c", OutcomeStatus.FAILURE, ErrorKind.SERVER_ERROR)
	skipped = _outcome("d", OutcomeStatus.SKIPPED)

	def agg(*outcomes):
		return AggregateResult(outcomes={o.model_name: o for o in outcomes})

	assert compute_overall_status(agg(ok), None, False,
	                              False) == OverallStatus.ALL_SUCCEEDED
	assert compute_overall_status(agg(ok, partial), None, False,
	                              False) == OverallStatus.PARTIAL_FAILURE
	assert compute_overall_status(agg(fail), None, False,
	                              False) == OverallStatus.ALL_FAILED
	assert compute_overall_status(agg(ok, skipped), None, False,
	                              True) == OverallStatus.CANCELLED
	# cancelled after everything finished does not count as cut short
	assert compute_overall_status(agg(ok), None, False,
	                              True) == OverallStatus.ALL_SUCCEEDED
	synth_ok = SynthesisResult(model_name="s-synthesis",
	                           status=OutcomeStatus.SUCCESS, content="y",
	                           source_models=["a"])
	assert compute_overall_status(agg(ok), synth_ok, True,
	                              False) == OverallStatus.ALL_SUCCEEDED
	assert compute_overall_status(agg(ok), None, True,
	                              False) == OverallStatus.PARTIAL_FAILURE
