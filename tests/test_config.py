import pytest

from llm_fanout.models.config import PROVIDER_DEFAULT_RPM, Config, load_env
from llm_fanout.models.run_params import RunParams
from llm_fanout.models.task import ModelSpec, ModelTask, infer_provider

_ENV_VARS = (
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "OPENROUTER_API_KEY",
    "FANOUT_MODELS",
    "SYNTHESIS_MODEL",
    "MODELS_FILE",
    "OUTPUT_DIR",
    "MAX_CONCURRENT_REQUESTS",
    "RATE_LIMIT_RPM",
    "RUN_TIMEOUT_SECONDS",
    "AUDIT_LOG_FILE",
    "CONTEXT_INCLUDE",
    "CONTEXT_EXCLUDE",
    "CONTEXT_EXCLUDE_NAMES",
    "MAX_CONTEXT_FILE_BYTES",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
	for var in _ENV_VARS:
		monkeypatch.delenv(var, raising=False)


def test_defaults():
	cfg = Config()
	assert cfg.models == []
	assert cfg.output_dir == "output"
	assert cfg.max_concurrent_requests == 5
	assert cfg.request_timeout_seconds == 300
	assert cfg.run_timeout_seconds is None
	assert cfg.synthesis_spec() is None


def test_models_parsing():
	cfg = Config(FANOUT_MODELS="gpt-4.1, gemini:gemini-2.5-pro ,meta/llama")
	assert cfg.models == ["gpt-4.1", "gemini:gemini-2.5-pro", "meta/llama"]
	specs = cfg.model_specs()
	assert [s.provider for s in specs] == ["openai", "gemini", "openrouter"]
	assert specs[1].name == "gemini-2.5-pro"


def test_models_from_env(monkeypatch):
	monkeypatch.setenv("FANOUT_MODELS", "o3,gpt-4o")
	monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
	cfg = Config()
	assert cfg.models == ["o3", "gpt-4o"]
	assert cfg.api_key_for("openai") == "sk-env"
	assert cfg.api_key_for("gemini") is None


def test_provider_rpm_defaults_and_override():
	cfg = Config()
	for provider, rpm in PROVIDER_DEFAULT_RPM.items():
		assert cfg.provider_rpm(provider) == rpm
	assert cfg.provider_rpm("custom") is None
	assert Config(RATE_LIMIT_RPM=7).provider_rpm("gemini") == 7


def test_positive_validation():
	with pytest.raises(ValueError):
		Config(MAX_CONCURRENT_REQUESTS=0)
	with pytest.raises(ValueError):
		Config(RUN_TIMEOUT_SECONDS=-1)


def test_base_urls():
	cfg = Config(GEMINI_BASE_URL="https://g.test")
	assert cfg.base_url_for("gemini") == "https://g.test"
	assert cfg.base_url_for("openai") == "https://api.openai.com/v1"


def test_apply_overrides_only_non_none(tmp_path):
	instr = tmp_path / "i.md"
	instr.write_text("x", encoding="utf-8")
	cfg = Config(OUTPUT_DIR="env-out", FANOUT_MODELS="gpt-4o",
	             MAX_CONCURRENT_REQUESTS=4)
	cfg.apply_overrides(
	    RunParams(instructions_file=instr, models=["o3"], timeout=30, rpm=12,
	              synthesis_model="gemini-2.5-pro"))
	assert cfg.models == ["o3"]
	assert cfg.run_timeout_seconds == 30
	assert cfg.rate_limit_rpm == 12
	assert cfg.output_dir == "env-out"
	assert cfg.max_concurrent_requests == 4
	assert cfg.synthesis_spec().provider == "gemini"


def test_context_filter_defaults_and_env(monkeypatch):
	flt = Config().context_filter()
	assert flt.include_exts == ()
	assert ".png" in flt.exclude_exts
	assert "node_modules" in flt.exclude_names
	assert flt.max_file_bytes == 1_000_000
	monkeypatch.setenv("CONTEXT_INCLUDE", "py, md")
	monkeypatch.setenv("CONTEXT_EXCLUDE_NAMES", "fixtures")
	monkeypatch.setenv("MAX_CONTEXT_FILE_BYTES", "2048")
	flt = Config().context_filter()
	assert flt.include_exts == (".py", ".md")
	assert flt.exclude_names == ("fixtures",)
	assert ".png" in flt.exclude_exts
	assert flt.max_file_bytes == 2048
	with pytest.raises(ValueError):
		Config(MAX_CONTEXT_FILE_BYTES=0)


def test_apply_overrides_context_filters(tmp_path):
	instr = tmp_path / "i.md"
	instr.write_text("x", encoding="utf-8")
	cfg = Config(CONTEXT_EXCLUDE=".log")
	cfg.apply_overrides(
	    RunParams(instructions_file=instr, include=".py,.pyi",
	              exclude_names="tests,docs"))
	flt = cfg.context_filter()
	assert flt.include_exts == (".py", ".pyi")
	assert flt.exclude_exts == (".log",)
	assert flt.exclude_names == ("tests", "docs")


def test_load_env_reads_dotenv(tmp_path, monkeypatch):
	env = tmp_path / ".env"
	env.write_text("SYNTHESIS_MODEL=gpt-4.1\n", encoding="utf-8")
	# registers an undo so the loaded value does not leak into other tests
	monkeypatch.setenv("SYNTHESIS_MODEL", "unset")
	monkeypatch.delenv("SYNTHESIS_MODEL")
	load_env(env)
	assert Config().synthesis_model == "gpt-4.1"


def test_model_spec_parse_and_defaults():
	spec = ModelSpec.parse("openrouter:anthropic/claude-sonnet")
	assert spec.provider == "openrouter"
	assert spec.model_id == "anthropic/claude-sonnet"
	assert spec.limiter_key == "openrouter"
	spec = ModelSpec(name="fast", provider="OpenAI", rate_limit_key="tier1")
	assert spec.provider == "openai"
	assert spec.model_id == "fast"
	assert spec.limiter_key == "tier1"
	with pytest.raises(ValueError):
		ModelSpec(name=" ", provider="openai")


def test_infer_provider():
	assert infer_provider("gpt-4.1") == "openai"
	assert infer_provider("o4-mini") == "openai"
	assert infer_provider("gemini-2.5-flash") == "gemini"
	assert infer_provider("x-ai/grok-4") == "openrouter"
	with pytest.raises(ValueError):
		infer_provider("mystery-model")


def test_model_task_from_spec():
	spec = ModelSpec(name="a", provider="gemini", model_id="gemini-2.5-pro",
	                 options={"temperature": 0.3})
	task = ModelTask.from_spec(spec, "p", name="a-synthesis")
	assert task.model_name == "a-synthesis"
	assert task.model_id == "gemini-2.5-pro"
	assert task.rate_limit_key == "gemini"
	assert task.options == {"temperature": 0.3}
