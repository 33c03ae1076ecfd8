from pathlib import Path

import pytest

from llm_fanout.models.run_params import RunOptions, RunParams
from llm_fanout.models.task import ModelSpec


def _instructions(tmp_path):
	p = tmp_path / "instructions.md"
	p.write_text("Explain", encoding="utf-8")
	return p


def test_run_params_valid(tmp_path):
	rp = RunParams(instructions_file=_instructions(tmp_path),
	               context_paths=[tmp_path], models=["gpt-4.1"], timeout=60)
	assert rp.context_paths == [Path(tmp_path)]
	assert rp.models == ["gpt-4.1"]
	assert rp.rpm is None


def test_run_params_missing_instructions(tmp_path):
	with pytest.raises(ValueError):
		RunParams(instructions_file=tmp_path / "missing.md")


def test_run_params_positive_ints(tmp_path):
	instr = _instructions(tmp_path)
	for field in ("timeout", "max_concurrent", "rpm"):
		with pytest.raises(ValueError):
			RunParams(instructions_file=instr, **{field: 0})


def test_run_options_defaults():
	a = RunOptions()
	b = RunOptions()
	assert a.synthesis_model is None
	assert a.deadline_seconds is None
	assert a.run_id != b.run_id


def test_run_options_deadline_positive():
	with pytest.raises(ValueError):
		RunOptions(deadline_seconds=0)
	opts = RunOptions(deadline_seconds=1.5,
	                  synthesis_model=ModelSpec.parse("gpt-4.1"))
	assert opts.synthesis_model.provider == "openai"
