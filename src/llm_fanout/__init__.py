"""
llm-fanout - Send one prompt to several LLMs and synthesize the answers.

This package queries multiple models across providers (OpenAI, Gemini,
OpenRouter) concurrently under per-provider rate limits, writes each
output to disk and optionally asks a synthesis model to merge them.

Main entry points:
    - llm_fanout.main: CLI entrypoint
    - llm_fanout.core.orchestrator: Orchestrator.execute() for a run
    - llm_fanout.models.config: Config and load_env()
"""
