"""
Prompt assembly.

Builds the shared model prompt from instructions plus gathered context,
and the synthesis prompt from the usable model outputs.
"""

from __future__ import annotations

from html import escape
from typing import Sequence

from .loaders.prompts import load_prompt

SYNTHESIS_PROMPT_FILE = "synthesis_task.md"


class XmlPromptBuilder:
	"""Default PromptBuilder using XML-style section tags."""

	def __init__(self, synthesis_instructions: str | None = None) -> None:
		self._synthesis_instructions = synthesis_instructions

	@property
	def synthesis_instructions(self) -> str:
		if self._synthesis_instructions is None:
			self._synthesis_instructions = load_prompt(SYNTHESIS_PROMPT_FILE)
		return self._synthesis_instructions

	def build(self, instructions: str, shared_context: str) -> str:
		"""Compose the prompt sent to every model."""
		parts = [f"<instructions>\n{instructions}\n</instructions>"]
		parts.append(f"<context>\n{shared_context}</context>"
		             if shared_context.endswith("\n") else
		             f"<context>\n{shared_context}\n</context>")
		return "\n".join(parts) + "\n"

	def build_synthesis(self, instructions: str,
	                    outputs: Sequence[tuple[str, str]]) -> str:
		"""Compose the synthesis prompt; outputs keep the given order."""
		blocks = [
		    f"<model_result model=\"{escape(name, quote=True)}\">\n"
		    f"{content}\n</model_result>" for name, content in outputs
		]
		body = "\n".join(["<model_outputs>", *blocks, "</model_outputs>"])
		return (f"<instructions>\n{instructions}\n</instructions>\n\n"
		        f"{body}\n\n{self.synthesis_instructions.strip()}\n")


__all__ = ["XmlPromptBuilder", "SYNTHESIS_PROMPT_FILE"]
