"""
Prompt loading utilities.

Provides functions for loading the prompt templates shipped in the
package's prompts directory.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

# Prompts directory relative to this module
PROMPTS_DIR = Path(__file__).resolve().parents[1] / "prompts"


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
	"""
	Load a prompt file from the prompts directory.

	Parameters:
		name: Filename of the prompt to load.

	Returns:
		Contents of the prompt file.

	Raises:
		FileNotFoundError: If no packaged prompt has that name.
	"""
	path = PROMPTS_DIR / name
	if not path.is_file():
		raise FileNotFoundError(f"prompt not found: {name}")
	return path.read_text(encoding="utf-8")


__all__ = ["load_prompt", "PROMPTS_DIR"]
