"""
Path safety utilities.

Provides functions for turning model names into safe file names and for
ensuring output paths stay within the output directory.
"""

from __future__ import annotations

import re
from pathlib import Path

_UNSAFE_CHARS_RE = re.compile(r"[/\\:*?\"'<>|]")


def sanitize_filename(name: str) -> str:
	"""
	Make a model name safe to use as a file name.

	Path separators and shell/filesystem-special characters become ``-``;
	whitespace becomes ``_``.

	Parameters:
		name: Raw model name, e.g. ``openrouter/meta-llama:free``.

	Returns:
		File-name-safe string.
	"""
	cleaned = _UNSAFE_CHARS_RE.sub("-", name.strip())
	cleaned = re.sub(r"\s", "_", cleaned)
	if cleaned in ("", ".", ".."):
		raise ValueError(f"cannot derive a file name from {name!r}")
	return cleaned


def ensure_within(base: Path, path: Path) -> Path:
	"""
	Ensure a path is within the specified base directory.

	Parameters:
		base: The allowed base directory.
		path: The path to validate.

	Returns:
		The original path if valid.

	Raises:
		ValueError: If path escapes the base directory.
	"""
	resolved_base = base.resolve()
	resolved_path = path.resolve()
	if resolved_path == resolved_base or resolved_path.is_relative_to(
	    resolved_base):
		return path
	raise ValueError(f"Path {resolved_path} escapes base {resolved_base}")


__all__ = ["ensure_within", "sanitize_filename"]
