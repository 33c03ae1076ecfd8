"""
Context file selection rules.

Defines which files under the given context paths are sent to the
models.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_EXCLUDE_EXTS: tuple[str, ...] = (
    ".exe", ".bin", ".dll", ".so", ".dylib", ".o", ".a", ".obj", ".class",
    ".jar", ".pyc", ".pyo", ".zip", ".tar", ".gz", ".tgz", ".7z", ".rar",
    ".pdf", ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp",
    ".mp3", ".mp4", ".wav", ".mov", ".sqlite", ".db", ".lock")
DEFAULT_EXCLUDE_NAMES: tuple[str, ...] = (
    ".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build",
    "vendor", "target", ".idea", ".vscode", "package-lock.json")
DEFAULT_MAX_FILE_BYTES = 1_000_000


def split_values(v: Any) -> tuple[str, ...]:
	"""Accept a comma-separated string or a sequence of strings."""
	if v is None or v == "":
		return ()
	if isinstance(v, str):
		v = v.split(",")
	return tuple(str(p).strip() for p in v if str(p).strip())


def normalize_ext(ext: str) -> str:
	"""Lowercase an extension and give it a leading dot."""
	ext = ext.strip().lower()
	return ext if ext.startswith(".") else f".{ext}"


class ContextFilter(BaseModel):
	"""Rules deciding which files become context.

	Extensions compare case-insensitively; names match any path
	component below the context path that was walked.
	"""

	model_config = ConfigDict(frozen=True)

	include_exts: tuple[str, ...] = Field(
	    default=(), description="Only these extensions, when non-empty")
	exclude_exts: tuple[str, ...] = Field(
	    default=DEFAULT_EXCLUDE_EXTS, description="Extensions never included")
	exclude_names: tuple[str, ...] = Field(
	    default=DEFAULT_EXCLUDE_NAMES,
	    description="File or directory names never included")
	include_hidden: bool = Field(False, description="Keep dot-files")
	respect_gitignore: bool = Field(
	    True, description="Drop files ignored by git in walked directories")
	max_file_bytes: int | None = Field(
	    default=DEFAULT_MAX_FILE_BYTES, ge=1,
	    description="Larger files are skipped; None disables the limit")

	@field_validator("include_exts", "exclude_exts", mode="before")
	@classmethod
	def normalize_exts(cls, v: Any) -> tuple[str, ...]:
		return tuple(normalize_ext(e) for e in split_values(v))

	@field_validator("exclude_names", mode="before")
	@classmethod
	def split_names(cls, v: Any) -> tuple[str, ...]:
		return split_values(v)


__all__ = [
    "ContextFilter",
    "DEFAULT_EXCLUDE_EXTS",
    "DEFAULT_EXCLUDE_NAMES",
    "DEFAULT_MAX_FILE_BYTES",
    "normalize_ext",
    "split_values",
]
