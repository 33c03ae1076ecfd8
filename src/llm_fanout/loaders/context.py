"""
Context file gathering.

Reads files (and text files under directories), applies the
``ContextFilter`` rules and renders the result into the shared context
block sent to every model.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Iterable, Optional

from ..models.context_filter import ContextFilter
from ..models.errors import ConfigurationError
from ..utils.logging import get_logger

logger = get_logger(__name__)


def filter_reason(path: Path, flt: ContextFilter,
                  root: Optional[Path] = None) -> Optional[str]:
	"""
	Decide whether a path passes the name and extension rules.

	Touches nothing on disk.

	Parameters:
		path: Candidate file.
		flt: Selection rules.
		root: Directory that was walked to find ``path``; names and hidden
			entries are checked on every component below it. Without a
			root only the file name is checked.

	Returns:
		Why the file is excluded, or None when it is kept.
	"""
	parts = path.relative_to(root).parts if root is not None else (path.name,)
	if any(part in flt.exclude_names for part in parts):
		return "excluded by name"
	if not flt.include_hidden and any(
	    part.startswith(".") and part not in (".", "..") for part in parts):
		return "hidden"
	ext = path.suffix.lower()
	if flt.include_exts and ext not in flt.include_exts:
		return "extension not in include list"
	if ext in flt.exclude_exts:
		return "extension in exclude list"
	return None


def filter_paths(paths: Iterable[Path], flt: ContextFilter,
                 root: Optional[Path] = None) -> list[Path]:
	"""Keep the paths ``filter_reason`` accepts, preserving order."""
	return [p for p in paths if filter_reason(p, flt, root) is None]


def git_ignored(root: Path, files: list[Path]) -> set[Path]:
	"""
	Ask git which of ``files`` are ignored in the work tree at ``root``.

	Returns an empty set when ``root`` is not inside a git work tree or
	git is not installed.
	"""
	if not files:
		return set()
	rel = [str(f.relative_to(root)) for f in files]
	try:
		proc = subprocess.run(
		    ["git", "-C", str(root), "check-ignore", "--stdin"],
		    input="\n".join(rel) + "\n",
		    capture_output=True,
		    text=True,
		    check=False,
		)
	except OSError as exc:
		logger.debug("git unavailable, .gitignore not applied: %s", exc)
		return set()
	# 0: some ignored, 1: none ignored, anything else: not a work tree
	if proc.returncode != 0:
		return set()
	return {root / line.strip() for line in proc.stdout.splitlines()
	        if line.strip()}


def _is_text(path: Path) -> bool:
	try:
		with path.open("rb") as fh:
			chunk = fh.read(8192)
	except OSError:
		return False
	return b"\x00" not in chunk


def _too_large(path: Path, flt: ContextFilter) -> bool:
	if flt.max_file_bytes is None:
		return False
	try:
		return path.stat().st_size > flt.max_file_bytes
	except OSError:
		return True


def _walk(root: Path, flt: ContextFilter) -> list[Path]:
	candidates: list[Path] = []
	for child in sorted(root.rglob("*")):
		if not child.is_file():
			continue
		reason = filter_reason(child, flt, root)
		if reason is not None:
			logger.debug("skipping %s: %s", child, reason)
			continue
		candidates.append(child)
	ignored = git_ignored(root, candidates) if flt.respect_gitignore else set()
	return [c for c in candidates if c not in ignored]


def iter_context_files(paths: Iterable[Path],
                       flt: Optional[ContextFilter] = None) -> list[Path]:
	"""
	Expand files and directories into the ordered list of files to include.

	Directories are walked in sorted order. Files failing the filter
	rules, ignored by git, larger than ``max_file_bytes`` or binary are
	skipped; explicitly named files only face the file-name rules.

	Raises:
		ConfigurationError: If a path does not exist.
	"""
	flt = flt or ContextFilter()
	files: list[Path] = []
	for p in paths:
		if p.is_file():
			reason = filter_reason(p, flt)
			if reason is not None:
				logger.info("skipping %s: %s", p, reason)
				continue
			found = [p]
		elif p.is_dir():
			found = _walk(p, flt)
		else:
			raise ConfigurationError(f"context path not found: {p}")
		for f in found:
			if _too_large(f, flt):
				logger.info("skipping %s: larger than %d bytes", f,
				            flt.max_file_bytes)
			elif not _is_text(f):
				logger.debug("skipping %s: binary", f)
			else:
				files.append(f)
	return files


def render_context_files(files: Iterable[Path]) -> str:
	"""
	Render context files as ``<path>`` tagged blocks.

	Unreadable or non-UTF-8 files are logged and left out.
	"""
	blocks: list[str] = []
	for f in files:
		try:
			content = f.read_text(encoding="utf-8")
		except (OSError, UnicodeDecodeError) as exc:
			logger.warning("skipping unreadable context file %s: %s", f, exc)
			continue
		blocks.append(f"<path>{f}</path>\n{content}\n")
	logger.info("gathered %d context files", len(blocks))
	return "".join(blocks)


def read_context_files(paths: Iterable[Path],
                       flt: Optional[ContextFilter] = None) -> str:
	"""
	Gather and render context in one step.

	Parameters:
		paths: Files and/or directories.
		flt: Selection rules; defaults to ``ContextFilter()``.

	Returns:
		Concatenated context; empty when no paths are given.
	"""
	return render_context_files(iter_context_files(paths, flt))


__all__ = [
    "filter_reason",
    "filter_paths",
    "git_ignored",
    "iter_context_files",
    "render_context_files",
    "read_context_files",
]
