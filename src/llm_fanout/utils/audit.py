"""
JSON lines audit logger.

Implements the ``AuditSink`` protocol by appending one JSON object per
event to a file.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import IO

from ..models.audit import AuditEvent
from .logging import sanitize_text


class JsonlAuditLogger:
	"""Append-only audit log; safe to call from concurrent tasks."""

	def __init__(self, path: str | Path) -> None:
		self.path = Path(path)
		self.path.parent.mkdir(parents=True, exist_ok=True)
		self._lock = threading.Lock()
		self._fh: IO[str] | None = self.path.open("a", encoding="utf-8")

	def log(self, event: AuditEvent) -> None:
		"""
		Write one event.

		Raises:
			OSError: If the file cannot be written; callers report this
				without aborting the run.
			ValueError: If the logger was already closed.
		"""
		line = sanitize_text(event.model_dump_json(exclude_none=True))
		with self._lock:
			if self._fh is None:
				raise ValueError("audit log is closed")
			self._fh.write(line + "\n")
			self._fh.flush()

	def close(self) -> None:
		with self._lock:
			if self._fh is not None:
				self._fh.close()
				self._fh = None

	def __enter__(self) -> "JsonlAuditLogger":
		return self

	def __exit__(self, *exc) -> None:
		self.close()


__all__ = ["JsonlAuditLogger"]
