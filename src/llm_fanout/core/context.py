"""
Run-scoped cancellation context.

A ``RunContext`` is shared by every task of one run. Cancelling it (or
letting its deadline expire) makes every pending ``guard`` call raise
``RunCancelledError`` and cancels the guarded work.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from ..models.errors import RunCancelledError
from ..utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEADLINE_EXCEEDED = "deadline exceeded"


class RunContext:
	"""Cancellation signal with an optional deadline."""

	def __init__(self, deadline_seconds: float | None = None) -> None:
		self._event = asyncio.Event()
		self._reason: str | None = None
		self._deadline_seconds = deadline_seconds
		self._timer: asyncio.TimerHandle | None = None

	@property
	def is_cancelled(self) -> bool:
		return self._event.is_set()

	@property
	def reason(self) -> str | None:
		return self._reason

	@property
	def deadline_seconds(self) -> float | None:
		return self._deadline_seconds

	def cancel(self, reason: str = "cancelled") -> None:
		"""Cancel the context; the first reason wins."""
		if self._event.is_set():
			return
		self._reason = reason
		self._event.set()
		logger.info("run context cancelled: %s", reason)

	def start_deadline(self, deadline_seconds: float | None = None) -> None:
		"""
		Arm the deadline timer on the running loop.

		Parameters:
			deadline_seconds: Overrides the deadline given at construction.
		"""
		if deadline_seconds is not None:
			self._deadline_seconds = deadline_seconds
		if self._deadline_seconds is None or self._timer is not None:
			return
		loop = asyncio.get_running_loop()
		self._timer = loop.call_later(self._deadline_seconds, self.cancel,
		                              DEADLINE_EXCEEDED)

	def close(self) -> None:
		"""Disarm the deadline timer."""
		if self._timer is not None:
			self._timer.cancel()
			self._timer = None

	def raise_if_cancelled(self) -> None:
		if self._event.is_set():
			raise RunCancelledError(self._reason or "cancelled")

	async def wait(self) -> None:
		await self._event.wait()

	async def guard(self, aw: Awaitable[T]) -> T:
		"""
		Await ``aw`` unless the context ends first.

		Parameters:
			aw: Awaitable doing the actual work.

		Returns:
			Result of ``aw``.

		Raises:
			RunCancelledError: If the context is or becomes cancelled before
				``aw`` completes; ``aw`` is cancelled.
		"""
		work = asyncio.ensure_future(aw)
		if self._event.is_set():
			work.cancel()
			await asyncio.gather(work, return_exceptions=True)
			raise RunCancelledError(self._reason or "cancelled")
		stop = asyncio.ensure_future(self._event.wait())
		try:
			await asyncio.wait({work, stop},
			                   return_when=asyncio.FIRST_COMPLETED)
		except asyncio.CancelledError:
			work.cancel()
			stop.cancel()
			raise
		if work.done():
			stop.cancel()
			return work.result()
		work.cancel()
		await asyncio.gather(work, return_exceptions=True)
		raise RunCancelledError(self._reason or "cancelled")


__all__ = ["RunContext", "DEADLINE_EXCEEDED"]
