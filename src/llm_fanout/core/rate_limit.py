"""
Rate limiting for provider requests.

Each limiter combines a concurrency cap (semaphore) with an optional
sliding-window cap on request starts per interval. A request proceeds
only once both allow it.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Mapping

from ..models.config import Config, RateLimitSettings
from ..models.errors import RunCancelledError
from ..models.task import KNOWN_PROVIDERS
from ..utils.logging import get_logger
from .context import RunContext

logger = get_logger(__name__)


class RateLimiter:
	"""Concurrency + per-interval gate for one rate-limit key."""

	def __init__(
	    self,
	    settings: RateLimitSettings | None = None,
	    *,
	    name: str = "default",
	    clock: Callable[[], float] = time.monotonic,
	    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
	) -> None:
		self.settings = settings or RateLimitSettings()
		self.name = name
		self._clock = clock
		self._sleep = sleep
		self._sem = asyncio.Semaphore(self.settings.max_concurrent)
		self._window_lock = asyncio.Lock()
		self._starts: deque[float] = deque()
		self._in_flight = 0
		self._max_observed = 0

	@property
	def in_flight(self) -> int:
		return self._in_flight

	@property
	def max_observed(self) -> int:
		return self._max_observed

	async def _await(self, aw: Awaitable, ctx: RunContext | None):
		if ctx is None:
			return await aw
		return await ctx.guard(aw)

	async def _acquire_concurrency(self, ctx: RunContext | None) -> None:
		acquire = asyncio.ensure_future(self._sem.acquire())
		try:
			await self._await(acquire, ctx)
		except (RunCancelledError, asyncio.CancelledError):
			# acquired just before the cancellation won the race
			if (acquire.done() and not acquire.cancelled()
			    and acquire.exception() is None):
				self._sem.release()
			raise

	async def _acquire_window(self, ctx: RunContext | None) -> None:
		cap = self.settings.requests_per_interval
		if cap is None:
			return
		interval = self.settings.interval_seconds
		async with self._window_lock:
			while True:
				now = self._clock()
				while self._starts and now - self._starts[0] >= interval:
					self._starts.popleft()
				if len(self._starts) < cap:
					self._starts.append(now)
					return
				delay = self._starts[0] + interval - now
				logger.debug("rate limiter %s: interval cap reached, waiting %.2fs",
				             self.name, delay)
				await self._await(self._sleep(delay), ctx)

	@asynccontextmanager
	async def slot(self, ctx: RunContext | None = None) -> AsyncIterator[None]:
		"""
		Hold one request slot for the duration of the block.

		Parameters:
			ctx: Run context; cancellation while waiting raises
				``RunCancelledError`` and leaves nothing held.
		"""
		await self._acquire_concurrency(ctx)
		try:
			await self._acquire_window(ctx)
			# no new request starts once the run is over
			if ctx is not None:
				ctx.raise_if_cancelled()
		except BaseException:
			self._sem.release()
			raise
		self._in_flight += 1
		self._max_observed = max(self._max_observed, self._in_flight)
		try:
			yield
		finally:
			self._in_flight -= 1
			self._sem.release()


class RateLimiterPool:
	"""
	Independent limiters per rate-limit key plus a shared default.

	Keys without their own limiter share ``default``.
	"""

	def __init__(self, default: RateLimiter | None = None,
	             per_key: Mapping[str, RateLimiter] | None = None) -> None:
		self.default = default or RateLimiter(name="default")
		self._per_key = dict(per_key or {})

	def for_key(self, key: str | None) -> RateLimiter:
		if key is None:
			return self.default
		return self._per_key.get(key, self.default)

	def keys(self) -> list[str]:
		return list(self._per_key)


def build_limiters(
        config: Config,
        overrides: Mapping[str, RateLimitSettings] | None = None
) -> RateLimiterPool:
	"""
	Build one limiter per known provider from configuration.

	Parameters:
		config: Runtime configuration (concurrency and RPM caps).
		overrides: Per-key settings, e.g. from a models file; keys not
			naming a provider get their own limiter too.

	Returns:
		Pool with a limiter per provider and a default limiter.
	"""
	per_key: dict[str, RateLimiter] = {}
	for provider in KNOWN_PROVIDERS:
		settings = RateLimitSettings(
		    max_concurrent=config.max_concurrent_requests,
		    requests_per_interval=config.provider_rpm(provider),
		)
		per_key[provider] = RateLimiter(settings, name=provider)
	for key, settings in (overrides or {}).items():
		per_key[key] = RateLimiter(settings, name=key)
	default = RateLimiter(
	    RateLimitSettings(max_concurrent=config.max_concurrent_requests,
	                      requests_per_interval=config.rate_limit_rpm),
	    name="default",
	)
	return RateLimiterPool(default, per_key)


__all__ = [
    "RateLimitSettings",
    "RateLimiter",
    "RateLimiterPool",
    "build_limiters",
]
