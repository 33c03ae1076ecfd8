"""
Provider client construction.

``build_clients`` returns the explicit provider -> Client mapping handed
to the orchestrator; it is built once at process start.
"""

from __future__ import annotations

from typing import Mapping

import httpx

from ..models.config import Config
from ..utils.logging import get_logger
from ..utils.protocols import Client
from .gemini import GeminiClient
from .openai_compat import OpenAICompatibleClient

logger = get_logger(__name__)

OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://github.com/llm-fanout/llm-fanout",
    "X-Title": "llm-fanout",
}


def build_clients(config: Config,
                  http_client: httpx.AsyncClient | None = None
                  ) -> dict[str, Client]:
	"""
	Create one client per supported provider.

	Clients for providers without an API key are still created; their
	calls fail with an Auth error so that the affected models are
	reported rather than silently dropped.

	Parameters:
		config: Runtime configuration (keys, base URLs, timeout).
		http_client: Shared HTTP client; one per provider is created when
			omitted.

	Returns:
		Mapping from provider name to client.
	"""
	timeout = float(config.request_timeout_seconds)
	clients: dict[str, Client] = {
	    "openai":
	        OpenAICompatibleClient(
	            "openai",
	            config.openai_api_key,
	            config.openai_base_url,
	            timeout=timeout,
	            http_client=http_client,
	        ),
	    "openrouter":
	        OpenAICompatibleClient(
	            "openrouter",
	            config.openrouter_api_key,
	            config.openrouter_base_url,
	            timeout=timeout,
	            http_client=http_client,
	            extra_headers=OPENROUTER_HEADERS,
	        ),
	    "gemini":
	        GeminiClient(
	            config.gemini_api_key,
	            config.gemini_base_url,
	            timeout=timeout,
	            http_client=http_client,
	        ),
	}
	for provider in clients:
		if not config.api_key_for(provider):
			logger.debug("no API key configured for %s", provider)
	return clients


async def close_clients(clients: Mapping[str, Client]) -> None:
	"""Close the HTTP connections held by the clients."""
	for provider, client in clients.items():
		aclose = getattr(client, "aclose", None)
		if aclose is None:
			continue
		try:
			await aclose()
		except Exception:
			logger.debug("failed to close %s client", provider, exc_info=True)


__all__ = ["build_clients", "close_clients", "OPENROUTER_HEADERS"]
