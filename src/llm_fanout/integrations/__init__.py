"""Provider integrations.

This subpackage contains the provider adapters implementing the
``Client`` protocol and the classification of provider failures into the
shared error taxonomy.

Key modules:
    - openai_compat: OpenAI-compatible chat completions (OpenAI, OpenRouter)
    - gemini: Gemini generateContent
    - errors: HTTP status / payload / message classification
    - clients: Explicit provider -> Client mapping
"""

from .errors import (
    classify_message,
    classify_status,
    classify_openai_error,
    classify_gemini_error,
)
from .openai_compat import OpenAICompatibleClient
from .gemini import GeminiClient
from .clients import build_clients, close_clients

__all__ = [
    "classify_message",
    "classify_status",
    "classify_openai_error",
    "classify_gemini_error",
    "OpenAICompatibleClient",
    "GeminiClient",
    "build_clients",
    "close_clients",
]
