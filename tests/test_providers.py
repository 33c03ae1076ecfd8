import json

import httpx
import pytest

from llm_fanout.core.executor import classify_result
from llm_fanout.integrations.clients import build_clients, close_clients
from llm_fanout.integrations.gemini import GeminiClient, build_generate_body
from llm_fanout.integrations.openai_compat import (
    OpenAICompatibleClient,
    build_chat_body,
)
from llm_fanout.models.config import Config
from llm_fanout.models.errors import ErrorKind, ProviderError
from llm_fanout.models.outcome import OutcomeStatus


def _http(handler):
	return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _never_called(request):
	raise AssertionError(f"unexpected request to {request.url}")


@pytest.mark.asyncio
async def test_openai_success():
	seen = {}

	def handler(request):
		seen["url"] = str(request.url)
		seen["auth"] = request.headers.get("authorization")
		seen["body"] = json.loads(request.content)
		return httpx.Response(
		    200, json={
		        "choices": [{
		            "message": {
		                "role": "assistant",
		                "content": "hi there"
		            },
		            "finish_reason": "stop",
		        }],
		        "usage": {
		            "prompt_tokens": 12,
		            "completion_tokens": 3
		        },
		    })

	client = OpenAICompatibleClient("openai", "sk-test-123456789",
	                                "https://api.example.com/v1/",
	                                http_client=_http(handler))
	result = await client.generate("hello", "gpt-4.1", {"temperature": 0.2})
	await client.aclose()
	assert seen["url"] == "https://api.example.com/v1/chat/completions"
	assert seen["auth"] == "Bearer sk-test-123456789"
	assert seen["body"]["model"] == "gpt-4.1"
	assert seen["body"]["temperature"] == 0.2
	assert seen["body"]["messages"] == [{"role": "user", "content": "hello"}]
	assert result.content == "hi there"
	assert result.finish_reason == "stop"
	assert result.token_usage.input_tokens == 12
	assert result.token_usage.output_tokens == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("status,body,kind", [
    (429, {
        "error": {
            "message": "Rate limit reached",
            "type": "requests"
        }
    }, ErrorKind.RATE_LIMITED),
    (400, {
        "error": {
            "message": "too long",
            "code": "context_length_exceeded"
        }
    }, ErrorKind.INPUT_TOO_LARGE),
    (401, {
        "error": {
            "message": "Incorrect API key",
            "type": "invalid_request_error"
        }
    }, ErrorKind.AUTH),
    (503, "upstream unavailable", ErrorKind.SERVER_ERROR),
])
async def test_openai_error_statuses(status, body, kind):

	def handler(request):
		if isinstance(body, str):
			return httpx.Response(status, text=body)
		return httpx.Response(status, json=body)

	client = OpenAICompatibleClient("openai", "sk-test-123456789",
	                                "https://api.example.com/v1",
	                                http_client=_http(handler))
	with pytest.raises(ProviderError) as exc:
		await client.generate("hello", "gpt-4.1", {})
	assert exc.value.kind == kind
	assert exc.value.status_code == status
	assert exc.value.provider == "openai"


@pytest.mark.asyncio
async def test_missing_key_fails_with_auth_without_request():
	client = OpenAICompatibleClient("openrouter", None,
	                                "https://openrouter.example/api/v1",
	                                http_client=_http(_never_called))
	with pytest.raises(ProviderError) as exc:
		await client.generate("hello", "meta/llama", {})
	assert exc.value.kind == ErrorKind.AUTH
	gemini = GeminiClient(None, http_client=_http(_never_called))
	with pytest.raises(ProviderError) as exc:
		await gemini.generate("hello", "gemini-2.5-pro", {})
	assert exc.value.kind == ErrorKind.AUTH


@pytest.mark.asyncio
async def test_openrouter_error_in_success_response():

	def handler(request):
		return httpx.Response(200, json={
		    "error": {
		        "code": 402,
		        "message": "Insufficient credits"
		    },
		})

	client = OpenAICompatibleClient("openrouter", "sk-or-v1-abcdefghijkl",
	                                "https://openrouter.example/api/v1",
	                                http_client=_http(handler))
	with pytest.raises(ProviderError) as exc:
		await client.generate("hello", "meta/llama", {})
	assert exc.value.kind == ErrorKind.INSUFFICIENT_CREDITS
	assert exc.value.status_code == 402


@pytest.mark.asyncio
async def test_gemini_success_skips_thought_parts():
	seen = {}

	def handler(request):
		seen["path"] = request.url.path
		seen["key"] = request.headers.get("x-goog-api-key")
		seen["body"] = json.loads(request.content)
		return httpx.Response(
		    200, json={
		        "candidates": [{
		            "content": {
		                "parts": [
		                    {
		                        "text": "thinking...",
		                        "thought": True
		                    },
		                    {
		                        "text": "answer"
		                    },
		                ]
		            },
		            "finishReason": "STOP",
		        }],
		        "usageMetadata": {
		            "promptTokenCount": 7,
		            "candidatesTokenCount": 2
		        },
		    })

	client = GeminiClient("AIza-test-key", "https://gemini.example/v1beta",
	                      http_client=_http(handler))
	result = await client.generate("hello", "gemini-2.5-pro",
	                               {"temperature": 0.5})
	assert seen["path"] == "/v1beta/models/gemini-2.5-pro:generateContent"
	assert seen["key"] == "AIza-test-key"
	assert seen["body"]["generationConfig"] == {"temperature": 0.5}
	assert result.content == "answer"
	assert result.finish_reason == "stop"
	assert result.token_usage.input_tokens == 7


@pytest.mark.asyncio
async def test_gemini_truncation_classifies_as_partial():

	def handler(request):
		return httpx.Response(200, json={
		    "candidates": [{
		        "content": {
		            "parts": [{
		                "text": "cut"
		            }]
		        },
		        "finishReason": "MAX_TOKENS",
		    }],
		})

	client = GeminiClient("key", http_client=_http(handler))
	result = await client.generate("hello", "gemini-2.5-flash", {})
	assert result.token_usage is None
	outcome = classify_result("g", result)
	assert outcome.status == OutcomeStatus.PARTIAL_SUCCESS


@pytest.mark.asyncio
async def test_gemini_blocked_prompt_is_content_filtered():

	def handler(request):
		return httpx.Response(200,
		                      json={"promptFeedback": {
		                          "blockReason": "SAFETY"
		                      }})

	client = GeminiClient("key", http_client=_http(handler))
	with pytest.raises(ProviderError) as exc:
		await client.generate("hello", "gemini-2.5-pro", {})
	assert exc.value.kind == ErrorKind.CONTENT_FILTERED


@pytest.mark.asyncio
async def test_gemini_invalid_key_is_auth():

	def handler(request):
		return httpx.Response(
		    400, json={
		        "error": {
		            "code": 400,
		            "message": "API key not valid. Please pass a valid API key.",
		            "status": "INVALID_ARGUMENT",
		        }
		    })

	client = GeminiClient("bad", http_client=_http(handler))
	with pytest.raises(ProviderError) as exc:
		await client.generate("hello", "gemini-2.5-pro", {})
	assert exc.value.kind == ErrorKind.AUTH


def test_request_bodies_map_options():
	body = build_chat_body("p", "gpt-4.1", {
	    "max_output_tokens": 100,
	    "unknown": 1
	})
	assert body["max_tokens"] == 100
	assert "unknown" not in body
	gbody = build_generate_body("p", {"max_tokens": 50, "stop": "END"})
	assert gbody["generationConfig"] == {
	    "maxOutputTokens": 50,
	    "stopSequences": ["END"]
	}


@pytest.mark.asyncio
async def test_build_clients_one_per_provider(monkeypatch):
	for var in ("OPENAI_API_KEY", "GEMINI_API_KEY", "OPENROUTER_API_KEY"):
		monkeypatch.delenv(var, raising=False)
	cfg = Config(OPENAI_API_KEY="sk-a", OPENROUTER_BASE_URL="https://or.test/v1")
	clients = build_clients(cfg)
	assert set(clients) == {"openai", "gemini", "openrouter"}
	assert clients["openrouter"].base_url == "https://or.test/v1"
	assert clients["gemini"].provider == "gemini"
	await close_clients(clients)
