"""LLM client tests."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from litellm.exceptions import (
    APIConnectionError,
    AuthenticationError,
    ContextWindowExceededError,
    InternalServerError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)

from repowiki.generation.schemas import PageDraft, RepoAnalysis
from repowiki.llm.client import (
    LLMAuthenticationError,
    LLMClient,
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
)

ANALYSIS_JSON = json.dumps(
    {
        "repoName": "hello-world",
        "description": "A sample repository.",
        "subsystems": [
            {"id": "Search", "name": "Search", "description": "Finds things.", "relevantFiles": []},
            {"id": "export", "name": "Export", "description": "Writes files.", "relevantFiles": []},
            {"id": "auth", "name": "Auth", "description": "Logs in.", "relevantFiles": []},
        ],
    }
)


def completion_response(content: str) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def stream_chunk(content):
    chunk = MagicMock()
    chunk.choices = [MagicMock()]
    chunk.choices[0].delta.content = content
    return chunk


@pytest.fixture
def mock_completion():
    """Mock litellm acompletion."""
    with patch("repowiki.llm.client.acompletion") as mock:
        mock.return_value = completion_response(ANALYSIS_JSON)
        yield mock


def test_llm_client_initialization():
    client = LLMClient(provider="openai", model="gpt-4o")

    assert client.provider == "openai"
    assert client.model == "gpt-4o"


@pytest.mark.parametrize(
    ("provider", "model", "expected"),
    [
        ("openai", "gpt-4o", "gpt-4o"),
        ("anthropic", "claude-sonnet-4-20250514", "anthropic/claude-sonnet-4-20250514"),
        ("ollama", "llama3.2", "ollama/llama3.2"),
    ],
)
def test_model_string(provider, model, expected):
    assert LLMClient(provider=provider, model=model)._get_model_string() == expected


async def test_complete_passes_key_and_limits(mock_completion):
    client = LLMClient(provider="openai", model="gpt-4o", api_key="sk-test", max_tokens=1000)

    await client.complete([{"role": "user", "content": "hi"}])

    kwargs = mock_completion.call_args.kwargs
    assert kwargs["api_key"] == "sk-test"
    assert kwargs["max_tokens"] == 1000


async def test_ollama_endpoint_is_used_as_api_base(mock_completion):
    client = LLMClient(provider="ollama", model="llama3.2", endpoint="http://localhost:11434")

    await client.complete([{"role": "user", "content": "hi"}])

    assert mock_completion.call_args.kwargs["api_base"] == "http://localhost:11434"


class TestGenerateStructured:
    async def test_returns_validated_model(self, mock_completion):
        client = LLMClient(provider="openai", model="gpt-4o")

        analysis = await client.generate_structured(
            RepoAnalysis, system_prompt="Analyze.", prompt="Repo: octocat/hello-world"
        )

        assert isinstance(analysis, RepoAnalysis)
        assert [s.id for s in analysis.subsystems] == ["search", "export", "auth"]

    async def test_schema_in_system_prompt_and_json_mode(self, mock_completion):
        client = LLMClient(provider="openai", model="gpt-4o", json_temperature=0.2)

        await client.generate_structured(RepoAnalysis, system_prompt="Analyze.", prompt="Repo")

        kwargs = mock_completion.call_args.kwargs
        system = kwargs["messages"][0]
        assert system["role"] == "system"
        assert "Analyze." in system["content"]
        assert "relevantFiles" in system["content"]
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.2

    async def test_code_fences_are_stripped(self, mock_completion):
        mock_completion.return_value = completion_response(
            '```json\n{"content": "<p>Hi</p>", "citations": [], "entryPoints": ["main"]}\n```'
        )
        client = LLMClient(provider="openai", model="gpt-4o")

        draft = await client.generate_structured(PageDraft, system_prompt="Write.", prompt="Page")

        assert draft.content == "<p>Hi</p>"
        assert draft.entry_points == ["main"]

    async def test_invalid_json_raises_response_error(self, mock_completion):
        mock_completion.return_value = completion_response("not json at all")
        client = LLMClient(provider="openai", model="gpt-4o")

        with pytest.raises(LLMResponseError):
            await client.generate_structured(PageDraft, system_prompt="Write.", prompt="Page")

    async def test_schema_mismatch_raises_response_error(self, mock_completion):
        mock_completion.return_value = completion_response(
            json.dumps({"repoName": "x", "description": "y", "subsystems": []})
        )
        client = LLMClient(provider="openai", model="gpt-4o")

        with pytest.raises(LLMResponseError) as exc_info:
            await client.generate_structured(RepoAnalysis, system_prompt="Analyze.", prompt="Repo")

        assert "RepoAnalysis" in str(exc_info.value)


class TestErrors:
    async def test_authentication_error(self):
        with patch("repowiki.llm.client.acompletion") as mock:
            mock.side_effect = AuthenticationError(
                message="Invalid API key",
                llm_provider="openai",
                model="gpt-4o",
            )
            client = LLMClient(provider="openai", model="gpt-4o")

            with pytest.raises(LLMAuthenticationError) as exc_info:
                await client.complete([{"role": "user", "content": "hi"}])

            assert "Authentication failed" in str(exc_info.value)

    async def test_rate_limit_error(self):
        with patch("repowiki.llm.client.acompletion") as mock:
            mock.side_effect = RateLimitError(
                message="Rate limit exceeded",
                llm_provider="openai",
                model="gpt-4o",
            )
            client = LLMClient(provider="openai", model="gpt-4o")

            with pytest.raises(LLMRateLimitError):
                await client.generate_structured(PageDraft, system_prompt="s", prompt="p")

    async def test_connection_error(self):
        with patch("repowiki.llm.client.acompletion") as mock:
            mock.side_effect = APIConnectionError(
                message="Connection refused",
                llm_provider="ollama",
                model="llama3.2",
            )
            client = LLMClient(provider="ollama", model="llama3.2")

            with pytest.raises(LLMConnectionError):
                await client.complete([{"role": "user", "content": "hi"}])

    async def test_timeout_is_translated(self):
        with patch("repowiki.llm.client.acompletion") as mock:
            mock.side_effect = Timeout(
                message="Request timed out",
                model="gpt-4o",
                llm_provider="openai",
            )
            client = LLMClient(provider="openai", model="gpt-4o")

            with pytest.raises(LLMConnectionError) as exc_info:
                await client.generate_structured(PageDraft, system_prompt="s", prompt="p")

            assert "timed out" in str(exc_info.value)

    @pytest.mark.parametrize(
        "error",
        [
            InternalServerError(message="upstream 500", llm_provider="openai", model="gpt-4o"),
            ServiceUnavailableError(message="overloaded", llm_provider="openai", model="gpt-4o"),
            ContextWindowExceededError(
                message="maximum context length exceeded", model="gpt-4o", llm_provider="openai"
            ),
        ],
    )
    async def test_provider_failures_become_llm_errors(self, error):
        with patch("repowiki.llm.client.acompletion") as mock:
            mock.side_effect = error
            client = LLMClient(provider="openai", model="gpt-4o")

            with pytest.raises(LLMError):
                await client.generate_structured(RepoAnalysis, system_prompt="s", prompt="p")

    async def test_stream_timeout_is_translated(self):
        with patch("repowiki.llm.client.acompletion") as mock:
            mock.side_effect = Timeout(
                message="Request timed out", model="gpt-4o", llm_provider="openai"
            )
            client = LLMClient(provider="openai", model="gpt-4o")

            with pytest.raises(LLMConnectionError):
                async for _ in client.generate_stream(system_prompt="s", messages=[]):
                    pass


class TestGenerateStream:
    async def test_yields_fragments_in_order(self):
        async def chunks():
            for content in ["Hel", None, "lo"]:
                yield stream_chunk(content)

        with patch("repowiki.llm.client.acompletion", new=AsyncMock(return_value=chunks())) as mock:
            client = LLMClient(provider="openai", model="gpt-4o")

            fragments = [
                f
                async for f in client.generate_stream(
                    system_prompt="Answer.", messages=[{"role": "user", "content": "q"}]
                )
            ]

        assert fragments == ["Hel", "lo"]
        kwargs = mock.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["messages"][0] == {"role": "system", "content": "Answer."}

    async def test_stream_error_is_translated(self):
        with patch("repowiki.llm.client.acompletion") as mock:
            mock.side_effect = RateLimitError(
                message="Rate limit exceeded",
                llm_provider="openai",
                model="gpt-4o",
            )
            client = LLMClient(provider="openai", model="gpt-4o")

            with pytest.raises(LLMRateLimitError):
                async for _ in client.generate_stream(system_prompt="s", messages=[]):
                    pass


async def test_queries_are_logged_as_jsonl(tmp_path, mock_completion):
    log_path = tmp_path / "logs" / "llm-queries.jsonl"
    client = LLMClient(provider="openai", model="gpt-4o", log_path=log_path)

    await client.complete([{"role": "user", "content": "hi"}])

    [line] = log_path.read_text().splitlines()
    entry = json.loads(line)
    assert entry["model"] == "gpt-4o"
    assert entry["error"] is None
    assert entry["request"]["messages"] == [{"role": "user", "content": "hi"}]
