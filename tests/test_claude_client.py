"""Tests for Claude LLM client."""

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from ledger_analyst.clients.claude import (
    ClaudeAPIError,
    ClaudeClient,
    ErrorKind,
    classify_error,
)
from ledger_analyst.config import ConfigurationError

REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def status_error(status_code: int, cls=anthropic.APIStatusError) -> anthropic.APIStatusError:
    return cls(
        f"status {status_code}",
        response=httpx.Response(status_code, request=REQUEST),
        body=None,
    )


def text_message(*texts: str) -> MagicMock:
    message = MagicMock()
    message.content = [MagicMock(type="text", text=t) for t in texts]
    message.stop_reason = "end_turn"
    message.usage = MagicMock(input_tokens=10, output_tokens=5)
    return message


@pytest.fixture
def client():
    return ClaudeClient(api_key="test-key", model="claude-test", max_tokens=1024)


class TestClaudeClient:
    """Tests for ClaudeClient."""

    def test_client_initialization_with_defaults(self):
        """Test client initializes with settings defaults."""
        client = ClaudeClient()

        assert client._model == "claude-haiku-4-5"
        assert client._max_tokens == 4096
        assert client._max_retries == 3

    def test_missing_api_key_is_configuration_error(self):
        """Test a missing API key raises ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            ClaudeClient(api_key="")

        assert exc_info.value.setting == "ANTHROPIC_API_KEY"

    def test_convert_tools_to_anthropic_format(self, client):
        """Test conversion of tools to Anthropic format."""
        tools = [{"name": "t", "description": "d", "input_schema": {"type": "object"}, "extra": 1}]

        converted = client._convert_tools_to_anthropic_format(tools)

        assert converted == [{"name": "t", "description": "d", "input_schema": {"type": "object"}}]

    def test_convert_assistant_message_with_tool_calls(self, client):
        """Test an assistant turn keeps its tool_use blocks."""
        messages = [
            {
                "role": "assistant",
                "content": "Let me check",
                "tool_calls": [{"id": "call_1", "name": "account_balance", "arguments": {"search": "cash"}}],
            }
        ]

        converted = client._convert_messages_to_anthropic_format(messages)

        content = converted[0]["content"]
        assert [block["type"] for block in content] == ["text", "tool_use"]
        assert content[1]["input"] == {"search": "cash"}

    def test_consecutive_tool_results_share_one_message(self, client):
        """Test tool results are merged into one user message."""
        messages = [
            {"role": "user", "content": "Cash and AR?"},
            {
                "role": "assistant",
                "content": "",
                "tool_calls": [
                    {"id": "a", "name": "account_balance", "arguments": {"search": "cash"}},
                    {"id": "b", "name": "account_balance", "arguments": {"search": "ar"}},
                ],
            },
            {"role": "tool_result", "tool_call_id": "a", "content": "{}"},
            {"role": "tool_result", "tool_call_id": "b", "content": "{}", "is_error": True},
        ]

        converted = client._convert_messages_to_anthropic_format(messages)

        assert [m["role"] for m in converted] == ["user", "assistant", "user"]
        results = converted[2]["content"]
        assert [r["tool_use_id"] for r in results] == ["a", "b"]
        assert "is_error" not in results[0]
        assert results[1]["is_error"] is True

    def test_parse_joins_text_blocks(self, client):
        """Test text blocks are joined with newlines."""
        parsed = client._parse_response(text_message("Cash is $1.", "AR is $2."))

        assert parsed.content == "Cash is $1.\nAR is $2."
        assert parsed.tool_calls == []
        assert parsed.usage == {"input_tokens": 10, "output_tokens": 5}

    def test_parse_tool_use_response(self, client):
        """Test parsing a tool_use response."""
        tool_block = MagicMock()
        tool_block.type = "tool_use"
        tool_block.id = "call_abc"
        tool_block.name = "account_balance"
        tool_block.input = {"type": "LIABILITY"}
        message = text_message()
        message.content = [tool_block]
        message.stop_reason = "tool_use"

        parsed = client._parse_response(message)

        assert parsed.content == ""
        assert parsed.tool_calls == [
            {"id": "call_abc", "name": "account_balance", "arguments": {"type": "LIABILITY"}}
        ]
        assert parsed.stop_reason == "tool_use"

    @pytest.mark.asyncio
    async def test_generate_sends_system_and_tools(self, client):
        """Test generate passes the system prompt and tools."""
        client._client = MagicMock()
        client._client.messages.create = AsyncMock(return_value=text_message("hi"))

        response = await client.generate(
            "system", [{"role": "user", "content": "hello"}],
            tools=[{"name": "t", "description": "d", "input_schema": {}}],
        )

        assert response.content == "hi"
        kwargs = client._client.messages.create.call_args.kwargs
        assert kwargs["system"] == "system"
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 1024
        assert kwargs["tools"][0]["name"] == "t"


class TestErrorClassification:
    """Tests for classify_error."""

    @pytest.mark.parametrize(
        ("status_code", "kind"),
        [
            (401, ErrorKind.AUTHENTICATION),
            (429, ErrorKind.RATE_LIMIT),
            (529, ErrorKind.OVERLOADED),
            (500, ErrorKind.GENERIC),
        ],
    )
    def test_classify(self, status_code, kind):
        """Test status codes map to error kinds."""
        error = classify_error(status_error(status_code))

        assert error.kind == kind
        assert error.status_code == status_code

    @pytest.mark.asyncio
    async def test_connection_error_is_generic(self, client):
        """Test a connection error is classified as generic."""
        client._client = MagicMock()
        client._client.messages.create = AsyncMock(
            side_effect=anthropic.APIConnectionError(request=REQUEST)
        )

        with pytest.raises(ClaudeAPIError) as exc_info:
            await client.generate("s", [{"role": "user", "content": "q"}])

        assert exc_info.value.kind == ErrorKind.GENERIC


class TestRetry:
    """Tests for generate_with_retry."""

    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_succeeds(self, client):
        """Test a rate limit is retried with backoff."""
        client._client = MagicMock()
        client._client.messages.create = AsyncMock(
            side_effect=[
                status_error(429, anthropic.RateLimitError),
                status_error(429, anthropic.RateLimitError),
                text_message("done"),
            ]
        )

        with patch("ledger_analyst.clients.claude.asyncio.sleep", new=AsyncMock()) as sleep:
            response = await client.generate_with_retry("s", [{"role": "user", "content": "q"}])

        assert response.content == "done"
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_overload_backoff_starts_at_two_seconds(self, client):
        """Test overload backoff starts at two seconds."""
        client._client = MagicMock()
        client._client.messages.create = AsyncMock(
            side_effect=[status_error(529), text_message("ok")]
        )

        with patch("ledger_analyst.clients.claude.asyncio.sleep", new=AsyncMock()) as sleep:
            await client.generate_with_retry("s", [{"role": "user", "content": "q"}])

        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, client):
        """Test the error is raised once retries run out."""
        client._client = MagicMock()
        client._client.messages.create = AsyncMock(side_effect=status_error(529))

        with patch("ledger_analyst.clients.claude.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(ClaudeAPIError) as exc_info:
                await client.generate_with_retry(
                    "s", [{"role": "user", "content": "q"}], max_retries=2
                )

        assert exc_info.value.kind == ErrorKind.OVERLOADED
        assert client._client.messages.create.await_count == 3

    @pytest.mark.asyncio
    async def test_authentication_error_not_retried(self, client):
        """Test an authentication error is raised immediately."""
        client._client = MagicMock()
        client._client.messages.create = AsyncMock(
            side_effect=status_error(401, anthropic.AuthenticationError)
        )

        with pytest.raises(ClaudeAPIError) as exc_info:
            await client.generate_with_retry("s", [{"role": "user", "content": "q"}])

        assert exc_info.value.kind == ErrorKind.AUTHENTICATION
        assert client._client.messages.create.await_count == 1
