"""Claude (Anthropic) LLM client with function calling support."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any

import anthropic
import structlog

from ledger_analyst.config import ConfigurationError, get_settings

logger = structlog.get_logger(__name__)

RATE_LIMIT_BASE_DELAY = 1.0
OVERLOADED_BASE_DELAY = 2.0


class ErrorKind(str, Enum):
    """Failure classes the analyst turns into user-facing messages."""

    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    OVERLOADED = "overloaded"
    GENERIC = "generic"


class ClaudeAPIError(Exception):
    """A classified failure from the Anthropic API."""

    def __init__(self, message: str, kind: ErrorKind, status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind in (ErrorKind.RATE_LIMIT, ErrorKind.OVERLOADED)


def classify_error(error: anthropic.APIError) -> ClaudeAPIError:
    status = getattr(error, "status_code", None)
    if status == 401:
        kind = ErrorKind.AUTHENTICATION
    elif status == 429:
        kind = ErrorKind.RATE_LIMIT
    elif status == 529:
        kind = ErrorKind.OVERLOADED
    else:
        kind = ErrorKind.GENERIC
    return ClaudeAPIError(str(error), kind=kind, status_code=status)


@dataclass
class ClaudeResponse:
    """Response from Claude API."""

    content: str
    tool_calls: list[dict[str, Any]]
    stop_reason: str
    usage: dict[str, int]


class ClaudeClient:
    """Client for Anthropic's Claude API with tool use support."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        max_retries: int | None = None,
        rate_limit_delay: float = RATE_LIMIT_BASE_DELAY,
        overloaded_delay: float = OVERLOADED_BASE_DELAY,
    ):
        settings = get_settings()
        if api_key is None and settings.anthropic_api_key is not None:
            api_key = settings.anthropic_api_key.get_secret_value()
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY", "Anthropic API key not configured")
        self._api_key = api_key
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._max_retries = max_retries if max_retries is not None else settings.llm_max_retries
        self._rate_limit_delay = rate_limit_delay
        self._overloaded_delay = overloaded_delay

        # Retries are handled by generate_with_retry
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key, max_retries=0)
        self._logger = logger.bind(client="claude", model=self._model)

    def _convert_tools_to_anthropic_format(
        self, tools: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        return [
            {
                "name": tool["name"],
                "description": tool["description"],
                "input_schema": tool["input_schema"],
            }
            for tool in tools
        ]

    def _convert_messages_to_anthropic_format(
        self, messages: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Convert conversation history to Anthropic's message format.

        Consecutive ``tool_result`` messages are merged into one user message,
        since every result for an assistant turn must arrive together.
        """
        anthropic_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg["role"] == "user":
                anthropic_messages.append({
                    "role": "user",
                    "content": msg["content"],
                })
            elif msg["role"] == "assistant":
                content_blocks: list[dict[str, Any]] = []

                if msg.get("content"):
                    content_blocks.append({
                        "type": "text",
                        "text": msg["content"],
                    })

                for tool_call in msg.get("tool_calls", []):
                    content_blocks.append({
                        "type": "tool_use",
                        "id": tool_call["id"],
                        "name": tool_call["name"],
                        "input": tool_call["arguments"],
                    })

                anthropic_messages.append({
                    "role": "assistant",
                    "content": content_blocks if content_blocks else msg.get("content", ""),
                })
            elif msg["role"] == "tool_result":
                block: dict[str, Any] = {
                    "type": "tool_result",
                    "tool_use_id": msg["tool_call_id"],
                    "content": msg["content"],
                }
                if msg.get("is_error"):
                    block["is_error"] = True

                previous = anthropic_messages[-1] if anthropic_messages else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(b.get("type") == "tool_result" for b in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    anthropic_messages.append({"role": "user", "content": [block]})

        return anthropic_messages

    def _parse_response(self, response: anthropic.types.Message) -> ClaudeResponse:
        """Parse Anthropic response into our format."""
        texts = []
        tool_calls = []

        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append({
                    "id": block.id,
                    "name": block.name,
                    "arguments": block.input,
                })

        return ClaudeResponse(
            content="\n".join(texts),
            tool_calls=tool_calls,
            stop_reason=response.stop_reason or "end_turn",
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )

    async def generate(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ClaudeResponse:
        """Generate a response from Claude.

        Args:
            system_prompt: The system prompt defining analyst behavior.
            messages: Conversation history as list of message dicts.
            tools: Optional list of tool definitions for function calling.

        Returns:
            ClaudeResponse with content, tool calls, and usage info.

        Raises:
            ClaudeAPIError: The API call failed; ``kind`` says how.
        """
        self._logger.debug(
            "generating_response",
            message_count=len(messages),
            tool_count=len(tools) if tools else 0,
        )

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "system": system_prompt,
            "messages": self._convert_messages_to_anthropic_format(messages),
        }
        if tools:
            kwargs["tools"] = self._convert_tools_to_anthropic_format(tools)

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            self._logger.error("api_error", status=e.status_code, error=str(e))
            raise classify_error(e) from e
        except anthropic.APIError as e:
            self._logger.error("api_error", error=str(e))
            raise ClaudeAPIError(str(e), kind=ErrorKind.GENERIC) from e

        parsed = self._parse_response(response)
        self._logger.info(
            "response_generated",
            stop_reason=parsed.stop_reason,
            tool_calls=len(parsed.tool_calls),
            input_tokens=parsed.usage["input_tokens"],
            output_tokens=parsed.usage["output_tokens"],
        )
        return parsed

    def _retry_delay(self, error: ClaudeAPIError, attempt: int) -> float:
        base = self._rate_limit_delay if error.kind == ErrorKind.RATE_LIMIT else self._overloaded_delay
        return base * (2**attempt)

    async def generate_with_retry(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_retries: int | None = None,
    ) -> ClaudeResponse:
        """``generate`` with exponential backoff on rate-limit and overload errors.

        Other failures are raised immediately.
        """
        retries = self._max_retries if max_retries is None else max_retries
        attempt = 0
        while True:
            try:
                return await self.generate(system_prompt, messages, tools)
            except ClaudeAPIError as e:
                if not e.retryable or attempt >= retries:
                    raise
                delay = self._retry_delay(e, attempt)
                self._logger.warning(
                    "retrying_after_api_error",
                    kind=e.kind.value,
                    attempt=attempt + 1,
                    delay=delay,
                )
                await asyncio.sleep(delay)
                attempt += 1
