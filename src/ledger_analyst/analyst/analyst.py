"""Financial analyst: drives the Claude tool-use loop for one question."""

import json
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from ledger_analyst.analyst.conversation import ConversationStore
from ledger_analyst.clients.claude import ClaudeAPIError, ClaudeResponse, ErrorKind
from ledger_analyst.config import ConfigurationError, get_settings
from ledger_analyst.tools.definitions import ALL_TOOLS
from ledger_analyst.tools.executor import ToolExecutor

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = """You are a senior financial analyst assistant for the Finance team. \
You can query the ERP general ledger and the budget and financial model spreadsheets.

## Account balances
Use the `account_balance` tool. You do not need account codes; search by name or category:
- "Cash balance" -> {"subtype": "Cash"}
- "Accounts receivable" -> {"subtype": "Accounts Receivable"}
- "All liabilities" -> {"type": "LIABILITY"}
- "Payroll accounts" -> {"search": "payroll"}
If unsure what accounts exist, call `list_account_categories` first.

## Other data
Use `call_ledger_api` for customers, contracts, invoices, bills and vendors, \
`get_arr_waterfall` for ARR, and the spreadsheet tools for budget versus actuals.

## Answering
Lead with the number, then the accounts behind it. If a result carries a caveat, \
repeat it. Say so plainly when data is missing rather than guessing."""

TIMEOUT_MESSAGE = "The analysis took too long. Please try a simpler question or break it into parts."
EMPTY_RESPONSE_MESSAGE = "I was unable to generate a response. Please try rephrasing your question."
CONFIGURATION_MESSAGE = "The AI service is not configured. Please contact the administrator."
ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION: "Authentication error with AI service. Please contact the administrator.",
    ErrorKind.RATE_LIMIT: "The AI service is currently busy. Please try again in a few moments.",
    ErrorKind.OVERLOADED: "The AI service is temporarily overloaded. Please try again in a few minutes.",
    ErrorKind.GENERIC: (
        "I encountered an error while analyzing your question. This could be due to "
        "temporary service unavailability or data access issues. "
        "Please try again or simplify your question."
    ),
}


class LLMClient(Protocol):
    async def generate_with_retry(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_retries: int | None = None,
    ) -> ClaudeResponse: ...


@dataclass
class AnalysisResult:
    """Outcome of one question."""

    text: str
    success: bool
    iterations: int = 0
    error_kind: str | None = None


class FinancialAnalyst:
    """Answers finance questions by letting the model call ledger and sheet tools."""

    def __init__(
        self,
        llm_client: LLMClient | None,
        tool_executor: ToolExecutor,
        conversations: ConversationStore | None = None,
        max_iterations: int | None = None,
        system_prompt: str = SYSTEM_PROMPT,
        tools: list[dict[str, Any]] | None = None,
    ):
        settings = get_settings()
        self._llm = llm_client
        self._tool_executor = tool_executor
        self.conversations = conversations or ConversationStore()
        self.max_iterations = max_iterations or settings.max_tool_iterations
        self.system_prompt = system_prompt
        self.tools = tools if tools is not None else ALL_TOOLS

    async def analyze(self, question: str, thread_id: str | None = None) -> AnalysisResult:
        """Run the tool loop until the model answers or the ceiling is hit."""
        log = logger.bind(thread_id=thread_id)
        log.info("analysis_started", question=question[:100])

        if self._llm is None:
            log.error("llm_not_configured")
            return AnalysisResult(CONFIGURATION_MESSAGE, success=False, error_kind="configuration")

        history = self.conversations.get(thread_id)
        messages: list[dict[str, Any]] = [*history, {"role": "user", "content": question}]

        iteration = 0
        try:
            while iteration < self.max_iterations:
                iteration += 1
                log.debug("iteration", number=iteration)

                response = await self._llm.generate_with_retry(
                    self.system_prompt, messages, self.tools
                )

                if response.tool_calls:
                    messages.append({
                        "role": "assistant",
                        "content": response.content,
                        "tool_calls": response.tool_calls,
                    })
                    for tool_call in response.tool_calls:
                        messages.append(await self._run_tool(tool_call))
                    continue

                if not response.content.strip():
                    log.warning("empty_model_response", iterations=iteration)
                    return AnalysisResult(
                        EMPTY_RESPONSE_MESSAGE, success=False, iterations=iteration,
                        error_kind="empty_response",
                    )

                self.conversations.save(
                    thread_id,
                    [
                        *history,
                        {"role": "user", "content": question},
                        {"role": "assistant", "content": response.content},
                    ],
                )
                log.info("analysis_completed", iterations=iteration)
                return AnalysisResult(response.content, success=True, iterations=iteration)

        except ConfigurationError as e:
            log.error("analysis_not_configured", setting=e.setting)
            return AnalysisResult(
                CONFIGURATION_MESSAGE, success=False, iterations=iteration,
                error_kind="configuration",
            )
        except ClaudeAPIError as e:
            log.error("analysis_failed", kind=e.kind.value, status=e.status_code)
            return AnalysisResult(
                ERROR_MESSAGES[e.kind], success=False, iterations=iteration,
                error_kind=e.kind.value,
            )

        log.error("max_iterations_reached", max_iterations=self.max_iterations)
        return AnalysisResult(
            TIMEOUT_MESSAGE, success=False, iterations=iteration, error_kind="max_iterations"
        )

    async def _run_tool(self, tool_call: dict[str, Any]) -> dict[str, Any]:
        result = await self._tool_executor.execute(
            tool_call["name"], tool_call.get("arguments") or {}
        )
        return {
            "role": "tool_result",
            "tool_call_id": tool_call["id"],
            "content": json.dumps(result, default=str),
            "is_error": bool(result.get("is_error")),
        }

    def clear_conversation(self, thread_id: str | None) -> None:
        self.conversations.clear(thread_id)
