"""The analyst: Claude tool-use loop plus per-thread conversation history."""

from ledger_analyst.analyst.analyst import SYSTEM_PROMPT, AnalysisResult, FinancialAnalyst
from ledger_analyst.analyst.conversation import ConversationStore

__all__ = [
    "AnalysisResult",
    "ConversationStore",
    "FinancialAnalyst",
    "SYSTEM_PROMPT",
]
