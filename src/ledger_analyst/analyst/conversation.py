"""Per-thread conversation history with a size cap and idle expiry."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import structlog

from ledger_analyst.config import get_settings
from ledger_analyst.ledger.directory import utc_now

logger = structlog.get_logger(__name__)


@dataclass
class Conversation:
    messages: list[dict[str, Any]]
    last_activity: datetime


class ConversationStore:
    """In-memory thread histories.

    Each save keeps only the newest ``max_messages`` messages. Threads idle for
    longer than the TTL are removed by ``sweep``.
    """

    def __init__(
        self,
        max_messages: int | None = None,
        ttl_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        settings = get_settings()
        self.max_messages = max_messages or settings.conversation_max_messages
        self._ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.conversation_ttl_seconds
        )
        self._clock = clock
        self._threads: dict[str, Conversation] = {}

    def __len__(self) -> int:
        return len(self._threads)

    def get(self, thread_id: str | None) -> list[dict[str, Any]]:
        if not thread_id:
            return []
        conversation = self._threads.get(thread_id)
        return list(conversation.messages) if conversation else []

    def save(self, thread_id: str | None, messages: list[dict[str, Any]]) -> None:
        if not thread_id:
            return
        kept = list(messages[-self.max_messages:])
        # The Messages API requires history to open with a user turn
        while kept and kept[0].get("role") != "user":
            kept.pop(0)
        self._threads[thread_id] = Conversation(
            messages=kept,
            last_activity=self._clock(),
        )

    def clear(self, thread_id: str | None) -> None:
        if thread_id:
            self._threads.pop(thread_id, None)

    def sweep(self) -> int:
        """Remove expired threads and return how many were dropped."""
        now = self._clock()
        expired = [
            thread_id
            for thread_id, conversation in self._threads.items()
            if now - conversation.last_activity > self._ttl
        ]
        for thread_id in expired:
            del self._threads[thread_id]
        if expired:
            logger.info("conversations_swept", removed=len(expired), remaining=len(self._threads))
        return len(expired)
