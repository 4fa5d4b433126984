"""Tests for per-thread conversation history."""

from ledger_analyst.analyst.conversation import ConversationStore


def _messages(n: int) -> list[dict]:
    return [{"role": "user" if i % 2 == 0 else "assistant", "content": str(i)} for i in range(n)]


class TestConversationStore:
    """Tests for ConversationStore."""

    def test_unknown_thread_is_empty(self, clock):
        """Test an unknown thread has no history."""
        store = ConversationStore(max_messages=4, ttl_seconds=60, clock=clock)

        assert store.get("t1") == []

    def test_save_trims_to_newest(self, clock):
        """Test only the newest messages are kept."""
        store = ConversationStore(max_messages=4, ttl_seconds=60, clock=clock)

        store.save("t1", _messages(8))

        assert [m["content"] for m in store.get("t1")] == ["4", "5", "6", "7"]

    def test_trim_never_starts_with_assistant_turn(self, clock):
        """Test an odd cap drops a leading assistant message."""
        store = ConversationStore(max_messages=3, ttl_seconds=60, clock=clock)

        store.save("t1", _messages(6))

        history = store.get("t1")
        assert [m["content"] for m in history] == ["4", "5"]
        assert history[0]["role"] == "user"

    def test_no_thread_id_is_not_stored(self, clock):
        """Test nothing is stored without a thread id."""
        store = ConversationStore(max_messages=4, ttl_seconds=60, clock=clock)

        store.save(None, _messages(2))

        assert len(store) == 0
        assert store.get(None) == []

    def test_get_returns_a_copy(self, clock):
        """Test callers cannot mutate stored history."""
        store = ConversationStore(max_messages=4, ttl_seconds=60, clock=clock)
        store.save("t1", _messages(2))

        store.get("t1").append({"role": "user", "content": "x"})

        assert len(store.get("t1")) == 2

    def test_sweep_removes_idle_threads(self, clock):
        """Test sweep removes threads idle past the TTL."""
        store = ConversationStore(max_messages=4, ttl_seconds=3600, clock=clock)
        store.save("old", _messages(2))
        clock.advance(minutes=50)
        store.save("recent", _messages(2))

        clock.advance(minutes=20)
        removed = store.sweep()

        assert removed == 1
        assert store.get("old") == []
        assert store.get("recent")

    def test_clear(self, clock):
        """Test clearing a thread."""
        store = ConversationStore(max_messages=4, ttl_seconds=60, clock=clock)
        store.save("t1", _messages(2))

        store.clear("t1")

        assert store.get("t1") == []

    def test_defaults_from_settings(self):
        """Test limits default to settings."""
        store = ConversationStore()

        assert store.max_messages == 20
