"""Tests for ConversationStore: append-only history with a replaceable draft."""

from __future__ import annotations

import pytest

from strand.engine.history import ConversationStore
from strand.exceptions import HistoryMutationError
from strand.models.messages import AssistantMessage, SystemMessage, TextChunk, UserMessage


def _assistant(text: str) -> AssistantMessage:
    return AssistantMessage(chunks=(TextChunk(text),))


class TestAppend:

    def test_seed_messages_kept_in_order(self):
        store = ConversationStore([SystemMessage.of("sys"), UserMessage.of("hi")])
        assert [m.role for m in store.snapshot()] == ["system", "user"]
        assert len(store) == 2

    def test_snapshot_is_a_copy(self):
        store = ConversationStore()
        snap = store.snapshot()
        store.append(UserMessage.of("hi"))
        assert snap == ()

    def test_append_while_draft_open_raises(self):
        store = ConversationStore()
        store.open_draft(_assistant("He"))
        with pytest.raises(HistoryMutationError):
            store.append(UserMessage.of("hi"))


class TestDraft:

    def test_replace_last_updates_draft(self):
        store = ConversationStore([UserMessage.of("hi")])
        store.open_draft(_assistant("He"))
        store.replace_last(_assistant("Hello"))
        assert store.snapshot()[-1] == _assistant("Hello")
        assert store.finalized() == (UserMessage.of("hi"),)

    def test_replace_last_without_draft_raises(self):
        store = ConversationStore([_assistant("final")])
        with pytest.raises(HistoryMutationError):
            store.replace_last(_assistant("rewritten"))
        assert store.snapshot() == (_assistant("final"),)

    def test_replace_last_requires_assistant(self):
        store = ConversationStore()
        store.open_draft(_assistant("He"))
        with pytest.raises(HistoryMutationError):
            store.replace_last(UserMessage.of("nope"))  # type: ignore[arg-type]

    def test_finalize_draft_replaces_it(self):
        store = ConversationStore([UserMessage.of("hi")])
        store.open_draft(_assistant("Hel"))
        store.finalize_draft(_assistant("Hello"))
        assert not store.has_draft
        assert store.snapshot() == (UserMessage.of("hi"), _assistant("Hello"))

    def test_finalize_without_draft_appends(self):
        store = ConversationStore()
        store.finalize_draft(_assistant("Hello"))
        assert store.snapshot() == (_assistant("Hello"),)

    def test_discard_draft(self):
        store = ConversationStore([UserMessage.of("hi")])
        store.open_draft(_assistant("Hel"))
        store.discard_draft()
        assert store.snapshot() == (UserMessage.of("hi"),)
        store.discard_draft()
        assert len(store) == 1
