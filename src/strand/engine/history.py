"""Ordered conversation history with draft support.

The store is append-only for finalized messages. During a round, one
in-progress assistant message (the draft) may sit at the end and be
replaced as partial output arrives; it is either finalized or discarded
when the round ends.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from strand.exceptions import HistoryMutationError
from strand.models.messages import AssistantMessage, Message

logger = logging.getLogger(__name__)


class ConversationStore:
    """Owns the ordered message history of one session."""

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = list(messages)
        self._draft_open = False

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def has_draft(self) -> bool:
        return self._draft_open

    def snapshot(self) -> tuple[Message, ...]:
        """Return the full ordered history, including an open draft."""
        return tuple(self._messages)

    def finalized(self) -> tuple[Message, ...]:
        """Return the history without an open draft."""
        if self._draft_open:
            return tuple(self._messages[:-1])
        return tuple(self._messages)

    def append(self, message: Message) -> None:
        """Add a finalized message to the end.

        Raises:
            HistoryMutationError: If a draft is open.
        """
        if self._draft_open:
            raise HistoryMutationError(
                "Cannot append while an assistant draft is open; "
                "finalize or discard it first"
            )
        self._messages.append(message)

    def open_draft(self, message: AssistantMessage) -> None:
        """Append the in-progress assistant message of the current round."""
        self.append(message)
        self._draft_open = True

    def replace_last(self, message: AssistantMessage) -> None:
        """Replace the open draft with an updated version.

        Raises:
            HistoryMutationError: If the last message is not an open draft.
        """
        if not self._draft_open:
            raise HistoryMutationError(
                "replace_last is only allowed on the in-progress assistant draft"
            )
        if not isinstance(message, AssistantMessage):
            raise HistoryMutationError(
                f"Draft must be an AssistantMessage, got {type(message).__name__}"
            )
        self._messages[-1] = message

    def finalize_draft(self, message: AssistantMessage) -> None:
        """Drop the draft (if any) and append ``message`` as final."""
        self.discard_draft()
        self.append(message)

    def discard_draft(self) -> None:
        if self._draft_open:
            self._messages.pop()
            self._draft_open = False
            logger.debug("Discarded in-progress assistant draft")
