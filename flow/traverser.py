"""
Flow Traverser — Walks a sequence's message graph until a natural stop.

Pure navigation: no templating, no sequence loading, no side effects.
Given a start id and a message store, it collects raw messages in
visitation order and reports why it stopped:

  interactive_message  → choice / text input / autoroute; resume from next_message_id
  sequence_transition  → hand off to target_sequence_id
  end_of_sequence      → ran past the last message (missing id is a graceful end)
  error                → step cap hit (cyclic next_message_id); partial messages kept

Step precedence per message:
  missing id → autoroute → data action → sequence transition → interactive → next
"""
from __future__ import annotations

import structlog
from enum import Enum
from typing import Optional, Protocol

from models.schemas import BaseMessage

logger = structlog.get_logger()

MAX_TRAVERSAL_DEPTH = 100


class MessageStore(Protocol):
    """Read side of a loaded sequence."""

    def has_message(self, message_id: int) -> bool: ...

    def get_message_by_id(self, message_id: int) -> Optional[BaseMessage]: ...


# ──────────────────────────────────────────────────────────────
#  Traversal Result
# ──────────────────────────────────────────────────────────────

class StopReason(str, Enum):
    INTERACTIVE_MESSAGE = "interactive_message"
    SEQUENCE_TRANSITION = "sequence_transition"
    END_OF_SEQUENCE = "end_of_sequence"
    ERROR = "error"


class TraversalResult:
    """Outcome of one traversal call."""

    def __init__(
        self,
        messages: list[BaseMessage],
        stop_reason: StopReason,
        next_message_id: int = None,
        target_sequence_id: str = None,
        error_message: str = None,
    ):
        self.messages = list(messages) if messages is not None else []
        self.stop_reason = stop_reason
        self.next_message_id = next_message_id
        self.target_sequence_id = target_sequence_id
        self.error_message = error_message

    @classmethod
    def success(
        cls,
        messages: list[BaseMessage],
        stop_reason: StopReason,
        next_message_id: int = None,
        target_sequence_id: str = None,
    ) -> "TraversalResult":
        return cls(messages, stop_reason,
                   next_message_id=next_message_id,
                   target_sequence_id=target_sequence_id)

    @classmethod
    def error(cls, error_message: str, messages: list[BaseMessage] = None) -> "TraversalResult":
        return cls(messages or [], StopReason.ERROR, error_message=error_message)

    @property
    def is_success(self) -> bool:
        return self.stop_reason != StopReason.ERROR

    @property
    def requires_sequence_transition(self) -> bool:
        return self.stop_reason == StopReason.SEQUENCE_TRANSITION

    @property
    def has_user_interaction(self) -> bool:
        return self.stop_reason == StopReason.INTERACTIVE_MESSAGE

    def __repr__(self):
        return (f"<TraversalResult {self.stop_reason.value} messages={len(self.messages)} "
                f"next={self.next_message_id} target={self.target_sequence_id}>")


# ──────────────────────────────────────────────────────────────
#  Flow Traverser
# ──────────────────────────────────────────────────────────────

class FlowTraverser:
    """Stateless walker over a MessageStore."""

    def __init__(self, max_depth: int = MAX_TRAVERSAL_DEPTH):
        self.max_depth = max_depth

    def traverse(self, start_id: int, store: MessageStore) -> TraversalResult:
        logger.debug("traversal_started", start_id=start_id)

        messages: list[BaseMessage] = []
        current_id: Optional[int] = start_id
        depth = 0

        while current_id is not None and depth < self.max_depth:
            depth += 1

            if not store.has_message(current_id):
                logger.debug("traversal_message_missing", message_id=current_id)
                return TraversalResult.success(messages, StopReason.END_OF_SEQUENCE)

            message = store.get_message_by_id(current_id)

            # The route processor re-dispatches from here once the route is known.
            if message.is_auto_route:
                messages.append(message)
                return TraversalResult.success(
                    messages, StopReason.INTERACTIVE_MESSAGE, next_message_id=current_id,
                )

            if message.is_data_action:
                messages.append(message)
                current_id = self._next_id(message, current_id)
                continue

            if message.sequence_id is not None:
                messages.append(message)
                logger.info("traversal_sequence_transition",
                            message_id=current_id, target=message.sequence_id)
                return TraversalResult.success(
                    messages, StopReason.SEQUENCE_TRANSITION,
                    target_sequence_id=message.sequence_id,
                )

            messages.append(message)

            if message.is_interactive:
                logger.debug("traversal_interactive_stop",
                             message_id=current_id, type=message.type)
                return TraversalResult.success(
                    messages, StopReason.INTERACTIVE_MESSAGE, next_message_id=current_id,
                )

            current_id = self._next_id(message, current_id)

        if depth >= self.max_depth:
            logger.warning("traversal_max_depth_reached",
                           start_id=start_id, depth=depth, collected=len(messages))
            return TraversalResult.error(
                f"Maximum traversal depth of {self.max_depth} reached starting from "
                f"message {start_id}; check for a next_message_id cycle",
                messages,
            )

        return TraversalResult.success(messages, StopReason.END_OF_SEQUENCE)

    @staticmethod
    def _next_id(message: BaseMessage, current_id: int) -> Optional[int]:
        if message.next_message_id is not None:
            return message.next_message_id
        return current_id + 1
