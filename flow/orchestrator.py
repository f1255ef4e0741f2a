"""
Flow Orchestrator — Drives one conversation session.

Each call runs processing cycles until the flow needs the user, ends, or
faults:

  traverse → run data actions in order → render displayable messages
           → interactive stop:  wait for input (awaiting_input)
           → autoroute stop:    pick a route, continue in-sequence or switch
           → transition stop:   load target sequence, continue at its first message
           → end of sequence:   complete

Data actions run before the messages that follow them are rendered, so
placeholders always see the values written earlier in the same batch.

Faults never raise out of a conversation step: a traversal error, the
cycle cap, or an unloadable transition target produce
``FlowResponse(status="error")`` carrying the error text and whatever was
rendered before the fault.
"""
from __future__ import annotations

import structlog
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from database.store_base import BaseUserDataStore
from flow.actions import DataActionProcessor
from flow.renderer import MessageRenderer, RenderedMessage
from flow.routes import RouteProcessor
from flow.sequences import SequenceLoadError, SequenceRegistry
from flow.traverser import FlowTraverser, StopReason
from models.schemas import (
    AutoRouteMessage, BaseMessage, Choice, ChoiceMessage, DataActionMessage,
    Sequence, TextInputMessage,
)

logger = structlog.get_logger()

MAX_PROCESSING_CYCLES = 25


class InvalidInteractionError(ValueError):
    """User input does not fit the message the session is waiting on."""


class FlowStatus(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    COMPLETE = "complete"
    ERROR = "error"


class FlowResponse(BaseModel):
    status: FlowStatus
    messages: list[RenderedMessage] = []
    sequence_id: Optional[str] = None
    interaction_message_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def requires_user_interaction(self) -> bool:
        return self.status == FlowStatus.AWAITING_INPUT


class FlowOrchestrator:
    """
    Per-session conversation driver. Sequence definitions and the content
    resolver are shared; the user-data store belongs to the session.
    """

    def __init__(
        self,
        registry: SequenceRegistry,
        renderer: MessageRenderer,
        store: BaseUserDataStore,
        routes: RouteProcessor,
        actions: DataActionProcessor,
        traverser: FlowTraverser = None,
        max_cycles: int = MAX_PROCESSING_CYCLES,
    ):
        self._registry = registry
        self._renderer = renderer
        self._store = store
        self._routes = routes
        self._actions = actions
        self._traverser = traverser or FlowTraverser()
        self.max_cycles = max_cycles

        self.sequence: Optional[Sequence] = None
        self.awaiting_message_id: Optional[int] = None
        self.last_response: Optional[FlowResponse] = None

    # ── Session state ─────────────────────────────────

    @property
    def store(self) -> BaseUserDataStore:
        return self._store

    @property
    def sequence_id(self) -> Optional[str]:
        return self.sequence.sequence_id if self.sequence else None

    @property
    def current_message(self) -> Optional[BaseMessage]:
        if self.sequence is None or self.awaiting_message_id is None:
            return None
        return self.sequence.get_message_by_id(self.awaiting_message_id)

    # ── Entry points ──────────────────────────────────

    async def start(self, sequence_id: str, message_id: int = None) -> FlowResponse:
        """
        Activate ``sequence_id`` and run from ``message_id`` (first message by
        default). Raises SequenceLoadError for unknown or invalid sequences.
        """
        self.sequence = self._registry.load(sequence_id)
        start_id = message_id if message_id is not None else self.sequence.first_message_id
        logger.info("flow_started", sequence_id=sequence_id, message_id=start_id)
        if start_id is None:
            return self._finish(FlowResponse(status=FlowStatus.COMPLETE, sequence_id=sequence_id))
        return await self.process_from(start_id)

    async def handle_choice(self, choice_index: int) -> FlowResponse:
        message = self._require_awaiting(ChoiceMessage)
        if not 0 <= choice_index < len(message.choices):
            raise InvalidInteractionError(
                f"choice index {choice_index} out of range for message {message.id}"
            )
        choice = message.choices[choice_index]
        if message.store_key:
            await self._actions.record(
                message.store_key, choice.value if choice.value is not None else choice.text,
            )
        logger.info("choice_selected", sequence_id=self.sequence_id,
                    message_id=message.id, choice=choice.text)
        return await self._continue_after_choice(message, choice)

    async def handle_text_input(self, text: str) -> FlowResponse:
        message = self._require_awaiting(TextInputMessage)
        value = (text or "").strip()
        if not value:
            raise InvalidInteractionError("text input must not be empty")
        if message.store_key:
            await self._actions.record(message.store_key, value)
        logger.info("text_input_received", sequence_id=self.sequence_id, message_id=message.id)
        return await self.process_from(self._successor(message))

    # ── Processing loop ───────────────────────────────

    async def process_from(self, start_id: int) -> FlowResponse:
        if self.sequence is None:
            raise RuntimeError("no active sequence; call start() first")

        self.awaiting_message_id = None
        rendered: list[RenderedMessage] = []
        current_id = start_id

        for cycle in range(1, self.max_cycles + 1):
            logger.debug("flow_cycle", cycle=cycle, sequence_id=self.sequence_id,
                         start_id=current_id)
            result = self._traverser.traverse(current_id, self.sequence)

            rendered.extend(await self._run_batch(result.messages))

            if not result.is_success:
                logger.error("flow_traversal_failed", sequence_id=self.sequence_id,
                             error=result.error_message)
                return self._error(result.error_message, rendered)

            if result.stop_reason == StopReason.INTERACTIVE_MESSAGE:
                stop = self.sequence.get_message_by_id(result.next_message_id)
                if isinstance(stop, AutoRouteMessage):
                    decision = await self._routes.decide(stop)
                    if decision.switches_sequence:
                        current_id = self._switch_sequence(decision.sequence_id)
                        if current_id is None:
                            return self._error(
                                f"cannot route to sequence '{decision.sequence_id}'", rendered,
                            )
                    else:
                        current_id = decision.next_message_id
                    continue

                self.awaiting_message_id = result.next_message_id
                return self._finish(FlowResponse(
                    status=FlowStatus.AWAITING_INPUT,
                    messages=rendered,
                    sequence_id=self.sequence_id,
                    interaction_message_id=result.next_message_id,
                ))

            if result.stop_reason == StopReason.SEQUENCE_TRANSITION:
                current_id = self._switch_sequence(result.target_sequence_id)
                if current_id is None:
                    return self._error(
                        f"cannot transition to sequence '{result.target_sequence_id}'", rendered,
                    )
                continue

            logger.info("flow_completed", sequence_id=self.sequence_id)
            return self._finish(FlowResponse(
                status=FlowStatus.COMPLETE, messages=rendered, sequence_id=self.sequence_id,
            ))

        logger.warning("flow_max_cycles_reached", sequence_id=self.sequence_id,
                       cycles=self.max_cycles)
        return self._error(f"maximum of {self.max_cycles} processing cycles reached", rendered)

    async def _run_batch(self, messages: list[BaseMessage]) -> list[RenderedMessage]:
        rendered = []
        for message in messages:
            if isinstance(message, DataActionMessage):
                await self._actions.process(message.data_actions)
            else:
                rendered.extend(await self._renderer.render([message]))
        return rendered

    # ── Helpers ───────────────────────────────────────

    async def _continue_after_choice(self, message: ChoiceMessage, choice: Choice) -> FlowResponse:
        if choice.sequence_id:
            start_id = self._switch_sequence(choice.sequence_id)
            if start_id is None:
                return self._error(f"cannot switch to sequence '{choice.sequence_id}'", [])
            return await self.process_from(start_id)
        if choice.next_message_id is not None:
            return await self.process_from(choice.next_message_id)
        return await self.process_from(self._successor(message))

    def _switch_sequence(self, sequence_id: str) -> Optional[int]:
        """Activate another sequence; returns its first message id, None on failure."""
        try:
            sequence = self._registry.load(sequence_id)
        except SequenceLoadError as e:
            logger.error("sequence_transition_failed", source=self.sequence_id,
                         target=sequence_id, error=str(e))
            return None
        if sequence.first_message_id is None:
            logger.error("sequence_transition_empty", target=sequence_id)
            return None
        logger.info("sequence_transition", source=self.sequence_id, target=sequence_id)
        self.sequence = sequence
        return sequence.first_message_id

    def _require_awaiting(self, message_type: type) -> BaseMessage:
        message = self.current_message
        if message is None:
            raise InvalidInteractionError("the session is not waiting for input")
        if not isinstance(message, message_type):
            raise InvalidInteractionError(
                f"message {message.id} is a {message.type} message, not {message_type.__name__}"
            )
        return message

    @staticmethod
    def _successor(message: BaseMessage) -> int:
        return message.next_message_id if message.next_message_id is not None else message.id + 1

    def _error(self, error: str, rendered: list[RenderedMessage]) -> FlowResponse:
        return self._finish(FlowResponse(
            status=FlowStatus.ERROR, messages=rendered,
            sequence_id=self.sequence_id, error=error,
        ))

    def _finish(self, response: FlowResponse) -> FlowResponse:
        self.last_response = response
        return response
