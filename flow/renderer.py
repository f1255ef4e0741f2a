"""
Message Renderer — Turns raw traversed messages into display-ready bubbles.

  1. drop messages that are never shown (autoroute, data action)
  2. resolve content keys (message text and each choice)
  3. fill {placeholders} from user data
  4. split "a ||| b" texts into consecutive bubbles

Content is resolved before templating so that variant lines may themselves
carry placeholders. Of an expanded message, only the last bubble keeps the
interactive payload (choices / input hint).
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

from pydantic import BaseModel

from content.resolver import ContentResolver
from models.schemas import (
    BaseMessage, ChoiceMessage, MessageType, TextInputMessage, MULTI_TEXT_SEPARATOR,
)
from templating.engine import TemplateEngine

logger = structlog.get_logger()


class RenderedChoice(BaseModel):
    index: int
    text: str
    value: Any = None


class RenderedMessage(BaseModel):
    """One chat bubble as handed to a client."""
    id: int
    type: MessageType
    text: str
    sender: str = "bot"
    delay: int = 0
    part: int = 0                                # position within an expanded ||| message
    choices: list[RenderedChoice] = []
    placeholder_text: Optional[str] = None
    sequence_id: Optional[str] = None            # set on sequence transition bubbles

    @property
    def is_interactive(self) -> bool:
        return self.type in (MessageType.CHOICE, MessageType.TEXT_INPUT)


class MessageRenderer:

    def __init__(self, resolver: ContentResolver, templates: TemplateEngine):
        self._resolver = resolver
        self._templates = templates

    async def render(self, messages: list[BaseMessage]) -> list[RenderedMessage]:
        rendered: list[RenderedMessage] = []
        for message in messages:
            if not message.is_displayable:
                continue
            # A bare hand-off carries nothing to show.
            if message.sequence_id is not None and not (message.text or message.content_key):
                continue
            rendered.extend(await self.render_message(message))
        logger.debug("messages_rendered", raw=len(messages), rendered=len(rendered))
        return rendered

    async def render_message(self, message: BaseMessage) -> list[RenderedMessage]:
        text = await self.render_text(message.text, message.content_key)

        choices: list[RenderedChoice] = []
        if isinstance(message, ChoiceMessage):
            for index, choice in enumerate(message.choices):
                choice_text = await self.render_text(choice.text, choice.content_key)
                choices.append(RenderedChoice(index=index, text=choice_text, value=choice.value))

        placeholder = message.placeholder_text if isinstance(message, TextInputMessage) else None
        parts = self._split(text)
        last = len(parts) - 1

        bubbles = []
        for i, part in enumerate(parts):
            final = i == last
            bubbles.append(RenderedMessage(
                id=message.id,
                type=message.type if final else MessageType.TEXT,
                text=part,
                sender=message.sender,
                delay=message.delay,
                part=i,
                choices=choices if final else [],
                placeholder_text=placeholder if final else None,
                sequence_id=message.sequence_id if final else None,
            ))
        if len(bubbles) > 1:
            logger.debug("message_expanded", message_id=message.id, parts=len(bubbles))
        return bubbles

    async def render_text(self, text: str, content_key: Optional[str]) -> str:
        if content_key:
            text = await self._resolver.resolve(content_key, text)
        return await self._templates.render(text)

    @staticmethod
    def _split(text: str) -> list[str]:
        if MULTI_TEXT_SEPARATOR not in text:
            return [text]
        parts = [p.strip() for p in text.split(MULTI_TEXT_SEPARATOR) if p.strip()]
        return parts or [""]
