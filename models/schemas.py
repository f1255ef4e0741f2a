"""
Core data models for the ScriptFlow system.
These are the universal types shared across all modules.

A message is a tagged union discriminated on ``type``. The boolean
convenience flags (is_choice, is_data_action, …) are derived from the
variant, so a message can never claim to be two things at once.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, PrivateAttr, TypeAdapter, model_validator


DEFAULT_DELAY_MS = 1000
DEFAULT_PLACEHOLDER_TEXT = "Type your answer..."
MULTI_TEXT_SEPARATOR = "|||"


# ──────────────────────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────────────────────

class MessageType(str, Enum):
    TEXT = "text"
    CHOICE = "choice"
    TEXT_INPUT = "text_input"
    DATA_ACTION = "data_action"
    AUTOROUTE = "autoroute"
    SEQUENCE_TRANSITION = "sequence_transition"


class DataActionType(str, Enum):
    SET = "set"
    INCREMENT = "increment"
    DECREMENT = "decrement"
    RESET = "reset"


# ──────────────────────────────────────────────────────────────
#  Message payload parts
# ──────────────────────────────────────────────────────────────

class Choice(BaseModel):
    """One selectable option of a choice message."""
    model_config = ConfigDict(frozen=True)

    text: str
    next_message_id: Optional[int] = None
    sequence_id: Optional[str] = None            # switching sequences always starts at the first message
    value: Any = None                            # stored instead of text when present
    content_key: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _sequence_wins(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("sequence_id"):
            data = {**data, "next_message_id": None}
        return data


class RouteCondition(BaseModel):
    """One arm of an autoroute message."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    condition: Optional[str] = None              # e.g. "user.streak >= 3 && user.name != null"
    sequence_id: Optional[str] = None
    next_message_id: Optional[int] = None
    is_default: bool = Field(default=False, alias="default")


_ACTION_TYPES = {t.value for t in DataActionType}


class DataAction(BaseModel):
    """A single write against the user-data store."""
    model_config = ConfigDict(frozen=True)

    type: DataActionType = DataActionType.SET
    key: str
    value: Any = None

    @model_validator(mode="before")
    @classmethod
    def _unknown_type_is_set(cls, data: Any) -> Any:
        if isinstance(data, dict):
            raw = data.get("type")
            if raw is not None and str(getattr(raw, "value", raw)) not in _ACTION_TYPES:
                data = {**data, "type": DataActionType.SET}
        return data


# ──────────────────────────────────────────────────────────────
#  Messages — one variant per message type
# ──────────────────────────────────────────────────────────────

class BaseMessage(BaseModel):
    """Fields shared by every message variant."""
    model_config = ConfigDict(frozen=True)

    id: PositiveInt
    text: str = ""
    content_key: Optional[str] = None            # semantic key, e.g. "bot.acknowledge.completion.positive"
    next_message_id: Optional[int] = None        # explicit successor (overrides id + 1)
    delay: int = DEFAULT_DELAY_MS
    sender: str = "bot"

    @property
    def is_choice(self) -> bool:
        return self.type == MessageType.CHOICE

    @property
    def is_text_input(self) -> bool:
        return self.type == MessageType.TEXT_INPUT

    @property
    def is_data_action(self) -> bool:
        return self.type == MessageType.DATA_ACTION

    @property
    def is_auto_route(self) -> bool:
        return self.type == MessageType.AUTOROUTE

    @property
    def is_interactive(self) -> bool:
        return self.is_choice or self.is_text_input

    @property
    def is_displayable(self) -> bool:
        return not (self.is_data_action or self.is_auto_route)

    @property
    def sequence_id(self) -> Optional[str]:
        return None

    @property
    def has_multiple_texts(self) -> bool:
        return MULTI_TEXT_SEPARATOR in self.text

    def text_parts(self) -> list[str]:
        return [p.strip() for p in self.text.split(MULTI_TEXT_SEPARATOR) if p.strip()]


class TextMessage(BaseMessage):
    type: Literal["text"] = "text"


class ChoiceMessage(BaseMessage):
    type: Literal["choice"] = "choice"
    choices: list[Choice] = []
    store_key: Optional[str] = None


class TextInputMessage(BaseMessage):
    type: Literal["text_input"] = "text_input"
    placeholder_text: str = DEFAULT_PLACEHOLDER_TEXT
    store_key: Optional[str] = None


class DataActionMessage(BaseMessage):
    type: Literal["data_action"] = "data_action"
    data_actions: list[DataAction] = []


class AutoRouteMessage(BaseMessage):
    type: Literal["autoroute"] = "autoroute"
    routes: list[RouteCondition] = []


class SequenceTransitionMessage(BaseMessage):
    type: Literal["sequence_transition"] = "sequence_transition"
    target_sequence_id: str = Field(alias="sequence_id")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def sequence_id(self) -> Optional[str]:
        return self.target_sequence_id


Message = Annotated[
    Union[
        TextMessage,
        ChoiceMessage,
        TextInputMessage,
        DataActionMessage,
        AutoRouteMessage,
        SequenceTransitionMessage,
    ],
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter = TypeAdapter(Message)

# Type names accepted in definition files besides the canonical enum values.
_TYPE_ALIASES = {
    "bot": MessageType.TEXT.value,
    "textInput": MessageType.TEXT_INPUT.value,
    "dataAction": MessageType.DATA_ACTION.value,
    "autoRoute": MessageType.AUTOROUTE.value,
    "sequenceTransition": MessageType.SEQUENCE_TRANSITION.value,
}


def parse_message(raw: dict[str, Any]) -> BaseMessage:
    """
    Build the right message variant from a definition dict.

    A plain text message that declares ``sequence_id`` becomes a
    SequenceTransitionMessage. ``sequence_id`` on any other type is invalid.
    """
    data = dict(raw)
    msg_type = data.get("type") or MessageType.TEXT.value
    if isinstance(msg_type, MessageType):
        msg_type = msg_type.value
    msg_type = _TYPE_ALIASES.get(msg_type, msg_type)

    if data.get("sequence_id"):
        if msg_type == MessageType.TEXT.value:
            msg_type = MessageType.SEQUENCE_TRANSITION.value
        elif msg_type != MessageType.SEQUENCE_TRANSITION.value:
            raise ValueError(
                f"message {data.get('id')}: sequence_id is only allowed on text messages, "
                f"not on '{msg_type}'"
            )
    elif "sequence_id" in data:
        data.pop("sequence_id")

    data["type"] = msg_type
    return _message_adapter.validate_python(data)


# ──────────────────────────────────────────────────────────────
#  Sequence — a named set of messages
# ──────────────────────────────────────────────────────────────

class Sequence(BaseModel):
    """
    A named, ordered collection of messages forming one conversational unit.
    Indexed by id once at construction; immutable afterwards.
    """
    model_config = ConfigDict(frozen=True)

    sequence_id: str
    name: str = ""
    description: str = ""
    messages: list[Message] = []

    _index: dict[int, Any] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._index = {m.id: m for m in self.messages}

    def has_message(self, message_id: int) -> bool:
        return message_id in self._index

    def get_message_by_id(self, message_id: int) -> Optional[BaseMessage]:
        return self._index.get(message_id)

    @property
    def message_ids(self) -> list[int]:
        return [m.id for m in self.messages]

    @property
    def first_message_id(self) -> Optional[int]:
        return self.messages[0].id if self.messages else None
