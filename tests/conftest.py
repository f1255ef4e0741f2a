"""Shared test fixtures for ScriptFlow."""
import random
from datetime import date

import pytest

from config.settings import ContentConfig, FlowConfig, Settings, StoreConfig
from content.formatter import FormatterService
from content.loader import InMemoryContentLoader
from content.resolver import ContentCache, ContentResolver
from core.engine import ScriptFlowEngine
from database.store_memory import InMemoryUserDataStore
from flow.sequences import SequenceRegistry
from models.schemas import Sequence, parse_message
from templating.engine import TemplateEngine


# Wednesday
FIXED_TODAY = date(2024, 5, 15)


def make_sequence(messages: list[dict], sequence_id: str = "test") -> Sequence:
    return Sequence(
        sequence_id=sequence_id,
        messages=[parse_message(m) for m in messages],
    )


@pytest.fixture
def build_sequence():
    return make_sequence


@pytest.fixture
def store():
    return InMemoryUserDataStore()


@pytest.fixture
def content_files() -> dict[str, str]:
    return {
        "content/bot/greet/welcome.txt": "Hello!\nHey there!\nHi!\n",
        "content/bot/acknowledge/completion.txt": "Done!\n",
        "content/bot/acknowledge/completion_positive.txt": "Great job!\n",
        "content/bot/acknowledge/default.txt": "Got it.\n",
        "content/bot/request/input.txt": "What should I call you?\n",
        "content/formatters/activeDays.json": (
            '{"1": "Monday", "2": "Tuesday", "3": "Wednesday", "4": "Thursday",'
            ' "5": "Friday", "6": "Saturday", "7": "Sunday", "1,2,3,4,5": "weekdays"}'
        ),
    }


@pytest.fixture
def loader(content_files):
    return InMemoryContentLoader(content_files)


@pytest.fixture
def resolver(loader):
    return ContentResolver(loader, cache=ContentCache(), rng=random.Random(0))


@pytest.fixture
def formatter(loader):
    return FormatterService(loader)


@pytest.fixture
def templates(store, formatter):
    return TemplateEngine(store, formatter=formatter)


@pytest.fixture
def chat_sequences() -> list[dict]:
    """A small two-sequence conversation covering every message type."""
    return [
        {
            "sequence_id": "intro",
            "name": "Intro",
            "messages": [
                {"id": 1, "type": "text", "text": "Hello!", "content_key": "bot.greet.welcome"},
                {"id": 2, "type": "data_action", "data_actions": [
                    {"type": "increment", "key": "session.visitCount"},
                ]},
                {"id": 3, "type": "autoroute", "routes": [
                    {"condition": "session.visitCount > 1", "next_message_id": 10},
                    {"default": True, "next_message_id": 4},
                ]},
                {"id": 4, "type": "text_input", "text": "Your name?", "store_key": "user.name"},
                {"id": 5, "type": "text", "text": "Hi {user.name|friend}! ||| Shall we?"},
                {"id": 6, "type": "choice", "text": "Continue?", "store_key": "user.ready",
                 "choices": [
                     {"text": "Yes", "value": True, "sequence_id": "days"},
                     {"text": "No", "value": False, "next_message_id": 20},
                 ]},
                {"id": 10, "type": "text", "text": "Welcome back, {user.name|friend}!",
                 "next_message_id": 6},
                {"id": 20, "type": "text", "text": "Bye."},
            ],
        },
        {
            "sequence_id": "days",
            "name": "Days",
            "messages": [
                {"id": 1, "type": "choice", "text": "Which days?", "store_key": "task.activeDays",
                 "choices": [
                     {"text": "Weekdays", "value": [1, 2, 3, 4, 5]},
                     {"text": "Mon and Wed", "value": [1, 3]},
                 ]},
                {"id": 2, "type": "text",
                 "text": "Set for {task.activeDays:activeDays:join}, starting {task.firstActiveDate}."},
            ],
        },
    ]


@pytest.fixture
def registry(chat_sequences):
    registry = SequenceRegistry()
    for raw in chat_sequences:
        registry.register_from_config(raw)
    return registry


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        flow=FlowConfig(sequences_dir=str(tmp_path / "sequences"), initial_sequence="intro"),
        content=ContentConfig(assets_dir=str(tmp_path / "assets"), random_seed=0),
        store=StoreConfig(backend="memory", data_dir=str(tmp_path / "data")),
    )


@pytest.fixture
def engine(settings, loader, registry):
    return ScriptFlowEngine(
        settings, loader=loader, registry=registry,
        rng=random.Random(0), today=lambda: FIXED_TODAY,
    )
