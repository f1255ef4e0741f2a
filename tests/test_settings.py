"""Tests for configuration loading and the bundled sequence assets."""
import json
import random
from datetime import date
from pathlib import Path

import pytest

from config.settings import Settings, load_settings
from core.engine import ScriptFlowEngine
from flow.orchestrator import FlowStatus
from scripts.validate_sequences import validate

ROOT = Path(__file__).resolve().parent.parent


class TestLoadSettings:
    def test_defaults_when_file_missing(self, tmp_path):
        settings = load_settings(str(tmp_path / "missing.yaml"))
        assert settings == Settings()
        assert settings.flow.max_traversal_depth == 100
        assert settings.flow.max_processing_cycles == 25

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "app_name: Demo\n"
            "flow:\n"
            "  initial_sequence: intro\n"
            "  max_traversal_depth: 50\n"
            "content:\n"
            "  concurrent_probes: true\n"
            "  random_seed: 7\n"
            "store:\n"
            "  backend: file\n"
            "  data_dir: /tmp/sf\n"
        )
        settings = load_settings(str(path))
        assert settings.app_name == "Demo"
        assert settings.flow.initial_sequence == "intro"
        assert settings.flow.max_traversal_depth == 50
        assert settings.content.concurrent_probes is True
        assert settings.content.random_seed == 7
        assert settings.store.backend == "file"
        assert settings.store.data_dir == "/tmp/sf"

    def test_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SF_ASSETS", "/srv/assets")
        monkeypatch.setenv("SF_SEED", "42")
        path = tmp_path / "settings.yaml"
        path.write_text("content:\n  assets_dir: ${SF_ASSETS}\n  random_seed: ${SF_SEED}\n")
        settings = load_settings(str(path))
        assert settings.content.assets_dir == "/srv/assets"
        assert settings.content.random_seed == 42

    def test_unset_seed_is_none(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SF_UNSET_SEED", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("content:\n  random_seed: ${SF_UNSET_SEED}\n")
        assert load_settings(str(path)).content.random_seed is None

    def test_bundled_settings_file(self):
        settings = load_settings(str(ROOT / "config" / "settings.yaml"))
        assert settings.flow.initial_sequence == "welcome"
        assert settings.store.backend == "memory"


class TestValidateScript:
    def test_bundled_sequences_are_clean(self, capsys):
        assert validate(str(ROOT / "assets" / "sequences"), strict=True) == 0
        assert "OK" in capsys.readouterr().out

    def test_invalid_definition_fails(self, tmp_path):
        (tmp_path / "dup.json").write_text(json.dumps({
            "messages": [{"id": 1, "text": "a"}, {"id": 1, "text": "b"}],
        }))
        assert validate(str(tmp_path)) == 1

    def test_warnings_fail_only_when_strict(self, tmp_path):
        (tmp_path / "hop.json").write_text(json.dumps({
            "messages": [{"id": 1, "text": "bye", "sequence_id": "elsewhere"}],
        }))
        assert validate(str(tmp_path)) == 0
        assert validate(str(tmp_path), strict=True) == 1


class TestBundledFlow:
    @pytest.mark.asyncio
    async def test_welcome_to_onboarding(self):
        settings = Settings()
        settings.flow.sequences_dir = str(ROOT / "assets" / "sequences")
        settings.content.assets_dir = str(ROOT / "assets")
        engine = ScriptFlowEngine(settings, rng=random.Random(1), today=lambda: date(2024, 5, 15))
        session = engine.new_session()

        response = await session.start("welcome")
        assert response.status == FlowStatus.AWAITING_INPUT
        assert response.interaction_message_id == 4

        response = await session.handle_text_input("Ana")
        assert response.interaction_message_id == 6

        response = await session.handle_choice(0)
        assert response.sequence_id == "onboarding"
        assert response.interaction_message_id == 2

        response = await session.handle_choice(0)
        assert response.status == FlowStatus.COMPLETE
        assert await session.store.get_value("onboarding.complete") is True
        assert any("weekdays" in m.text.lower() or "Monday" in m.text for m in response.messages)
