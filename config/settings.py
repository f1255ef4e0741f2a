"""
Configuration loader for the ScriptFlow system.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class FlowConfig:
    sequences_dir: str = "./assets/sequences"
    initial_sequence: str = "welcome"
    initial_message_id: int = 1
    max_traversal_depth: int = 100      # guards against cyclic next_message_id chains
    max_processing_cycles: int = 25     # traversal + route rounds per orchestrator call


@dataclass
class ContentConfig:
    assets_dir: str = "./assets"        # content/ and formatters live under here
    concurrent_probes: bool = False     # read all fallback candidates at once
    random_seed: Optional[int] = None   # fixed seed → reproducible phrasing


@dataclass
class StoreConfig:
    backend: str = "memory"             # "memory" | "file"
    data_dir: str = "./data"            # file backend: one JSON file per session


@dataclass
class Settings:
    app_name: str = "ScriptFlow"
    debug: bool = False
    flow: FlowConfig = field(default_factory=FlowConfig)
    content: ContentConfig = field(default_factory=ContentConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def _optional_int(value: Any) -> Optional[int]:
    """Unset env placeholders and blanks read as None."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "SCRIPTFLOW_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.debug = raw.get("debug", settings.debug)

        if "flow" in raw:
            fl = raw["flow"]
            settings.flow = FlowConfig(
                sequences_dir=fl.get("sequences_dir", settings.flow.sequences_dir),
                initial_sequence=fl.get("initial_sequence", settings.flow.initial_sequence),
                initial_message_id=int(fl.get("initial_message_id", 1)),
                max_traversal_depth=int(fl.get("max_traversal_depth", 100)),
                max_processing_cycles=int(fl.get("max_processing_cycles", 25)),
            )

        if "content" in raw:
            ct = raw["content"]
            settings.content = ContentConfig(
                assets_dir=ct.get("assets_dir", settings.content.assets_dir),
                concurrent_probes=bool(ct.get("concurrent_probes", False)),
                random_seed=_optional_int(ct.get("random_seed")),
            )

        if "store" in raw:
            st = raw["store"]
            settings.store = StoreConfig(
                backend=st.get("backend", "memory"),
                data_dir=st.get("data_dir", settings.store.data_dir),
            )

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
