"""
Sequence Registry — Loads, validates, and serves conversation sequences.

Sequences are read from ``{sequences_dir}/{sequence_id}.json`` (or .yaml/.yml;
JSON is parsed by the YAML loader) and indexed by id. A loaded Sequence is
immutable; reloading replaces it wholesale.

Validation at load time:
  - duplicate message ids            → error
  - sequence_id on a non-text message → error
  - dangling next_message_id / choice targets → warning only
    (a missing message ends the flow gracefully at runtime)
"""
from __future__ import annotations

import structlog
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from models.schemas import AutoRouteMessage, BaseMessage, ChoiceMessage, Sequence, parse_message

logger = structlog.get_logger()

_EXTENSIONS = (".json", ".yaml", ".yml")


class SequenceLoadError(ValueError):
    """A sequence definition could not be read or is invalid."""


class SequenceNotFoundError(SequenceLoadError):
    """No definition exists for the requested sequence id."""


class SequenceRegistry:
    """
    Central registry of conversation sequences.
    Sequences can be registered directly or loaded lazily from disk.
    """

    def __init__(self, sequences_dir: str = None):
        self._sequences_dir = Path(sequences_dir) if sequences_dir else None
        self._sequences: dict[str, Sequence] = {}

    # ── Registration ──────────────────────────────────

    def register(self, sequence: Sequence):
        """Register a single sequence, replacing any previous version."""
        errors = self._validate(sequence)
        if errors:
            logger.error("invalid_sequence",
                         sequence_id=sequence.sequence_id, errors=errors)
            raise SequenceLoadError(
                f"Invalid sequence '{sequence.sequence_id}': {'; '.join(errors)}"
            )

        for warning in self.find_dangling_references(sequence):
            logger.warning("sequence_dangling_reference",
                           sequence_id=sequence.sequence_id, detail=warning)

        self._sequences[sequence.sequence_id] = sequence
        logger.info("sequence_registered",
                    sequence_id=sequence.sequence_id,
                    messages=len(sequence.messages))

    def register_from_config(self, raw: dict[str, Any]) -> Sequence:
        """Parse and register a sequence from a raw dict (JSON/YAML)."""
        sequence = self._parse_sequence(raw)
        self.register(sequence)
        return sequence

    # ── Resolution ────────────────────────────────────

    def get(self, sequence_id: str) -> Optional[Sequence]:
        return self._sequences.get(sequence_id)

    def load(self, sequence_id: str, reload: bool = False) -> Sequence:
        """
        Return the sequence, reading it from disk on first use.
        Raises SequenceNotFoundError when no definition exists.
        """
        if not reload and sequence_id in self._sequences:
            return self._sequences[sequence_id]

        path = self._find_file(sequence_id)
        if path is None:
            if sequence_id in self._sequences:
                return self._sequences[sequence_id]
            logger.error("sequence_not_found", sequence_id=sequence_id)
            raise SequenceNotFoundError(f"Sequence '{sequence_id}' not found")

        try:
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.error("sequence_read_failed", sequence_id=sequence_id,
                         path=str(path), error=str(e))
            raise SequenceLoadError(f"Failed to load sequence '{sequence_id}': {e}") from e

        if not isinstance(raw, dict):
            raise SequenceLoadError(f"Sequence file {path} must contain a mapping")
        raw.setdefault("sequence_id", sequence_id)
        return self.register_from_config(raw)

    def list_available(self) -> list[str]:
        """Ids of registered sequences plus those present on disk."""
        ids = set(self._sequences)
        if self._sequences_dir and self._sequences_dir.is_dir():
            for path in self._sequences_dir.iterdir():
                if path.suffix in _EXTENSIONS:
                    ids.add(path.stem)
        return sorted(ids)

    def _find_file(self, sequence_id: str) -> Optional[Path]:
        if not self._sequences_dir:
            return None
        root = self._sequences_dir.resolve()
        for ext in _EXTENSIONS:
            path = (root / f"{sequence_id}{ext}").resolve()
            # Ids come from clients; never read outside the sequences directory.
            if root not in path.parents:
                logger.warning("sequence_path_outside_root", sequence_id=sequence_id)
                return None
            if path.is_file():
                return path
        return None

    # ── Validation ────────────────────────────────────

    @staticmethod
    def _validate(sequence: Sequence) -> list[str]:
        errors = []
        if not sequence.sequence_id:
            errors.append("sequence_id is required")

        seen: set[int] = set()
        for message in sequence.messages:
            if message.id in seen:
                errors.append(f"duplicate message id {message.id}")
            seen.add(message.id)
        return errors

    @staticmethod
    def find_dangling_references(sequence: Sequence) -> list[str]:
        ids = set(sequence.message_ids)
        problems = []
        for message in sequence.messages:
            if message.next_message_id is not None and message.next_message_id not in ids:
                problems.append(
                    f"message {message.id} next_message_id {message.next_message_id} not found"
                )
            if isinstance(message, ChoiceMessage):
                for choice in message.choices:
                    if choice.next_message_id is not None and choice.next_message_id not in ids:
                        problems.append(
                            f"choice '{choice.text}' in message {message.id} "
                            f"targets missing id {choice.next_message_id}"
                        )
        return problems

    @staticmethod
    def transition_targets(sequence: Sequence) -> set[str]:
        """Every sequence id this sequence can hand off to."""
        targets = set()
        for message in sequence.messages:
            if message.sequence_id:
                targets.add(message.sequence_id)
            if isinstance(message, ChoiceMessage):
                targets.update(c.sequence_id for c in message.choices if c.sequence_id)
            if isinstance(message, AutoRouteMessage):
                targets.update(r.sequence_id for r in message.routes if r.sequence_id)
        return targets

    # ── Parsing ───────────────────────────────────────

    def _parse_sequence(self, raw: dict[str, Any]) -> Sequence:
        """Parse a raw dict into a Sequence of typed messages."""
        sequence_id = raw.get("sequence_id", "")
        messages: list[BaseMessage] = []
        for raw_msg in raw.get("messages", []):
            try:
                messages.append(parse_message(raw_msg))
            except (ValidationError, ValueError, TypeError) as e:
                logger.error("invalid_message_definition",
                             sequence_id=sequence_id,
                             message_id=raw_msg.get("id") if isinstance(raw_msg, dict) else None,
                             error=str(e))
                raise SequenceLoadError(
                    f"Invalid message in sequence '{sequence_id}': {e}"
                ) from e

        return Sequence(
            sequence_id=sequence_id,
            name=raw.get("name", sequence_id),
            description=raw.get("description", ""),
            messages=messages,
        )
