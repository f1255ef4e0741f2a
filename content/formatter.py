"""
Formatter Service — Maps raw user-data values to display text.

A formatter is a JSON lookup table at ``content/formatters/{name}.json``,
e.g. activeDays.json maps "1" → "Monday". Templates reference it as
``{task.activeDays:activeDays:join}``; the part after the key is the
formatter spec ``name[:flag]*``.

Flags:
  join                           map a list element-wise and join as "A, B and C"
  upper, lower, proper, sentence case transforms (also usable as the name)
"""
from __future__ import annotations

import json
import structlog
from typing import Any, Optional

from content.loader import BaseContentLoader, ContentStoreUnavailable

logger = structlog.get_logger()

FORMATTERS_PATH = "content/formatters"
JOIN_FLAG = "join"
CASE_FLAGS = ("upper", "lower", "proper", "sentence")


def join_with_grammar(items: list[str]) -> str:
    """[] → '', [A] → 'A', [A, B] → 'A and B', [A, B, C] → 'A, B and C'"""
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    return f"{', '.join(items[:-1])} and {items[-1]}"


def apply_case(flag: str, text: str) -> str:
    if flag == "upper":
        return text.upper()
    if flag == "lower":
        return text.lower()
    if flag == "proper":
        return " ".join(w[:1].upper() + w[1:].lower() for w in text.split(" "))
    if flag == "sentence":
        return text[:1].upper() + text[1:].lower()
    return text


def parse_as_list(raw: Any) -> Optional[list]:
    """Accepts [1, 2], "[1, 2]" and "1,2". Anything else → None."""
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if isinstance(raw, str):
        trimmed = raw.strip()
        if trimmed.startswith("[") and trimmed.endswith("]"):
            try:
                decoded = json.loads(trimmed)
                if isinstance(decoded, list):
                    return decoded
            except json.JSONDecodeError:
                pass
        if "," in trimmed:
            return [part.strip() for part in trimmed.split(",")]
    return None


def _table_key(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class FormatterService:
    """Loads formatter tables through a content loader and caches them per name."""

    def __init__(self, loader: BaseContentLoader):
        self._loader = loader
        self._tables: dict[str, Optional[dict[str, str]]] = {}

    async def format(self, spec: str, raw_value: Any) -> Optional[str]:
        """
        Format ``raw_value`` with ``spec``. Returns None when the formatter
        does not exist or has no entry for the value.
        """
        parts = [p for p in spec.split(":") if p]
        if not parts:
            return None
        name, flags = parts[0], parts[1:]
        case_flag = next((p for p in parts if p in CASE_FLAGS), None)

        if name in CASE_FLAGS:
            return apply_case(name, _table_key(raw_value))

        table = await self._load_table(name)
        if table is None:
            return None

        if JOIN_FLAG in flags:
            formatted = self._join(table, raw_value)
        else:
            formatted = table.get(_table_key(raw_value))

        if formatted is not None and case_flag:
            formatted = apply_case(case_flag, formatted)
        return formatted

    @staticmethod
    def format_fallback(spec: str, fallback: str) -> str:
        """Only case flags apply to fallback literals."""
        case_flag = next((p for p in spec.split(":") if p in CASE_FLAGS), None)
        return apply_case(case_flag, fallback) if case_flag else fallback

    def clear_cache(self):
        self._tables.clear()

    @staticmethod
    def _join(table: dict[str, str], raw_value: Any) -> Optional[str]:
        # "1,2,3,4,5" → "weekdays" style direct mappings win over splitting.
        if isinstance(raw_value, str) and raw_value in table:
            return table[raw_value]
        values = parse_as_list(raw_value)
        if values is None:
            return None
        mapped = [table[_table_key(v)] for v in values if _table_key(v) in table]
        return join_with_grammar(mapped)

    async def _load_table(self, name: str) -> Optional[dict[str, str]]:
        if name in self._tables:
            return self._tables[name]

        path = f"{FORMATTERS_PATH}/{name}.json"
        try:
            raw = await self._loader.load(path)
        except ContentStoreUnavailable as e:
            # Not memoised: the store may come back.
            logger.error("formatter_store_unavailable", formatter=name, error=str(e))
            return None
        except Exception as e:
            logger.warning("formatter_read_failed", formatter=name, path=path, error=str(e))
            raw = None

        table = None
        if raw is None:
            logger.warning("formatter_not_found", formatter=name, path=path)
        else:
            try:
                decoded = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning("formatter_invalid_json", formatter=name, error=str(e))
            else:
                if isinstance(decoded, dict):
                    table = {str(k): str(v) for k, v in decoded.items()}
                else:
                    logger.warning("formatter_not_a_mapping", formatter=name)

        self._tables[name] = table
        return table
