"""
Template Engine — Fills ``{key}`` placeholders from live user data.

Syntax:
  {key}                     stored value, else placeholder left verbatim
  {key|fallback}            stored value, else the fallback literal
  {key:formatter}           stored value through a formatter
  {key:formatter|fallback}  as above, case flags also apply to the fallback

One unresolved placeholder never blanks the message: it stays in the
output as written. Values are live, so nothing is cached here.
"""
from __future__ import annotations

import json
import re
import structlog
from typing import Any, Optional, Protocol

from content.formatter import FormatterService

logger = structlog.get_logger()

PLACEHOLDER_RE = re.compile(r"\{([^}:|]+)(?::([^}|]+))?(?:\|([^}]*))?\}")


class DataAccessor(Protocol):
    async def get_value(self, key: str) -> Any: ...


def stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


def find_placeholders(text: str) -> list[str]:
    """Keys referenced by ``text``, in order of appearance."""
    return [m.group(1).strip() for m in PLACEHOLDER_RE.finditer(text or "")]


class TemplateEngine:

    def __init__(self, accessor: DataAccessor, formatter: FormatterService = None):
        self._accessor = accessor
        self._formatter = formatter

    async def render(self, text: str) -> str:
        if not text or "{" not in text:
            return text

        out: list[str] = []
        cursor = 0
        for match in PLACEHOLDER_RE.finditer(text):
            out.append(text[cursor:match.start()])
            replacement = await self._resolve_placeholder(
                match.group(1).strip(), match.group(2), match.group(3),
            )
            out.append(match.group(0) if replacement is None else replacement)
            cursor = match.end()
        out.append(text[cursor:])
        return "".join(out)

    async def _resolve_placeholder(self, key: str, spec: Optional[str],
                                   fallback: Optional[str]) -> Optional[str]:
        value = await self._accessor.get_value(key)

        if value is not None:
            if spec is None:
                return stringify(value)
            formatted = await self._format(spec, value)
            if formatted is not None:
                return formatted
            logger.debug("template_formatter_miss", key=key, formatter=spec)
            if fallback is not None:
                return FormatterService.format_fallback(spec, fallback)
            return None

        if fallback is not None:
            return FormatterService.format_fallback(spec, fallback) if spec else fallback

        logger.debug("template_placeholder_unresolved", key=key)
        return None

    async def _format(self, spec: str, value: Any) -> Optional[str]:
        if self._formatter is None:
            return None
        return await self._formatter.format(spec, value)
