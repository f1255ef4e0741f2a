"""
Route condition evaluator — used by the auto-route processor.

Evaluates condition strings against the user-data store, e.g.

    user.streak >= 3 && user.name != null
    session.visitCount == 1 || user.isReturning
    user.choice == 'a && b'

Grammar:
  expr       := and_expr ('||' and_expr)*
  and_expr   := comparison ('&&' comparison)*
  comparison := key OP literal | key          (bare key → truthiness)
  OP         := >= <= != == > <               (matched outside quotes)
  literal    := null | true | false | number | 'text' | "text" | bare text

Any evaluation failure is logged and counts as False.
"""
from __future__ import annotations

import operator as op
import structlog
from dataclasses import dataclass
from typing import Any, Optional, Protocol

logger = structlog.get_logger()


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def values_equal(left: Any, right: Any) -> bool:
    """Loose equality: exact, then numeric, then string form."""
    if isinstance(left, bool) != isinstance(right, bool):
        return left is not None and right is not None and _as_text(left) == _as_text(right)
    if left == right:
        return True
    ln, rn = _to_number(left), _to_number(right)
    if ln is not None and rn is not None:
        return ln == rn
    if left is not None and right is not None:
        return _as_text(left) == _as_text(right)
    return False


def _numeric(fn):
    def compare(left: Any, right: Any) -> bool:
        ln, rn = _to_number(left), _to_number(right)
        if ln is None or rn is None:
            return False
        return fn(ln, rn)
    return compare


# Longer symbols first so ">=" is not read as ">".
OPERATORS: dict[str, Any] = {
    ">=": _numeric(op.ge),
    "<=": _numeric(op.le),
    "!=": lambda a, b: not values_equal(a, b),
    "==": values_equal,
    ">": _numeric(op.gt),
    "<": _numeric(op.lt),
}


def is_truthy(value: Any) -> bool:
    """None, False, 0 and empty strings/collections are falsy."""
    if value is None:
        return False
    if isinstance(value, (bool, int, float, str, list, dict, tuple)):
        return bool(value)
    return True


def parse_literal(text: str) -> Any:
    trimmed = text.strip()
    if trimmed == "null":
        return None
    if trimmed == "true":
        return True
    if trimmed == "false":
        return False
    if len(trimmed) >= 2 and trimmed[0] == trimmed[-1] and trimmed[0] in ("'", '"'):
        return trimmed[1:-1]
    number = _to_number(trimmed)
    if number is not None:
        return number
    return trimmed


# ──────────────────────────────────────────────────────────────
#  Parsing
# ──────────────────────────────────────────────────────────────

def _scan_outside_quotes(text: str, token: str) -> list[int]:
    """Start indexes of ``token`` occurrences not inside a quoted literal."""
    hits = []
    in_single = in_double = False
    i = 0
    while i <= len(text) - len(token):
        ch = text[i]
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif not in_single and not in_double and text.startswith(token, i):
            hits.append(i)
            i += len(token)
            continue
        i += 1
    return hits


def split_outside_quotes(text: str, token: str) -> list[str]:
    parts, last = [], 0
    for index in _scan_outside_quotes(text, token):
        parts.append(text[last:index])
        last = index + len(token)
    parts.append(text[last:])
    return parts


@dataclass(frozen=True)
class Comparison:
    key: str
    operator: Optional[str] = None          # None → truthiness check
    expected: Any = None


def parse_comparison(text: str) -> Comparison:
    text = text.strip()
    for symbol in OPERATORS:
        hits = _scan_outside_quotes(text, symbol)
        if hits:
            index = hits[0]
            return Comparison(
                key=text[:index].strip(),
                operator=symbol,
                expected=parse_literal(text[index + len(symbol):]),
            )
    return Comparison(key=text)


def parse_condition(expression: str) -> list[list[Comparison]]:
    """Disjunctive form: OR of AND-groups."""
    return [
        [parse_comparison(part) for part in split_outside_quotes(group, "&&")]
        for group in split_outside_quotes(expression, "||")
    ]


# ──────────────────────────────────────────────────────────────
#  Evaluation
# ──────────────────────────────────────────────────────────────

class DataAccessor(Protocol):
    async def get_value(self, key: str) -> Any: ...


class ConditionEvaluator:
    """Evaluates condition strings against a user-data accessor."""

    def __init__(self, accessor: DataAccessor):
        self._accessor = accessor

    async def evaluate(self, expression: str) -> bool:
        if not expression or not expression.strip():
            return False
        try:
            groups = parse_condition(expression)
            for group in groups:
                if await self._all_hold(group):
                    logger.debug("condition_evaluated", condition=expression, result=True)
                    return True
            logger.debug("condition_evaluated", condition=expression, result=False)
            return False
        except Exception as e:
            logger.warning("condition_evaluation_failed", condition=expression, error=str(e))
            return False

    async def _all_hold(self, group: list[Comparison]) -> bool:
        for comparison in group:
            if not await self._holds(comparison):
                return False
        return True

    async def _holds(self, comparison: Comparison) -> bool:
        if not comparison.key:
            return False
        value = await self._accessor.get_value(comparison.key)
        if comparison.operator is None:
            return is_truthy(value)
        return OPERATORS[comparison.operator](value, comparison.expected)
