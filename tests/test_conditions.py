"""Tests for the route condition evaluator."""
import pytest

from utils.conditions import (
    ConditionEvaluator, is_truthy, parse_comparison, parse_condition, parse_literal,
    split_outside_quotes, values_equal,
)


@pytest.fixture
def evaluator(store):
    return ConditionEvaluator(store)


class TestLiterals:
    def test_keywords(self):
        assert parse_literal("null") is None
        assert parse_literal("true") is True
        assert parse_literal(" false ") is False

    def test_numbers(self):
        assert parse_literal("3") == 3
        assert parse_literal("2.5") == 2.5

    def test_quoted_and_bare_text(self):
        assert parse_literal("'a b'") == "a b"
        assert parse_literal('"x"') == "x"
        assert parse_literal("hello") == "hello"


class TestEquality:
    def test_numeric_forms(self):
        assert values_equal(3, 3.0)
        assert values_equal("3", 3)

    def test_bool_against_text(self):
        assert values_equal(True, "true")
        assert not values_equal(True, 1)

    def test_none(self):
        assert values_equal(None, None)
        assert not values_equal(None, "null")
        assert not values_equal(0, None)

    @pytest.mark.parametrize("value, expected", [
        (None, False), (False, False), (0, False), ("", False), ([], False),
        (True, True), (1, True), ("x", True), ([1], True),
    ])
    def test_truthiness(self, value, expected):
        assert is_truthy(value) is expected


class TestParsing:
    def test_longest_operator_matched(self):
        comparison = parse_comparison("user.streak >= 3")
        assert (comparison.key, comparison.operator, comparison.expected) == ("user.streak", ">=", 3)

    def test_bare_key(self):
        comparison = parse_comparison(" user.isReturning ")
        assert comparison.key == "user.isReturning"
        assert comparison.operator is None

    def test_operators_inside_quotes_ignored(self):
        comparison = parse_comparison("user.choice == 'a >= b'")
        assert comparison.operator == "=="
        assert comparison.expected == "a >= b"

    def test_split_respects_quotes(self):
        assert split_outside_quotes("a == 'x && y' && b", "&&") == ["a == 'x && y' ", " b"]

    def test_or_of_and_groups(self):
        groups = parse_condition("a && b || c")
        assert [[c.key for c in group] for group in groups] == [["a", "b"], ["c"]]


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_numeric_comparisons(self, evaluator, store):
        await store.store_value("session.visitCount", 2)
        assert await evaluator.evaluate("session.visitCount > 1")
        assert await evaluator.evaluate("session.visitCount >= 2")
        assert await evaluator.evaluate("session.visitCount <= 2")
        assert not await evaluator.evaluate("session.visitCount < 2")

    @pytest.mark.asyncio
    async def test_numeric_on_missing_is_false(self, evaluator):
        assert not await evaluator.evaluate("session.visitCount > 1")
        assert not await evaluator.evaluate("session.visitCount < 1")

    @pytest.mark.asyncio
    async def test_string_equality(self, evaluator, store):
        await store.store_value("user.choice", "a && b")
        assert await evaluator.evaluate("user.choice == 'a && b'")
        assert not await evaluator.evaluate("user.choice != 'a && b'")

    @pytest.mark.asyncio
    async def test_null_checks(self, evaluator, store):
        assert await evaluator.evaluate("user.name == null")
        await store.store_value("user.name", "Ana")
        assert await evaluator.evaluate("user.name != null")

    @pytest.mark.asyncio
    async def test_boolean_values(self, evaluator, store):
        await store.store_value("user.ready", True)
        assert await evaluator.evaluate("user.ready == true")
        assert await evaluator.evaluate("user.ready")
        assert not await evaluator.evaluate("user.ready == false")

    @pytest.mark.asyncio
    async def test_and_or(self, evaluator, store):
        await store.store_value("a", 1)
        assert await evaluator.evaluate("a == 1 && b == null")
        assert not await evaluator.evaluate("a == 1 && b")
        assert await evaluator.evaluate("b || a == 1")

    @pytest.mark.asyncio
    async def test_empty_condition_is_false(self, evaluator):
        assert not await evaluator.evaluate("")
        assert not await evaluator.evaluate("   ")

    @pytest.mark.asyncio
    async def test_accessor_error_is_false(self):
        class Broken:
            async def get_value(self, key):
                raise RuntimeError("backend down")

        assert not await ConditionEvaluator(Broken()).evaluate("a == 1")
