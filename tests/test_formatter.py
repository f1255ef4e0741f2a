"""Tests for value formatters."""
import pytest

from content.formatter import FormatterService, apply_case, join_with_grammar, parse_as_list
from content.loader import BaseContentLoader, ContentStoreUnavailable, InMemoryContentLoader


class TestHelpers:
    @pytest.mark.parametrize("items, expected", [
        ([], ""),
        (["Monday"], "Monday"),
        (["Monday", "Friday"], "Monday and Friday"),
        (["Monday", "Wednesday", "Friday"], "Monday, Wednesday and Friday"),
    ])
    def test_join_with_grammar(self, items, expected):
        assert join_with_grammar(items) == expected

    def test_case_flags(self):
        assert apply_case("upper", "hello world") == "HELLO WORLD"
        assert apply_case("lower", "Hello World") == "hello world"
        assert apply_case("proper", "hello wORLD") == "Hello World"
        assert apply_case("sentence", "hello WORLD") == "Hello world"
        assert apply_case("unknown", "as is") == "as is"

    def test_parse_as_list(self):
        assert parse_as_list([1, 2]) == [1, 2]
        assert parse_as_list("[1, 2]") == [1, 2]
        assert parse_as_list("1, 2") == ["1", "2"]
        assert parse_as_list("single") is None
        assert parse_as_list(7) is None


class TestFormat:
    @pytest.mark.asyncio
    async def test_single_lookup(self, formatter):
        assert await formatter.format("activeDays", 3) == "Wednesday"

    @pytest.mark.asyncio
    async def test_join_list(self, formatter):
        assert await formatter.format("activeDays:join", [1, 3, 5]) == "Monday, Wednesday and Friday"

    @pytest.mark.asyncio
    async def test_join_json_string(self, formatter):
        assert await formatter.format("activeDays:join", "[6, 7]") == "Saturday and Sunday"

    @pytest.mark.asyncio
    async def test_direct_mapping_wins_for_strings(self, formatter):
        assert await formatter.format("activeDays:join", "1,2,3,4,5") == "weekdays"

    @pytest.mark.asyncio
    async def test_join_skips_unknown_entries(self, formatter):
        assert await formatter.format("activeDays:join", [1, 9]) == "Monday"

    @pytest.mark.asyncio
    async def test_case_flag_after_lookup(self, formatter):
        assert await formatter.format("activeDays:upper", 1) == "MONDAY"

    @pytest.mark.asyncio
    async def test_case_flag_as_name(self, formatter):
        assert await formatter.format("upper", "ana") == "ANA"

    @pytest.mark.asyncio
    async def test_missing_entry(self, formatter):
        assert await formatter.format("activeDays", 9) is None

    @pytest.mark.asyncio
    async def test_missing_formatter(self, formatter):
        assert await formatter.format("nope", 1) is None

    @pytest.mark.asyncio
    async def test_booleans_use_lowercase_keys(self):
        loader = InMemoryContentLoader({"content/formatters/yesno.json": '{"true": "Yes", "false": "No"}'})
        service = FormatterService(loader)
        assert await service.format("yesno", True) == "Yes"
        assert await service.format("yesno", False) == "No"

    def test_fallback_gets_case_only(self):
        assert FormatterService.format_fallback("activeDays:upper", "soon") == "SOON"
        assert FormatterService.format_fallback("activeDays:join", "soon") == "soon"


class TestTableCache:
    @pytest.mark.asyncio
    async def test_table_loaded_once(self, formatter, loader):
        await formatter.format("activeDays", 1)
        await formatter.format("activeDays", 2)
        assert loader.reads.count("content/formatters/activeDays.json") == 1

    @pytest.mark.asyncio
    async def test_missing_table_memoised(self, formatter, loader):
        await formatter.format("nope", 1)
        await formatter.format("nope", 1)
        assert loader.reads.count("content/formatters/nope.json") == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_a_miss(self):
        loader = InMemoryContentLoader({"content/formatters/bad.json": "{not json"})
        assert await FormatterService(loader).format("bad", 1) is None

    @pytest.mark.asyncio
    async def test_non_mapping_is_a_miss(self):
        loader = InMemoryContentLoader({"content/formatters/list.json": "[1, 2]"})
        assert await FormatterService(loader).format("list", 1) is None

    @pytest.mark.asyncio
    async def test_clear_cache_reloads(self, formatter, loader):
        await formatter.format("late", 1)
        loader.put("content/formatters/late.json", '{"1": "One"}')
        assert await formatter.format("late", 1) is None
        formatter.clear_cache()
        assert await formatter.format("late", 1) == "One"

    @pytest.mark.asyncio
    async def test_unavailable_store_not_memoised(self):
        class Recovering(BaseContentLoader):
            def __init__(self):
                self.down = True

            async def load(self, path):
                if self.down:
                    raise ContentStoreUnavailable("offline")
                return '{"1": "One"}'

        loader = Recovering()
        service = FormatterService(loader)
        assert await service.format("numbers", 1) is None
        loader.down = False
        assert await service.format("numbers", 1) == "One"

    @pytest.mark.asyncio
    async def test_undecodable_table_falls_back(self, tmp_path, store):
        from content.loader import FileContentLoader
        from templating.engine import TemplateEngine
        tables = tmp_path / "content" / "formatters"
        tables.mkdir(parents=True)
        (tables / "days.json").write_bytes(b'{"1": "\xff"}')
        await store.store_value("x", 1)
        engine = TemplateEngine(store, FormatterService(FileContentLoader(str(tmp_path))))
        assert await engine.render("Day {x:days|soon}") == "Day soon"

    @pytest.mark.asyncio
    async def test_loader_error_is_a_miss(self):
        class Failing(BaseContentLoader):
            async def load(self, path):
                raise OSError("disk hiccup")

        assert await FormatterService(Failing()).format("activeDays", 1) is None
