"""
Semantic Content Resolver — Turns a structured content key into one line of text.

Keys look like ``actor.action.subject[.modifier]*``, e.g.
``bot.acknowledge.task_completion.positive.short``. The resolver builds a
fallback chain from most to least specific, reads candidates in order and
returns a random non-empty line of the first file that has one. When no
candidate resolves, the literal text the author wrote is used.

Fallback chain for bot.acknowledge.task_completion.positive.short:
  content/bot/acknowledge/task_completion_positive_short.txt
  content/bot/acknowledge/task_completion_positive.txt
  content/bot/acknowledge/task_completion.txt
  content/bot/acknowledge/completion_positive_short.txt
  content/bot/acknowledge/completion_positive.txt
  content/bot/acknowledge/completion.txt
  content/bot/acknowledge/default.txt

Every outcome (including the literal fallback) is memoised per key in an
injected ContentCache, so repeated lookups keep the same phrasing and never
touch the content store again. Variant choice is random by design; pass a
seeded ``random.Random`` to make it reproducible.
"""
from __future__ import annotations

import asyncio
import random
import structlog
from dataclasses import dataclass, field
from typing import Optional

from content.loader import BaseContentLoader, ContentStoreUnavailable

logger = structlog.get_logger()

CONTENT_ROOT = "content"
DEFAULT_CANDIDATE = "default"

GENERIC_SUFFIXES = (
    "completion", "failure", "success", "error", "input", "name",
    "welcome", "save", "delete", "update", "create", "status",
    "selection", "permission", "creation", "modification",
)


# ──────────────────────────────────────────────────────────────
#  Key parsing + fallback chain
# ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SemanticKey:
    actor: str
    action: str
    subject: str
    modifiers: tuple[str, ...] = field(default_factory=tuple)


def parse_semantic_key(semantic_key: str) -> Optional[SemanticKey]:
    """Split a key into its parts. Fewer than three parts → None (literal text)."""
    parts = semantic_key.split(".")
    if len(parts) < 3:
        return None
    return SemanticKey(parts[0], parts[1], parts[2], tuple(parts[3:]))


def extract_generic_subject(subject: str) -> str:
    """'task_completion' → 'completion'. Returns the subject unchanged when no suffix applies."""
    for suffix in GENERIC_SUFFIXES:
        if subject.endswith(suffix) and subject != suffix:
            return suffix
    return subject


def _subject_candidates(subject: str, modifiers: list[str]) -> list[str]:
    names = []
    if modifiers:
        names.append(f"{subject}_{'_'.join(modifiers)}")
        for i in range(len(modifiers) - 1, 0, -1):
            names.append(f"{subject}_{'_'.join(modifiers[:i])}")
    names.append(subject)
    return names


def build_fallback_chain(
    actor: str,
    action: str,
    subject: str,
    modifiers: list[str],
) -> list[str]:
    """Ordered candidate paths, most specific first, ending with the action default."""
    modifiers = list(modifiers)
    names = _subject_candidates(subject, modifiers)

    generic = extract_generic_subject(subject)
    if generic != subject:
        names.extend(_subject_candidates(generic, modifiers))

    names.append(DEFAULT_CANDIDATE)
    return [f"{CONTENT_ROOT}/{actor}/{action}/{name}.txt" for name in names]


def content_lines(raw: str) -> list[str]:
    """Non-empty, trimmed lines of a content file."""
    return [line.strip() for line in raw.splitlines() if line.strip()]


# ──────────────────────────────────────────────────────────────
#  Content Cache
# ──────────────────────────────────────────────────────────────

class ContentCache:
    """
    Resolved text per semantic key. Write-once per key until clear().
    One instance is shared by every resolver that should agree on phrasing.
    """

    def __init__(self):
        self._values: dict[str, str] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def set(self, key: str, value: str):
        self._values.setdefault(key, value)

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def clear(self):
        # Values only; per-key locks outlive a clear.
        self._values.clear()
        logger.info("content_cache_cleared")


# ──────────────────────────────────────────────────────────────
#  Resolver
# ──────────────────────────────────────────────────────────────

class ContentResolver:
    """
    Resolves semantic keys against a content loader.

    Dependencies are injected so tests can isolate caches and fix the
    random source.
    """

    def __init__(
        self,
        loader: BaseContentLoader,
        cache: ContentCache = None,
        rng: random.Random = None,
        concurrent_probes: bool = False,
    ):
        self._loader = loader
        self.cache = cache if cache is not None else ContentCache()
        self._rng = rng or random.Random()
        self._concurrent_probes = concurrent_probes

    async def resolve(self, semantic_key: str, original_text: str,
                      bypass_cache: bool = False) -> str:
        """
        Return phrasing for ``semantic_key`` or ``original_text`` when nothing
        resolves. Never raises for content problems.

        ``bypass_cache`` draws a fresh variant without reading or writing the cache.
        """
        if not semantic_key:
            return original_text

        if bypass_cache:
            return await self._resolve_uncached(semantic_key, original_text)

        cached = self.cache.get(semantic_key)
        if cached is not None:
            logger.debug("content_cache_hit", key=semantic_key)
            return cached

        # Concurrent callers for the same key wait for the first resolution.
        async with self.cache.lock_for(semantic_key):
            cached = self.cache.get(semantic_key)
            if cached is not None:
                return cached
            text = await self._resolve_uncached(semantic_key, original_text)
            self.cache.set(semantic_key, text)
            return self.cache.get(semantic_key)

    def clear_cache(self):
        self.cache.clear()

    async def _resolve_uncached(self, semantic_key: str, original_text: str) -> str:
        parsed = parse_semantic_key(semantic_key)
        if parsed is None:
            logger.debug("content_key_unparsed", key=semantic_key)
            return original_text

        chain = build_fallback_chain(parsed.actor, parsed.action, parsed.subject,
                                     list(parsed.modifiers))
        try:
            if self._concurrent_probes:
                hit = await self._probe_concurrently(chain)
            else:
                hit = await self._probe_in_order(chain)
        except ContentStoreUnavailable as e:
            logger.error("content_store_unavailable", key=semantic_key, error=str(e))
            return original_text

        if hit is None:
            logger.info("content_fallback_to_original", key=semantic_key,
                        candidates=len(chain))
            return original_text

        path, lines = hit
        index = self._rng.randrange(len(lines))
        logger.debug("content_resolved", key=semantic_key, path=path,
                     variant=index + 1, variants=len(lines))
        return lines[index]

    async def _probe_in_order(self, chain: list[str]) -> Optional[tuple[str, list[str]]]:
        for path in chain:
            lines = await self._read_candidate(path)
            if lines:
                return path, lines
        return None

    async def _probe_concurrently(self, chain: list[str]) -> Optional[tuple[str, list[str]]]:
        results = await asyncio.gather(
            *(self._read_candidate(p) for p in chain), return_exceptions=True,
        )
        # Chain order decides the winner, not completion order.
        for path, lines in zip(chain, results):
            if isinstance(lines, ContentStoreUnavailable):
                raise lines
            if isinstance(lines, list) and lines:
                return path, lines
        return None

    async def _read_candidate(self, path: str) -> Optional[list[str]]:
        try:
            raw = await self._loader.load(path)
        except ContentStoreUnavailable:
            raise
        except Exception as e:
            logger.warning("content_candidate_read_failed", path=path, error=str(e))
            return None
        if raw is None:
            logger.debug("content_candidate_missing", path=path)
            return None
        lines = content_lines(raw)
        if not lines:
            logger.debug("content_candidate_empty", path=path)
        return lines
