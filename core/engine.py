"""
ScriptFlow Engine — Wires the shared pieces of the system together.

One engine per process owns what all conversations share:
  - the sequence registry (definitions are immutable once loaded)
  - the content loader, content cache and resolver
  - formatter tables

Each conversation gets its own FlowOrchestrator bound to its own
user-data store via new_session().
"""
from __future__ import annotations

import random
import structlog
from datetime import date
from typing import Callable

from config.settings import Settings, get_settings
from content.formatter import FormatterService
from content.loader import BaseContentLoader, FileContentLoader
from content.resolver import ContentCache, ContentResolver
from database.store_base import BaseUserDataStore
from database.store_factory import create_store
from flow.actions import DataActionProcessor
from flow.orchestrator import FlowOrchestrator
from flow.renderer import MessageRenderer
from flow.routes import RouteProcessor
from flow.sequences import SequenceRegistry
from flow.traverser import FlowTraverser
from templating.engine import TemplateEngine
from utils.conditions import ConditionEvaluator

logger = structlog.get_logger()


class ScriptFlowEngine:

    def __init__(
        self,
        settings: Settings = None,
        loader: BaseContentLoader = None,
        registry: SequenceRegistry = None,
        rng: random.Random = None,
        today: Callable[[], date] = date.today,
    ):
        self.settings = settings or get_settings()
        content = self.settings.content

        self.registry = registry or SequenceRegistry(self.settings.flow.sequences_dir)
        self.loader = loader or FileContentLoader(content.assets_dir)
        self.cache = ContentCache()
        if rng is None:
            rng = random.Random(content.random_seed)
        self.resolver = ContentResolver(
            self.loader, cache=self.cache, rng=rng,
            concurrent_probes=content.concurrent_probes,
        )
        self.formatter = FormatterService(self.loader)
        self.traverser = FlowTraverser(max_depth=self.settings.flow.max_traversal_depth)
        self._today = today

        logger.info("scriptflow_engine_initialized",
                    sequences_dir=self.settings.flow.sequences_dir,
                    assets_dir=content.assets_dir)

    def new_session(self, store: BaseUserDataStore = None,
                    namespace: str = "default") -> FlowOrchestrator:
        if store is None:
            store = create_store(self.settings.store, namespace=namespace)
        templates = TemplateEngine(store, formatter=self.formatter)
        return FlowOrchestrator(
            registry=self.registry,
            renderer=MessageRenderer(self.resolver, templates),
            store=store,
            routes=RouteProcessor(ConditionEvaluator(store)),
            actions=DataActionProcessor(store, today=self._today),
            traverser=self.traverser,
            max_cycles=self.settings.flow.max_processing_cycles,
        )

    def clear_content_cache(self):
        self.resolver.clear_cache()
        self.formatter.clear_cache()
