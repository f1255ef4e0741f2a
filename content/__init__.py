"""
Semantic content layer.

Messages may carry a content key (``actor.action.subject[.modifier]*``)
instead of, or in addition to, literal text. The resolver maps the key to a
phrasing variant from the content store, falling back through progressively
less specific files and finally to the literal text.
"""
from content.loader import (
    BaseContentLoader, FileContentLoader, InMemoryContentLoader,
    ContentStoreUnavailable,
)
from content.resolver import (
    ContentCache, ContentResolver, SemanticKey,
    build_fallback_chain, extract_generic_subject, parse_semantic_key,
)
from content.formatter import FormatterService
