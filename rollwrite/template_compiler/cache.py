"""
Template Cache - Caches compiled templates by content hash.

The cache:
- Uses a SHA-256 hash of the canonical JSON document as key
- Lives in process memory only
- Shares one CompiledTemplate across every session of the same document

Hash includes the compiler version so a compiler change never serves a
stale entry.
"""

from __future__ import annotations
import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..spec_schema import GameTemplate
from .compiler import CompiledTemplate, TemplateInput, compile_template

logger = logging.getLogger(__name__)

COMPILER_VERSION = "1.0.0"


@dataclass
class CacheEntry:
    """
    A cached compiled template.
    """
    content_hash: str
    compiler_version: str
    template: CompiledTemplate
    metadata: dict[str, Any] = field(default_factory=dict)

    # Cache metadata
    created_at: float = 0.0
    last_accessed: float = 0.0
    access_count: int = 0


def canonical_json(document: Mapping[str, Any] | GameTemplate | CompiledTemplate) -> str:
    """Key-sorted compact JSON of a template document."""
    if isinstance(document, (GameTemplate, CompiledTemplate)):
        document = document.to_dict()
    return json.dumps(document, sort_keys=True, separators=(",", ":"))


class TemplateCache:
    """
    In-memory cache for compiled templates.

    Usage:
        cache = TemplateCache()
        compiled = cache.get_or_compile(document)

        # Identical documents share one compiled instance
        assert cache.get_or_compile(document) is compiled
    """

    def __init__(self, compiler_version: str = COMPILER_VERSION, max_entries: int = 128):
        self.compiler_version = compiler_version
        self.max_entries = max_entries
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def content_hash(self, document: TemplateInput) -> str:
        """
        Create hash of a template document.

        Uses SHA-256 of compiler version plus canonical JSON.
        """
        payload = f"{self.compiler_version}:{canonical_json(document)}".encode("utf-8")
        return hashlib.sha256(payload).hexdigest()

    def get(self, document: TemplateInput) -> CompiledTemplate | None:
        """
        Get the cached compilation of a document.

        Returns None if not cached.
        """
        key = self.content_hash(document)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            entry.last_accessed = time.time()
            entry.access_count += 1
            self.hits += 1
            return entry.template

    def put(
        self,
        document: TemplateInput,
        template: CompiledTemplate,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """
        Cache a compiled template. Returns its content hash.

        The least recently used entry is evicted once max_entries is reached.
        """
        key = self.content_hash(document)
        now = time.time()
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                oldest = min(self._entries.values(), key=lambda e: e.last_accessed)
                del self._entries[oldest.content_hash]
                logger.debug("Evicted cached template %s", oldest.content_hash[:12])
            self._entries[key] = CacheEntry(
                content_hash=key,
                compiler_version=self.compiler_version,
                template=template,
                metadata=metadata or {},
                created_at=now,
                last_accessed=now,
                access_count=1,
            )
        return key

    def get_or_compile(self, document: TemplateInput) -> CompiledTemplate:
        """Return the cached compilation, compiling and caching on a miss."""
        if isinstance(document, CompiledTemplate):
            return document
        cached = self.get(document)
        if cached is not None:
            return cached
        compiled = compile_template(document)
        self.put(document, compiled)
        return compiled

    def invalidate(self, document: TemplateInput):
        """
        Remove the cached compilation of a document.
        """
        key = self.content_hash(document)
        with self._lock:
            self._entries.pop(key, None)

    def clear(self):
        """
        Clear entire cache.
        """
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def list_cached(self) -> list[str]:
        """
        List all cached content hashes.
        """
        with self._lock:
            return list(self._entries.keys())

    def __len__(self) -> int:
        return len(self._entries)
