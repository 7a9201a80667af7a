"""
Bounded translation cache.

Keys are the case-folded, trimmed source text plus the language pair. The
cache is only ever invalidated wholesale.
"""

import threading
from collections import OrderedDict
from typing import Optional, Tuple

from ..models import TranslationCacheEntry

CacheKey = Tuple[str, str, str]


def normalize_text(text: str) -> str:
    return text.strip().casefold()


def cache_key(text: str, source: str, target: str) -> CacheKey:
    return (normalize_text(text), source, target)


class TranslationCache:
    """LRU cache of :class:`TranslationCacheEntry`, safe across threads."""

    def __init__(self, max_entries: int = 2048):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, TranslationCacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, text: str, source: str, target: str) -> Optional[TranslationCacheEntry]:
        key = cache_key(text, source, target)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry

    def put(self, text: str, translated: str, source: str, target: str) -> TranslationCacheEntry:
        key = cache_key(text, source, target)
        entry = TranslationCacheEntry(
            source_text=key[0],
            translated_text=translated,
            source_lang=source,
            target_lang=target,
        )
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return entry

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
