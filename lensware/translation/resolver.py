"""
Translation Resolver - cached multi-backend translation cascade

Resolution order for a piece of text:
1. Cache (normalized text + active language pair)
2. Each backend that supports the pair, in priority order
3. Local dictionary for the active pair (exact, case-folded)
4. The trimmed input itself

A stage counts as a hit only if it changed the text. Backend errors never
leave the resolver; they just move the cascade to the next stage.

Usage:
    from lensware.translation import TranslationResolver

    resolver = TranslationResolver.from_config()

    resolver.translate_cached("hello")   # fast path, never calls backends
    resolver.translate("hello")          # full cascade, blocking
    future = resolver.submit("hello")    # full cascade on the worker pool
    await resolver.translate_async("hello")
"""

import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import Config, config
from ..diagnostics import metrics
from ..exceptions import TranslationError
from .backends import GoogleTranslateBackend, PhrasebookBackend, TranslationBackend
from .cache import CacheKey, TranslationCache, cache_key
from .dictionary import LocalDictionary

logger = logging.getLogger(__name__)


def _completed(value: str) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


class TranslationResolver:
    """Resolves text through cache, backends and dictionary.

    Concurrent requests for the same uncached text share one in-flight
    future, so the backends see at most one call per text. Changing the
    language pair clears the cache; results that were computed for the old
    pair are returned to their callers but never cached.
    """

    def __init__(
        self,
        backends: Optional[Iterable[TranslationBackend]] = None,
        dictionary: Optional[LocalDictionary] = None,
        source_lang: str = "en",
        target_lang: str = "zh",
        cache: Optional[TranslationCache] = None,
        cache_size: int = 2048,
        max_workers: int = 2,
    ):
        self.backends: List[TranslationBackend] = list(backends or [])
        self.dictionary = dictionary if dictionary is not None else LocalDictionary()
        self.cache = cache if cache is not None else TranslationCache(cache_size)
        self.max_workers = max_workers

        self._source = source_lang
        self._target = target_lang
        self._epoch = 0
        self._inflight: Dict[CacheKey, Future] = {}
        self._lock = threading.RLock()
        self._executor: Optional[ThreadPoolExecutor] = None

        self._stats = {
            "requests": 0,
            "cache_hits": 0,
            "coalesced": 0,
            "backend_calls": 0,
            "fallthroughs": 0,
            "dictionary_hits": 0,
            "passthrough": 0,
        }

    @classmethod
    def from_config(cls, cfg: Optional[Config] = None) -> "TranslationResolver":
        """Build the default cascade: phrasebook, Google (if keyed), dictionary."""
        cfg = cfg or config

        backends: List[TranslationBackend] = []
        if cfg.get_bool("LW_USE_PHRASEBOOK", True):
            backends.append(PhrasebookBackend())

        api_key = cfg.get("LW_GOOGLE_API_KEY", "")
        if api_key:
            backends.append(GoogleTranslateBackend(
                api_key,
                url=cfg.get("LW_GOOGLE_TRANSLATE_URL"),
                timeout=cfg.get_float("LW_TRANSLATE_TIMEOUT", 10.0),
            ))

        source_lang = cfg.get("LW_SOURCE_LANG", "en")
        target_lang = cfg.get("LW_TARGET_LANG", "zh")

        dictionary = LocalDictionary.default()
        dictionary_file = cfg.get("LW_DICTIONARY_FILE", "")
        if dictionary_file:
            dictionary = LocalDictionary.from_yaml(
                dictionary_file, source=source_lang, target=target_lang, base=dictionary,
            )

        return cls(
            backends=backends,
            dictionary=dictionary,
            source_lang=source_lang,
            target_lang=target_lang,
            cache_size=cfg.get_int("LW_CACHE_SIZE", 2048),
            max_workers=cfg.get_int("LW_TRANSLATE_WORKERS", 2),
        )

    # -- language pair -------------------------------------------------

    @property
    def language_pair(self) -> Tuple[str, str]:
        with self._lock:
            return (self._source, self._target)

    @property
    def epoch(self) -> int:
        """Incremented on every language change."""
        with self._lock:
            return self._epoch

    def set_languages(self, source: str, target: str):
        """Switch the language pair. Clears the whole cache."""
        with self._lock:
            self._source = source
            self._target = target
            self._epoch += 1
            self._inflight.clear()
            self.cache.clear()
        logger.info(f"Language pair set to {source}->{target}, cache cleared")

    # -- fast path -----------------------------------------------------

    def lookup(self, text: str) -> Optional[str]:
        """Cached translation for the active pair, or None."""
        source, target = self.language_pair
        entry = self.cache.get(text, source, target)
        return entry.translated_text if entry else None

    def translate_cached(self, text: str) -> str:
        """Non-suspending translation: cache, then dictionary, then the text."""
        clean = text.strip()
        if not clean:
            return clean

        source, target = self.language_pair
        entry = self.cache.get(clean, source, target)
        if entry is not None:
            return entry.translated_text

        found = self.dictionary.lookup(clean, source, target)
        return found if found is not None else clean

    # -- full resolution -----------------------------------------------

    def translate(self, text: str) -> str:
        """Full cascade in the calling thread."""
        clean = text.strip()
        if not clean:
            return clean

        future, owner = self._claim(clean)
        if owner is not None:
            self._run(future, clean, *owner)
        return future.result()

    def submit(self, text: str) -> Future:
        """Full cascade on the worker pool. Returns a Future of the result."""
        clean = text.strip()
        if not clean:
            return _completed(clean)

        future, owner = self._claim(clean)
        if owner is not None:
            self._get_executor().submit(self._run, future, clean, *owner)
        return future

    async def translate_async(self, text: str) -> str:
        """Awaitable full cascade."""
        return await asyncio.wrap_future(self.submit(text))

    def translate_batch(self, texts: Iterable[str]) -> List[str]:
        """Translate several texts concurrently, preserving order."""
        futures = [self.submit(text) for text in texts]
        return [f.result() for f in futures]

    def _claim(self, clean: str):
        """Return ``(future, owner)``.

        ``owner`` is ``(key, source, target, epoch)`` when the caller must run
        the cascade, or None when the future is already resolved or in flight.
        """
        with self._lock:
            self._stats["requests"] += 1
            source, target, epoch = self._source, self._target, self._epoch

            entry = self.cache.get(clean, source, target)
            if entry is not None:
                self._stats["cache_hits"] += 1
                return _completed(entry.translated_text), None

            key = cache_key(clean, source, target)
            future = self._inflight.get(key)
            if future is not None:
                self._stats["coalesced"] += 1
                return future, None

            future = Future()
            self._inflight[key] = future
            return future, (key, source, target, epoch)

    def _run(self, future: Future, clean: str, key: CacheKey, source: str, target: str, epoch: int):
        try:
            result = self._cascade(clean, source, target)
            with self._lock:
                if self._epoch == epoch:
                    self.cache.put(clean, result, source, target)
        except Exception as e:
            logger.exception(f"Translation of {clean!r} failed")
            future.set_exception(e)
        else:
            future.set_result(result)
        finally:
            with self._lock:
                if self._inflight.get(key) is future:
                    del self._inflight[key]

    def _cascade(self, clean: str, source: str, target: str) -> str:
        for backend in self.backends:
            if not backend.supports(source, target):
                logger.debug(f"{backend.name} skipped: {source}->{target} unsupported")
                continue

            with self._lock:
                self._stats["backend_calls"] += 1
            try:
                with metrics.track(f"translate.{backend.name}"):
                    result = backend.translate(clean, source, target)
            except TranslationError as e:
                with self._lock:
                    self._stats["fallthroughs"] += 1
                logger.debug(f"{backend.name} fell through: {e}")
                continue
            except Exception as e:
                with self._lock:
                    self._stats["fallthroughs"] += 1
                logger.warning(f"{backend.name} failed on {clean!r}: {e}")
                continue

            result = (result or "").strip()
            if result and result != clean:
                logger.debug(f"{backend.name}: {clean!r} -> {result!r}")
                return result

        found = self.dictionary.lookup(clean, source, target)
        if found is not None:
            with self._lock:
                self._stats["dictionary_hits"] += 1
            return found

        with self._lock:
            self._stats["passthrough"] += 1
        return clean

    # -- maintenance ---------------------------------------------------

    def add_to_dictionary(self, source: str, target: str):
        """Add a phrase for the active pair, and its reverse, to the dictionary."""
        source_lang, target_lang = self.language_pair
        self.dictionary.add(source, target, source_lang, target_lang)

    @property
    def cache_size(self) -> int:
        return len(self.cache)

    def stats(self) -> Dict[str, object]:
        with self._lock:
            stats = dict(self._stats)
            stats["inflight"] = len(self._inflight)
            stats["language_pair"] = f"{self._source}->{self._target}"
        stats["cache_size"] = len(self.cache)
        stats["backends"] = [b.name for b in self.backends]
        return stats

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="translate",
                )
            return self._executor

    def shutdown(self, wait: bool = True):
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
