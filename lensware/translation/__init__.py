"""
Translation cascade: cache, pluggable backends and an offline dictionary.
"""

from .backends import (
    CallableBackend,
    GoogleTranslateBackend,
    PhrasebookBackend,
    TranslationBackend,
)
from .cache import TranslationCache, normalize_text
from .dictionary import LocalDictionary
from .resolver import TranslationResolver

__all__ = [
    "TranslationBackend",
    "PhrasebookBackend",
    "CallableBackend",
    "GoogleTranslateBackend",
    "TranslationCache",
    "normalize_text",
    "LocalDictionary",
    "TranslationResolver",
]
