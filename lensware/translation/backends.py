"""
Translation backends.

A backend is one stage of the cascade. It announces which language pairs it
handles through ``supports`` and either returns a translation, returns the
input unchanged ("nothing found"), or raises a :class:`TranslationError`.

Backends:
    - PhrasebookBackend: on-device per-pair phrase tables
    - CallableBackend: wraps any ``translate(text, source, target)`` callable
    - GoogleTranslateBackend: hosted Google Translation API (v2)
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, Mapping, Optional, Set, Tuple

import requests

from ..exceptions import BackendUnavailable, UnsupportedLanguagePair

logger = logging.getLogger(__name__)

LanguagePair = Tuple[str, str]

GOOGLE_TRANSLATE_URL = "https://translation.googleapis.com/language/translate/v2"

# On-device phrase tables: source -> target -> phrase -> translation
DEFAULT_PHRASEBOOK: Dict[str, Dict[str, Dict[str, str]]] = {
    "en": {
        "zh": {
            "hello": "你好",
            "goodbye": "再见",
            "thank you": "谢谢你",
            "how are you": "你好吗",
            "good morning": "早上好",
            "good night": "晚安",
        },
        "es": {
            "hello": "hola",
            "goodbye": "adiós",
            "thank you": "gracias",
            "how are you": "¿cómo estás?",
            "good morning": "buenos días",
            "good night": "buenas noches",
        },
    },
    "zh": {
        "en": {
            "你好": "hello",
            "再见": "goodbye",
            "谢谢": "thank you",
            "早上好": "good morning",
            "晚安": "good night",
        },
    },
}


def base_language(code: str) -> str:
    """``"zh-Hans"`` -> ``"zh"``."""
    return code.replace("_", "-").split("-")[0].lower()


def google_language(code: str) -> str:
    """Language code in the form the Google API expects."""
    normalized = code.replace("_", "-")
    lowered = normalized.lower()
    if lowered in ("zh-hans", "zh-cn"):
        return "zh-CN"
    if lowered in ("zh-hant", "zh-tw"):
        return "zh-TW"
    return base_language(normalized)


class TranslationBackend(ABC):
    """One stage of the translation cascade."""

    name = "backend"

    def supports(self, source: str, target: str) -> bool:
        """Capability check; unsupported backends are skipped."""
        return True

    @abstractmethod
    def translate(self, text: str, source: str, target: str) -> str:
        """Translate ``text``; return it unchanged when nothing was found."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class PhrasebookBackend(TranslationBackend):
    """On-device translation from per-pair phrase tables."""

    name = "phrasebook"

    def __init__(self, tables: Optional[Mapping[str, Mapping[str, Mapping[str, str]]]] = None):
        source_tables = DEFAULT_PHRASEBOOK if tables is None else tables
        self._tables: Dict[LanguagePair, Dict[str, str]] = {}
        for source, targets in source_tables.items():
            for target, phrases in targets.items():
                key = (base_language(source), base_language(target))
                self._tables[key] = {p.strip().casefold(): t for p, t in phrases.items()}

    @property
    def pairs(self) -> Set[LanguagePair]:
        return set(self._tables)

    def supports(self, source: str, target: str) -> bool:
        return (base_language(source), base_language(target)) in self._tables

    def translate(self, text: str, source: str, target: str) -> str:
        table = self._tables.get((base_language(source), base_language(target)))
        if table is None:
            raise UnsupportedLanguagePair(source, target, self.name)
        return table.get(text.strip().casefold(), text)


class CallableBackend(TranslationBackend):
    """Adapts a plain callable, e.g. a library translator, into a backend."""

    def __init__(
        self,
        func: Callable[[str, str, str], Optional[str]],
        pairs: Optional[Iterable[LanguagePair]] = None,
        name: str = "callable",
    ):
        self.func = func
        self.pairs = set(pairs) if pairs is not None else None
        self.name = name

    def supports(self, source: str, target: str) -> bool:
        return self.pairs is None or (source, target) in self.pairs

    def translate(self, text: str, source: str, target: str) -> str:
        if not self.supports(source, target):
            raise UnsupportedLanguagePair(source, target, self.name)
        result = self.func(text, source, target)
        return text if result is None else result


class GoogleTranslateBackend(TranslationBackend):
    """Hosted Google Translation API (v2) over a pooled requests session."""

    name = "google"

    def __init__(
        self,
        api_key: Optional[str],
        url: str = GOOGLE_TRANSLATE_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or None
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    def supports(self, source: str, target: str) -> bool:
        return self.api_key is not None

    def translate(self, text: str, source: str, target: str) -> str:
        if not self.api_key:
            raise BackendUnavailable("google: no API key configured")

        payload = {
            "q": text,
            "source": google_language(source),
            "target": google_language(target),
            "format": "text",
        }

        try:
            response = self._session.post(
                self.url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise BackendUnavailable(f"google: {e}") from e

        if response.status_code == 400 and "language" in response.text.lower():
            raise UnsupportedLanguagePair(source, target, self.name)
        if not response.ok:
            raise BackendUnavailable(f"google: HTTP {response.status_code}")

        try:
            data = response.json()
            return data["data"]["translations"][0]["translatedText"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise BackendUnavailable(f"google: malformed response ({e})") from e

    def close(self):
        self._session.close()
