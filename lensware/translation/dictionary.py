"""
Offline phrase dictionary, the last stage of the translation cascade.

Lookups are exact matches on case-folded text. There is no fuzzy matching.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional, Set, Union

import yaml

from ..exceptions import ConfigurationError
from .backends import LanguagePair, base_language

logger = logging.getLogger(__name__)

# (source, target) -> phrase -> translation
DEFAULT_TABLES: Dict[LanguagePair, Dict[str, str]] = {
    ("en", "zh"): {
        "hello": "你好",
        "thank you": "谢谢",
        "goodbye": "再见",
        "yes": "是",
        "no": "不",
        "please": "请",
        "excuse me": "不好意思",
        "sorry": "对不起",
        "help": "帮助",
        "water": "水",
        "food": "食物",
        "restaurant": "餐厅",
        "hotel": "酒店",
        "airport": "机场",
        "station": "车站",
        "taxi": "出租车",
        "bus": "公交车",
        "train": "火车",
        "how much": "多少钱",
        "where": "哪里",
        "what": "什么",
        "when": "什么时候",
        "why": "为什么",
        "how": "怎么",
        "open": "开放",
        "closed": "关闭",
        "entrance": "入口",
        "exit": "出口",
        "toilet": "厕所",
        "emergency": "紧急情况",
    },
    ("zh", "en"): {
        "你好": "hello",
        "谢谢": "thank you",
        "再见": "goodbye",
        "是": "yes",
        "不": "no",
        "请": "please",
        "对不起": "sorry",
        "帮助": "help",
        "水": "water",
        "食物": "food",
    },
}


def _pair(source: str, target: str) -> LanguagePair:
    return (base_language(source), base_language(target))


class LocalDictionary:
    """Case-folded exact-match phrase lookup with one table per language pair.

    A table answers only for its own pair. After a switch to ``en->es`` the
    Chinese entries are never returned.
    """

    def __init__(self, entries: Optional[Mapping[str, str]] = None, source: str = "en", target: str = "zh"):
        self._tables: Dict[LanguagePair, Dict[str, str]] = {}
        self._lock = threading.Lock()
        if entries:
            self.update(entries, source, target)

    @classmethod
    def default(cls) -> "LocalDictionary":
        dictionary = cls()
        for (source, target), entries in DEFAULT_TABLES.items():
            dictionary.update(entries, source, target)
        return dictionary

    @classmethod
    def from_yaml(
        cls,
        path: Union[str, Path],
        source: str = "en",
        target: str = "zh",
        base: Optional["LocalDictionary"] = None,
    ) -> "LocalDictionary":
        """Load phrases, layered over a copy of ``base``.

        The file is either a flat ``{phrase: translation}`` mapping for the
        ``source -> target`` pair, or nested per pair, as in
        ``{en: {es: {phrase: translation}}}``.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Dictionary file must be a mapping: {path}")

        dictionary = base.copy() if base is not None else cls()
        if data and all(isinstance(v, dict) for v in data.values()):
            for src, targets in data.items():
                for tgt, entries in targets.items():
                    if not isinstance(entries, dict):
                        raise ConfigurationError(f"Entries for {src}->{tgt} must be a mapping: {path}")
                    dictionary.update(entries, str(src), str(tgt))
        else:
            dictionary.update(data, source, target)
        logger.info(f"Loaded dictionary file {path}")
        return dictionary

    def copy(self) -> "LocalDictionary":
        clone = LocalDictionary()
        with self._lock:
            clone._tables = {pair: dict(table) for pair, table in self._tables.items()}
        return clone

    @property
    def pairs(self) -> Set[LanguagePair]:
        with self._lock:
            return {pair for pair, table in self._tables.items() if table}

    def lookup(self, text: str, source: str, target: str) -> Optional[str]:
        with self._lock:
            table = self._tables.get(_pair(source, target))
            if table is None:
                return None
            return table.get(text.strip().casefold())

    def update(self, entries: Mapping[str, str], source: str, target: str):
        """Add one-way entries for ``source -> target``."""
        for phrase, translation in entries.items():
            self.add(str(phrase), str(translation), source, target, reverse=False)

    def add(self, phrase: str, translation: str, source: str, target: str, reverse: bool = True):
        """Add a phrase, and by default its reverse under ``target -> source``."""
        with self._lock:
            self._tables.setdefault(_pair(source, target), {})[phrase.strip().casefold()] = translation
            if reverse:
                self._tables.setdefault(_pair(target, source), {})[translation.strip().casefold()] = phrase

    def remove(self, phrase: str, source: str, target: str) -> bool:
        with self._lock:
            table = self._tables.get(_pair(source, target), {})
            return table.pop(phrase.strip().casefold(), None) is not None

    def __len__(self) -> int:
        with self._lock:
            return sum(len(table) for table in self._tables.values())
