"""
Identity resolution for face observations.

The shipped strategy is a positional placeholder, not face recognition: it
maps where a face sits in the frame to a person ID. Callers depend only on
:class:`IdentityStrategy`, so an embedding-based matcher can replace it.

Usage:
    from lensware.identity import KnownPersonsDirectory, PositionalIdentityStrategy

    directory = KnownPersonsDirectory.demo()
    person_id = PositionalIdentityStrategy().identify(face, directory.snapshot())
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

import yaml

from .exceptions import ConfigurationError
from .models import FaceObservation, KnownPerson

logger = logging.getLogger(__name__)


class KnownPersonsDirectory:
    """Thread-safe ``person_id -> name`` mapping owned by the host application."""

    def __init__(self, persons: Optional[Mapping[str, str]] = None):
        self._persons: Dict[str, str] = dict(persons or {})
        self._lock = threading.Lock()

    @classmethod
    def demo(cls) -> "KnownPersonsDirectory":
        return cls({"person_1": "John", "person_2": "Sarah", "person_3": "Mike"})

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "KnownPersonsDirectory":
        """Load ``{id: name}`` pairs from a YAML mapping."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Known persons file must be a mapping: {path}")
        return cls({str(k): str(v) for k, v in data.items()})

    def add(self, person_id: str, name: str):
        with self._lock:
            self._persons[person_id] = name
        logger.info(f"Known person added: {person_id} ({name})")

    def remove(self, person_id: str) -> bool:
        """Remove a person. Returns False if the ID was unknown."""
        with self._lock:
            removed = self._persons.pop(person_id, None) is not None
        if removed:
            logger.info(f"Known person removed: {person_id}")
        return removed

    def get(self, person_id: str) -> Optional[str]:
        with self._lock:
            return self._persons.get(person_id)

    def snapshot(self) -> Dict[str, str]:
        """Copy of the mapping, safe to read without the lock."""
        with self._lock:
            return dict(self._persons)

    def persons(self) -> List[KnownPerson]:
        return [KnownPerson(id=pid, name=name) for pid, name in self.snapshot().items()]

    def __contains__(self, person_id: object) -> bool:
        with self._lock:
            return person_id in self._persons

    def __len__(self) -> int:
        with self._lock:
            return len(self._persons)


class IdentityStrategy(ABC):
    """Maps a face observation to a known person ID."""

    @abstractmethod
    def identify(self, face: FaceObservation, known_persons: Mapping[str, str]) -> Optional[str]:
        """Return a person ID from ``known_persons`` or None."""


class NullIdentityStrategy(IdentityStrategy):
    """Never identifies anyone."""

    def identify(self, face: FaceObservation, known_persons: Mapping[str, str]) -> Optional[str]:
        return None


class PositionalIdentityStrategy(IdentityStrategy):
    """Placeholder identity from face position and confidence.

    Left part of the frame -> ``left_id``, right part -> ``right_id``, and a
    confident face in between -> ``center_id``. A candidate that is not in
    the directory is a miss.
    """

    def __init__(
        self,
        left_id: str = "person_1",
        right_id: str = "person_2",
        center_id: str = "person_3",
        left_bound: float = 0.3,
        right_bound: float = 0.7,
        confidence_threshold: float = 0.8,
    ):
        self.left_id = left_id
        self.right_id = right_id
        self.center_id = center_id
        self.left_bound = left_bound
        self.right_bound = right_bound
        self.confidence_threshold = confidence_threshold

    def candidate(self, face: FaceObservation) -> Optional[str]:
        """The ID the heuristic points at, before the directory lookup."""
        mid_x = face.box.mid_x
        if mid_x < self.left_bound:
            return self.left_id
        if mid_x > self.right_bound:
            return self.right_id
        if face.confidence > self.confidence_threshold:
            return self.center_id
        return None

    def identify(self, face: FaceObservation, known_persons: Mapping[str, str]) -> Optional[str]:
        person_id = self.candidate(face)
        if person_id is None or person_id not in known_persons:
            return None
        return person_id
