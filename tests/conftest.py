"""
Pytest configuration for Lensware tests.

This conftest ensures that tests don't modify the .env file.
"""

import threading
from typing import Dict, List, Optional, Tuple

import pytest
from unittest.mock import patch

from lensware.models import FaceObservation, NormalizedRect, TextObservation
from lensware.translation.backends import TranslationBackend


@pytest.fixture(autouse=True)
def mock_config_save():
    """Prevent tests from modifying .env file."""
    with patch('lensware.config.config.save'):
        yield


class CountingBackend(TranslationBackend):
    """Backend with a fixed table that records every call."""

    def __init__(self, table: Optional[Dict[str, str]] = None, name: str = "counting",
                 pairs=None, error: Optional[Exception] = None, gate: Optional[threading.Event] = None):
        self.table = table or {}
        self.name = name
        self.pairs = pairs
        self.error = error
        self.gate = gate
        self.calls: List[Tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def supports(self, source, target):
        return self.pairs is None or (source, target) in self.pairs

    def translate(self, text, source, target):
        with self._lock:
            self.calls.append((text, source, target))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.table.get(text.lower(), text)


@pytest.fixture
def counting_backend():
    return CountingBackend({"hello": "你好", "goodbye": "再见"})


def make_face(x=0.4, y=0.4, w=0.2, h=0.2, confidence=0.5, **kwargs) -> FaceObservation:
    return FaceObservation(box=NormalizedRect(x, y, w, h), confidence=confidence, **kwargs)


def make_text(text, x=0.1, y=0.1, w=0.3, h=0.05, confidence=0.9) -> TextObservation:
    return TextObservation(text=text, box=NormalizedRect(x, y, w, h), confidence=confidence)
