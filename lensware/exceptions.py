"""
Custom exceptions for Lensware
"""

__all__ = [
    "LenswareError",
    "TranslationError",
    "BackendUnavailable",
    "UnsupportedLanguagePair",
    "MalformedObservation",
    "ConfigurationError",
]


class LenswareError(Exception):
    """Base exception for all Lensware errors"""
    pass


class TranslationError(LenswareError):
    """A translation backend could not produce a result"""
    pass


class BackendUnavailable(TranslationError):
    """Backend is absent: no network, no model, or no credential"""
    pass


class UnsupportedLanguagePair(TranslationError):
    """Backend does not handle the requested language pair"""

    def __init__(self, source: str, target: str, backend: str = ""):
        self.source = source
        self.target = target
        self.backend = backend
        prefix = f"{backend}: " if backend else ""
        super().__init__(f"{prefix}unsupported language pair {source}->{target}")


class MalformedObservation(LenswareError, ValueError):
    """Observation geometry or confidence outside the normalized range"""
    pass


class ConfigurationError(LenswareError):
    """Configuration error"""
    pass
