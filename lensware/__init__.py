"""
Lensware - translated text and face captions for live camera frames

Lazy imports keep CLI startup fast; modules load only when accessed.

Usage:
    from lensware import AnnotationPipeline, Frame

    pipeline = AnnotationPipeline.from_config()
    pipeline.process_frame(Frame(frame_num=0, texts=[...], faces=[...]))
    pipeline.snapshot()
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"

_MODELS = (
    "NormalizedRect", "Size", "DisplayRect", "TextObservation", "FaceObservation",
    "FaceLandmarks", "Frame", "KnownPerson", "Caption", "TextRegion", "Annotation",
    "AnnotationKind", "EntityState", "Stats",
)


# Lazy import system - modules loaded only when accessed
def __getattr__(name):
    """Lazy import handler - imports modules only when accessed."""

    # Pipeline
    if name == "AnnotationPipeline":
        from .pipeline import AnnotationPipeline
        return AnnotationPipeline
    if name == "LatestFrameLoop":
        from .loop import LatestFrameLoop
        return LatestFrameLoop

    # Components
    if name in ("AnnotationAggregator", "AggregationResult"):
        from . import aggregator
        return getattr(aggregator, name)
    if name in ("CaptionSynthesizer", "SceneLocation"):
        from . import captions
        return getattr(captions, name)
    if name in ("KnownPersonsDirectory", "IdentityStrategy", "PositionalIdentityStrategy", "NullIdentityStrategy"):
        from . import identity
        return getattr(identity, name)
    if name in ("TranslationResolver", "TranslationBackend", "PhrasebookBackend",
                "CallableBackend", "GoogleTranslateBackend", "LocalDictionary", "TranslationCache"):
        from . import translation
        return getattr(translation, name)
    if name in ("to_display_rect", "to_normalized_rect", "clamp_rect"):
        from . import geometry
        return getattr(geometry, name)

    # Models
    if name in _MODELS:
        from . import models
        return getattr(models, name)

    # Diagnostics
    if name in ("enable_diagnostics", "metrics"):
        from . import diagnostics
        return getattr(diagnostics, name)

    # Exceptions
    if name in ("LenswareError", "TranslationError", "BackendUnavailable",
                "UnsupportedLanguagePair", "MalformedObservation", "ConfigurationError"):
        from . import exceptions
        return getattr(exceptions, name)

    raise AttributeError(f"module 'lensware' has no attribute '{name}'")


__all__ = [
    # Pipeline
    "AnnotationPipeline",
    "LatestFrameLoop",

    # Components
    "AnnotationAggregator",
    "AggregationResult",
    "CaptionSynthesizer",
    "SceneLocation",
    "KnownPersonsDirectory",
    "IdentityStrategy",
    "PositionalIdentityStrategy",
    "NullIdentityStrategy",
    "TranslationResolver",
    "TranslationBackend",
    "PhrasebookBackend",
    "CallableBackend",
    "GoogleTranslateBackend",
    "LocalDictionary",
    "TranslationCache",
    "to_display_rect",
    "to_normalized_rect",
    "clamp_rect",

    # Models
    *_MODELS,

    # Diagnostics
    "enable_diagnostics",
    "metrics",

    # Exceptions
    "LenswareError",
    "TranslationError",
    "BackendUnavailable",
    "UnsupportedLanguagePair",
    "MalformedObservation",
    "ConfigurationError",
]
