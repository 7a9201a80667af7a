"""
Lensware Data Models

Observations arrive from the detectors, captions and text regions are owned
by the aggregator, and annotations are what the rendering layer reads.
"""

import math
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

Point = Tuple[float, float]


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class NormalizedRect:
    """Bounding box as fractions of the frame, origin bottom-left."""
    x: float
    y: float
    width: float
    height: float

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2

    @property
    def center(self) -> Point:
        return (self.mid_x, self.mid_y)

    @property
    def area(self) -> float:
        return self.width * self.height

    def is_normalized(self) -> bool:
        """True when every edge lies inside the unit square."""
        values = (self.x, self.y, self.width, self.height)
        if not all(math.isfinite(v) and 0.0 <= v <= 1.0 for v in values):
            return False
        return self.x + self.width <= 1.0 and self.y + self.height <= 1.0

    def distance_to(self, other: "NormalizedRect") -> float:
        """Euclidean distance between box centers."""
        return math.hypot(self.mid_x - other.mid_x, self.mid_y - other.mid_y)

    def iou(self, other: "NormalizedRect") -> float:
        """Intersection over Union with another box."""
        xi1 = max(self.x, other.x)
        yi1 = max(self.y, other.y)
        xi2 = min(self.x + self.width, other.x + other.width)
        yi2 = min(self.y + self.height, other.y + other.height)

        if xi2 <= xi1 or yi2 <= yi1:
            return 0.0

        inter_area = (xi2 - xi1) * (yi2 - yi1)
        union_area = self.area + other.area - inter_area
        return inter_area / union_area if union_area > 0 else 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Size:
    """Viewport size in pixels."""
    width: float
    height: float

    @classmethod
    def parse(cls, value: str) -> "Size":
        """Parse ``"1280x720"``."""
        w, _, h = value.lower().partition("x")
        return cls(float(w), float(h))


@dataclass(frozen=True)
class DisplayRect:
    """Pixel rectangle, origin top-left."""
    x: float
    y: float
    width: float
    height: float

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class TextObservation:
    """Recognized text region, valid for one frame."""
    text: str
    box: NormalizedRect
    confidence: float = 1.0
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class FaceLandmarks:
    """Landmark point sets, normalized to the face bounding box."""
    outer_lips: Optional[Sequence[Point]] = None
    left_eyebrow: Optional[Sequence[Point]] = None
    right_eyebrow: Optional[Sequence[Point]] = None
    extra: Dict[str, Sequence[Point]] = field(default_factory=dict)


@dataclass(frozen=True)
class FaceObservation:
    """Detected face, valid for one frame.

    ``id`` is only meaningful within a single detector callback. A tracker
    that can follow faces across frames sets ``tracking_id``.
    """
    box: NormalizedRect
    confidence: float
    landmarks: Optional[FaceLandmarks] = None
    expression: Optional[str] = None
    tracking_id: Optional[str] = None
    id: str = field(default_factory=_new_id)

    @property
    def ref(self) -> str:
        """Reference used to detect duplicates within a batch."""
        return self.tracking_id or self.id


@dataclass
class Frame:
    """One frame's worth of observations.

    ``None`` for a stream means that pipeline produced nothing this frame,
    which is different from an empty list (ran and saw nothing).
    """
    frame_num: int
    texts: Optional[List[TextObservation]] = None
    faces: Optional[List[FaceObservation]] = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class KnownPerson:
    id: str
    name: str


@dataclass(frozen=True)
class TranslationCacheEntry:
    """Cached translation, keyed by normalized source text and language pair."""
    source_text: str
    translated_text: str
    source_lang: str
    target_lang: str


class AnnotationKind(Enum):
    TEXT = "text"
    FACE = "face"


class EntityState(Enum):
    """Lifecycle of a tracked annotation."""
    ACTIVE = "active"    # refreshed in the current aggregation cycle
    STALE = "stale"      # kept for rendering continuity
    EVICTED = "evicted"  # aged out, removed from the set


@dataclass(frozen=True)
class Caption:
    """Face caption. Replaced, never mutated."""
    face_ref: str
    bounding_box: NormalizedRect
    original_text: str
    translated_text: str
    confidence: float
    created_at: float
    is_personalized: bool
    person_id: Optional[str] = None


@dataclass(frozen=True)
class TextRegion:
    """Translated text region. Replaced, never mutated."""
    ref: str
    bounding_box: NormalizedRect
    original_text: str
    translated_text: str
    confidence: float
    created_at: float


@dataclass(frozen=True)
class CaptionDraft:
    """Synthesized caption for one face, before aggregation."""
    observation: FaceObservation
    text: str
    translated_text: str
    person_id: Optional[str] = None
    is_personalized: bool = False
    resolved: bool = False  # True when translated_text is final


@dataclass(frozen=True)
class TextDraft:
    """Recognized text with its fast-path translation, before aggregation."""
    observation: TextObservation
    translated_text: str
    resolved: bool = False


@dataclass(frozen=True)
class Annotation:
    """Display-ready item of the annotation set."""
    key: str
    kind: AnnotationKind
    box: NormalizedRect
    original_text: str
    translated_text: str
    confidence: float
    is_personalized: bool
    state: EntityState
    created_at: float
    display_rect: Optional[DisplayRect] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "kind": self.kind.value,
            "box": self.box.to_dict(),
            "display_rect": self.display_rect.to_dict() if self.display_rect else None,
            "original_text": self.original_text,
            "translated_text": self.translated_text,
            "confidence": self.confidence,
            "is_personalized": self.is_personalized,
            "state": self.state.value,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class PendingTranslation:
    """Translation the pipeline still has to resolve for an entity revision."""
    key: str
    revision: int
    kind: AnnotationKind
    text: str


@dataclass
class Stats:
    """Diagnostics snapshot."""
    active_text_count: int = 0
    active_face_count: int = 0
    active_caption_count: int = 0
    cache_size: int = 0
    dropped_frames: int = 0
    known_persons: int = 0
    personalized_captions: int = 0
    average_confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active_text_count": self.active_text_count,
            "active_face_count": self.active_face_count,
            "active_caption_count": self.active_caption_count,
            "cache_size": self.cache_size,
            "dropped_frames": self.dropped_frames,
            "known_persons": self.known_persons,
            "personalized_captions": self.personalized_captions,
            "average_confidence": round(self.average_confidence, 3),
        }
