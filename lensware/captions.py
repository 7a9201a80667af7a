"""
Caption synthesis for face observations.

Captions are picked from template buckets. Which bucket is used follows a
fixed order (known person, then expression, then generic); which template
inside the bucket is used is a random choice from an injected
``random.Random``, so tests seed it or only check bucket membership.

Usage:
    from lensware.captions import CaptionSynthesizer

    synth = CaptionSynthesizer(seed=7)
    text = synth.synthesize(face, person_id, directory.snapshot())
    group = synth.synthesize_group(3)
"""

import random
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .geometry import relative_position, relative_size
from .models import FaceObservation

UNKNOWN_PERSON = "unknown_person"
KNOWN_PERSON = "known_person"
EMOTION_HAPPY = "emotion_happy"
EMOTION_SURPRISED = "emotion_surprised"
EMOTION_NEUTRAL = "emotion_neutral"
GROUP = "group"

CAPTION_TEMPLATES: Dict[str, List[str]] = {
    UNKNOWN_PERSON: [
        "Person detected",
        "Individual in view",
        "Face recognized",
        "Person present",
    ],
    KNOWN_PERSON: [
        "{name} detected",
        "{name} is here",
        "Hello {name}",
        "{name} in view",
    ],
    EMOTION_HAPPY: [
        "Happy person",
        "Smiling individual",
        "Joyful expression",
        "Person smiling",
    ],
    EMOTION_SURPRISED: [
        "Surprised person",
        "Surprised expression",
        "Person looks surprised",
        "Startled individual",
    ],
    EMOTION_NEUTRAL: [
        "Calm person",
        "Neutral expression",
        "Person with neutral look",
        "Composed individual",
    ],
    GROUP: [
        "Multiple people",
        "Group of {count} people",
        "{count} individuals",
        "People gathered",
    ],
}

# Used when a bucket is missing or empty in a custom template set
FALLBACK_CAPTIONS = {
    UNKNOWN_PERSON: "Person detected",
    KNOWN_PERSON: "Person detected",
    EMOTION_HAPPY: "Happy person",
    EMOTION_SURPRISED: "Surprised person",
    EMOTION_NEUTRAL: "Person detected",
    GROUP: "Multiple people",
}


class SceneLocation(Enum):
    RESTAURANT = "restaurant"
    AIRPORT = "airport"
    HOTEL = "hotel"
    UNKNOWN = "unknown"


def expression_bucket(expression: str) -> str:
    """Map a free-form expression tag to a template bucket."""
    expr = expression.lower()
    if "smile" in expr:
        return EMOTION_HAPPY
    if "surprised" in expr:
        return EMOTION_SURPRISED
    return EMOTION_NEUTRAL


def confidence_label(confidence: float) -> str:
    if confidence > 0.8:
        return "High"
    if confidence > 0.5:
        return "Medium"
    return "Low"


class CaptionSynthesizer:
    """Turns a face observation into an untranslated caption string."""

    def __init__(
        self,
        templates: Optional[Mapping[str, Sequence[str]]] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ):
        self.templates: Dict[str, List[str]] = {
            bucket: list(items) for bucket, items in (templates or CAPTION_TEMPLATES).items()
        }
        self.rng = rng or random.Random(seed)

    def _pick(self, bucket: str) -> str:
        choices = self.templates.get(bucket)
        if not choices:
            return FALLBACK_CAPTIONS.get(bucket, FALLBACK_CAPTIONS[UNKNOWN_PERSON])
        return self.rng.choice(choices)

    def classify(
        self,
        face: FaceObservation,
        person_id: Optional[str],
        directory: Mapping[str, str],
    ) -> Tuple[str, Optional[str]]:
        """Return ``(bucket, name)``; name is set only for known persons."""
        if person_id is not None:
            name = directory.get(person_id)
            if name:
                return KNOWN_PERSON, name

        if face.expression:
            return expression_bucket(face.expression), None

        return UNKNOWN_PERSON, None

    def synthesize(
        self,
        face: FaceObservation,
        person_id: Optional[str],
        directory: Mapping[str, str],
    ) -> str:
        bucket, name = self.classify(face, person_id, directory)
        template = self._pick(bucket)
        if name is not None:
            return template.replace("{name}", name)
        return template

    def synthesize_group(self, count: int) -> str:
        return self._pick(GROUP).replace("{count}", str(count))

    def describe(self, face: FaceObservation) -> str:
        """Accessibility caption: expression, position and size."""
        caption = "Person"
        if face.expression:
            caption += f" with {face.expression} expression"
        caption += f" positioned {relative_position(face.box)}"
        caption += f", {relative_size(face.box)} size"
        return caption

    def contextual(
        self,
        face: FaceObservation,
        person_id: Optional[str],
        directory: Mapping[str, str],
        location: SceneLocation,
    ) -> str:
        """Caption with the scene location appended."""
        caption = self.synthesize(face, person_id, directory)
        if location is not SceneLocation.UNKNOWN:
            caption += f" at {location.value}"
        return caption
