"""
Recorded observation frames.

Loads frames from YAML so a pipeline can be driven without a camera:

    viewport: 1280x720        # optional
    frames:
      - t: 0.0                # seconds, used as the aggregation clock
        texts:
          - text: Exit
            box: [0.1, 0.8, 0.2, 0.05]
        faces:
          - box: {x: 0.05, y: 0.3, width: 0.2, height: 0.3}
            confidence: 0.92
            expression: smile
            tracking_id: a

A frame without ``texts`` or ``faces`` means that stream produced nothing;
an empty list means it ran and saw nothing.
"""

import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple, Union

import yaml

from .exceptions import MalformedObservation
from .models import (
    FaceLandmarks,
    FaceObservation,
    Frame,
    NormalizedRect,
    Size,
    TextObservation,
)

logger = logging.getLogger(__name__)


def parse_box(value: Any) -> NormalizedRect:
    """Accept ``[x, y, w, h]`` or a mapping with x/y/width/height."""
    try:
        if isinstance(value, Mapping):
            return NormalizedRect(
                float(value["x"]), float(value["y"]),
                float(value["width"]), float(value["height"]),
            )
        x, y, width, height = (float(v) for v in value)
        return NormalizedRect(x, y, width, height)
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedObservation(f"Invalid box {value!r}: {e}") from e


def _parse_points(value: Any) -> List[Tuple[float, float]]:
    try:
        return [(float(p[0]), float(p[1])) for p in value]
    except (IndexError, TypeError, ValueError) as e:
        raise MalformedObservation(f"Invalid landmark points {value!r}: {e}") from e


def parse_landmarks(value: Optional[Mapping[str, Any]]) -> Optional[FaceLandmarks]:
    if not value:
        return None
    if not isinstance(value, Mapping):
        raise MalformedObservation(f"Landmarks must be a mapping of regions, got {value!r}")
    regions = {name: _parse_points(points) for name, points in value.items()}
    return FaceLandmarks(
        outer_lips=regions.pop("outer_lips", None),
        left_eyebrow=regions.pop("left_eyebrow", None),
        right_eyebrow=regions.pop("right_eyebrow", None),
        extra=regions,
    )


def _parse_confidence(data: Mapping[str, Any]) -> float:
    value = data.get("confidence", 1.0)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise MalformedObservation(f"Invalid confidence {value!r}: {e}") from e


def _require_mapping(data: Any, kind: str):
    if not isinstance(data, Mapping):
        raise MalformedObservation(f"{kind} observation must be a mapping, got {data!r}")


def parse_text(data: Mapping[str, Any]) -> TextObservation:
    _require_mapping(data, "Text")
    if "text" not in data:
        raise MalformedObservation(f"Text observation without text: {data!r}")
    return TextObservation(
        text=str(data["text"]),
        box=parse_box(data.get("box")),
        confidence=_parse_confidence(data),
    )


def parse_face(data: Mapping[str, Any]) -> FaceObservation:
    _require_mapping(data, "Face")
    tracking_id = data.get("tracking_id")
    return FaceObservation(
        box=parse_box(data.get("box")),
        confidence=_parse_confidence(data),
        landmarks=parse_landmarks(data.get("landmarks")),
        expression=data.get("expression"),
        tracking_id=str(tracking_id) if tracking_id is not None else None,
    )


def frame_from_dict(data: Mapping[str, Any], frame_num: int) -> Frame:
    if not isinstance(data, Mapping):
        raise MalformedObservation(f"Frame {frame_num} must be a mapping")

    texts = data.get("texts")
    faces = data.get("faces")
    for name, items in (("texts", texts), ("faces", faces)):
        if items is not None and not isinstance(items, list):
            raise MalformedObservation(f"Frame {frame_num}: {name} must be a list")

    try:
        number = int(data.get("frame", frame_num))
        timestamp = float(data.get("t", frame_num))
    except (TypeError, ValueError) as e:
        raise MalformedObservation(f"Frame {frame_num}: invalid frame number or time: {e}") from e

    return Frame(
        frame_num=number,
        texts=[parse_text(t) for t in texts] if texts is not None else None,
        faces=[parse_face(f) for f in faces] if faces is not None else None,
        timestamp=timestamp,
    )


def load_frames(path: Union[str, Path]) -> Tuple[List[Frame], Optional[Size]]:
    """Read a recording. Returns ``(frames, viewport)``."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    viewport = None
    if isinstance(data, list):
        raw_frames = data
    elif isinstance(data, dict):
        raw_frames = data.get("frames") or []
        if data.get("viewport"):
            try:
                viewport = Size.parse(str(data["viewport"]))
            except ValueError:
                raise MalformedObservation(f"Invalid viewport {data['viewport']!r} in {path}")
    else:
        raise MalformedObservation(f"Unrecognized recording format in {path}")

    frames = [frame_from_dict(item, i) for i, item in enumerate(raw_frames)]
    logger.info(f"Loaded {len(frames)} frames from {path}")
    return frames, viewport
