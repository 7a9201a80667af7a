"""
Tests for loading recorded frames
"""

import pytest

from lensware.exceptions import MalformedObservation
from lensware.models import NormalizedRect, Size
from lensware.replay import frame_from_dict, load_frames, parse_box

RECORDING = """
viewport: 640x480
frames:
  - t: 0.5
    texts:
      - text: Exit
        box: [0.1, 0.8, 0.2, 0.05]
        confidence: 0.7
    faces:
      - box: {x: 0.05, y: 0.3, width: 0.2, height: 0.3}
        confidence: 0.92
        tracking_id: 7
        landmarks:
          outer_lips: [[0, 0.5], [0.5, 0.6], [1, 0.5], [0.5, 0.4]]
          nose: [[0.5, 0.5]]
  - t: 1.0
    faces: []
"""


class TestLoadFrames:

    def test_recording(self, tmp_path):
        path = tmp_path / "session.yaml"
        path.write_text(RECORDING, encoding="utf-8")

        frames, viewport = load_frames(path)

        assert viewport == Size(640, 480)
        assert len(frames) == 2

        first, second = frames
        assert first.timestamp == 0.5
        assert first.texts[0].text == "Exit"
        assert first.texts[0].confidence == 0.7
        face = first.faces[0]
        assert face.box == NormalizedRect(0.05, 0.3, 0.2, 0.3)
        assert face.tracking_id == "7"
        assert face.landmarks.outer_lips[1] == (0.5, 0.6)
        assert face.landmarks.extra["nose"] == [(0.5, 0.5)]

        assert second.texts is None
        assert second.faces == []

    def test_plain_list(self, tmp_path):
        path = tmp_path / "frames.yaml"
        path.write_text("- texts: [{text: hi, box: [0, 0, 0.1, 0.1]}]\n", encoding="utf-8")

        frames, viewport = load_frames(path)
        assert viewport is None
        assert frames[0].frame_num == 0
        assert frames[0].timestamp == 0.0

    def test_bad_box(self):
        with pytest.raises(MalformedObservation):
            parse_box([0.1, "left", 0.2, 0.2])
        with pytest.raises(MalformedObservation):
            parse_box({"x": 0.1})

    def test_text_without_text(self):
        with pytest.raises(MalformedObservation):
            frame_from_dict({"texts": [{"box": [0, 0, 1, 1]}]}, 0)

    def test_frame_must_be_mapping(self):
        with pytest.raises(MalformedObservation):
            frame_from_dict(["not", "a", "frame"], 3)

    def test_malformed_observation_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_box(None)

    def test_bad_confidence(self):
        with pytest.raises(MalformedObservation):
            frame_from_dict({"faces": [{"box": [0, 0, 0.1, 0.1], "confidence": "high"}]}, 0)
        with pytest.raises(MalformedObservation):
            frame_from_dict({"texts": [{"text": "Exit", "box": [0, 0, 0.1, 0.1], "confidence": [1]}]}, 0)

    def test_entries_must_be_mappings(self):
        with pytest.raises(MalformedObservation):
            frame_from_dict({"texts": ["Exit"]}, 0)
        with pytest.raises(MalformedObservation):
            frame_from_dict({"faces": [[0, 0, 0.1, 0.1]]}, 0)
        with pytest.raises(MalformedObservation):
            frame_from_dict({"faces": {"box": [0, 0, 0.1, 0.1]}}, 0)

    def test_bad_time(self):
        with pytest.raises(MalformedObservation):
            frame_from_dict({"t": "noon"}, 0)
