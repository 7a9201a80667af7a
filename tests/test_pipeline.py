"""
Tests for per-frame orchestration
"""

import threading
import time

import pytest

from lensware.captions import CAPTION_TEMPLATES, EMOTION_HAPPY, GROUP, CaptionSynthesizer
from lensware.config import Config
from lensware.exceptions import ConfigurationError
from lensware.identity import KnownPersonsDirectory
from lensware.models import AnnotationKind, FaceLandmarks, Frame, Size
from lensware.pipeline import AnnotationPipeline
from lensware.translation import CallableBackend, LocalDictionary, TranslationResolver

from conftest import CountingBackend, make_face, make_text

T0 = 1000.0


def by_language(text, source, target):
    table = {"zh": {"hello": "你好"}, "es": {"hello": "hola"}}
    return table.get(target, {}).get(text.lower())


@pytest.fixture
def backend():
    return CountingBackend({"hello": "你好", "exit": "出口"})


@pytest.fixture
def pipeline(backend):
    p = AnnotationPipeline(
        resolver=TranslationResolver(backends=[backend]),
        synthesizer=CaptionSynthesizer(seed=1),
        directory=KnownPersonsDirectory.demo(),
    )
    yield p
    p.shutdown()


class TestProcessFrame:

    def test_text_is_translated_asynchronously(self, pipeline):
        result = pipeline.process_frame(Frame(0, texts=[make_text("hello")], timestamp=T0))
        assert len(result.pending) == 1

        assert pipeline.flush(timeout=5)
        (annotation,) = pipeline.snapshot()
        assert annotation.kind is AnnotationKind.TEXT
        assert annotation.translated_text == "你好"

    def test_cached_text_resolves_in_frame(self, pipeline, backend):
        pipeline.process_frame(Frame(0, texts=[make_text("hello")], timestamp=T0))
        pipeline.flush(timeout=5)

        result = pipeline.process_frame(Frame(1, texts=[make_text("Hello")], timestamp=T0 + 1))

        assert result.pending == []
        assert result.annotations[0].translated_text == "你好"
        assert len(backend.calls) == 1

    def test_dictionary_shown_while_backend_runs(self):
        gate = threading.Event()
        slow = CountingBackend({"water": "饮用水"}, gate=gate)
        pipeline = AnnotationPipeline(
            resolver=TranslationResolver(backends=[slow], dictionary=LocalDictionary.default()),
        )

        result = pipeline.process_frame(Frame(0, texts=[make_text("water")], timestamp=T0))
        assert result.annotations[0].translated_text == "水"

        gate.set()
        pipeline.flush(timeout=5)
        assert pipeline.snapshot()[0].translated_text == "饮用水"
        pipeline.shutdown()

    def test_known_person_caption(self, pipeline):
        face = make_face(x=0.05, w=0.1)
        pipeline.process_frame(Frame(0, faces=[face], timestamp=T0))
        pipeline.flush(timeout=5)

        (annotation,) = pipeline.snapshot()
        assert "John" in annotation.original_text
        assert annotation.is_personalized

    def test_unknown_person_caption(self, pipeline):
        pipeline.remove_known_person("person_1")
        pipeline.process_frame(Frame(0, faces=[make_face(x=0.05, w=0.1)], timestamp=T0))

        (annotation,) = pipeline.snapshot()
        assert not annotation.is_personalized
        assert annotation.original_text in CAPTION_TEMPLATES["unknown_person"]

    def test_expression_from_landmarks(self, pipeline):
        lips = [(0.0, 0.5), (0.5, 0.6), (1.0, 0.5), (0.5, 0.4)]
        face = make_face(x=0.4, w=0.2, confidence=0.5, landmarks=FaceLandmarks(outer_lips=lips))
        pipeline.process_frame(Frame(0, faces=[face], timestamp=T0))

        assert pipeline.snapshot()[0].original_text in CAPTION_TEMPLATES[EMOTION_HAPPY]

    def test_small_faces_ignored(self, backend):
        pipeline = AnnotationPipeline(resolver=TranslationResolver(backends=[backend]), min_face_area=0.05)
        pipeline.process_frame(Frame(0, faces=[make_face(w=0.1, h=0.1), make_face(w=0.3, h=0.3)], timestamp=T0))

        assert len(pipeline.snapshot()) == 1

    def test_blank_text_ignored(self, pipeline):
        pipeline.process_frame(Frame(0, texts=[make_text("   ")], timestamp=T0))
        assert pipeline.snapshot() == ()

    def test_out_of_range_observation_recovered(self, pipeline):
        face = make_face(x=0.9, w=0.4, confidence=1.7)
        pipeline.process_frame(Frame(0, faces=[face], timestamp=T0))

        (annotation,) = pipeline.snapshot()
        assert annotation.box.is_normalized()
        assert annotation.confidence == 1.0

    def test_captions_expire(self, pipeline):
        pipeline.process_frame(Frame(0, faces=[make_face()], timestamp=T0))
        pipeline.process_frame(Frame(1, timestamp=T0 + 29))
        assert len(pipeline.snapshot()) == 1

        pipeline.process_frame(Frame(2, timestamp=T0 + 31))
        assert pipeline.snapshot() == ()

    def test_subscribe(self, pipeline):
        seen = []
        pipeline.subscribe(seen.append)
        pipeline.process_frame(Frame(0, texts=[make_text("exit")], timestamp=T0))
        pipeline.flush(timeout=5)

        assert seen[-1][0].translated_text == "出口"


class TestLanguageSwitch:

    def test_switch_retranslates_live_annotations(self):
        pipeline = AnnotationPipeline(resolver=TranslationResolver(backends=[CallableBackend(by_language)]))
        pipeline.process_frame(Frame(0, texts=[make_text("hello")], timestamp=T0))
        pipeline.flush(timeout=5)
        assert pipeline.snapshot()[0].translated_text == "你好"

        pipeline.set_languages("en", "es")
        pipeline.flush(timeout=5)

        assert pipeline.snapshot()[0].translated_text == "hola"
        assert pipeline.stats().cache_size == 1
        pipeline.shutdown()

    def test_switch_during_frame_discards_old_cache_hit(self):
        pipeline = AnnotationPipeline(resolver=TranslationResolver(backends=[CallableBackend(by_language)]))
        pipeline.resolver.translate("hello")
        original_lookup = pipeline.resolver.lookup

        def lookup_then_switch(text):
            cached = original_lookup(text)
            pipeline.set_languages("en", "es")
            return cached

        pipeline.resolver.lookup = lookup_then_switch
        result = pipeline.process_frame(Frame(0, texts=[make_text("hello")], timestamp=T0))
        pipeline.resolver.lookup = original_lookup

        assert len(result.pending) == 1
        assert result.annotations[0].translated_text == "hello"
        assert pipeline.flush(timeout=5)
        assert pipeline.snapshot()[0].translated_text == "hola"
        pipeline.shutdown()

    def test_result_for_previous_pair_is_discarded(self):
        gate = threading.Event()

        def slow(text, source, target):
            gate.wait(timeout=5)
            return by_language(text, source, target)

        pipeline = AnnotationPipeline(
            resolver=TranslationResolver(backends=[CallableBackend(slow)], max_workers=2),
        )
        pipeline.process_frame(Frame(0, texts=[make_text("hello")], timestamp=T0))
        pipeline.set_languages("en", "es")
        gate.set()

        assert pipeline.flush(timeout=5)
        assert pipeline.snapshot()[0].translated_text == "hola"
        pipeline.shutdown()


class TestControl:

    def test_group_caption(self):
        pipeline = AnnotationPipeline(synthesizer=CaptionSynthesizer(seed=2))
        caption = pipeline.group_caption(3)
        assert caption in [t.replace("{count}", "3") for t in CAPTION_TEMPLATES[GROUP]]

    def test_add_known_person(self, pipeline):
        pipeline.add_known_person("person_2", "Priya")
        pipeline.process_frame(Frame(0, faces=[make_face(x=0.8, w=0.1)], timestamp=T0))

        assert "Priya" in pipeline.snapshot()[0].original_text

    def test_stats(self, pipeline):
        pipeline.process_frame(Frame(
            0,
            texts=[make_text("hello")],
            faces=[make_face(x=0.05, w=0.1, confidence=0.9)],
            timestamp=T0,
        ))
        pipeline.flush(timeout=5)
        stats = pipeline.stats()

        assert stats.active_text_count == 1
        assert stats.active_face_count == 1
        assert stats.known_persons == 3
        assert stats.personalized_captions == 1
        assert stats.cache_size >= 1
        assert stats.dropped_frames == 0


class TestFrameLoop:

    def test_submit_frame_processes_in_background(self, pipeline):
        pipeline.submit_frame(Frame(0, texts=[make_text("exit")], timestamp=T0))

        deadline = time.time() + 5
        while pipeline.frames_processed < 1 and time.time() < deadline:
            time.sleep(0.01)
        pipeline.flush(timeout=5)

        assert pipeline.snapshot()[0].translated_text == "出口"


class TestFromConfig:

    def make_config(self, **values):
        cfg = Config()
        cfg.set("LW_GOOGLE_API_KEY", "")
        for key, value in values.items():
            cfg.set(key, value)
        return cfg

    def test_builds_components(self):
        pipeline = AnnotationPipeline.from_config(self.make_config(
            LW_CAPTION_MAX_AGE="12",
            LW_FACE_MATCH_POLICY="per_frame",
            LW_VIEWPORT="1280x720",
            LW_MIN_FACE_AREA="0.1",
        ))

        assert pipeline.aggregator.max_age == 12.0
        assert pipeline.aggregator.match_policy == "per_frame"
        assert pipeline.aggregator.viewport == Size(1280, 720)
        assert pipeline.min_face_area == pytest.approx(0.1)

    def test_bad_seed(self):
        with pytest.raises(ConfigurationError):
            AnnotationPipeline.from_config(self.make_config(LW_RANDOM_SEED="abc"))

    def test_bad_viewport(self):
        with pytest.raises(ConfigurationError):
            AnnotationPipeline.from_config(self.make_config(LW_VIEWPORT="big"))

    def test_bad_policy(self):
        with pytest.raises(ConfigurationError):
            AnnotationPipeline.from_config(self.make_config(LW_FACE_MATCH_POLICY="random"))
