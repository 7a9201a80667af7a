"""
Annotation Pipeline - per-frame orchestration

    Frame
      |-- faces --> identity --> caption synthesis --+
      |                                              |--> aggregator --> snapshot
      |-- texts -------------------------------------+        ^
                                                              |
                 pending translations --> resolver pool ------+

Identity, synthesis and aggregation run synchronously inside
``process_frame``. The only work that leaves the frame is the translation of
text that is not cached yet; those results are applied to the aggregator as
they complete and are discarded when the entity was refreshed meanwhile or
the language pair changed.

Usage:
    from lensware.pipeline import AnnotationPipeline

    pipeline = AnnotationPipeline.from_config()
    pipeline.subscribe(render)

    pipeline.start()
    pipeline.submit_frame(frame)    # from the camera thread, never blocks
    ...
    pipeline.shutdown()
"""

import logging
import threading
from concurrent.futures import Future, wait
from dataclasses import replace
from functools import partial
from typing import Callable, List, Mapping, Optional, Set, Tuple

from .aggregator import AggregationResult, AnnotationAggregator, Subscriber
from .captions import CaptionSynthesizer
from .config import Config, config
from .diagnostics import metrics
from .exceptions import ConfigurationError
from .expression import analyze_expression
from .geometry import clamp_rect, clamp_unit
from .identity import IdentityStrategy, KnownPersonsDirectory, PositionalIdentityStrategy
from .loop import LatestFrameLoop
from .models import (
    Annotation,
    CaptionDraft,
    FaceObservation,
    Frame,
    PendingTranslation,
    Size,
    Stats,
    TextDraft,
    TextObservation,
)
from .translation import TranslationResolver

logger = logging.getLogger(__name__)


def _unresolved_captions(drafts: Optional[List[CaptionDraft]]) -> Optional[List[CaptionDraft]]:
    if drafts is None:
        return None
    return [replace(d, translated_text=d.text, resolved=False) for d in drafts]


def _unresolved_texts(drafts: Optional[List[TextDraft]]) -> Optional[List[TextDraft]]:
    if drafts is None:
        return None
    return [replace(d, translated_text=d.observation.text, resolved=False) for d in drafts]


class AnnotationPipeline:
    """Turns observation frames into translated, captioned annotations."""

    def __init__(
        self,
        resolver: Optional[TranslationResolver] = None,
        synthesizer: Optional[CaptionSynthesizer] = None,
        identity: Optional[IdentityStrategy] = None,
        directory: Optional[KnownPersonsDirectory] = None,
        aggregator: Optional[AnnotationAggregator] = None,
        min_face_area: float = 0.0,
    ):
        self.resolver = resolver or TranslationResolver()
        self.synthesizer = synthesizer or CaptionSynthesizer()
        self.identity = identity or PositionalIdentityStrategy()
        self.directory = directory if directory is not None else KnownPersonsDirectory()
        self.aggregator = aggregator or AnnotationAggregator()
        self.min_face_area = min_face_area

        self._loop: Optional[LatestFrameLoop] = None
        self._outstanding: Set[Future] = set()
        self._lock = threading.Lock()
        # Orders aggregation against language switches
        self._language_lock = threading.RLock()
        self._frames_processed = 0

    @classmethod
    def from_config(
        cls,
        cfg: Optional[Config] = None,
        directory: Optional[KnownPersonsDirectory] = None,
    ) -> "AnnotationPipeline":
        cfg = cfg or config

        seed_value = cfg.get("LW_RANDOM_SEED", "")
        try:
            seed = int(seed_value) if seed_value else None
        except ValueError:
            raise ConfigurationError(f"LW_RANDOM_SEED must be an integer, got {seed_value!r}")

        viewport_value = cfg.get("LW_VIEWPORT", "")
        try:
            viewport = Size.parse(viewport_value) if viewport_value else None
        except ValueError:
            raise ConfigurationError(f"LW_VIEWPORT must look like 1280x720, got {viewport_value!r}")

        aggregator = AnnotationAggregator(
            max_age=cfg.get_float("LW_CAPTION_MAX_AGE", 30.0),
            match_policy=cfg.get("LW_FACE_MATCH_POLICY", "nearest"),
            match_distance=cfg.get_float("LW_FACE_MATCH_DISTANCE", 0.2),
            viewport=viewport,
        )

        return cls(
            resolver=TranslationResolver.from_config(cfg),
            synthesizer=CaptionSynthesizer(seed=seed),
            identity=PositionalIdentityStrategy(
                confidence_threshold=cfg.get_float("LW_IDENTITY_CONFIDENCE", 0.8),
            ),
            directory=directory,
            aggregator=aggregator,
            min_face_area=cfg.get_float("LW_MIN_FACE_AREA", 0.0),
        )

    # -- per frame -----------------------------------------------------

    def process_frame(self, frame: Frame, now: Optional[float] = None) -> AggregationResult:
        """Run one frame synchronously and dispatch its pending translations.

        ``now`` defaults to the frame timestamp.
        """
        now = frame.timestamp if now is None else now
        epoch = self.resolver.epoch

        with metrics.track("pipeline.frame"):
            faces = None
            if frame.faces is not None:
                known = self.directory.snapshot()
                faces = []
                for face in frame.faces:
                    face = self._sanitize_face(face)
                    if face.box.area < self.min_face_area:
                        continue
                    faces.append(self._caption_draft(face, known))

            texts = None
            if frame.texts is not None:
                texts = [
                    self._text_draft(self._sanitize_text(obs))
                    for obs in frame.texts
                    if obs.text.strip()
                ]

            with self._language_lock:
                if self.resolver.epoch != epoch:
                    # Fast-path results belong to the previous language pair
                    faces = _unresolved_captions(faces)
                    texts = _unresolved_texts(texts)
                result = self.aggregator.aggregate(texts=texts, faces=faces, now=now)

        with self._lock:
            self._frames_processed += 1

        logger.debug(
            f"{len(result.annotations)} annotations, {len(result.pending)} pending",
            extra={"frame_num": frame.frame_num},
        )
        self._dispatch(result.pending)
        return result

    def _sanitize_face(self, face: FaceObservation) -> FaceObservation:
        changes = {}
        if not face.box.is_normalized():
            changes["box"] = clamp_rect(face.box)
        if not 0.0 <= face.confidence <= 1.0:
            changes["confidence"] = clamp_unit(face.confidence)
        if face.expression is None and face.landmarks is not None:
            changes["expression"] = analyze_expression(face.landmarks)
        return replace(face, **changes) if changes else face

    def _sanitize_text(self, obs: TextObservation) -> TextObservation:
        if obs.box.is_normalized() and 0.0 <= obs.confidence <= 1.0:
            return obs
        return replace(obs, box=clamp_rect(obs.box), confidence=clamp_unit(obs.confidence))

    def _fast_translation(self, text: str) -> Tuple[str, bool]:
        """``(display text, resolved)`` without waiting on a backend."""
        cached = self.resolver.lookup(text)
        if cached is not None:
            return cached, True
        return self.resolver.translate_cached(text), False

    def _caption_draft(self, face: FaceObservation, known: Mapping[str, str]) -> CaptionDraft:
        person_id = self.identity.identify(face, known)
        text = self.synthesizer.synthesize(face, person_id, known)
        translated, resolved = self._fast_translation(text)
        return CaptionDraft(
            observation=face,
            text=text,
            translated_text=translated,
            person_id=person_id,
            is_personalized=person_id is not None and bool(known.get(person_id)),
            resolved=resolved,
        )

    def _text_draft(self, obs: TextObservation) -> TextDraft:
        translated, resolved = self._fast_translation(obs.text)
        return TextDraft(observation=obs, translated_text=translated, resolved=resolved)

    # -- asynchronous translations -------------------------------------

    def _dispatch(self, pending: List[PendingTranslation]):
        if not pending:
            return
        epoch = self.resolver.epoch
        for item in pending:
            applied: Future = Future()
            with self._lock:
                self._outstanding.add(applied)
            future = self.resolver.submit(item.text)
            future.add_done_callback(partial(self._on_translated, item, epoch, applied))

    def _on_translated(self, item: PendingTranslation, epoch: int, applied: Future, future: Future):
        try:
            if future.cancelled():
                return
            error = future.exception()
            if error is not None:
                logger.warning(f"Translation for {item.key} failed: {error}", extra={"entity": item.key})
                return
            if self.resolver.epoch != epoch:
                logger.debug("Discarded translation from previous language pair", extra={"entity": item.key})
                return
            self.aggregator.apply_translation(item.key, item.revision, future.result())
        finally:
            applied.set_result(None)
            with self._lock:
                self._outstanding.discard(applied)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until dispatched translations are applied. False on timeout."""
        with self._lock:
            outstanding = list(self._outstanding)
        if not outstanding:
            return True
        _done, not_done = wait(outstanding, timeout=timeout)
        return not not_done

    # -- frame loop ----------------------------------------------------

    def start(self):
        """Start the background frame loop used by :meth:`submit_frame`."""
        if self._loop is None:
            self._loop = LatestFrameLoop(self.process_frame)
        self._loop.start()

    def submit_frame(self, frame: Frame) -> bool:
        """Hand a frame to the loop. Returns False if a waiting frame was dropped."""
        if self._loop is None or not self._loop.running:
            self.start()
        return self._loop.submit(frame)

    def stop(self):
        if self._loop is not None:
            self._loop.stop()

    def shutdown(self):
        self.stop()
        self.resolver.shutdown()

    # -- control -------------------------------------------------------

    def set_languages(self, source: str, target: str):
        """Switch the language pair and re-request every live translation."""
        with self._language_lock:
            self.resolver.set_languages(source, target)
            pending = self.aggregator.pending_retranslation()
        self._dispatch(pending)

    def add_known_person(self, person_id: str, name: str):
        self.directory.add(person_id, name)

    def remove_known_person(self, person_id: str) -> bool:
        return self.directory.remove(person_id)

    def group_caption(self, count: int) -> str:
        """Translated caption for a group of ``count`` faces."""
        return self.resolver.translate(self.synthesizer.synthesize_group(count))

    # -- outputs -------------------------------------------------------

    def snapshot(self) -> Tuple[Annotation, ...]:
        return self.aggregator.snapshot()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self.aggregator.subscribe(callback)

    def stats(self) -> Stats:
        stats = self.aggregator.stats()
        stats.cache_size = self.resolver.cache_size
        stats.dropped_frames = self._loop.dropped if self._loop else 0
        stats.known_persons = len(self.directory)
        return stats

    @property
    def frames_processed(self) -> int:
        with self._lock:
            return self._frames_processed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
