"""
Annotation Aggregator for Lensware

Merges the text and face streams into one annotation set with stable keys.

Every tracked entity goes through:
    ACTIVE  - refreshed in the current aggregation pass
    STALE   - not refreshed, still younger than the age threshold
    EVICTED - age reached the threshold; removed from the set

Aging runs on every ``aggregate`` call, including empty ones, so idle frames
still expire old captions.

Faces keep their key across frames through best-effort spatial matching
(``nearest`` policy) or lose it every frame (``per_frame`` policy). Text
regions have no upstream identity, so the text set is rebuilt whenever a text
batch arrives.

Usage:
    from lensware.aggregator import AnnotationAggregator

    aggregator = AnnotationAggregator(max_age=30.0)
    result = aggregator.aggregate(texts=text_drafts, faces=caption_drafts)

    for pending in result.pending:
        ...  # translate, then:
        aggregator.apply_translation(pending.key, pending.revision, translated)

    annotations = aggregator.snapshot()
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple, Union

from .exceptions import ConfigurationError
from .geometry import clamp_rect, to_display_rect
from .models import (
    Annotation,
    AnnotationKind,
    Caption,
    CaptionDraft,
    EntityState,
    PendingTranslation,
    Size,
    Stats,
    TextDraft,
    TextRegion,
)

logger = logging.getLogger(__name__)

MATCH_NEAREST = "nearest"
MATCH_PER_FRAME = "per_frame"
MATCH_POLICIES = (MATCH_NEAREST, MATCH_PER_FRAME)

Subscriber = Callable[[Tuple[Annotation, ...]], None]


@dataclass
class AggregationResult:
    """Outcome of one aggregation pass."""
    annotations: Tuple[Annotation, ...]
    pending: List[PendingTranslation] = field(default_factory=list)
    evicted: List[str] = field(default_factory=list)


@dataclass
class _Tracked:
    key: str
    kind: AnnotationKind
    item: Union[Caption, TextRegion]
    revision: int
    state: EntityState = EntityState.ACTIVE
    tracking_id: Optional[str] = None


class AnnotationAggregator:
    """Owns captions and text regions; publishes immutable snapshots."""

    def __init__(
        self,
        max_age: float = 30.0,
        match_policy: str = MATCH_NEAREST,
        match_distance: float = 0.2,
        viewport: Optional[Size] = None,
        clock: Callable[[], float] = time.time,
    ):
        if match_policy not in MATCH_POLICIES:
            raise ConfigurationError(
                f"Unknown face match policy {match_policy!r}, expected one of {MATCH_POLICIES}"
            )
        self.max_age = max_age
        self.match_policy = match_policy
        self.match_distance = match_distance
        self.viewport = viewport
        self._clock = clock

        self._faces: "OrderedDict[str, _Tracked]" = OrderedDict()
        self._texts: "OrderedDict[str, _Tracked]" = OrderedDict()
        self._lock = threading.RLock()
        self._snapshot: Tuple[Annotation, ...] = ()
        self._subscribers: List[Subscriber] = []

        self._next_face = 1
        self._next_text = 1
        self._revision = 0

    # -- aggregation ---------------------------------------------------

    def aggregate(
        self,
        texts: Optional[Sequence[TextDraft]] = None,
        faces: Optional[Sequence[CaptionDraft]] = None,
        now: Optional[float] = None,
    ) -> AggregationResult:
        """Merge one frame's drafts and age out old entries.

        ``None`` for a stream leaves that stream's entries untouched (they
        age); an empty list means the stream ran and saw nothing.
        """
        now = self._clock() if now is None else now

        with self._lock:
            touched: Set[str] = set()
            pending: List[PendingTranslation] = []

            if faces is not None:
                pending.extend(self._merge_faces(faces, now, touched))
            if texts is not None:
                pending.extend(self._replace_texts(texts, now, touched))

            evicted = self._age(now, touched)
            snapshot = self._publish()

        if evicted:
            logger.debug(f"Evicted {len(evicted)} annotations: {evicted}")
        self._notify(snapshot)
        return AggregationResult(annotations=snapshot, pending=pending, evicted=evicted)

    def evict_stale(self, now: Optional[float] = None) -> List[str]:
        """Run aging alone. Same as an aggregation pass with no input."""
        return self.aggregate(now=now).evicted

    def _bump(self) -> int:
        self._revision += 1
        return self._revision

    def _merge_faces(
        self,
        drafts: Sequence[CaptionDraft],
        now: float,
        touched: Set[str],
    ) -> List[PendingTranslation]:
        # A later draft for the same face ref replaces the earlier one
        batch: "OrderedDict[str, CaptionDraft]" = OrderedDict()
        for draft in drafts:
            batch.pop(draft.observation.ref, None)
            batch[draft.observation.ref] = draft

        if self.match_policy == MATCH_PER_FRAME:
            self._faces.clear()

        matches = self._match_faces(batch, touched) if self.match_policy == MATCH_NEAREST else {}

        pending = []
        for ref, draft in batch.items():
            obs = draft.observation
            box = clamp_rect(obs.box)
            key = matches.get(ref)

            if key is None:
                key = f"face-{self._next_face}"
                self._next_face += 1

            caption = Caption(
                face_ref=key,
                bounding_box=box,
                original_text=draft.text,
                translated_text=draft.translated_text,
                confidence=obs.confidence,
                created_at=now,
                is_personalized=draft.is_personalized,
                person_id=draft.person_id,
            )
            revision = self._bump()
            tracked = self._faces.get(key)
            if tracked is None:
                self._faces[key] = _Tracked(
                    key=key,
                    kind=AnnotationKind.FACE,
                    item=caption,
                    revision=revision,
                    tracking_id=obs.tracking_id,
                )
            else:
                tracked.item = caption
                tracked.revision = revision
                tracked.tracking_id = obs.tracking_id or tracked.tracking_id
            touched.add(key)

            if not draft.resolved:
                pending.append(PendingTranslation(key, revision, AnnotationKind.FACE, draft.text))

        return pending

    def _match_faces(self, batch: "OrderedDict[str, CaptionDraft]", touched: Set[str]) -> Dict[str, str]:
        """Map face refs in the batch to the existing keys they continue.

        Tracking ids are matched before any proximity match, and each existing
        face is claimed at most once, so every observation keeps its own entry.
        """
        claimed = set(touched)
        matches: Dict[str, str] = {}

        for ref, draft in batch.items():
            key = self._match_tracking_id(draft, claimed)
            if key is not None:
                matches[ref] = key
                claimed.add(key)

        for ref, draft in batch.items():
            if ref in matches:
                continue
            key = self._match_nearest(draft, claimed)
            if key is not None:
                matches[ref] = key
                claimed.add(key)

        return matches

    def _match_tracking_id(self, draft: CaptionDraft, claimed: Set[str]) -> Optional[str]:
        tracking_id = draft.observation.tracking_id
        if tracking_id is None:
            return None
        for key, tracked in self._faces.items():
            if key not in claimed and tracked.tracking_id == tracking_id:
                return key
        return None

    def _match_nearest(self, draft: CaptionDraft, claimed: Set[str]) -> Optional[str]:
        obs = draft.observation
        best_key = None
        best_distance = self.match_distance
        for key, tracked in self._faces.items():
            if key in claimed:
                continue
            if tracked.tracking_id is not None and obs.tracking_id is not None:
                continue
            distance = tracked.item.bounding_box.distance_to(clamp_rect(obs.box))
            if distance <= best_distance:
                best_key = key
                best_distance = distance
        return best_key

    def _replace_texts(
        self,
        drafts: Sequence[TextDraft],
        now: float,
        touched: Set[str],
    ) -> List[PendingTranslation]:
        self._texts.clear()

        pending = []
        for draft in drafts:
            obs = draft.observation
            key = f"text-{self._next_text}"
            self._next_text += 1

            region = TextRegion(
                ref=obs.id,
                bounding_box=clamp_rect(obs.box),
                original_text=obs.text,
                translated_text=draft.translated_text,
                confidence=obs.confidence,
                created_at=now,
            )
            revision = self._bump()
            self._texts[key] = _Tracked(key=key, kind=AnnotationKind.TEXT, item=region, revision=revision)
            touched.add(key)

            if not draft.resolved:
                pending.append(PendingTranslation(key, revision, AnnotationKind.TEXT, obs.text))

        return pending

    def _age(self, now: float, touched: Set[str]) -> List[str]:
        evicted = []
        for entries in (self._faces, self._texts):
            for key in list(entries):
                tracked = entries[key]
                if now - tracked.item.created_at >= self.max_age:
                    tracked.state = EntityState.EVICTED
                    del entries[key]
                    evicted.append(key)
                elif key in touched:
                    tracked.state = EntityState.ACTIVE
                else:
                    tracked.state = EntityState.STALE
        return evicted

    # -- asynchronous results ------------------------------------------

    def apply_translation(self, key: str, revision: int, translated: str) -> bool:
        """Apply a translation result if it is still for the newest revision.

        Results for an entity that has since been refreshed or evicted are
        discarded, whatever order they complete in.
        """
        with self._lock:
            tracked = self._faces.get(key) or self._texts.get(key)
            if tracked is None or tracked.revision != revision:
                logger.debug(f"Discarded late translation for {key} (revision {revision})")
                return False
            tracked.item = replace(tracked.item, translated_text=translated)
            snapshot = self._publish()

        self._notify(snapshot)
        return True

    def pending_retranslation(self) -> List[PendingTranslation]:
        """Invalidate every translation, e.g. after a language switch.

        Each entity gets a new revision and falls back to its original text
        until the returned requests are applied.
        """
        with self._lock:
            pending = []
            for entries in (self._faces, self._texts):
                for tracked in entries.values():
                    tracked.revision = self._bump()
                    tracked.item = replace(tracked.item, translated_text=tracked.item.original_text)
                    pending.append(PendingTranslation(
                        tracked.key, tracked.revision, tracked.kind, tracked.item.original_text
                    ))
            snapshot = self._publish()

        self._notify(snapshot)
        return pending

    # -- reads ---------------------------------------------------------

    def _publish(self) -> Tuple[Annotation, ...]:
        annotations = []
        for entries in (self._faces, self._texts):
            for tracked in entries.values():
                item = tracked.item
                if isinstance(item, Caption):
                    personalized = item.is_personalized
                else:
                    personalized = False
                annotations.append(Annotation(
                    key=tracked.key,
                    kind=tracked.kind,
                    box=item.bounding_box,
                    original_text=item.original_text,
                    translated_text=item.translated_text,
                    confidence=item.confidence,
                    is_personalized=personalized,
                    state=tracked.state,
                    created_at=item.created_at,
                    display_rect=to_display_rect(item.bounding_box, self.viewport) if self.viewport else None,
                ))
        self._snapshot = tuple(annotations)
        return self._snapshot

    def snapshot(self) -> Tuple[Annotation, ...]:
        """Last published annotation set. Never waits on a writer."""
        return self._snapshot

    def captions(self) -> List[Caption]:
        with self._lock:
            return [t.item for t in self._faces.values()]

    def text_regions(self) -> List[TextRegion]:
        with self._lock:
            return [t.item for t in self._texts.values()]

    def caption_for(self, key: str) -> Optional[Caption]:
        with self._lock:
            tracked = self._faces.get(key)
            return tracked.item if tracked else None

    def set_viewport(self, viewport: Optional[Size]):
        with self._lock:
            self.viewport = viewport
            snapshot = self._publish()
        self._notify(snapshot)

    # -- subscriptions -------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback(snapshot)`` after every change. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, snapshot: Tuple[Annotation, ...]):
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Annotation subscriber failed")

    # -- housekeeping --------------------------------------------------

    def clear(self):
        with self._lock:
            self._faces.clear()
            self._texts.clear()
            snapshot = self._publish()
        self._notify(snapshot)

    def stats(self) -> Stats:
        with self._lock:
            faces = list(self._faces.values())
            texts = list(self._texts.values())

        captions = [t.item for t in faces]
        confidences = [c.confidence for c in captions]
        return Stats(
            active_text_count=sum(1 for t in texts if t.state is EntityState.ACTIVE),
            active_face_count=sum(1 for t in faces if t.state is EntityState.ACTIVE),
            active_caption_count=len(captions),
            personalized_captions=sum(1 for c in captions if c.is_personalized),
            average_confidence=sum(confidences) / len(confidences) if confidences else 0.0,
        )
