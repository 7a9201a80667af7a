"""
Latest-frame loop: one producer, one worker, a single-slot mailbox.

Frames come in faster than they can be processed. Instead of queueing them,
the loop keeps only the newest waiting frame; a frame that is replaced
before the worker picks it up is dropped and counted.

Usage:
    from lensware.loop import LatestFrameLoop

    loop = LatestFrameLoop(pipeline.process_frame)
    loop.start()
    loop.submit(frame)   # never blocks
    ...
    loop.stop()
"""

import logging
from queue import Empty, Full, Queue
from threading import Event, Lock, Thread
from typing import Callable, Optional

from .models import Frame

logger = logging.getLogger(__name__)


class LatestFrameLoop:
    """Runs ``handler(frame)`` on a worker thread for the newest frame only."""

    def __init__(self, handler: Callable[[Frame], object], name: str = "lensware-frames"):
        self.handler = handler
        self.name = name

        self._mailbox: Queue = Queue(maxsize=1)
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self._lock = Lock()

        self._dropped = 0
        self._processed = 0
        self._failed = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def dropped(self) -> int:
        with self._lock:
            return self._dropped

    @property
    def processed(self) -> int:
        with self._lock:
            return self._processed

    def start(self):
        if self.running:
            return
        self._stop_event.clear()
        self._thread = Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info("Frame loop started")

    def submit(self, frame: Frame) -> bool:
        """Offer a frame. Returns False if it replaced a waiting frame."""
        with self._lock:
            try:
                self._mailbox.put_nowait(frame)
                return True
            except Full:
                pass

            # Mailbox full, drop the waiting frame
            try:
                stale = self._mailbox.get_nowait()
            except Empty:
                # The worker took it first
                self._mailbox.put_nowait(frame)
                return True

            self._dropped += 1
            logger.debug(f"Dropped frame {stale.frame_num} for {frame.frame_num}")
            self._mailbox.put_nowait(frame)
            return False

    def _run(self):
        while not self._stop_event.is_set():
            try:
                frame = self._mailbox.get(timeout=0.1)
            except Empty:
                continue

            try:
                self.handler(frame)
            except Exception:
                with self._lock:
                    self._failed += 1
                logger.exception(f"Frame {frame.frame_num} failed", extra={"frame_num": frame.frame_num})
            else:
                with self._lock:
                    self._processed += 1

    def stop(self, timeout: float = 2.0):
        """Stop the worker. A frame still waiting in the mailbox is discarded."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

        try:
            self._mailbox.get_nowait()
            with self._lock:
                self._dropped += 1
        except Empty:
            pass

        logger.info(f"Frame loop stopped (processed: {self._processed}, dropped: {self._dropped})")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
