"""
Per-session store of the annotations currently on display.

Each entry keeps the timer handle that will evict it, so removing an entry
early or closing the store cancels the pending eviction instead of leaving a
callback aimed at a store that no longer exists.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol

from pdf_tutor.annotations.models import Annotation

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_SECONDS = 10.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


Listener = Callable[["AnnotationStore"], None]


@dataclass
class _Entry:
    annotation: Annotation
    handle: Optional[TimerHandle] = None


class AnnotationStore:
    """Ordered collection of live annotations for one session."""

    def __init__(
        self,
        display_seconds: float = DEFAULT_DISPLAY_SECONDS,
        scheduler: Optional[Scheduler] = None,
    ):
        self.display_seconds = display_seconds
        self._scheduler = scheduler
        # dicts keep insertion order
        self._entries: Dict[str, _Entry] = {}
        self._listeners: List[Listener] = []
        self._closed = False

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, annotation_id: object) -> bool:
        return annotation_id in self._entries

    def __enter__(self) -> "AnnotationStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    def add(self, annotation: Annotation) -> Annotation:
        if self._closed:
            raise RuntimeError("Annotation store is closed")
        if annotation.id in self._entries:
            raise ValueError(f"Annotation {annotation.id} is already in the store")

        entry = _Entry(annotation=annotation)
        self._entries[annotation.id] = entry
        entry.handle = self._get_scheduler().call_later(self.display_seconds, self._expire, annotation.id)
        logger.debug(
            "Added %s annotation %s on page %s", annotation.type, annotation.id, annotation.page_number
        )
        self._notify()
        return annotation

    def remove(self, annotation_id: str) -> bool:
        """Drop an annotation; unknown ids are ignored."""
        entry = self._entries.pop(annotation_id, None)
        if entry is None:
            return False
        if entry.handle is not None:
            entry.handle.cancel()
        self._notify()
        return True

    def _expire(self, annotation_id: str) -> None:
        entry = self._entries.get(annotation_id)
        if entry is None:
            return
        # Handle already fired, nothing to cancel
        entry.handle = None
        self.remove(annotation_id)
        logger.debug("Annotation %s expired", annotation_id)

    def get(self, annotation_id: str) -> Optional[Annotation]:
        entry = self._entries.get(annotation_id)
        return entry.annotation if entry else None

    def all(self) -> List[Annotation]:
        return [entry.annotation for entry in self._entries.values()]

    def list_for_page(self, page_number: int) -> Iterator[Annotation]:
        """Annotations on ``page_number`` in insertion order, read from a snapshot."""
        snapshot = tuple(entry.annotation for entry in self._entries.values())
        return (annotation for annotation in snapshot if annotation.page_number == page_number)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Annotation store listener failed")

    def close(self) -> None:
        """Cancel every pending eviction and empty the store."""
        if self._closed:
            return
        self._closed = True
        had_entries = bool(self._entries)
        for entry in self._entries.values():
            if entry.handle is not None:
                entry.handle.cancel()
        self._entries.clear()
        if had_entries:
            self._notify()
        self._listeners.clear()
