"""
Session-scoped viewer state: the page on screen and the live annotations.

One ``TutorSession`` exists per chat. It owns exactly one ``AnnotationStore``;
closing the session cancels every pending eviction timer of that store.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from pdf_tutor.annotations.actions import (
    ActionOutcome,
    ActionRejected,
    AnnotateOutcome,
    NavigateOutcome,
    decode_action,
)
from pdf_tutor.annotations.render import PageOverlay
from pdf_tutor.annotations.store import DEFAULT_DISPLAY_SECONDS, AnnotationStore, Scheduler

logger = logging.getLogger(__name__)

PageListener = Callable[[int], None]


class TutorSession:
    def __init__(
        self,
        session_id: str,
        page_count: Optional[int] = None,
        current_page: int = 1,
        display_seconds: float = DEFAULT_DISPLAY_SECONDS,
        scheduler: Optional[Scheduler] = None,
    ):
        self.session_id = session_id
        self.page_count = page_count
        self.store = AnnotationStore(display_seconds=display_seconds, scheduler=scheduler)
        self._current_page = self._clamp(current_page)
        self._page_listeners: List[PageListener] = []
        self._overlay: Optional[PageOverlay] = None

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def closed(self) -> bool:
        return self.store.closed

    def _clamp(self, page: int) -> int:
        page = max(1, int(page))
        if self.page_count:
            page = min(page, self.page_count)
        return page

    def on_page_change(self, listener: PageListener) -> Callable[[], None]:
        self._page_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._page_listeners:
                self._page_listeners.remove(listener)

        return unsubscribe

    def go_to_page(self, page_number: int) -> int:
        """Move the viewer, clamped to the document's page range."""
        target = self._clamp(page_number)
        if target != page_number:
            logger.info("Session %s: page %s out of range, showing %s", self.session_id, page_number, target)
        if target != self._current_page:
            self._current_page = target
            for listener in list(self._page_listeners):
                listener(target)
        return target

    def decode(self, payload: Any, current_page: Optional[int] = None) -> ActionOutcome:
        """Decode an action against this session without changing it.

        ``current_page`` is the page the client reported; it becomes the default
        page for annotations that do not name one.
        """
        page = self._clamp(current_page) if current_page is not None else self._current_page
        return decode_action(payload, page)

    def apply_outcome(self, outcome: ActionOutcome, current_page: Optional[int] = None) -> ActionOutcome:
        if current_page is not None:
            self.go_to_page(current_page)
        if isinstance(outcome, NavigateOutcome):
            self.go_to_page(outcome.page_number)
        elif isinstance(outcome, AnnotateOutcome):
            self.store.add(outcome.annotation)
        return outcome

    def apply_action(self, payload: Any, current_page: Optional[int] = None) -> ActionOutcome:
        """Decode an action and carry out its effect on this session."""
        return self.apply_outcome(self.decode(payload, current_page), current_page=current_page)

    def overlay(self, page_width: float, page_height: float) -> PageOverlay:
        """The session's overlay view, sized to the page as currently rendered."""
        if self._overlay is None:
            self._overlay = PageOverlay(self, page_width, page_height)
        else:
            self._overlay.resize(page_width, page_height)
        return self._overlay

    def close(self) -> None:
        if self._overlay is not None:
            self._overlay.detach()
            self._overlay = None
        self._page_listeners.clear()
        self.store.close()


DEFAULT_IDLE_SECONDS = 30 * 60.0


class SessionRegistry:
    """Live tutor sessions keyed by chat id.

    Sessions left unused for ``idle_seconds`` with nothing on display are
    closed the next time any session is looked up.
    """

    def __init__(
        self,
        display_seconds: float = DEFAULT_DISPLAY_SECONDS,
        scheduler: Optional[Scheduler] = None,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.display_seconds = display_seconds
        self.scheduler = scheduler
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._sessions: Dict[str, TutorSession] = {}
        self._last_used: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[TutorSession]:
        return self._sessions.get(str(session_id))

    def get_or_create(self, session_id: str, page_count: Optional[int] = None) -> TutorSession:
        key = str(session_id)
        now = self.clock()
        self.prune_idle(now, keep=key)

        session = self._sessions.get(key)
        if session is None:
            session = TutorSession(
                key,
                page_count=page_count,
                display_seconds=self.display_seconds,
                scheduler=self.scheduler,
            )
            self._sessions[key] = session
            logger.info("Opened tutor session %s", key)
        elif page_count and session.page_count != page_count:
            session.page_count = page_count
        self._last_used[key] = now
        return session

    def prune_idle(self, now: Optional[float] = None, keep: Optional[str] = None) -> int:
        """Close idle sessions whose stores are empty; returns how many were closed."""
        now = self.clock() if now is None else now
        stale = [
            key
            for key, session in self._sessions.items()
            if key != keep
            and len(session.store) == 0
            and now - self._last_used.get(key, now) > self.idle_seconds
        ]
        for key in stale:
            self.discard(key)
        if stale:
            logger.info("Pruned %d idle tutor sessions", len(stale))
        return len(stale)

    def discard(self, session_id: str) -> bool:
        key = str(session_id)
        session = self._sessions.pop(key, None)
        self._last_used.pop(key, None)
        if session is None:
            return False
        session.close()
        logger.info("Closed tutor session %s", key)
        return True

    def close_all(self) -> None:
        for key in list(self._sessions):
            self.discard(key)


def describe_outcome(outcome: ActionOutcome) -> Dict[str, Any]:
    if isinstance(outcome, ActionRejected):
        return {"status": "rejected", "code": outcome.code, "message": outcome.message}
    if isinstance(outcome, NavigateOutcome):
        return {"status": "navigated", "page_number": outcome.page_number}
    return {"status": "annotated", "annotation_id": outcome.annotation.id}
