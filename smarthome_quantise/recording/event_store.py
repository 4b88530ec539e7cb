from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from smarthome_quantise.data_processing.schemas import Bookmark, SensorEvent, Session
from smarthome_quantise.recording.channel import (
    TOPIC_ADD_BOOKMARK,
    TOPIC_CLOSE_BOOKMARK,
    TOPIC_END_SESSION,
    TOPIC_SENSOR_READING,
    TOPIC_START_SESSION,
    EventBus,
)

log = logging.getLogger(__name__)


class EventStore:
    """
    Buffers the raw sensor events and bookmark intervals of the session
    currently being recorded.

    States: Idle -> start_session -> Active -> end_session -> Idle.
    Events stay available after end_session until the next start_session.
    add_event may be called from several producer threads while Active;
    snapshot() and tagged_events() are only served once the session ended.

    Bookmark names are unique within a session: absent -> open -> closed.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._lock = threading.Lock()
        self._active = False
        self._session_id: Optional[int] = None
        self._events: List[SensorEvent] = []
        self._bookmarks: Dict[str, Bookmark] = {}

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def session_id(self) -> Optional[int]:
        return self._session_id

    @property
    def events(self) -> List[SensorEvent]:
        with self._lock:
            return list(self._events)

    @property
    def bookmarks(self) -> List[Bookmark]:
        with self._lock:
            return list(self._bookmarks.values())

    # -------------------------
    # Session lifecycle
    # -------------------------
    def start_session(self, session_id: int) -> None:
        """Start recording session_id. Restarting while Active drops the buffered data."""
        with self._lock:
            if self._active and (self._events or self._bookmarks):
                log.warning(
                    "Session %s restarted while active; discarding %d buffered events and %d bookmarks",
                    self._session_id,
                    len(self._events),
                    len(self._bookmarks),
                )
            self._events = []
            self._bookmarks = {}
            self._session_id = int(session_id)
            self._active = True
        log.info("Recording session %d started", session_id)

    def end_session(self) -> None:
        with self._lock:
            was_active = self._active
            self._active = False
            n_events = len(self._events)
        if was_active:
            log.info("Recording session %s ended with %d events", self._session_id, n_events)

    def add_event(self, event: SensorEvent) -> bool:
        with self._lock:
            if not self._active:
                log.debug("Ignoring event from %s: no active session", event.sensor_name)
                return False
            self._events.append(event)
            return True

    # -------------------------
    # Bookmarks
    # -------------------------
    def add_bookmark(self, name: str) -> bool:
        with self._lock:
            if not self._active:
                log.error("Cannot open bookmark '%s': no active session", name)
                return False
            existing = self._bookmarks.get(name)
            if existing is not None:
                state = "open" if existing.is_open else "closed"
                log.error("Bookmark '%s' is already %s in session %s", name, state, self._session_id)
                return False
            self._bookmarks[name] = Bookmark(name=name, start_time=self._clock())
            return True

    def close_bookmark(self, name: str) -> bool:
        with self._lock:
            bookmark = self._bookmarks.get(name)
            if bookmark is None or not bookmark.is_open:
                log.error("Bookmark '%s' is not open in session %s", name, self._session_id)
                return False
            end_time = self._clock()
            if end_time < bookmark.start_time:
                log.error("Bookmark '%s' would end before it started; keeping it open", name)
                return False
            bookmark.end_time = end_time
            return True

    # -------------------------
    # Hand-off to indexing
    # -------------------------
    def snapshot(self) -> Optional[Session]:
        """The recorded session, or None while events are still being ingested."""
        with self._lock:
            if self._active:
                log.error("Session %s is still recording; end it before indexing", self._session_id)
                return None
            if self._session_id is None:
                return None
            bookmarks = [dataclasses.replace(b) for b in self._bookmarks.values()]
            return Session(session_id=self._session_id, events=list(self._events), bookmarks=bookmarks)

    def tagged_events(self) -> List[SensorEvent]:
        """
        Archive form of the session: for each closed bookmark, every event inside
        its time range re-tagged with the bookmark name and session id. An event
        covered by two bookmarks appears once per bookmark.
        """
        session = self.snapshot()
        if session is None:
            return []

        out: List[SensorEvent] = []
        for bookmark in session.bookmarks:
            if bookmark.is_open:
                log.warning("Bookmark '%s' was never closed; its events are not archived", bookmark.name)
                continue
            for ev in session.events:
                if bookmark.contains(ev):
                    out.append(
                        dataclasses.replace(ev, bookmark_name=bookmark.name, session_id=session.session_id)
                    )
        return out

    def attach(self, bus: EventBus) -> None:
        """Subscribe this store to the recording topics of bus."""
        bus.subscribe(TOPIC_SENSOR_READING, self.add_event)
        bus.subscribe(TOPIC_START_SESSION, self.start_session)
        bus.subscribe(TOPIC_END_SESSION, self.end_session)
        bus.subscribe(TOPIC_ADD_BOOKMARK, self.add_bookmark)
        bus.subscribe(TOPIC_CLOSE_BOOKMARK, self.close_bookmark)
