from __future__ import annotations

import logging

from smarthome_quantise.data_processing.sources import ReadingTable
from smarthome_quantise.recording.event_store import EventStore

log = logging.getLogger(__name__)


def archive_session(store: EventStore, table: ReadingTable) -> int:
    """
    Persist the finished session held by store into table, one row per
    (bookmark, reading inside that bookmark). Readings outside every
    closed bookmark are not archived. Returns the number of rows written.
    """
    if store.is_active:
        log.error("Cannot archive session %s while it is still recording", store.session_id)
        return 0

    rows = store.tagged_events()
    if not rows:
        log.warning("Session %s has no bookmarked readings to archive", store.session_id)
        return 0

    table.create()
    return table.insert_events(rows)
