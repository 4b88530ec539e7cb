from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from smarthome_quantise.data_processing.schemas import SensorEvent


def window_duration(hours: int = 0, minutes: int = 0, seconds: int = 0) -> timedelta:
    return timedelta(hours=int(hours), minutes=int(minutes), seconds=int(seconds))


def session_bounds(events: Sequence[SensorEvent]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Earliest and latest timestamps, or (None, None) for no events."""
    if not events:
        return None, None
    stamps = [ev.timestamp for ev in events]
    return min(stamps), max(stamps)


def _next_boundary(boundary: datetime, duration: timedelta) -> datetime:
    # Boundaries live on whole seconds: the previous boundary's date and
    # h/m/s components plus the duration, sub-second part dropped.
    return boundary - timedelta(microseconds=boundary.microsecond) + duration


def sample_windows(
    events: Sequence[SensorEvent],
    start_time: datetime,
    duration: timedelta,
) -> List[List[SensorEvent]]:
    """Split ascending events into non-overlapping windows of roughly one duration each.

    An event at or before the current boundary joins the open bucket. A later
    event closes the bucket and opens the next one, and the boundary moves on
    by exactly one duration from where it was. After a gap the boundary can
    trail the new bucket's first event, so the next event closes that bucket
    as well. Empty buckets are never emitted, so consecutive windows need not
    be adjacent or evenly spaced in time.

    Returns [] for a non-positive duration; reporting that is up to the caller.
    """
    if duration <= timedelta(0):
        return []

    boundary = _next_boundary(start_time, duration)
    windows: List[List[SensorEvent]] = []
    bucket: List[SensorEvent] = []

    for ev in events:
        if ev.timestamp <= boundary:
            bucket.append(ev)
            continue

        if bucket:
            windows.append(bucket)
        bucket = [ev]
        boundary = _next_boundary(boundary, duration)

    if bucket:
        windows.append(bucket)
    return windows
