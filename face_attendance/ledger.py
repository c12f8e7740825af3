"""
Attendance ledger module.

Keeps the admitted attendance events and decides whether a new check-in
is admitted or suppressed as a duplicate:
- Same identity
- Same calendar day
- Less than the dedup window (1 hour) since an earlier event
"""

import dataclasses
import threading
import uuid
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
from .models import AttendanceEvent, Identity, day_key_for, to_local
from .logging_config import get_logger

logger = get_logger(__name__)

DEDUP_WINDOW = timedelta(hours=1)

ExportRow = Tuple[str, str, str, str]


class AttendanceLedger:
    """
    Append-only record of attendance events.

    Events are held most-recent-first. A per-(identity, day) index keeps
    the duplicate check proportional to that identity's events for the
    day. All mutations and the admit decision share one lock, so two
    concurrent check-ins for the same identity cannot both be admitted.
    """

    def __init__(self, dedup_window: timedelta = DEDUP_WINDOW):
        """
        Initialize ledger.

        Args:
            dedup_window: Minimum spacing between two admitted events of
                the same identity on the same day
        """
        self.dedup_window = dedup_window
        self._lock = threading.Lock()
        self._events: List[AttendanceEvent] = []
        self._by_identity_day: Dict[Tuple[str, date], List[AttendanceEvent]] = {}

    def admit(self, identity: Identity, now: datetime) -> Optional[AttendanceEvent]:
        """
        Record a check-in unless it duplicates a recent one.

        Args:
            identity: Matched identity
            now: Instant of the capture

        Returns:
            The new event, or None when the identity already checked in
            within the dedup window on the same day
        """
        now = to_local(now)
        day_key = day_key_for(now)

        with self._lock:
            for event in self._by_identity_day.get((identity.id, day_key), []):
                if now - event.timestamp < self.dedup_window:
                    logger.debug(
                        f'Identity {identity.id} already checked in at '
                        f'{event.timestamp.isoformat()}'
                    )
                    return None

            event = AttendanceEvent(
                id=str(uuid.uuid4()),
                identity_id=identity.id,
                identity_name_snapshot=identity.display_name,
                timestamp=now,
                day_key=day_key,
            )
            self._events.insert(0, event)
            self._index(event)

        logger.info(f'✅ Attendance recorded for {identity.display_name} ({day_key.isoformat()})')
        return event

    def events(self) -> List[AttendanceEvent]:
        """Snapshot of all events, most recent first."""
        with self._lock:
            return list(self._events)

    def for_day(self, day_key: date) -> List[AttendanceEvent]:
        """Events of one calendar day, most recent first."""
        with self._lock:
            return [e for e in self._events if e.day_key == day_key]

    def load(self, events: Iterable[AttendanceEvent]) -> None:
        """
        Replace the ledger contents.

        Duplicate event ids keep the first occurrence; the result is
        ordered most recent first.
        """
        seen = set()
        loaded: List[AttendanceEvent] = []
        for event in events:
            if event.id in seen:
                continue
            seen.add(event.id)
            if event.timestamp.tzinfo is None:
                event = dataclasses.replace(event, timestamp=to_local(event.timestamp))
            loaded.append(event)

        loaded.sort(key=lambda e: e.timestamp, reverse=True)

        with self._lock:
            self._events = loaded
            self._by_identity_day = {}
            for event in reversed(loaded):
                self._index(event)

        logger.debug(f'Ledger loaded with {len(loaded)} events')

    def clear(self) -> None:
        with self._lock:
            self._events = []
            self._by_identity_day = {}

    def export_rows(self) -> List[ExportRow]:
        """
        Flatten events for report export.

        Returns:
            (name, day, time, identity_id) tuples, most recent first
        """
        with self._lock:
            events = list(self._events)

        return [
            (
                e.identity_name_snapshot,
                e.day_key.isoformat(),
                _local_time(e.timestamp),
                e.identity_id,
            )
            for e in events
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def _index(self, event: AttendanceEvent) -> None:
        key = (event.identity_id, event.day_key)
        self._by_identity_day.setdefault(key, []).append(event)


def _local_time(timestamp: datetime) -> str:
    return to_local(timestamp).strftime('%H:%M:%S')
