"""
Attendance service module.

Ties the core together for callers (HTTP API, camera loop):
- Enrollment of new identities from a still photo
- Frame processing: extract, match, admit or suppress
- Registry and ledger persistence after every mutation
"""

import threading
import uuid
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
from .config import Config
from .errors import EnrollmentError, NoFaceDetectedError
from .extractor import DescriptorExtractor, ImageInput
from .ledger import AttendanceLedger, ExportRow
from .models import AttendanceEvent, CheckInOutcome, Identity
from .recognition.descriptor import Descriptor
from .recognition.matching import MATCH_THRESHOLD, find_best_match
from .registry import Registry
from .storage import PersistenceGateway
from .logging_config import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def local_now() -> datetime:
    return datetime.now().astimezone()


class AttendanceService:
    """
    Entry point exported to callers.

    The registry and ledger are owned here and passed nowhere else;
    call load() once at start-up to populate them from the gateway.
    """

    def __init__(
        self,
        extractor: DescriptorExtractor,
        gateway: PersistenceGateway,
        match_threshold: float = MATCH_THRESHOLD,
        dedup_window: timedelta = timedelta(hours=1),
        clock: Clock = local_now,
    ):
        """
        Initialize service.

        Args:
            extractor: Descriptor extractor for photos and frames
            gateway: Persistence backend
            match_threshold: Distance below which a face is accepted
            dedup_window: Repeat check-in suppression window
            clock: Source of the current instant
        """
        self.extractor = extractor
        self.gateway = gateway
        self.match_threshold = match_threshold
        self.clock = clock
        self.registry = Registry()
        self.ledger = AttendanceLedger(dedup_window)
        self._persist_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: Config,
        extractor: DescriptorExtractor,
        gateway: PersistenceGateway
    ) -> 'AttendanceService':
        return cls(
            extractor,
            gateway,
            match_threshold=config.match_threshold,
            dedup_window=timedelta(seconds=config.dedup_window_seconds),
        )

    def load(self) -> None:
        """Populate registry and ledger from the gateway."""
        identities = self.gateway.load_identities()
        events = self.gateway.load_events()

        self.registry.load(identities)
        self.ledger.load(events)

        logger.info(
            f'Loaded {len(self.registry)} identities '
            f'({len(self.registry.matchable_subset())} matchable) '
            f'and {len(self.ledger)} attendance events'
        )

    # Enrollment

    def enroll(
        self,
        display_name: str,
        still_image: ImageInput,
        photo_url: Optional[str] = None
    ) -> Identity:
        """
        Enroll a new identity from a photo.

        Args:
            display_name: Name shown in reports
            still_image: Encoded photo bytes or BGR array
            photo_url: Reference to the enrollment photo shown in listings

        Returns:
            The stored identity

        Raises:
            EnrollmentError: If the name is empty
            NoFaceDetectedError: If no usable face was found in the photo
            ExtractionFailure: If the extractor itself failed
        """
        display_name = (display_name or '').strip()
        if not display_name:
            raise EnrollmentError('Display name must not be empty')

        descriptor = self.extractor.extract_from_still_image(still_image)
        if descriptor is None:
            logger.warning(f'No face detected in enrollment photo for {display_name}')
            raise NoFaceDetectedError(
                'No clear face found in this photo; retry with better lighting '
                'and the face centred'
            )

        identity = Identity(
            id=str(uuid.uuid4()),
            display_name=display_name,
            descriptor=descriptor,
            created_at=self.clock(),
            photo_url=photo_url,
        )
        self.registry.add_or_replace(identity)
        self._save_identities()

        logger.info(f'✅ Enrolled {display_name} (ID: {identity.id})')
        return identity

    def delete_identity(self, identity_id: str) -> None:
        """Remove an identity. Its past attendance events are kept."""
        removed = self.registry.remove(identity_id)
        if removed is None:
            logger.debug(f'Delete of unknown identity {identity_id} ignored')
            return

        self._save_identities()
        logger.info(f'Deleted identity {removed.display_name} (ID: {identity_id})')

    def list_identities(self) -> List[Identity]:
        return self.registry.list()

    # Check-in

    def process_frame(self, frame: ImageInput) -> CheckInOutcome:
        """
        Identify the face in a live frame and record attendance.

        Returns:
            CheckInOutcome (admitted, already checked in, unknown, no face)

        Raises:
            ExtractionFailure: If the extractor failed on this frame
        """
        descriptor = self.extractor.extract_from_live_frame(frame)
        if descriptor is None:
            return CheckInOutcome.no_face()
        return self.check_in(descriptor)

    def check_in(self, descriptor: Descriptor, now: Optional[datetime] = None) -> CheckInOutcome:
        """
        Match an already extracted descriptor and record attendance.

        Args:
            descriptor: Descriptor of the captured face
            now: Instant of the capture (defaults to the service clock)
        """
        match = find_best_match(
            descriptor, self.registry.matchable_subset(), self.match_threshold
        )
        if match is None:
            logger.debug('❓ Unknown face')
            return CheckInOutcome.unknown()

        event = self.ledger.admit(match.identity, now or self.clock())
        if event is None:
            logger.info(f'⚠️ Already registered: {match.identity.display_name}')
            return CheckInOutcome.already_checked_in(match.identity, match.distance)

        self._save_events()
        logger.info(
            f'✅ Check-in: {match.identity.display_name} '
            f'(distance: {match.distance:.3f})'
        )
        return CheckInOutcome.admitted(event, match.identity, match.distance)

    # Reports

    def attendance_for_day(self, day_key: date) -> List[AttendanceEvent]:
        return self.ledger.for_day(day_key)

    def export_all_events_as_rows(self) -> List[ExportRow]:
        """(name, day, time, identity_id) rows for CSV or other export."""
        return self.ledger.export_rows()

    def attendance_stats(self, day_key: date, top: int = 5) -> Dict[str, Any]:
        """
        Summary numbers for an external report.

        Args:
            day_key: Day for the present count
            top: Number of most frequent attendees to include

        Returns:
            Dict with enrolled, totalPresent, uniqueMembers,
            topAttendees and byDate
        """
        events = self.ledger.events()

        by_date = Counter(e.day_key.isoformat() for e in events)
        frequency = Counter(e.identity_name_snapshot for e in events)

        return {
            'enrolled': len(self.registry),
            'totalPresent': by_date.get(day_key.isoformat(), 0),
            'uniqueMembers': len({e.identity_id for e in events}),
            'topAttendees': [
                {'name': name, 'count': count}
                for name, count in frequency.most_common(top)
            ],
            'byDate': dict(sorted(by_date.items())),
        }

    def clear_all(self) -> None:
        """Drop every identity and event, in memory and in storage."""
        with self._persist_lock:
            self.registry.clear()
            self.ledger.clear()
            self.gateway.clear_all()
        logger.warning('All identities and attendance events cleared')

    # Persistence

    def _save_identities(self) -> None:
        with self._persist_lock:
            self.gateway.save_identities(self.registry.list())

    def _save_events(self) -> None:
        with self._persist_lock:
            self.gateway.save_events(self.ledger.events())
