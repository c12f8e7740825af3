"""
Domain records.

Identities are enrolled people, attendance events are admitted
check-ins, and CheckInOutcome is what a processed frame resolves to.
"""

import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from .recognition.descriptor import Descriptor


def to_local(timestamp: datetime) -> datetime:
    """
    Aware timestamp in the local zone.

    Naive timestamps are taken to already be local time.
    """
    return timestamp.astimezone()


def day_key_for(timestamp: datetime) -> date:
    """Calendar date of a timestamp in local time."""
    return to_local(timestamp).date()


@dataclass(frozen=True)
class Identity:
    """
    Enrolled person.

    An identity without a descriptor is kept in the registry but is
    never considered for matching.
    """

    id: str
    display_name: str
    descriptor: Optional[Descriptor]
    created_at: datetime
    photo_url: Optional[str] = None

    @property
    def has_descriptor(self) -> bool:
        return self.descriptor is not None


@dataclass(frozen=True)
class AttendanceEvent:
    """
    Admitted check-in.

    identity_id is a weak reference: the identity may be deleted later
    while the event stays, which is why the name is copied at creation.
    """

    id: str
    identity_id: str
    identity_name_snapshot: str
    timestamp: datetime
    day_key: date


class CheckInStatus(str, enum.Enum):
    ADMITTED = 'admitted'
    ALREADY_CHECKED_IN = 'already_checked_in'
    UNKNOWN = 'unknown'
    NO_FACE_DETECTED = 'no_face_detected'


@dataclass(frozen=True)
class CheckInOutcome:
    """Result of processing one frame."""

    status: CheckInStatus
    identity: Optional[Identity] = None
    event: Optional[AttendanceEvent] = None
    distance: Optional[float] = None

    @classmethod
    def admitted(cls, event: AttendanceEvent, identity: Identity, distance: float) -> 'CheckInOutcome':
        return cls(CheckInStatus.ADMITTED, identity, event, distance)

    @classmethod
    def already_checked_in(cls, identity: Identity, distance: float) -> 'CheckInOutcome':
        return cls(CheckInStatus.ALREADY_CHECKED_IN, identity, None, distance)

    @classmethod
    def unknown(cls) -> 'CheckInOutcome':
        return cls(CheckInStatus.UNKNOWN)

    @classmethod
    def no_face(cls) -> 'CheckInOutcome':
        return cls(CheckInStatus.NO_FACE_DETECTED)
