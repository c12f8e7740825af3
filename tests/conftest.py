from __future__ import annotations

from datetime import datetime
from typing import List, Optional

import pytest

from face_attendance.models import AttendanceEvent, Identity
from face_attendance.recognition.descriptor import DESCRIPTOR_LENGTH, Descriptor
from face_attendance.service import AttendanceService


def vec(first: float = 0.0, base: float = 0.0) -> Descriptor:
    """Descriptor with every component set to base except the first one."""
    values = [base] * DESCRIPTOR_LENGTH
    values[0] = base + first
    return Descriptor(values)


def make_identity(
    identity_id: str,
    name: Optional[str] = None,
    descriptor: Optional[Descriptor] = None,
    created_at: datetime = datetime(2025, 3, 1, 9, 0),
) -> Identity:
    return Identity(
        id=identity_id,
        display_name=name or identity_id,
        descriptor=descriptor,
        created_at=created_at,
    )


class InMemoryGateway:
    def __init__(self, identities=None, events=None):
        self.identities: List[Identity] = list(identities or [])
        self.events: List[AttendanceEvent] = list(events or [])
        self.identity_saves = 0
        self.event_saves = 0
        self.cleared = False

    def load_identities(self):
        return list(self.identities)

    def save_identities(self, identities):
        self.identities = list(identities)
        self.identity_saves += 1

    def load_events(self):
        return list(self.events)

    def save_events(self, events):
        self.events = list(events)
        self.event_saves += 1

    def clear_all(self):
        self.identities = []
        self.events = []
        self.cleared = True


class ScriptedExtractor:
    """Returns queued results in order; an Exception instance is raised instead."""

    def __init__(self):
        self.still_results = []
        self.frame_results = []

    def extract_from_still_image(self, image):
        return self._next(self.still_results)

    def extract_from_live_frame(self, frame):
        return self._next(self.frame_results)

    @staticmethod
    def _next(queue):
        result = queue.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def extractor():
    return ScriptedExtractor()


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 2, 10, 0))


@pytest.fixture
def service(extractor, gateway, clock):
    svc = AttendanceService(extractor, gateway, clock=clock)
    svc.load()
    return svc
