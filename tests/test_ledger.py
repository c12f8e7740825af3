import dataclasses
import threading
from datetime import date, datetime, timedelta, timezone

from face_attendance.ledger import AttendanceLedger
from face_attendance.models import AttendanceEvent, day_key_for

from conftest import make_identity

T0 = datetime(2025, 3, 2, 9, 0)


def test_repeat_within_an_hour_is_suppressed():
    ledger = AttendanceLedger()
    ana = make_identity("ana", name="Ana")

    first = ledger.admit(ana, T0)
    second = ledger.admit(ana, T0 + timedelta(minutes=30))

    assert first is not None
    assert second is None
    assert len(ledger) == 1


def test_repeat_after_an_hour_is_admitted():
    ledger = AttendanceLedger()
    ana = make_identity("ana")

    ledger.admit(ana, T0)
    assert ledger.admit(ana, T0 + timedelta(minutes=30)) is None
    third = ledger.admit(ana, T0 + timedelta(minutes=61))

    assert third is not None
    assert third.timestamp == (T0 + timedelta(minutes=61)).astimezone()


def test_exactly_one_hour_later_is_admitted():
    ledger = AttendanceLedger()
    ana = make_identity("ana")

    ledger.admit(ana, T0)

    assert ledger.admit(ana, T0 + timedelta(hours=1)) is not None


def test_next_calendar_day_is_admitted_inside_the_hour():
    ledger = AttendanceLedger()
    ana = make_identity("ana")
    late = datetime(2025, 3, 2, 23, 50)

    first = ledger.admit(ana, late)
    second = ledger.admit(ana, late + timedelta(minutes=20))

    assert first.day_key == date(2025, 3, 2)
    assert second is not None
    assert second.day_key == date(2025, 3, 3)


def test_other_identities_are_not_suppressed():
    ledger = AttendanceLedger()

    assert ledger.admit(make_identity("ana"), T0) is not None
    assert ledger.admit(make_identity("bia"), T0) is not None


def test_event_fields():
    ledger = AttendanceLedger()
    ana = make_identity("ana", name="Ana")

    event = ledger.admit(ana, T0)

    assert event.identity_id == "ana"
    assert event.identity_name_snapshot == "Ana"
    assert event.timestamp == T0.astimezone()
    assert event.timestamp.tzinfo is not None
    assert event.day_key == T0.date()
    assert event.id


def test_event_ids_are_unique():
    ledger = AttendanceLedger()

    ids = {ledger.admit(make_identity(f"p{n}"), T0).id for n in range(50)}

    assert len(ids) == 50


def test_name_snapshot_survives_rename():
    ledger = AttendanceLedger()
    ana = make_identity("ana", name="Ana")
    event = ledger.admit(ana, T0)

    renamed = dataclasses.replace(ana, display_name="Ana Maria")
    ledger.admit(renamed, T0 + timedelta(hours=2))

    assert event.identity_name_snapshot == "Ana"
    assert [e.identity_name_snapshot for e in ledger.events()] == ["Ana Maria", "Ana"]


def test_events_are_most_recent_first():
    ledger = AttendanceLedger()

    ledger.admit(make_identity("ana"), T0)
    ledger.admit(make_identity("bia"), T0 + timedelta(minutes=5))

    assert [e.identity_id for e in ledger.events()] == ["bia", "ana"]


def test_for_day_filters_by_day_key():
    ledger = AttendanceLedger()
    ledger.admit(make_identity("ana"), T0)
    ledger.admit(make_identity("bia"), T0 + timedelta(days=1))

    assert [e.identity_id for e in ledger.for_day(T0.date())] == ["ana"]
    assert ledger.for_day(date(2020, 1, 1)) == []


def test_custom_window():
    ledger = AttendanceLedger(dedup_window=timedelta(minutes=10))
    ana = make_identity("ana")

    ledger.admit(ana, T0)

    assert ledger.admit(ana, T0 + timedelta(minutes=9)) is None
    assert ledger.admit(ana, T0 + timedelta(minutes=10)) is not None


def test_load_dedups_and_sorts_and_keeps_suppressing():
    older = AttendanceEvent("e1", "ana", "Ana", T0, T0.date())
    newer = AttendanceEvent("e2", "bia", "Bia", T0 + timedelta(minutes=5), T0.date())
    ledger = AttendanceLedger()

    ledger.load([older, newer, older])

    assert [e.id for e in ledger.events()] == ["e2", "e1"]
    assert ledger.admit(make_identity("ana"), T0 + timedelta(minutes=20)) is None


def test_clear():
    ledger = AttendanceLedger()
    ana = make_identity("ana")
    ledger.admit(ana, T0)

    ledger.clear()

    assert ledger.events() == []
    assert ledger.admit(ana, T0 + timedelta(minutes=1)) is not None


def test_export_rows():
    ledger = AttendanceLedger()
    ledger.admit(make_identity("ana", name="Ana"), datetime(2025, 3, 2, 9, 15, 30))

    assert ledger.export_rows() == [("Ana", "2025-03-02", "09:15:30", "ana")]


def test_day_key_uses_local_time_for_aware_timestamps():
    aware = datetime(2025, 3, 2, 23, 30, tzinfo=timezone.utc)

    assert day_key_for(aware) == aware.astimezone().date()


def test_concurrent_admits_for_same_identity_admit_exactly_one():
    ledger = AttendanceLedger()
    ana = make_identity("ana")
    barrier = threading.Barrier(8)
    results = []
    lock = threading.Lock()

    def attempt():
        barrier.wait()
        event = ledger.admit(ana, T0)
        with lock:
            results.append(event)

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(1 for r in results if r is not None) == 1
    assert len(ledger) == 1


def test_naive_and_aware_instants_can_be_mixed():
    ledger = AttendanceLedger()
    ana = make_identity("ana")
    aware = datetime(2025, 3, 2, 9, 0).astimezone()

    assert ledger.admit(ana, aware) is not None
    assert ledger.admit(ana, datetime(2025, 3, 2, 9, 20)) is None
    assert ledger.admit(ana, datetime(2025, 3, 2, 11, 0)) is not None


def test_load_accepts_mixed_timestamps():
    naive = AttendanceEvent("e1", "ana", "Ana", T0, T0.date())
    aware = AttendanceEvent(
        "e2", "bia", "Bia", (T0 + timedelta(minutes=5)).astimezone(), T0.date()
    )
    ledger = AttendanceLedger()

    ledger.load([naive, aware])

    assert [e.id for e in ledger.events()] == ["e2", "e1"]
    assert all(e.timestamp.tzinfo is not None for e in ledger.events())
    assert ledger.admit(make_identity("ana"), (T0 + timedelta(minutes=10)).astimezone()) is None
