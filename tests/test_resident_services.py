import uuid
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import select

from app.models.mailroom import Mailroom
from app.models.resident import Resident, ResidentStatus
from app.schemas.resident import MissingResidentReport, ResidentCreate, RosterRow
from app.services.event import EventType
from app.services.resident import Residents


@pytest.fixture(autouse=True)
def _no_events():
    with patch("app.services.resident.publish_event") as mock:
        yield mock


def _row(first, last, resident_id, email=None):
    return RosterRow(
        first_name=first, last_name=last, resident_id=resident_id, email=email
    )


def _active(db_session, mailroom):
    db_session.expire_all()
    return db_session.scalars(
        select(Resident).where(
            Resident.mailroom_id == mailroom.id,
            Resident.status == ResidentStatus.ACTIVE,
        )
    ).all()


class TestResidents:
    def test_add(self, db_session, mailroom, staff, _no_events):
        res = Residents.add(
            db_session,
            mailroom.id,
            ResidentCreate(
                first_name="Alan",
                last_name="Turing",
                student_id="S42",
                email="alan@test.edu",
                added_by=staff.id,
            ),
        )
        assert res.status == ResidentStatus.ACTIVE
        assert res.added_by == staff.id
        _no_events.assert_called_once()

    def test_add_duplicate_active_student(self, db_session, mailroom, resident):
        with pytest.raises(HTTPException) as exc:
            Residents.add(
                db_session,
                mailroom.id,
                ResidentCreate(first_name="X", last_name="Y", student_id="S1001"),
            )
        assert exc.value.status_code == 409

    def test_remove_then_readd(self, db_session, mailroom, resident):
        removed = Residents.remove(db_session, mailroom.id, resident.id)
        assert removed.status == ResidentStatus.REMOVED_INDIVIDUAL
        again = Residents.add(
            db_session,
            mailroom.id,
            ResidentCreate(first_name="Ada", last_name="King", student_id="S1001"),
        )
        assert again.id != resident.id

    def test_remove_twice(self, db_session, mailroom, resident):
        Residents.remove(db_session, mailroom.id, resident.id)
        with pytest.raises(HTTPException) as exc:
            Residents.remove(db_session, mailroom.id, resident.id)
        assert exc.value.status_code == 404

    def test_list_search(self, db_session, mailroom, resident):
        found = Residents.list(
            db_session, mailroom.id, None, "love", "last_name", "asc", 50, 0
        )
        assert [r.id for r in found] == [resident.id]
        assert (
            Residents.list(
                db_session, mailroom.id, None, "nobody", "last_name", "asc", 50, 0
            )
            == []
        )


class TestRosterSync:
    def test_counts(self, db_session, mailroom, resident):
        keep = Resident(
            mailroom_id=mailroom.id,
            first_name="Grace",
            last_name="Hopper",
            student_id="S2",
            status=ResidentStatus.ACTIVE,
        )
        gone = Resident(
            mailroom_id=mailroom.id,
            first_name="Old",
            last_name="Timer",
            student_id="S3",
            email="old@test.edu",
            status=ResidentStatus.ACTIVE,
        )
        db_session.add_all([keep, gone])
        db_session.commit()

        counts = Residents.sync_roster(
            db_session,
            mailroom.id,
            [
                _row("Ada", "King", "S1001", "ada@test.edu"),
                _row("Grace", "Hopper", "S2"),
                _row("New", "Person", "S4", "new@test.edu"),
            ],
        )

        assert counts == {
            "total": 3,
            "new": 1,
            "unchanged": 1,
            "updated": 1,
            "removed": 1,
        }
        active = {r.student_id: r for r in _active(db_session, mailroom)}
        assert set(active) == {"S1001", "S2", "S4"}
        assert active["S1001"].last_name == "King"
        db_session.refresh(gone)
        assert gone.status == ResidentStatus.REMOVED_BULK

    def test_changed_email_replaces_resident(self, db_session, mailroom, resident):
        counts = Residents.sync_roster(
            db_session,
            mailroom.id,
            [_row("Ada", "Lovelace", "S1001", "ada@new.edu")],
        )
        assert counts["new"] == 1
        assert counts["removed"] == 1
        active = _active(db_session, mailroom)
        assert len(active) == 1
        assert active[0].email == "ada@new.edu"
        assert active[0].id != resident.id

    def test_missing_fields_name_the_row(self, db_session, mailroom):
        with pytest.raises(HTTPException) as exc:
            Residents.sync_roster(
                db_session,
                mailroom.id,
                [_row("Ada", None, "S1")],
            )
        assert exc.value.status_code == 400
        assert "Problematic entry" in exc.value.detail
        assert "S1" in exc.value.detail

    def test_duplicate_ids_rejected(self, db_session, mailroom):
        with pytest.raises(HTTPException) as exc:
            Residents.sync_roster(
                db_session,
                mailroom.id,
                [_row("A", "B", "S1"), _row("C", "D", "S1")],
            )
        assert exc.value.status_code == 400

    def test_other_mailrooms_untouched(self, db_session, organization, mailroom, resident):
        other = Mailroom(organization_id=organization.id, name="South", slug="south")
        db_session.add(other)
        db_session.commit()
        Residents.sync_roster(db_session, other.id, [_row("X", "Y", "S9")])
        db_session.refresh(resident)
        assert resident.status == ResidentStatus.ACTIVE


class TestReportMissing:
    def _report(self, staff, **overrides):
        data = {
            "name": "Grace Hopper",
            "email": "grace@test.edu",
            "reported_by": staff.id,
        }
        data.update(overrides)
        return MissingResidentReport(**data)

    def test_publishes_report(self, db_session, mailroom, staff, _no_events):
        Residents.report_missing(db_session, mailroom.id, self._report(staff))

        _no_events.assert_called_once()
        assert _no_events.call_args.args[0] == EventType.missing_resident_reported
        kwargs = _no_events.call_args.kwargs
        assert kwargs["mailroom_id"] == mailroom.id
        assert kwargs["actor_id"] == staff.id
        assert kwargs["payload"] == {"name": "Grace Hopper", "email": "grace@test.edu"}

    def test_requires_admin_email(self, db_session, mailroom, staff, _no_events):
        mailroom.admin_email = None
        db_session.commit()
        with pytest.raises(HTTPException) as exc:
            Residents.report_missing(db_session, mailroom.id, self._report(staff))
        assert exc.value.status_code == 400
        _no_events.assert_not_called()

    def test_unknown_reporter(self, db_session, mailroom, staff, _no_events):
        report = self._report(staff, reported_by=uuid.uuid4())
        with pytest.raises(HTTPException) as exc:
            Residents.report_missing(db_session, mailroom.id, report)
        assert exc.value.status_code == 404
        _no_events.assert_not_called()

    def test_reporter_from_other_mailroom(
        self, db_session, organization, mailroom, staff, _no_events
    ):
        other = Mailroom(
            organization_id=organization.id,
            name="South",
            slug="south",
            admin_email="south@test.edu",
        )
        db_session.add(other)
        db_session.commit()
        with pytest.raises(HTTPException) as exc:
            Residents.report_missing(db_session, other.id, self._report(staff))
        assert exc.value.status_code == 404

    def test_name_and_email_required(self, staff):
        with pytest.raises(ValidationError):
            MissingResidentReport(name="", email="grace@test.edu", reported_by=staff.id)
        with pytest.raises(ValidationError):
            MissingResidentReport(name="Grace", email="nope", reported_by=staff.id)
