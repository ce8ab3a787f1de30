import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from fastapi import HTTPException

from app.models.invitation import Invitation, InvitationStatus
from app.models.mailroom import (
    Mailroom,
    Organization,
    Profile,
    ProfileStatus,
    UserRole,
)
from app.schemas.invitation import InvitationCreate
from app.services.common import utcnow
from app.services.invitation import Invitations, Profiles


@pytest.fixture(autouse=True)
def _no_events():
    with patch("app.services.invitation.publish_event") as mock:
        yield mock


def _invite(db_session, inviter, mailroom, email="new@test.edu", role=UserRole.user):
    return Invitations.create(
        db_session,
        InvitationCreate(
            email=email,
            role=role,
            organization_id=mailroom.organization_id,
            mailroom_id=mailroom.id,
            invited_by=inviter.id,
        ),
    )


class TestCreateInvitation:
    def test_manager_invites_user(self, db_session, manager, mailroom, _no_events):
        inv = _invite(db_session, manager, mailroom, email="New@Test.edu")
        assert inv.status == InvitationStatus.PENDING
        assert inv.email == "new@test.edu"
        assert inv.used is False
        _no_events.assert_called_once()

    def test_user_cannot_invite(self, db_session, staff, mailroom):
        with pytest.raises(HTTPException) as exc:
            _invite(db_session, staff, mailroom)
        assert exc.value.status_code == 403

    def test_manager_cannot_invite_admin(self, db_session, manager, mailroom):
        with pytest.raises(HTTPException) as exc:
            _invite(db_session, manager, mailroom, role=UserRole.admin)
        assert exc.value.status_code == 403

    def test_admin_can_invite_admin(self, db_session, admin, mailroom):
        inv = _invite(db_session, admin, mailroom, role=UserRole.admin)
        assert inv.role == UserRole.admin

    def test_manager_limited_to_own_organization(self, db_session, manager):
        org = Organization(name="Other", slug="other")
        db_session.add(org)
        db_session.commit()
        room = Mailroom(organization_id=org.id, name="Far", slug="far")
        db_session.add(room)
        db_session.commit()
        with pytest.raises(HTTPException) as exc:
            _invite(db_session, manager, room)
        assert exc.value.status_code == 403

    def test_mailroom_must_belong_to_organization(
        self, db_session, admin, organization
    ):
        other = Organization(name="Other", slug="other")
        db_session.add(other)
        db_session.commit()
        room = Mailroom(organization_id=other.id, name="Far", slug="far")
        db_session.add(room)
        db_session.commit()
        with pytest.raises(HTTPException) as exc:
            Invitations.create(
                db_session,
                InvitationCreate(
                    email="x@test.edu",
                    organization_id=organization.id,
                    mailroom_id=room.id,
                    invited_by=admin.id,
                ),
            )
        assert exc.value.status_code == 400
        assert exc.value.detail == "Invalid mailroom"

    def test_duplicate_pending(self, db_session, manager, mailroom):
        _invite(db_session, manager, mailroom)
        with pytest.raises(HTTPException) as exc:
            _invite(db_session, manager, mailroom)
        assert exc.value.status_code == 409


class TestCancelInvitation:
    def test_creator_cancels(self, db_session, manager, mailroom):
        inv = _invite(db_session, manager, mailroom)
        cancelled = Invitations.cancel(db_session, inv.id, manager.id)
        assert cancelled.status == InvitationStatus.CANCELLED

    def test_other_manager_cannot_cancel(
        self, db_session, manager, organization, mailroom
    ):
        inv = _invite(db_session, manager, mailroom)
        second = Profile(
            email="second-manager@test.edu",
            role=UserRole.manager,
            organization_id=organization.id,
            mailroom_id=mailroom.id,
            status=ProfileStatus.ACTIVE,
        )
        db_session.add(second)
        db_session.commit()
        with pytest.raises(HTTPException) as exc:
            Invitations.cancel(db_session, inv.id, second.id)
        assert exc.value.status_code == 403

    def test_admin_cancels_any(self, db_session, manager, admin, mailroom):
        inv = _invite(db_session, manager, mailroom)
        assert Invitations.cancel(db_session, inv.id, admin.id).status == (
            InvitationStatus.CANCELLED
        )

    def test_cancel_non_pending(self, db_session, manager, mailroom):
        inv = _invite(db_session, manager, mailroom)
        Invitations.cancel(db_session, inv.id, manager.id)
        with pytest.raises(HTTPException) as exc:
            Invitations.cancel(db_session, inv.id, manager.id)
        assert exc.value.status_code == 409


class TestAcceptInvitation:
    def test_accept_creates_profile(self, db_session, manager, mailroom):
        inv = _invite(db_session, manager, mailroom, role=UserRole.manager)
        profile = Invitations.accept(db_session, inv.id, "NEW@test.edu")
        assert profile.email == "new@test.edu"
        assert profile.role == UserRole.manager
        assert profile.mailroom_id == mailroom.id
        db_session.refresh(inv)
        assert inv.status == InvitationStatus.RESOLVED
        assert inv.used is True

    def test_wrong_email(self, db_session, manager, mailroom):
        inv = _invite(db_session, manager, mailroom)
        with pytest.raises(HTTPException) as exc:
            Invitations.accept(db_session, inv.id, "someone@else.edu")
        assert exc.value.status_code == 403
        db_session.refresh(inv)
        assert inv.status == InvitationStatus.PENDING
        assert inv.used is False

    def test_accept_twice(self, db_session, manager, mailroom):
        inv = _invite(db_session, manager, mailroom)
        Invitations.accept(db_session, inv.id, "new@test.edu")
        with pytest.raises(HTTPException) as exc:
            Invitations.accept(db_session, inv.id, "new@test.edu")
        assert exc.value.status_code == 409

    def test_expired(self, db_session, manager, mailroom):
        inv = _invite(db_session, manager, mailroom)
        inv.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        with pytest.raises(HTTPException) as exc:
            Invitations.accept(db_session, inv.id, "new@test.edu")
        assert exc.value.status_code == 410
        db_session.refresh(inv)
        assert inv.status == InvitationStatus.FAILED

    def test_unknown(self, db_session):
        with pytest.raises(HTTPException) as exc:
            Invitations.accept(db_session, uuid.uuid4(), "x@test.edu")
        assert exc.value.status_code == 404


class TestExpireStale:
    def test_marks_expired_pending_as_failed(self, db_session, manager, mailroom):
        old = _invite(db_session, manager, mailroom, email="old@test.edu")
        fresh = _invite(db_session, manager, mailroom, email="fresh@test.edu")
        old.expires_at = utcnow() - timedelta(days=1)
        db_session.commit()

        assert Invitations.expire_stale(db_session) == 1
        db_session.expire_all()
        assert db_session.get(Invitation, old.id).status == InvitationStatus.FAILED
        assert db_session.get(Invitation, fresh.id).status == InvitationStatus.PENDING


class TestProfiles:
    def test_list_active_staff(self, db_session, staff, manager, mailroom):
        found = Profiles.list(db_session, mailroom.id, None, 50, 0)
        assert {p.id for p in found} == {staff.id, manager.id}
        only_managers = Profiles.list(db_session, mailroom.id, "manager", 50, 0)
        assert [p.id for p in only_managers] == [manager.id]

    def test_update_role(self, db_session, staff, manager):
        updated = Profiles.update_role(
            db_session, staff.id, UserRole.manager, manager.id
        )
        assert updated.role == UserRole.manager

    def test_manager_cannot_grant_admin(self, db_session, staff, manager):
        with pytest.raises(HTTPException) as exc:
            Profiles.update_role(db_session, staff.id, UserRole.admin, manager.id)
        assert exc.value.status_code == 403

    def test_remove(self, db_session, staff, manager):
        Profiles.remove(db_session, staff.id, manager.id)
        db_session.refresh(staff)
        assert staff.status == ProfileStatus.REMOVED

    def test_cannot_remove_self(self, db_session, manager):
        with pytest.raises(HTTPException) as exc:
            Profiles.remove(db_session, manager.id, manager.id)
        assert exc.value.status_code == 400
