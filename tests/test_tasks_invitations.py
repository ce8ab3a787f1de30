from datetime import timedelta
from unittest.mock import patch

from app.models.invitation import Invitation, InvitationStatus
from app.services.common import utcnow
from app.tasks.invitations import expire_invitations


class TestExpireInvitations:
    def test_expires_stale_invitations(self, db_session, manager, mailroom):
        inv = Invitation(
            email="late@test.edu",
            organization_id=mailroom.organization_id,
            mailroom_id=mailroom.id,
            invited_by=manager.id,
            expires_at=utcnow() - timedelta(hours=1),
            status=InvitationStatus.PENDING,
        )
        db_session.add(inv)
        db_session.commit()
        inv_id = inv.id

        with patch("app.db.SessionLocal", return_value=db_session):
            expire_invitations.run()

        db_session.expire_all()
        assert db_session.get(Invitation, inv_id).status == InvitationStatus.FAILED

    def test_failure_is_logged(self, db_session, caplog):
        with patch("app.db.SessionLocal", return_value=db_session), patch(
            "app.services.invitation.invitations.expire_stale",
            side_effect=RuntimeError("db down"),
        ):
            expire_invitations.run()
        assert "Failed to expire invitations" in caplog.text
