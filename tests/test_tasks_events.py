from unittest.mock import patch

from app.tasks.events import process_event


class TestProcessEvent:
    def test_package_registered_sends_notification(self):
        with patch(
            "app.tasks.notifications.send_package_notification.delay"
        ) as delay:
            process_event("package.registered", "package", "pkg-1")
        delay.assert_called_once_with(package_id="pkg-1")

    def test_invitation_created_sends_email(self):
        with patch("app.tasks.notifications.send_invitation_email.delay") as delay:
            process_event("invitation.created", "invitation", "inv-1")
        delay.assert_called_once_with(invitation_id="inv-1")

    def test_missing_resident_report_emails_admin(self):
        with patch("app.tasks.notifications.send_missing_name_report.delay") as delay:
            process_event(
                "missing_resident.reported",
                "mailroom",
                "room-1",
                mailroom_id="room-1",
                payload={"name": "Grace Hopper", "email": "grace@test.edu"},
            )
        delay.assert_called_once_with(
            mailroom_id="room-1", name="Grace Hopper", email="grace@test.edu"
        )

    def test_other_events_fan_out_nothing(self):
        with patch(
            "app.tasks.notifications.send_package_notification.delay"
        ) as pkg, patch("app.tasks.notifications.send_invitation_email.delay") as inv:
            process_event("package.retrieved", "package", "pkg-1")
        pkg.assert_not_called()
        inv.assert_not_called()

    def test_fanout_failure_is_swallowed(self):
        with patch(
            "app.tasks.notifications.send_package_notification.delay",
            side_effect=ConnectionError("broker down"),
        ):
            process_event("package.registered", "package", "pkg-1")
