import logging

from sqlalchemy.orm import Session

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.tasks.notifications.send_package_notification", ignore_result=True
)
def send_package_notification(package_id: str) -> None:
    """Email a resident that a package is waiting for them.

    Fire-and-forget: failures are logged and never retried.
    """
    from app.db import SessionLocal

    db = SessionLocal()
    try:
        _send_package_notification(db, package_id)
    except Exception as e:
        logger.exception(
            "Failed to send package notification for %s: %s", package_id, e
        )
    finally:
        db.close()


def _send_package_notification(
    db: Session,
    package_id: str,
) -> bool:
    from app.config import settings
    from app.models.package import Package
    from app.services.common import coerce_uuid
    from app.services.notification import (
        format_email_body,
        package_email_subject,
        send_email,
    )

    package = db.get(Package, coerce_uuid(package_id))
    if package is None:
        logger.warning("Package %s not found; skipping notification", package_id)
        return False
    resident = package.resident
    mailroom = package.mailroom
    organization = mailroom.organization

    if not resident.email:
        logger.warning(
            "Resident %s has no email; skipping notification for package %s",
            resident.id,
            package_id,
        )
        return False
    if not mailroom.admin_email:
        logger.warning(
            "Admin email not configured for mailroom %s; cannot send notification",
            mailroom.id,
        )
        return False

    from_email = organization.notification_email or settings.mail_from
    from_password = organization.notification_email_password or settings.smtp_password
    body = format_email_body(
        resident.first_name,
        package.package_id,
        package.provider,
        mailroom.mailroom_hours,
        mailroom.email_additional_text,
    )
    logger.info(
        "Sending package notification to %s for package %s",
        resident.email,
        package.package_id,
    )
    send_email(
        resident.email,
        package_email_subject(package.package_id),
        body,
        mailroom.admin_email,
        from_email,
        from_password,
    )
    return True


@celery_app.task(name="app.tasks.notifications.send_invitation_email", ignore_result=True)
def send_invitation_email(invitation_id: str) -> None:
    """Send the registration link for a pending invitation."""
    from app.db import SessionLocal

    db = SessionLocal()
    try:
        _send_invitation_email(db, invitation_id)
    except Exception as e:
        logger.exception("Failed to send invitation email for %s: %s", invitation_id, e)
    finally:
        db.close()


def _send_invitation_email(
    db: Session,
    invitation_id: str,
) -> bool:
    from app.config import settings
    from app.models.invitation import Invitation, InvitationStatus
    from app.services.common import coerce_uuid
    from app.services.notification import send_email

    invitation = db.get(Invitation, coerce_uuid(invitation_id))
    if invitation is None or invitation.status != InvitationStatus.PENDING:
        logger.info("Invitation %s is not pending; skipping email", invitation_id)
        return False
    if not settings.mail_from:
        logger.warning("MAIL_FROM is not set; cannot send invitation %s", invitation_id)
        return False

    mailroom = invitation.mailroom
    link = f"{settings.app_base_url}/register?invitation={invitation.id}"
    body = (
        f"You have been invited to join {mailroom.name} on {settings.brand_name} "
        f"as {invitation.role.value}.\n\n"
        f"Register here: {link}\n\n"
        f"This invitation expires on {invitation.expires_at:%Y-%m-%d}."
    )
    send_email(
        invitation.email,
        f"You're invited to {settings.brand_name}",
        body,
        mailroom.admin_email,
        settings.mail_from,
        settings.smtp_password,
    )
    return True


@celery_app.task(
    name="app.tasks.notifications.send_missing_name_report", ignore_result=True
)
def send_missing_name_report(mailroom_id: str, name: str, email: str) -> None:
    """Tell the mailroom admin about a resident missing from the roster."""
    from app.db import SessionLocal

    db = SessionLocal()
    try:
        _send_missing_name_report(db, mailroom_id, name, email)
    except Exception as e:
        logger.exception(
            "Failed to send missing name report for mailroom %s: %s", mailroom_id, e
        )
    finally:
        db.close()


def _send_missing_name_report(
    db: Session,
    mailroom_id: str,
    name: str,
    email: str,
) -> bool:
    from app.config import settings
    from app.models.mailroom import Mailroom
    from app.services.common import coerce_uuid
    from app.services.notification import (
        MISSING_NAME_SUBJECT,
        format_missing_name_body,
        send_email,
    )

    mailroom = db.get(Mailroom, coerce_uuid(mailroom_id))
    if mailroom is None or not mailroom.admin_email:
        logger.warning(
            "Admin email not configured for mailroom %s; cannot send report",
            mailroom_id,
        )
        return False

    organization = mailroom.organization
    from_email = organization.notification_email or settings.mail_from
    from_password = organization.notification_email_password or settings.smtp_password
    send_email(
        mailroom.admin_email,
        MISSING_NAME_SUBJECT,
        format_missing_name_body(name, email),
        mailroom.admin_email,
        from_email,
        from_password,
    )
    logger.info("Missing name report for %s sent to %s", email, mailroom.admin_email)
    return True
