import logging

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.events.process_event", ignore_result=True)
def process_event(
    event_type: str,
    entity_type: str,
    entity_id: str,
    actor_id: str | None = None,
    mailroom_id: str | None = None,
    payload: dict | None = None,
) -> None:
    """Central fan-out task for mailroom events.

    Dispatches email sub-tasks for the events that notify someone.
    Each fan-out is wrapped so one failure doesn't block others.
    """
    logger.info(
        "Processing event %s for %s/%s in mailroom %s",
        event_type,
        entity_type,
        entity_id,
        mailroom_id,
    )

    if event_type == "package.registered":
        _fanout_package_notification(entity_id)
    elif event_type == "invitation.created":
        _fanout_invitation_email(entity_id)
    elif event_type == "missing_resident.reported":
        _fanout_missing_name_report(mailroom_id, payload or {})


def _fanout_package_notification(package_id: str) -> None:
    try:
        from app.tasks.notifications import send_package_notification

        send_package_notification.delay(package_id=package_id)
    except Exception as e:
        logger.exception("Failed to fan-out package notification: %s", e)


def _fanout_invitation_email(invitation_id: str) -> None:
    try:
        from app.tasks.notifications import send_invitation_email

        send_invitation_email.delay(invitation_id=invitation_id)
    except Exception as e:
        logger.exception("Failed to fan-out invitation email: %s", e)


def _fanout_missing_name_report(mailroom_id: str | None, payload: dict) -> None:
    try:
        from app.tasks.notifications import send_missing_name_report

        send_missing_name_report.delay(
            mailroom_id=mailroom_id,
            name=payload.get("name"),
            email=payload.get("email"),
        )
    except Exception as e:
        logger.exception("Failed to fan-out missing name report: %s", e)
