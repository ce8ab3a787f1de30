import enum
import logging
import uuid

logger = logging.getLogger(__name__)


class EventType(enum.Enum):
    package_registered = "package.registered"
    package_retrieved = "package.retrieved"
    package_staff_resolved = "package.staff_resolved"
    package_staff_removed = "package.staff_removed"
    package_registration_failed = "package.registration_failed"

    slot_released = "slot.released"

    resident_added = "resident.added"
    resident_removed = "resident.removed"
    roster_synced = "roster.synced"
    missing_resident_reported = "missing_resident.reported"

    invitation_created = "invitation.created"
    invitation_accepted = "invitation.accepted"
    invitation_cancelled = "invitation.cancelled"


def publish_event(
    event_type: EventType,
    entity_type: str,
    entity_id: str | uuid.UUID,
    actor_id: str | uuid.UUID | None = None,
    mailroom_id: str | uuid.UUID | None = None,
    payload: dict | None = None,
) -> None:
    """Fire-and-forget event publishing.

    Queues a Celery task for fan-out to resident and staff emails.
    Never raises; failures are logged and dropped.
    """
    try:
        from app.tasks.events import process_event

        process_event.delay(
            event_type=event_type.value,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=str(actor_id) if actor_id else None,
            mailroom_id=str(mailroom_id) if mailroom_id else None,
            payload=payload or {},
        )
        logger.debug(
            "Published event %s for %s/%s", event_type.value, entity_type, entity_id
        )
    except Exception as e:
        logger.exception("Failed to publish event %s: %s", event_type.value, e)
