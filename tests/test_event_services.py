import uuid
from unittest.mock import patch

from app.services.event import EventType, publish_event


class TestPublishEvent:
    def test_queues_process_event(self):
        entity_id = uuid.uuid4()
        mailroom_id = uuid.uuid4()
        with patch("app.tasks.events.process_event.delay") as delay:
            publish_event(
                EventType.package_registered,
                entity_type="package",
                entity_id=entity_id,
                mailroom_id=mailroom_id,
                payload={"package_number": 4},
            )
        delay.assert_called_once_with(
            event_type="package.registered",
            entity_type="package",
            entity_id=str(entity_id),
            actor_id=None,
            mailroom_id=str(mailroom_id),
            payload={"package_number": 4},
        )

    def test_never_raises(self):
        with patch(
            "app.tasks.events.process_event.delay",
            side_effect=ConnectionError("broker down"),
        ):
            publish_event(
                EventType.slot_released, entity_type="slot", entity_id="x"
            )
