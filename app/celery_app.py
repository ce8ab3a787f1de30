from celery import Celery

from app.config import settings

celery_app = Celery(
    "mailroom",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "app.tasks.events",
        "app.tasks.invitations",
        "app.tasks.notifications",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
    beat_schedule={
        "expire-invitations": {
            "task": "app.tasks.invitations.expire_invitations",
            "schedule": float(settings.invitation_expiry_check_seconds),
        },
    },
)
