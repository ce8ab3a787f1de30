import logging

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.invitations.expire_invitations", ignore_result=True)
def expire_invitations() -> None:
    """Periodic task marking pending invitations past their expiry as FAILED."""
    from app.db import SessionLocal
    from app.services.invitation import invitations

    db = SessionLocal()
    try:
        invitations.expire_stale(db)
    except Exception as e:
        db.rollback()
        logger.exception("Failed to expire invitations: %s", e)
    finally:
        db.close()
