from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.mailroom import (
    MailroomCreate,
    MailroomEmailSettingsUpdate,
    MailroomOverview,
    MailroomRead,
    MailroomSettingsUpdate,
    ProfileRead,
    QueueStats,
)
from app.schemas.package import (
    PackageNumberRead,
    QueueProvisionRead,
    QueueProvisionRequest,
    SlotReleaseRead,
)
from app.schemas.resident import MissingResidentReport, MissingResidentReportRead
from app.services.event import EventType, publish_event
from app.services.invitation import profiles
from app.services.mailroom import mailrooms
from app.services.package_queue import package_queue
from app.services.resident import residents

router = APIRouter(prefix="/mailrooms", tags=["mailrooms"])


@router.post("", response_model=MailroomRead, status_code=status.HTTP_201_CREATED)
def create_mailroom(payload: MailroomCreate, db: Session = Depends(get_db)):
    return mailrooms.create(db, payload)


@router.get("", response_model=ListResponse[MailroomRead])
def list_mailrooms(
    organization_id: str | None = None,
    order_by: str = Query(default="name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return mailrooms.list_response(
        db, organization_id, order_by, order_dir, limit, offset
    )


@router.get("/by-slug/{org_slug}/{mailroom_slug}", response_model=MailroomRead)
def get_mailroom_by_slug(
    org_slug: str, mailroom_slug: str, db: Session = Depends(get_db)
):
    return mailrooms.get_by_slugs(db, org_slug, mailroom_slug)


@router.get("/{mailroom_id}", response_model=MailroomRead)
def get_mailroom(mailroom_id: str, db: Session = Depends(get_db)):
    return mailrooms.get(db, mailroom_id)


@router.patch("/{mailroom_id}/settings", response_model=MailroomRead)
def update_mailroom_settings(
    mailroom_id: str, payload: MailroomSettingsUpdate, db: Session = Depends(get_db)
):
    return mailrooms.update_settings(db, mailroom_id, payload)


@router.patch("/{mailroom_id}/email-settings", response_model=MailroomRead)
def update_mailroom_email_settings(
    mailroom_id: str,
    payload: MailroomEmailSettingsUpdate,
    db: Session = Depends(get_db),
):
    return mailrooms.update_email_settings(db, mailroom_id, payload)


@router.get("/{mailroom_id}/overview", response_model=MailroomOverview)
def get_mailroom_overview(mailroom_id: str, db: Session = Depends(get_db)):
    return mailrooms.overview(db, mailroom_id)


# ------------------------------------------------------------------
# Package number queue
# ------------------------------------------------------------------


@router.post(
    "/{mailroom_id}/package-queue",
    response_model=QueueProvisionRead,
    status_code=status.HTTP_201_CREATED,
)
def provision_package_queue(
    mailroom_id: str,
    payload: QueueProvisionRequest | None = None,
    db: Session = Depends(get_db),
):
    size = payload.size if payload else None
    created = package_queue.provision(db, mailroom_id, size)
    db.commit()
    return {"created": created}


@router.get("/{mailroom_id}/package-queue/stats", response_model=QueueStats)
def get_package_queue_stats(mailroom_id: str, db: Session = Depends(get_db)):
    mailrooms.get(db, mailroom_id)
    return package_queue.stats(db, mailroom_id)


@router.post("/{mailroom_id}/package-queue/allocate", response_model=PackageNumberRead)
def allocate_package_number(mailroom_id: str, db: Session = Depends(get_db)):
    mailrooms.get(db, mailroom_id)
    number = package_queue.allocate(db, mailroom_id)
    db.commit()
    return {"package_number": number}


@router.post(
    "/{mailroom_id}/package-queue/{package_number}/release",
    response_model=SlotReleaseRead,
)
def release_package_number(
    mailroom_id: str, package_number: int, db: Session = Depends(get_db)
):
    mailrooms.get(db, mailroom_id)
    try:
        released = package_queue.release(db, mailroom_id, package_number)
        db.commit()
    except Exception:
        db.rollback()
        raise
    publish_event(
        EventType.slot_released,
        entity_type="package_number_slot",
        entity_id=f"{mailroom_id}:{package_number}",
        mailroom_id=mailroom_id,
        payload={"package_number": package_number},
    )
    return {"released": released}


# ------------------------------------------------------------------
# Staff
# ------------------------------------------------------------------


@router.get("/{mailroom_id}/staff", response_model=ListResponse[ProfileRead])
def list_mailroom_staff(
    mailroom_id: str,
    role: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return profiles.list_response(db, mailroom_id, role, limit, offset)


# ------------------------------------------------------------------
# Residents missing from the roster
# ------------------------------------------------------------------


@router.post(
    "/{mailroom_id}/missing-resident-reports",
    response_model=MissingResidentReportRead,
    status_code=status.HTTP_202_ACCEPTED,
)
def report_missing_resident(
    mailroom_id: str, payload: MissingResidentReport, db: Session = Depends(get_db)
):
    residents.report_missing(db, mailroom_id, payload)
    return {"message": "Report submitted successfully"}
