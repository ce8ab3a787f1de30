from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.resident import (
    ResidentCreate,
    ResidentRead,
    RosterSyncRead,
    RosterUpload,
)
from app.services.resident import residents

router = APIRouter(prefix="/mailrooms/{mailroom_id}/residents", tags=["residents"])


@router.post("", response_model=ResidentRead, status_code=status.HTTP_201_CREATED)
def add_resident(
    mailroom_id: str, payload: ResidentCreate, db: Session = Depends(get_db)
):
    return residents.add(db, mailroom_id, payload)


@router.get("", response_model=ListResponse[ResidentRead])
def list_residents(
    mailroom_id: str,
    status_filter: str | None = Query(default=None, alias="status"),
    search: str | None = None,
    order_by: str = Query(default="last_name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return residents.list_response(
        db, mailroom_id, status_filter, search, order_by, order_dir, limit, offset
    )


@router.delete("/{resident_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_resident(mailroom_id: str, resident_id: str, db: Session = Depends(get_db)):
    residents.remove(db, mailroom_id, resident_id)


@router.post("/roster", response_model=RosterSyncRead)
def sync_roster(
    mailroom_id: str, payload: RosterUpload, db: Session = Depends(get_db)
):
    counts = residents.sync_roster(
        db, mailroom_id, payload.residents, payload.added_by
    )
    return {"message": "Roster processed successfully", "counts": counts}
