from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.invitation import (
    InvitationAccept,
    InvitationCancel,
    InvitationCreate,
    InvitationRead,
)
from app.schemas.mailroom import ProfileRead
from app.services.invitation import invitations

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.post("", response_model=InvitationRead, status_code=status.HTTP_201_CREATED)
def create_invitation(payload: InvitationCreate, db: Session = Depends(get_db)):
    return invitations.create(db, payload)


@router.get("", response_model=ListResponse[InvitationRead])
def list_invitations(
    mailroom_id: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return invitations.list_response(
        db, mailroom_id, status_filter, order_by, order_dir, limit, offset
    )


@router.post("/{invitation_id}/accept", response_model=ProfileRead)
def accept_invitation(
    invitation_id: str, payload: InvitationAccept, db: Session = Depends(get_db)
):
    return invitations.accept(db, invitation_id, payload.email)


@router.post("/{invitation_id}/cancel", response_model=InvitationRead)
def cancel_invitation(
    invitation_id: str, payload: InvitationCancel, db: Session = Depends(get_db)
):
    return invitations.cancel(db, invitation_id, payload.acting_profile_id)
