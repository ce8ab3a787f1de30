from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.mailroom import ProfileRead, ProfileRoleUpdate
from app.services.invitation import profiles

router = APIRouter(prefix="/staff", tags=["staff"])


@router.patch("/{profile_id}", response_model=ProfileRead)
def update_staff_role(
    profile_id: str, payload: ProfileRoleUpdate, db: Session = Depends(get_db)
):
    return profiles.update_role(db, profile_id, payload.role, payload.acting_profile_id)


@router.delete("/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_staff(
    profile_id: str,
    acting_profile_id: str = Query(...),
    db: Session = Depends(get_db),
):
    profiles.remove(db, profile_id, acting_profile_id)
