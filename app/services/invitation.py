from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.config import settings
from app.models.invitation import Invitation, InvitationStatus
from app.models.mailroom import (
    ADMIN_ROLES,
    MANAGER_ROLES,
    Mailroom,
    Profile,
    ProfileStatus,
    UserRole,
)
from app.schemas.invitation import InvitationCreate
from app.services.common import (
    apply_ordering,
    apply_pagination,
    as_utc,
    coerce_uuid,
    utcnow,
)
from app.services.event import EventType, publish_event
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def _get_manager(db: Session, profile_id, action: str) -> Profile:
    profile = db.get(Profile, coerce_uuid(profile_id))
    if not profile or profile.status != ProfileStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Staff not found")
    if profile.role not in MANAGER_ROLES:
        raise HTTPException(
            status_code=403, detail=f"Only managers and admins can {action}"
        )
    return profile


class Invitations(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: InvitationCreate) -> Invitation:
        inviter = _get_manager(db, payload.invited_by, "send invitations")
        if (
            inviter.role not in ADMIN_ROLES
            and inviter.organization_id != payload.organization_id
        ):
            raise HTTPException(
                status_code=403,
                detail="You can only invite users to your organization",
            )
        if payload.role in ADMIN_ROLES and inviter.role not in ADMIN_ROLES:
            raise HTTPException(
                status_code=403, detail="Only admins can invite admins"
            )
        mailroom = db.scalar(
            select(Mailroom).where(
                Mailroom.id == payload.mailroom_id,
                Mailroom.organization_id == payload.organization_id,
            )
        )
        if not mailroom:
            raise HTTPException(status_code=400, detail="Invalid mailroom")

        email = payload.email.lower()
        pending = db.scalar(
            select(Invitation).where(
                Invitation.email == email,
                Invitation.mailroom_id == mailroom.id,
                Invitation.status == InvitationStatus.PENDING,
            )
        )
        if pending:
            raise HTTPException(
                status_code=409,
                detail="A pending invitation already exists for this email",
            )

        invitation = Invitation(
            email=email,
            role=payload.role,
            organization_id=payload.organization_id,
            mailroom_id=mailroom.id,
            invited_by=inviter.id,
            expires_at=utcnow() + timedelta(days=settings.invitation_expiry_days),
            used=False,
            status=InvitationStatus.PENDING,
        )
        db.add(invitation)
        db.commit()
        db.refresh(invitation)
        logger.info(
            "Created invitation %s for %s to mailroom %s",
            invitation.id,
            invitation.email,
            mailroom.id,
        )
        publish_event(
            EventType.invitation_created,
            entity_type="invitation",
            entity_id=invitation.id,
            actor_id=inviter.id,
            mailroom_id=mailroom.id,
        )
        return invitation

    @staticmethod
    def get(db: Session, invitation_id: str) -> Invitation:
        invitation = db.get(Invitation, coerce_uuid(invitation_id))
        if not invitation:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return invitation

    @staticmethod
    def list(
        db: Session,
        mailroom_id: str | None,
        status: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Invitation]:
        stmt = select(Invitation)
        if mailroom_id is not None:
            stmt = stmt.where(Invitation.mailroom_id == coerce_uuid(mailroom_id))
        if status is not None:
            try:
                stmt = stmt.where(Invitation.status == InvitationStatus(status))
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"created_at": Invitation.created_at, "expires_at": Invitation.expires_at},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def cancel(db: Session, invitation_id: str, acting_profile_id: str) -> Invitation:
        actor = _get_manager(db, acting_profile_id, "cancel invitations")
        invitation = Invitations.get(db, invitation_id)
        if actor.role not in ADMIN_ROLES:
            if actor.organization_id != invitation.organization_id:
                raise HTTPException(
                    status_code=403,
                    detail="You can only cancel invitations in your organization",
                )
            if invitation.invited_by != actor.id:
                raise HTTPException(
                    status_code=403,
                    detail="You can only cancel invitations you created",
                )
        if invitation.status != InvitationStatus.PENDING:
            raise HTTPException(
                status_code=409,
                detail=f"Invitation is {invitation.status.value.lower()}",
            )
        invitation.status = InvitationStatus.CANCELLED
        db.commit()
        db.refresh(invitation)
        logger.info("Cancelled invitation %s", invitation.id)
        publish_event(
            EventType.invitation_cancelled,
            entity_type="invitation",
            entity_id=invitation.id,
            actor_id=actor.id,
            mailroom_id=invitation.mailroom_id,
        )
        return invitation

    @staticmethod
    def accept(db: Session, invitation_id: str, email: str) -> Profile:
        invitation = Invitations.get(db, invitation_id)
        if invitation.email != email.lower():
            raise HTTPException(
                status_code=403, detail="Invitation was sent to a different email"
            )
        if invitation.status != InvitationStatus.PENDING or invitation.used:
            raise HTTPException(
                status_code=409,
                detail=f"Invitation is {invitation.status.value.lower()}",
            )
        if as_utc(invitation.expires_at) <= utcnow():
            invitation.status = InvitationStatus.FAILED
            db.commit()
            logger.info("Invitation %s expired before acceptance", invitation.id)
            raise HTTPException(status_code=410, detail="Invitation has expired")

        profile = db.scalar(select(Profile).where(Profile.email == invitation.email))
        if profile is None:
            profile = Profile(email=invitation.email)
            db.add(profile)
        profile.role = invitation.role
        profile.organization_id = invitation.organization_id
        profile.mailroom_id = invitation.mailroom_id
        profile.status = ProfileStatus.ACTIVE

        invitation.status = InvitationStatus.RESOLVED
        invitation.used = True
        db.commit()
        db.refresh(profile)
        logger.info("Invitation %s accepted by profile %s", invitation.id, profile.id)
        publish_event(
            EventType.invitation_accepted,
            entity_type="invitation",
            entity_id=invitation.id,
            actor_id=profile.id,
            mailroom_id=invitation.mailroom_id,
        )
        return profile

    @staticmethod
    def expire_stale(db: Session) -> int:
        result = db.execute(
            update(Invitation)
            .where(
                Invitation.status == InvitationStatus.PENDING,
                Invitation.expires_at <= utcnow(),
            )
            .values(status=InvitationStatus.FAILED)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        count = result.rowcount or 0
        logger.info("Expired %d stale invitations", count)
        return count


class Profiles(ListResponseMixin):
    @staticmethod
    def get(db: Session, profile_id: str) -> Profile:
        profile = db.get(Profile, coerce_uuid(profile_id))
        if not profile:
            raise HTTPException(status_code=404, detail="Staff not found")
        return profile

    @staticmethod
    def list(
        db: Session,
        mailroom_id: str,
        role: str | None,
        limit: int,
        offset: int,
    ) -> list[Profile]:
        stmt = select(Profile).where(
            Profile.mailroom_id == coerce_uuid(mailroom_id),
            Profile.status == ProfileStatus.ACTIVE,
        )
        if role is not None:
            try:
                stmt = stmt.where(Profile.role == UserRole(role))
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Invalid role: {role}")
        stmt = stmt.order_by(Profile.email.asc())
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def update_role(
        db: Session, profile_id: str, role: UserRole, acting_profile_id: str
    ) -> Profile:
        actor = _get_manager(db, acting_profile_id, "change staff roles")
        profile = Profiles.get(db, profile_id)
        if actor.role not in ADMIN_ROLES and (
            role in ADMIN_ROLES or profile.role in ADMIN_ROLES
        ):
            raise HTTPException(
                status_code=403, detail="Only admins can grant or revoke admin roles"
            )
        profile.role = role
        db.commit()
        db.refresh(profile)
        logger.info("Changed role of profile %s to %s", profile.id, role.value)
        return profile

    @staticmethod
    def remove(db: Session, profile_id: str, acting_profile_id: str) -> None:
        actor = _get_manager(db, acting_profile_id, "remove staff")
        profile = Profiles.get(db, profile_id)
        if actor.id == profile.id:
            raise HTTPException(status_code=400, detail="You cannot remove yourself")
        if actor.role not in ADMIN_ROLES and profile.role in ADMIN_ROLES:
            raise HTTPException(status_code=403, detail="Only admins can remove admins")
        profile.status = ProfileStatus.REMOVED
        db.commit()
        logger.info("Removed profile %s", profile.id)


invitations = Invitations()
profiles = Profiles()
