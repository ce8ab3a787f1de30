from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr

from app.models.invitation import InvitationStatus
from app.models.mailroom import UserRole


class InvitationCreate(BaseModel):
    email: EmailStr
    role: UserRole = UserRole.user
    organization_id: UUID
    mailroom_id: UUID
    invited_by: UUID


class InvitationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: UserRole
    organization_id: UUID
    mailroom_id: UUID
    invited_by: UUID
    expires_at: datetime
    used: bool
    status: InvitationStatus
    created_at: datetime


class InvitationAccept(BaseModel):
    email: EmailStr


class InvitationCancel(BaseModel):
    acting_profile_id: UUID
