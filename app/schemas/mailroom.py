from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.mailroom import PickupOption, ProfileStatus, TenantStatus, UserRole


# ---------------------------------------------------------------------------
# Organization
# ---------------------------------------------------------------------------


class OrganizationBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=120, pattern=r"^[a-z0-9-]+$")
    notification_email: EmailStr | None = None


class OrganizationCreate(OrganizationBase):
    notification_email_password: str | None = None


class OrganizationRead(OrganizationBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: TenantStatus
    created_at: datetime


# ---------------------------------------------------------------------------
# Mailroom
# ---------------------------------------------------------------------------


class MailroomBase(BaseModel):
    organization_id: UUID
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=120, pattern=r"^[a-z0-9-]+$")
    admin_email: EmailStr | None = None
    pickup_option: PickupOption = PickupOption.resident_id
    mailroom_hours: dict | None = None
    email_additional_text: str | None = None


class MailroomCreate(MailroomBase):
    created_by: UUID | None = None


class MailroomRead(MailroomBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: TenantStatus
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime


class MailroomSettingsUpdate(BaseModel):
    pickup_option: PickupOption | None = None


class MailroomEmailSettingsUpdate(BaseModel):
    admin_email: EmailStr | None = None
    mailroom_hours: dict | None = None
    email_additional_text: str | None = None


class QueueStats(BaseModel):
    total: int
    available: int
    in_use: int


class MailroomOverview(BaseModel):
    mailroom_id: UUID
    waiting_packages: int
    packages_today: int
    active_residents: int
    queue: QueueStats


# ---------------------------------------------------------------------------
# Profile (staff)
# ---------------------------------------------------------------------------


class ProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: UserRole
    organization_id: UUID | None
    mailroom_id: UUID | None
    status: ProfileStatus
    created_at: datetime


class ProfileRoleUpdate(BaseModel):
    role: UserRole
    acting_profile_id: UUID
