from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.package import MAX_PACKAGE_NUMBER, MIN_PACKAGE_NUMBER, PackageStatus


class PackageCreate(BaseModel):
    # Either the resident's id or the student id staff read off the label.
    resident_id: str = Field(min_length=1)
    staff_id: UUID
    provider: str = Field(min_length=1, max_length=120)


class PackageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    mailroom_id: UUID
    resident_id: UUID
    staff_id: UUID
    package_id: int
    provider: str
    status: PackageStatus
    created_at: datetime
    updated_at: datetime
    retrieved_timestamp: datetime | None = None
    pickup_staff_id: UUID | None = None


class PackageTransitionRequest(BaseModel):
    status: PackageStatus
    acting_staff_id: UUID


class PackagePickupRequest(BaseModel):
    package_number: int = Field(ge=MIN_PACKAGE_NUMBER, le=MAX_PACKAGE_NUMBER)
    acting_staff_id: UUID


class PackageNumberRead(BaseModel):
    package_number: int


class SlotReleaseRead(BaseModel):
    released: bool


class QueueProvisionRequest(BaseModel):
    size: int | None = Field(default=None, ge=MIN_PACKAGE_NUMBER, le=MAX_PACKAGE_NUMBER)


class QueueProvisionRead(BaseModel):
    created: int


# ---------------------------------------------------------------------------
# Failed registrations
# ---------------------------------------------------------------------------


class FailedPackageCreate(BaseModel):
    staff_id: UUID
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    resident_student_id: str | None = None
    provider: str | None = None
    error_details: str = "Unknown error during package registration"


class FailedPackageResolve(BaseModel):
    staff_id: UUID


class FailedPackageRead(FailedPackageCreate):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    mailroom_id: UUID
    resolved: bool
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    created_at: datetime
