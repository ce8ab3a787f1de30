from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.resident import ResidentStatus


class ResidentBase(BaseModel):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    student_id: str = Field(min_length=1, max_length=120)
    email: str | None = None


class ResidentCreate(ResidentBase):
    added_by: UUID | None = None


class ResidentRead(ResidentBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    mailroom_id: UUID
    status: ResidentStatus
    created_at: datetime
    updated_at: datetime


class RosterRow(BaseModel):
    # Rows are validated by the roster sync so the offending row can be named.
    first_name: str | None = None
    last_name: str | None = None
    resident_id: str | None = None
    email: str | None = None


class RosterUpload(BaseModel):
    residents: list[RosterRow] = Field(min_length=1)
    added_by: UUID | None = None


class RosterCounts(BaseModel):
    total: int
    new: int
    unchanged: int
    updated: int
    removed: int


class RosterSyncRead(BaseModel):
    message: str
    counts: RosterCounts


class MissingResidentReport(BaseModel):
    name: str = Field(min_length=1, max_length=240)
    email: EmailStr
    reported_by: UUID


class MissingResidentReportRead(BaseModel):
    message: str
