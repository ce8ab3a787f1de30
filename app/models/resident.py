import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class ResidentStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    REMOVED_BULK = "REMOVED_BULK"
    REMOVED_INDIVIDUAL = "REMOVED_INDIVIDUAL"
    ADMIN_ACTION = "ADMIN_ACTION"


class Resident(Base):
    __tablename__ = "residents"
    __table_args__ = (
        Index("ix_residents_mailroom_id", "mailroom_id"),
        Index("ix_residents_student_id", "student_id"),
        Index(
            "uq_residents_active_student",
            "mailroom_id",
            "student_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    mailroom_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("mailrooms.id"), nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    student_id: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[ResidentStatus] = mapped_column(
        Enum(ResidentStatus), nullable=False, default=ResidentStatus.ACTIVE
    )
    added_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    packages = relationship("Package", back_populates="resident")
