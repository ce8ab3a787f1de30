import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base

MIN_PACKAGE_NUMBER = 1
MAX_PACKAGE_NUMBER = 999


class PackageStatus(enum.Enum):
    WAITING = "WAITING"
    RETRIEVED = "RETRIEVED"
    STAFF_RESOLVED = "STAFF_RESOLVED"
    STAFF_REMOVED = "STAFF_REMOVED"


# Every status a package may move to from the key status. Terminal statuses
# map to an empty set, so nothing leads back to WAITING.
PACKAGE_TRANSITIONS: dict[PackageStatus, frozenset[PackageStatus]] = {
    PackageStatus.WAITING: frozenset(
        {
            PackageStatus.RETRIEVED,
            PackageStatus.STAFF_RESOLVED,
            PackageStatus.STAFF_REMOVED,
        }
    ),
    PackageStatus.RETRIEVED: frozenset(),
    PackageStatus.STAFF_RESOLVED: frozenset(),
    PackageStatus.STAFF_REMOVED: frozenset(),
}


def can_transition(current: PackageStatus, target: PackageStatus) -> bool:
    return target in PACKAGE_TRANSITIONS[current]


# ---------------------------------------------------------------------------
# Package number pool
# ---------------------------------------------------------------------------


class PackageNumberSlot(Base):
    __tablename__ = "package_number_slots"
    __table_args__ = (
        CheckConstraint(
            f"package_number BETWEEN {MIN_PACKAGE_NUMBER} AND {MAX_PACKAGE_NUMBER}",
            name="ck_package_number_slots_range",
        ),
        Index(
            "ix_package_number_slots_queue",
            "mailroom_id",
            "is_available",
            "last_used_at",
        ),
    )

    mailroom_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("mailrooms.id"), primary_key=True
    )
    package_number: Mapped[int] = mapped_column(Integer, primary_key=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


# ---------------------------------------------------------------------------
# Packages (append-only; status is the lifecycle marker)
# ---------------------------------------------------------------------------


class Package(Base):
    __tablename__ = "packages"
    __table_args__ = (
        CheckConstraint(
            f"package_id BETWEEN {MIN_PACKAGE_NUMBER} AND {MAX_PACKAGE_NUMBER}",
            name="ck_packages_package_id_range",
        ),
        Index("ix_packages_mailroom_id", "mailroom_id"),
        Index("ix_packages_resident_id", "resident_id"),
        Index("ix_packages_status", "status"),
        Index(
            "uq_packages_waiting_number",
            "mailroom_id",
            "package_id",
            unique=True,
            postgresql_where=text("status = 'WAITING'"),
            sqlite_where=text("status = 'WAITING'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    mailroom_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("mailrooms.id"), nullable=False
    )
    resident_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("residents.id"), nullable=False
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )
    package_id: Mapped[int] = mapped_column(Integer, nullable=False)
    provider: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[PackageStatus] = mapped_column(
        Enum(PackageStatus), nullable=False, default=PackageStatus.WAITING
    )
    retrieved_timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    pickup_staff_id: Mapped[uuid.UUID | None] = mapped_column(
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

    resident = relationship("Resident", back_populates="packages")
    mailroom = relationship("Mailroom")
    staff = relationship("Profile", foreign_keys=[staff_id])
    pickup_staff = relationship("Profile", foreign_keys=[pickup_staff_id])


class FailedPackageLog(Base):
    """A registration staff could not complete, kept for follow-up."""

    __tablename__ = "failed_package_logs"
    __table_args__ = (Index("ix_failed_package_logs_mailroom_id", "mailroom_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    mailroom_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("mailrooms.id"), nullable=False
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )
    first_name: Mapped[str | None] = mapped_column(String(120))
    last_name: Mapped[str | None] = mapped_column(String(120))
    email: Mapped[str | None] = mapped_column(String(255))
    resident_student_id: Mapped[str | None] = mapped_column(String(120))
    provider: Mapped[str | None] = mapped_column(String(120))
    error_details: Mapped[str] = mapped_column(Text, nullable=False)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    resolved_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id")
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
