import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class TenantStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    DEFUNCT = "DEFUNCT"


class PickupOption(enum.Enum):
    resident_id = "resident_id"
    resident_name = "resident_name"


class UserRole(enum.Enum):
    user = "user"
    manager = "manager"
    admin = "admin"
    super_admin = "super-admin"


class ProfileStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    REMOVED = "REMOVED"


# Roles allowed to manage staff, invitations and mailroom settings.
MANAGER_ROLES = frozenset({UserRole.manager, UserRole.admin, UserRole.super_admin})
ADMIN_ROLES = frozenset({UserRole.admin, UserRole.super_admin})


class Organization(Base):
    __tablename__ = "organizations"
    __table_args__ = (UniqueConstraint("slug", name="uq_organizations_slug"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False)
    notification_email: Mapped[str | None] = mapped_column(String(255))
    notification_email_password: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[TenantStatus] = mapped_column(
        Enum(TenantStatus), default=TenantStatus.ACTIVE
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    mailrooms = relationship("Mailroom", back_populates="organization")


class Mailroom(Base):
    __tablename__ = "mailrooms"
    __table_args__ = (
        UniqueConstraint("organization_id", "slug", name="uq_mailrooms_org_slug"),
        Index("ix_mailrooms_organization_id", "organization_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False)
    pickup_option: Mapped[PickupOption] = mapped_column(
        Enum(PickupOption), default=PickupOption.resident_id
    )
    # {"monday": [{"start": "09:00", "end": "17:00"}], ...}
    mailroom_hours: Mapped[dict | None] = mapped_column(JSON)
    email_additional_text: Mapped[str | None] = mapped_column(Text)
    admin_email: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[TenantStatus] = mapped_column(
        Enum(TenantStatus), default=TenantStatus.ACTIVE
    )
    # Plain reference; profiles already point at mailrooms.
    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    organization = relationship("Organization", back_populates="mailrooms")


class Profile(Base):
    """A staff account scoped to an organization and, usually, one mailroom."""

    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("email", name="uq_profiles_email"),
        Index("ix_profiles_mailroom_id", "mailroom_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.user)
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id")
    )
    mailroom_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("mailrooms.id")
    )
    status: Mapped[ProfileStatus] = mapped_column(
        Enum(ProfileStatus), default=ProfileStatus.ACTIVE
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    organization = relationship("Organization")
    mailroom = relationship("Mailroom")
