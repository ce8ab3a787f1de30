"""initial mailroom schema

Revision ID: 3f9c1b7d2e10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "3f9c1b7d2e10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- Enums ---
    tenantstatus = sa.Enum("ACTIVE", "DEFUNCT", name="tenantstatus")
    pickupoption = sa.Enum("resident_id", "resident_name", name="pickupoption")
    userrole = sa.Enum("user", "manager", "admin", "super_admin", name="userrole")
    profilestatus = sa.Enum("ACTIVE", "REMOVED", name="profilestatus")
    residentstatus = sa.Enum(
        "ACTIVE",
        "REMOVED_BULK",
        "REMOVED_INDIVIDUAL",
        "ADMIN_ACTION",
        name="residentstatus",
    )
    packagestatus = sa.Enum(
        "WAITING",
        "RETRIEVED",
        "STAFF_RESOLVED",
        "STAFF_REMOVED",
        name="packagestatus",
    )
    invitationstatus = sa.Enum(
        "PENDING", "RESOLVED", "FAILED", "CANCELLED", name="invitationstatus"
    )
    for enum_type in (
        tenantstatus,
        pickupoption,
        userrole,
        profilestatus,
        residentstatus,
        packagestatus,
        invitationstatus,
    ):
        enum_type.create(op.get_bind(), checkfirst=True)

    # --- Tenants ---
    op.create_table(
        "organizations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("notification_email", sa.String(length=255), nullable=True),
        sa.Column("notification_email_password", sa.String(length=255), nullable=True),
        sa.Column("status", tenantstatus, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_organizations_slug"),
    )

    op.create_table(
        "mailrooms",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("organization_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("pickup_option", pickupoption, nullable=True),
        sa.Column("mailroom_hours", sa.JSON(), nullable=True),
        sa.Column("email_additional_text", sa.Text(), nullable=True),
        sa.Column("admin_email", sa.String(length=255), nullable=True),
        sa.Column("status", tenantstatus, nullable=True),
        sa.Column("created_by", sa.UUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "slug", name="uq_mailrooms_org_slug"),
    )
    op.create_index("ix_mailrooms_organization_id", "mailrooms", ["organization_id"])

    op.create_table(
        "profiles",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", userrole, nullable=True),
        sa.Column("organization_id", sa.UUID(), nullable=True),
        sa.Column("mailroom_id", sa.UUID(), nullable=True),
        sa.Column("status", profilestatus, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["mailroom_id"], ["mailrooms.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_profiles_email"),
    )
    op.create_index("ix_profiles_mailroom_id", "profiles", ["mailroom_id"])

    # --- Residents ---
    op.create_table(
        "residents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("mailroom_id", sa.UUID(), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("student_id", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("status", residentstatus, nullable=False),
        sa.Column("added_by", sa.UUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["mailroom_id"], ["mailrooms.id"]),
        sa.ForeignKeyConstraint(["added_by"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_residents_mailroom_id", "residents", ["mailroom_id"])
    op.create_index("ix_residents_student_id", "residents", ["student_id"])
    op.create_index(
        "uq_residents_active_student",
        "residents",
        ["mailroom_id", "student_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    # --- Package number pool ---
    op.create_table(
        "package_number_slots",
        sa.Column("mailroom_id", sa.UUID(), nullable=False),
        sa.Column("package_number", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "package_number BETWEEN 1 AND 999", name="ck_package_number_slots_range"
        ),
        sa.ForeignKeyConstraint(["mailroom_id"], ["mailrooms.id"]),
        sa.PrimaryKeyConstraint("mailroom_id", "package_number"),
    )
    op.create_index(
        "ix_package_number_slots_queue",
        "package_number_slots",
        ["mailroom_id", "is_available", "last_used_at"],
    )

    # --- Packages ---
    op.create_table(
        "packages",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("mailroom_id", sa.UUID(), nullable=False),
        sa.Column("resident_id", sa.UUID(), nullable=False),
        sa.Column("staff_id", sa.UUID(), nullable=False),
        sa.Column("package_id", sa.Integer(), nullable=False),
        sa.Column("provider", sa.String(length=120), nullable=False),
        sa.Column("status", packagestatus, nullable=False),
        sa.Column("retrieved_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pickup_staff_id", sa.UUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "package_id BETWEEN 1 AND 999", name="ck_packages_package_id_range"
        ),
        sa.ForeignKeyConstraint(["mailroom_id"], ["mailrooms.id"]),
        sa.ForeignKeyConstraint(["resident_id"], ["residents.id"]),
        sa.ForeignKeyConstraint(["staff_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["pickup_staff_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_packages_mailroom_id", "packages", ["mailroom_id"])
    op.create_index("ix_packages_resident_id", "packages", ["resident_id"])
    op.create_index("ix_packages_status", "packages", ["status"])
    op.create_index(
        "uq_packages_waiting_number",
        "packages",
        ["mailroom_id", "package_id"],
        unique=True,
        postgresql_where=sa.text("status = 'WAITING'"),
    )

    op.create_table(
        "failed_package_logs",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("mailroom_id", sa.UUID(), nullable=False),
        sa.Column("staff_id", sa.UUID(), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=True),
        sa.Column("last_name", sa.String(length=120), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("resident_student_id", sa.String(length=120), nullable=True),
        sa.Column("provider", sa.String(length=120), nullable=True),
        sa.Column("error_details", sa.Text(), nullable=False),
        sa.Column("resolved", sa.Boolean(), nullable=True),
        sa.Column("resolved_by", sa.UUID(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["mailroom_id"], ["mailrooms.id"]),
        sa.ForeignKeyConstraint(["staff_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["resolved_by"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_failed_package_logs_mailroom_id", "failed_package_logs", ["mailroom_id"]
    )

    # --- Invitations ---
    op.create_table(
        "invitations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", userrole, nullable=True),
        sa.Column("organization_id", sa.UUID(), nullable=False),
        sa.Column("mailroom_id", sa.UUID(), nullable=False),
        sa.Column("invited_by", sa.UUID(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=True),
        sa.Column("status", invitationstatus, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["mailroom_id"], ["mailrooms.id"]),
        sa.ForeignKeyConstraint(["invited_by"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invitations_mailroom_id", "invitations", ["mailroom_id"])
    op.create_index("ix_invitations_email", "invitations", ["email"])


def downgrade() -> None:
    op.drop_index("ix_invitations_email", table_name="invitations")
    op.drop_index("ix_invitations_mailroom_id", table_name="invitations")
    op.drop_table("invitations")
    op.drop_index(
        "ix_failed_package_logs_mailroom_id", table_name="failed_package_logs"
    )
    op.drop_table("failed_package_logs")
    op.drop_index("uq_packages_waiting_number", table_name="packages")
    op.drop_index("ix_packages_status", table_name="packages")
    op.drop_index("ix_packages_resident_id", table_name="packages")
    op.drop_index("ix_packages_mailroom_id", table_name="packages")
    op.drop_table("packages")
    op.drop_index("ix_package_number_slots_queue", table_name="package_number_slots")
    op.drop_table("package_number_slots")
    op.drop_index("uq_residents_active_student", table_name="residents")
    op.drop_index("ix_residents_student_id", table_name="residents")
    op.drop_index("ix_residents_mailroom_id", table_name="residents")
    op.drop_table("residents")
    op.drop_index("ix_profiles_mailroom_id", table_name="profiles")
    op.drop_table("profiles")
    op.drop_index("ix_mailrooms_organization_id", table_name="mailrooms")
    op.drop_table("mailrooms")
    op.drop_table("organizations")

    for name in (
        "invitationstatus",
        "packagestatus",
        "residentstatus",
        "profilestatus",
        "userrole",
        "pickupoption",
        "tenantstatus",
    ):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
