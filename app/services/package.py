from __future__ import annotations

import logging

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import InvalidTransition, PackageNotFound, ResidentNotFound
from app.models.mailroom import Mailroom, Profile, ProfileStatus
from app.models.package import (
    FailedPackageLog,
    Package,
    PackageStatus,
    can_transition,
)
from app.models.resident import Resident, ResidentStatus
from app.observability import PACKAGE_TRANSITIONS
from app.schemas.package import FailedPackageCreate
from app.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    try_uuid,
    utcnow,
)
from app.services.event import EventType, publish_event
from app.services.package_queue import package_queue
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

_CONFLICT_MESSAGES = {
    PackageStatus.RETRIEVED: "Package already retrieved",
    PackageStatus.STAFF_RESOLVED: "Package already resolved by staff",
    PackageStatus.STAFF_REMOVED: "Package was removed by staff",
}

_TRANSITION_EVENTS = {
    PackageStatus.RETRIEVED: EventType.package_retrieved,
    PackageStatus.STAFF_RESOLVED: EventType.package_staff_resolved,
    PackageStatus.STAFF_REMOVED: EventType.package_staff_removed,
}


def _get_mailroom(db: Session, mailroom_id) -> Mailroom:
    mailroom = db.get(Mailroom, coerce_uuid(mailroom_id))
    if not mailroom:
        raise HTTPException(status_code=404, detail="Mailroom not found")
    return mailroom


def _get_staff(db: Session, staff_id) -> Profile:
    staff = db.get(Profile, coerce_uuid(staff_id))
    if not staff or staff.status != ProfileStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Staff not found")
    return staff


def _coerce_status(value: PackageStatus | str) -> PackageStatus:
    if isinstance(value, PackageStatus):
        return value
    try:
        return PackageStatus(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {value}")


def resolve_resident(db: Session, mailroom_id, resident_ref: str) -> Resident:
    """Find an active resident of the mailroom by id or by student id."""
    mailroom_uuid = coerce_uuid(mailroom_id)
    stmt = select(Resident).where(
        Resident.mailroom_id == mailroom_uuid,
        Resident.status == ResidentStatus.ACTIVE,
    )
    resident_uuid = try_uuid(resident_ref)
    if resident_uuid is not None:
        resident = db.scalar(stmt.where(Resident.id == resident_uuid))
        if resident:
            return resident
    resident = db.scalar(stmt.where(Resident.student_id == str(resident_ref)))
    if not resident:
        raise ResidentNotFound(
            f"No resident found with student ID {resident_ref} in this mailroom"
        )
    return resident


class Packages(ListResponseMixin):
    @staticmethod
    def create(
        db: Session,
        mailroom_id: str,
        resident_id: str,
        staff_id: str,
        provider: str,
    ) -> Package:
        mailroom = _get_mailroom(db, mailroom_id)
        resident = resolve_resident(db, mailroom.id, resident_id)
        staff = _get_staff(db, staff_id)

        number = package_queue.allocate(db, mailroom.id)
        db.commit()

        package = Package(
            mailroom_id=mailroom.id,
            resident_id=resident.id,
            staff_id=staff.id,
            package_id=number,
            provider=provider,
            status=PackageStatus.WAITING,
        )
        try:
            db.add(package)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "Failed to insert package %s for mailroom %s", number, mailroom.id
            )
            Packages._compensate_release(db, mailroom.id, number)
            raise HTTPException(status_code=500, detail="Failed to register package")
        db.refresh(package)

        logger.info(
            "Registered package %s (#%s) for resident %s in mailroom %s",
            package.id,
            number,
            resident.id,
            mailroom.id,
        )
        publish_event(
            EventType.package_registered,
            entity_type="package",
            entity_id=package.id,
            actor_id=staff.id,
            mailroom_id=mailroom.id,
            payload={"package_number": number, "provider": provider},
        )
        return package

    @staticmethod
    def _compensate_release(db: Session, mailroom_id, number: int) -> None:
        try:
            package_queue.release(db, mailroom_id, number)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(
                "Package number %s in mailroom %s leaked; needs manual reconciliation",
                number,
                mailroom_id,
            )

    @staticmethod
    def get(db: Session, mailroom_id: str, package_id: str) -> Package:
        package = db.scalar(
            select(Package).where(
                Package.id == coerce_uuid(package_id),
                Package.mailroom_id == coerce_uuid(mailroom_id),
            )
        )
        if not package:
            raise PackageNotFound()
        return package

    @staticmethod
    def list(
        db: Session,
        mailroom_id: str,
        status: str | None,
        resident_id: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Package]:
        stmt = select(Package).where(Package.mailroom_id == coerce_uuid(mailroom_id))
        if status is not None:
            stmt = stmt.where(Package.status == _coerce_status(status))
        if resident_id is not None:
            stmt = stmt.where(Package.resident_id == coerce_uuid(resident_id))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "created_at": Package.created_at,
                "package_id": Package.package_id,
                "retrieved_timestamp": Package.retrieved_timestamp,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def waiting_for_resident(
        db: Session, mailroom_id: str, resident_id: str
    ) -> list[Package]:
        resident = resolve_resident(db, mailroom_id, resident_id)
        return db.scalars(
            select(Package)
            .where(
                Package.mailroom_id == resident.mailroom_id,
                Package.resident_id == resident.id,
                Package.status == PackageStatus.WAITING,
            )
            .order_by(Package.created_at.asc())
        ).all()

    @staticmethod
    def transition(
        db: Session,
        mailroom_id: str,
        package_id: str,
        new_status: PackageStatus | str,
        acting_staff_id: str,
    ) -> Package:
        mailroom_uuid = coerce_uuid(mailroom_id)
        package_uuid = coerce_uuid(package_id)
        target = _coerce_status(new_status)
        if not can_transition(PackageStatus.WAITING, target):
            raise InvalidTransition(f"Cannot move a package to {target.value}")
        staff = _get_staff(db, acting_staff_id)

        now = utcnow()
        number = db.scalar(
            update(Package)
            .where(
                Package.id == package_uuid,
                Package.mailroom_id == mailroom_uuid,
                Package.status == PackageStatus.WAITING,
            )
            .values(
                status=target,
                retrieved_timestamp=now,
                pickup_staff_id=staff.id,
                updated_at=now,
            )
            .returning(Package.package_id)
        )
        if number is None:
            current = db.scalar(
                select(Package.status).where(
                    Package.id == package_uuid,
                    Package.mailroom_id == mailroom_uuid,
                )
            )
            if current is None:
                raise PackageNotFound()
            logger.info(
                "Rejected %s for package %s: status is %s",
                target.value,
                package_id,
                current.value,
            )
            raise InvalidTransition(_CONFLICT_MESSAGES.get(current))

        try:
            package_queue.release(db, mailroom_uuid, number)
            db.commit()
        except Exception:
            db.rollback()
            raise

        package = db.get(Package, package_uuid)
        db.refresh(package)
        PACKAGE_TRANSITIONS.labels(target.value).inc()
        logger.info(
            "Package %s (#%s) moved to %s by staff %s",
            package.id,
            number,
            target.value,
            staff.id,
        )
        publish_event(
            _TRANSITION_EVENTS[target],
            entity_type="package",
            entity_id=package.id,
            actor_id=staff.id,
            mailroom_id=mailroom_uuid,
            payload={"package_number": number},
        )
        publish_event(
            EventType.slot_released,
            entity_type="package_number_slot",
            entity_id=f"{mailroom_uuid}:{number}",
            actor_id=staff.id,
            mailroom_id=mailroom_uuid,
            payload={"package_number": number, "package_id": str(package.id)},
        )
        return package

    @staticmethod
    def pickup(
        db: Session, mailroom_id: str, package_number: int, acting_staff_id: str
    ) -> Package:
        package = db.scalar(
            select(Package).where(
                Package.mailroom_id == coerce_uuid(mailroom_id),
                Package.package_id == package_number,
                Package.status == PackageStatus.WAITING,
            )
        )
        if not package:
            raise PackageNotFound("Package not found or already retrieved")
        return Packages.transition(
            db, mailroom_id, package.id, PackageStatus.RETRIEVED, acting_staff_id
        )

    @staticmethod
    def retrieved_log(db: Session, mailroom_id: str, package_number: int) -> Package:
        package = db.scalar(
            select(Package)
            .where(
                Package.mailroom_id == coerce_uuid(mailroom_id),
                Package.package_id == package_number,
                Package.status == PackageStatus.RETRIEVED,
            )
            .order_by(Package.retrieved_timestamp.desc())
            .limit(1)
        )
        if not package:
            raise PackageNotFound("Package not found or not marked as retrieved")
        return package


class FailedPackages(ListResponseMixin):
    @staticmethod
    def create(
        db: Session, mailroom_id: str, payload: FailedPackageCreate
    ) -> FailedPackageLog:
        mailroom = _get_mailroom(db, mailroom_id)
        _get_staff(db, payload.staff_id)
        entry = FailedPackageLog(mailroom_id=mailroom.id, **payload.model_dump())
        db.add(entry)
        db.commit()
        db.refresh(entry)
        logger.warning(
            "Logged failed package registration %s in mailroom %s: %s",
            entry.id,
            mailroom.id,
            entry.error_details,
        )
        publish_event(
            EventType.package_registration_failed,
            entity_type="failed_package_log",
            entity_id=entry.id,
            actor_id=payload.staff_id,
            mailroom_id=mailroom.id,
        )
        return entry

    @staticmethod
    def list(
        db: Session,
        mailroom_id: str,
        resolved: bool | None,
        limit: int,
        offset: int,
    ) -> list[FailedPackageLog]:
        stmt = select(FailedPackageLog).where(
            FailedPackageLog.mailroom_id == coerce_uuid(mailroom_id)
        )
        if resolved is not None:
            stmt = stmt.where(FailedPackageLog.resolved == resolved)
        stmt = stmt.order_by(FailedPackageLog.created_at.desc())
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def resolve(
        db: Session, mailroom_id: str, log_id: str, staff_id: str
    ) -> FailedPackageLog:
        entry = db.scalar(
            select(FailedPackageLog).where(
                FailedPackageLog.id == coerce_uuid(log_id),
                FailedPackageLog.mailroom_id == coerce_uuid(mailroom_id),
            )
        )
        if not entry:
            raise HTTPException(status_code=404, detail="Failed package log not found")
        if entry.resolved:
            raise HTTPException(status_code=409, detail="Failed package already resolved")
        staff = _get_staff(db, staff_id)
        entry.resolved = True
        entry.resolved_by = staff.id
        entry.resolved_at = utcnow()
        db.commit()
        db.refresh(entry)
        logger.info("Resolved failed package log %s", entry.id)
        return entry


packages = Packages()
failed_packages = FailedPackages()
