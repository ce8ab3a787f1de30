from __future__ import annotations

import logging
from datetime import datetime, time

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.mailroom import Mailroom, Organization
from app.models.package import Package, PackageStatus
from app.models.resident import Resident, ResidentStatus
from app.schemas.mailroom import (
    MailroomCreate,
    MailroomEmailSettingsUpdate,
    MailroomSettingsUpdate,
    OrganizationCreate,
)
from app.services.common import apply_ordering, apply_pagination, coerce_uuid, utcnow
from app.services.package_queue import package_queue
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def _validate_hours(hours: dict | None) -> None:
    if hours is None:
        return
    for day, periods in hours.items():
        if day not in WEEKDAYS:
            raise HTTPException(status_code=400, detail=f"Invalid day: {day}")
        if not isinstance(periods, list):
            raise HTTPException(
                status_code=400, detail=f"Hours for {day} must be a list of periods"
            )
        for period in periods:
            try:
                start = time.fromisoformat(period["start"])
                end = time.fromisoformat(period["end"])
            except (KeyError, TypeError, ValueError):
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid period for {day}: expected start/end as HH:MM",
                )
            if start >= end:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid period for {day}: start must be before end",
                )


class Organizations:
    @staticmethod
    def create(db: Session, payload: OrganizationCreate) -> Organization:
        org = Organization(**payload.model_dump())
        try:
            db.add(org)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=409, detail="Organization slug already in use"
            )
        db.refresh(org)
        logger.info("Created organization %s (%s)", org.id, org.slug)
        return org

    @staticmethod
    def get(db: Session, organization_id: str) -> Organization:
        org = db.get(Organization, coerce_uuid(organization_id))
        if not org:
            raise HTTPException(status_code=404, detail="Organization not found")
        return org

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Organization:
        org = db.scalar(select(Organization).where(Organization.slug == slug))
        if not org:
            raise HTTPException(status_code=404, detail="Organization not found")
        return org


class Mailrooms(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: MailroomCreate) -> Mailroom:
        Organizations.get(db, payload.organization_id)
        _validate_hours(payload.mailroom_hours)
        mailroom = Mailroom(**payload.model_dump())
        try:
            db.add(mailroom)
            db.flush()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=409,
                detail="Mailroom slug already in use in this organization",
            )
        package_queue.provision(db, mailroom.id)
        db.commit()
        db.refresh(mailroom)
        logger.info("Created mailroom %s (%s)", mailroom.id, mailroom.slug)
        return mailroom

    @staticmethod
    def get(db: Session, mailroom_id: str) -> Mailroom:
        mailroom = db.get(Mailroom, coerce_uuid(mailroom_id))
        if not mailroom:
            raise HTTPException(status_code=404, detail="Mailroom not found")
        return mailroom

    @staticmethod
    def get_by_slugs(db: Session, org_slug: str, mailroom_slug: str) -> Mailroom:
        mailroom = db.scalar(
            select(Mailroom)
            .join(Organization, Organization.id == Mailroom.organization_id)
            .where(Organization.slug == org_slug, Mailroom.slug == mailroom_slug)
        )
        if not mailroom:
            raise HTTPException(
                status_code=404,
                detail="Mailroom not found or does not belong to the organization",
            )
        return mailroom

    @staticmethod
    def list(
        db: Session,
        organization_id: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Mailroom]:
        stmt = select(Mailroom)
        if organization_id is not None:
            stmt = stmt.where(Mailroom.organization_id == coerce_uuid(organization_id))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"name": Mailroom.name, "created_at": Mailroom.created_at},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def update_settings(
        db: Session, mailroom_id: str, payload: MailroomSettingsUpdate
    ) -> Mailroom:
        mailroom = Mailrooms.get(db, mailroom_id)
        data = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not data:
            raise HTTPException(status_code=400, detail="No update data provided.")
        for key, value in data.items():
            setattr(mailroom, key, value)
        db.commit()
        db.refresh(mailroom)
        logger.info("Updated settings for mailroom %s", mailroom.id)
        return mailroom

    @staticmethod
    def update_email_settings(
        db: Session, mailroom_id: str, payload: MailroomEmailSettingsUpdate
    ) -> Mailroom:
        mailroom = Mailrooms.get(db, mailroom_id)
        data = payload.model_dump(exclude_unset=True)
        if not data:
            raise HTTPException(status_code=400, detail="No update data provided.")
        _validate_hours(data.get("mailroom_hours"))
        for key, value in data.items():
            setattr(mailroom, key, value)
        db.commit()
        db.refresh(mailroom)
        logger.info("Updated email settings for mailroom %s", mailroom.id)
        return mailroom

    @staticmethod
    def overview(db: Session, mailroom_id: str) -> dict:
        mailroom = Mailrooms.get(db, mailroom_id)
        now = utcnow()
        start_of_day = datetime(now.year, now.month, now.day, tzinfo=now.tzinfo)
        waiting = db.scalar(
            select(func.count())
            .select_from(Package)
            .where(
                Package.mailroom_id == mailroom.id,
                Package.status == PackageStatus.WAITING,
            )
        )
        today = db.scalar(
            select(func.count())
            .select_from(Package)
            .where(
                Package.mailroom_id == mailroom.id,
                Package.created_at >= start_of_day,
            )
        )
        residents = db.scalar(
            select(func.count())
            .select_from(Resident)
            .where(
                Resident.mailroom_id == mailroom.id,
                Resident.status == ResidentStatus.ACTIVE,
            )
        )
        return {
            "mailroom_id": mailroom.id,
            "waiting_packages": waiting,
            "packages_today": today,
            "active_residents": residents,
            "queue": package_queue.stats(db, mailroom.id),
        }


organizations = Organizations()
mailrooms = Mailrooms()
