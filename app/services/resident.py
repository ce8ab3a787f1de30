from __future__ import annotations

import logging

from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.mailroom import Mailroom, Profile, ProfileStatus
from app.models.resident import Resident, ResidentStatus
from app.schemas.resident import MissingResidentReport, ResidentCreate, RosterRow
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.event import EventType, publish_event
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def _get_mailroom(db: Session, mailroom_id) -> Mailroom:
    mailroom = db.get(Mailroom, coerce_uuid(mailroom_id))
    if not mailroom:
        raise HTTPException(status_code=404, detail="Mailroom not found")
    return mailroom


def _roster_key(student_id: str, email: str | None) -> tuple[str, str]:
    return student_id, email or ""


class Residents(ListResponseMixin):
    @staticmethod
    def add(db: Session, mailroom_id: str, payload: ResidentCreate) -> Resident:
        mailroom = _get_mailroom(db, mailroom_id)
        if Residents.find_active_by_student_id(db, mailroom.id, payload.student_id):
            raise HTTPException(
                status_code=409,
                detail=f"An active resident with student ID {payload.student_id} "
                "already exists in this mailroom",
            )
        resident = Resident(
            mailroom_id=mailroom.id,
            status=ResidentStatus.ACTIVE,
            **payload.model_dump(),
        )
        db.add(resident)
        db.commit()
        db.refresh(resident)
        logger.info("Added resident %s to mailroom %s", resident.id, mailroom.id)
        publish_event(
            EventType.resident_added,
            entity_type="resident",
            entity_id=resident.id,
            actor_id=payload.added_by,
            mailroom_id=mailroom.id,
        )
        return resident

    @staticmethod
    def get(db: Session, mailroom_id: str, resident_id: str) -> Resident:
        resident = db.scalar(
            select(Resident).where(
                Resident.id == coerce_uuid(resident_id),
                Resident.mailroom_id == coerce_uuid(mailroom_id),
            )
        )
        if not resident:
            raise HTTPException(status_code=404, detail="Resident not found")
        return resident

    @staticmethod
    def find_active_by_student_id(
        db: Session, mailroom_id: str, student_id: str
    ) -> Resident | None:
        return db.scalar(
            select(Resident).where(
                Resident.mailroom_id == coerce_uuid(mailroom_id),
                Resident.student_id == student_id,
                Resident.status == ResidentStatus.ACTIVE,
            )
        )

    @staticmethod
    def list(
        db: Session,
        mailroom_id: str,
        status: str | None,
        search: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Resident]:
        stmt = select(Resident).where(Resident.mailroom_id == coerce_uuid(mailroom_id))
        if status is None:
            stmt = stmt.where(Resident.status == ResidentStatus.ACTIVE)
        else:
            try:
                stmt = stmt.where(Resident.status == ResidentStatus(status))
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Resident.first_name.ilike(pattern),
                    Resident.last_name.ilike(pattern),
                    Resident.student_id.ilike(pattern),
                    Resident.email.ilike(pattern),
                )
            )
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "last_name": Resident.last_name,
                "student_id": Resident.student_id,
                "created_at": Resident.created_at,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def remove(db: Session, mailroom_id: str, resident_id: str) -> Resident:
        resident = Residents.get(db, mailroom_id, resident_id)
        if resident.status != ResidentStatus.ACTIVE:
            raise HTTPException(status_code=404, detail="Resident not found")
        resident.status = ResidentStatus.REMOVED_INDIVIDUAL
        db.commit()
        db.refresh(resident)
        logger.info("Removed resident %s from mailroom %s", resident.id, mailroom_id)
        publish_event(
            EventType.resident_removed,
            entity_type="resident",
            entity_id=resident.id,
            mailroom_id=resident.mailroom_id,
        )
        return resident

    @staticmethod
    def sync_roster(
        db: Session,
        mailroom_id: str,
        rows: list[RosterRow],
        added_by: str | None = None,
    ) -> dict:
        """Make the mailroom's active residents match an uploaded roster.

        Rows match active residents on (student id, email). Matched residents
        with changed names or email are updated, unmatched rows become new
        residents, and active residents missing from the roster are marked
        REMOVED_BULK.
        """
        mailroom = _get_mailroom(db, mailroom_id)
        for row in rows:
            if not (row.first_name and row.last_name and row.resident_id):
                raise HTTPException(
                    status_code=400,
                    detail="Missing required fields for one or more residents. "
                    "Ensure first_name, last_name, and resident_id are present. "
                    f"Problematic entry: {row.model_dump_json()}",
                )

        seen: set[str] = set()
        for row in rows:
            if row.resident_id in seen:
                raise HTTPException(
                    status_code=400,
                    detail=f"Duplicate resident_id in roster: {row.resident_id}",
                )
            seen.add(row.resident_id)

        existing = db.scalars(
            select(Resident).where(
                Resident.mailroom_id == mailroom.id,
                Resident.status == ResidentStatus.ACTIVE,
            )
        ).all()
        by_key = {_roster_key(r.student_id, r.email): r for r in existing}

        counts = {"total": len(rows), "new": 0, "unchanged": 0, "updated": 0}
        matched: set = set()
        to_insert: list[RosterRow] = []
        for row in rows:
            match = by_key.get(_roster_key(row.resident_id, row.email))
            if match is None:
                to_insert.append(row)
                continue
            matched.add(match.id)
            if (
                match.first_name != row.first_name
                or match.last_name != row.last_name
                or (match.email or None) != (row.email or None)
            ):
                match.first_name = row.first_name
                match.last_name = row.last_name
                match.email = row.email
                counts["updated"] += 1
            else:
                counts["unchanged"] += 1

        removed = 0
        for resident in existing:
            if resident.id not in matched:
                resident.status = ResidentStatus.REMOVED_BULK
                removed += 1
        counts["removed"] = removed
        # Removals must reach the store before inserts that may reuse the
        # same student id under the active-resident unique index.
        db.flush()

        for row in to_insert:
            db.add(
                Resident(
                    mailroom_id=mailroom.id,
                    first_name=row.first_name,
                    last_name=row.last_name,
                    student_id=row.resident_id,
                    email=row.email,
                    added_by=coerce_uuid(added_by),
                    status=ResidentStatus.ACTIVE,
                )
            )
        counts["new"] = len(to_insert)
        db.commit()
        logger.info("Synced roster for mailroom %s: %s", mailroom.id, counts)
        publish_event(
            EventType.roster_synced,
            entity_type="mailroom",
            entity_id=mailroom.id,
            actor_id=added_by,
            mailroom_id=mailroom.id,
            payload=counts,
        )
        return counts

    @staticmethod
    def report_missing(
        db: Session, mailroom_id: str, payload: MissingResidentReport
    ) -> None:
        """Ask the mailroom admin to add a resident absent from the roster.

        The email itself goes out from the event fan-out.
        """
        mailroom = _get_mailroom(db, mailroom_id)
        reporter = db.get(Profile, payload.reported_by)
        if (
            not reporter
            or reporter.status != ProfileStatus.ACTIVE
            or reporter.mailroom_id != mailroom.id
        ):
            raise HTTPException(status_code=404, detail="Staff not found")
        if not mailroom.admin_email:
            raise HTTPException(
                status_code=400,
                detail="Admin email not configured for this mailroom",
            )
        logger.info(
            "Missing resident %r <%s> reported in mailroom %s by %s",
            payload.name,
            payload.email,
            mailroom.id,
            reporter.id,
        )
        publish_event(
            EventType.missing_resident_reported,
            entity_type="mailroom",
            entity_id=mailroom.id,
            actor_id=reporter.id,
            mailroom_id=mailroom.id,
            payload={"name": payload.name, "email": payload.email},
        )


residents = Residents()
