"""Per-mailroom package number pool.

Every mailroom owns a fixed set of reusable numbers. ``allocate`` hands out
the available number that has been idle longest and ``release`` returns a
number to the back of the queue. These two are the only writers of
``PackageNumberSlot.is_available``; the pool lives only in the database.

Neither method commits. Callers decide the transaction boundary so a release
can land atomically with the package status change that triggered it.
"""

import logging
import random
from datetime import timedelta

from fastapi import HTTPException
from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import QueueExhausted, SlotNotFound
from app.models.mailroom import Mailroom
from app.models.package import MAX_PACKAGE_NUMBER, PackageNumberSlot
from app.observability import QUEUE_EXHAUSTED, SLOTS_ALLOCATED, SLOTS_RELEASED
from app.services.common import coerce_uuid, utcnow

logger = logging.getLogger(__name__)


class PackageQueue:
    @staticmethod
    def provision(db: Session, mailroom_id: str, size: int | None = None) -> int:
        """Create slots 1..size for a mailroom. Returns how many were created.

        A mailroom that already has slots is left untouched. Initial
        ``last_used_at`` values are scattered over the past few days so the
        first numbers handed out are shuffled rather than sequential.
        """
        mailroom_uuid = coerce_uuid(mailroom_id)
        if not db.get(Mailroom, mailroom_uuid):
            raise HTTPException(status_code=404, detail="Mailroom not found")
        size = size or settings.package_pool_size
        if size < 1 or size > MAX_PACKAGE_NUMBER:
            raise HTTPException(
                status_code=400,
                detail=f"Pool size must be between 1 and {MAX_PACKAGE_NUMBER}",
            )

        existing = db.scalar(
            select(func.count())
            .select_from(PackageNumberSlot)
            .where(PackageNumberSlot.mailroom_id == mailroom_uuid)
        )
        if existing:
            logger.info(
                "Package queue for mailroom %s already exists; skipping", mailroom_id
            )
            return 0

        now = utcnow()
        window = timedelta(days=settings.package_queue_shuffle_days).total_seconds()
        db.add_all(
            PackageNumberSlot(
                mailroom_id=mailroom_uuid,
                package_number=number,
                is_available=True,
                last_used_at=now - timedelta(seconds=random.uniform(0, window)),
            )
            for number in range(1, size + 1)
        )
        db.flush()
        logger.info(
            "Provisioned %d package numbers for mailroom %s", size, mailroom_id
        )
        return size

    @staticmethod
    def allocate(db: Session, mailroom_id: str) -> int:
        mailroom_uuid = coerce_uuid(mailroom_id)
        while True:
            candidate = db.scalar(
                select(PackageNumberSlot.package_number)
                .where(
                    PackageNumberSlot.mailroom_id == mailroom_uuid,
                    PackageNumberSlot.is_available.is_(True),
                )
                .order_by(
                    PackageNumberSlot.last_used_at.asc(),
                    PackageNumberSlot.package_number.asc(),
                )
                .limit(1)
                .with_for_update(skip_locked=True)
            )
            if candidate is None:
                QUEUE_EXHAUSTED.inc()
                logger.warning(
                    "No available package numbers for mailroom %s", mailroom_id
                )
                raise QueueExhausted()

            # The availability guard makes the claim a compare-and-swap; a
            # concurrent allocator that got here first leaves zero rows.
            claimed = db.scalar(
                update(PackageNumberSlot)
                .where(
                    PackageNumberSlot.mailroom_id == mailroom_uuid,
                    PackageNumberSlot.package_number == candidate,
                    PackageNumberSlot.is_available.is_(True),
                )
                .values(is_available=False, last_used_at=utcnow())
                .returning(PackageNumberSlot.package_number)
            )
            if claimed is not None:
                break
            logger.debug(
                "Package number %s in mailroom %s was claimed concurrently",
                candidate,
                mailroom_id,
            )

        SLOTS_ALLOCATED.inc()
        logger.info("Allocated package number %s for mailroom %s", claimed, mailroom_id)
        return claimed

    @staticmethod
    def release(db: Session, mailroom_id: str, package_number: int) -> bool:
        mailroom_uuid = coerce_uuid(mailroom_id)
        result = db.execute(
            update(PackageNumberSlot)
            .where(
                PackageNumberSlot.mailroom_id == mailroom_uuid,
                PackageNumberSlot.package_number == package_number,
                PackageNumberSlot.is_available.is_(False),
            )
            .values(is_available=True, last_used_at=utcnow())
        )
        if result.rowcount:
            SLOTS_RELEASED.labels("released").inc()
            logger.info(
                "Released package number %s back to mailroom %s queue",
                package_number,
                mailroom_id,
            )
            return True

        if db.get(PackageNumberSlot, (mailroom_uuid, package_number)) is None:
            SLOTS_RELEASED.labels("missing").inc()
            logger.error(
                "Package number %s was never provisioned for mailroom %s",
                package_number,
                mailroom_id,
            )
            raise SlotNotFound()

        SLOTS_RELEASED.labels("noop").inc()
        logger.info(
            "Package number %s in mailroom %s already available",
            package_number,
            mailroom_id,
        )
        return True

    @staticmethod
    def stats(db: Session, mailroom_id: str) -> dict:
        mailroom_uuid = coerce_uuid(mailroom_id)
        total, available = db.execute(
            select(
                func.count(),
                func.coalesce(
                    func.sum(case((PackageNumberSlot.is_available.is_(True), 1), else_=0)),
                    0,
                ),
            ).where(PackageNumberSlot.mailroom_id == mailroom_uuid)
        ).one()
        return {"total": total, "available": available, "in_use": total - available}


package_queue = PackageQueue()
