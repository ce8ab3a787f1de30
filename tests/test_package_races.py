import threading
import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from app.db import Base
from app.errors import InvalidTransition
from app.models.mailroom import (
    Mailroom,
    Organization,
    Profile,
    ProfileStatus,
    UserRole,
)
from app.models.package import Package, PackageNumberSlot, PackageStatus
from app.models.resident import Resident, ResidentStatus
from app.services.package import Packages
from app.services.package_queue import PackageQueue

POOL_SIZE = 20


@pytest.fixture()
def session_factory(tmp_path):
    """Sessions on a file-backed database so each thread owns a connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'mailroom.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture()
def tenant(session_factory):
    db = session_factory()
    try:
        org = Organization(name="Race University", slug=f"org-{uuid.uuid4().hex[:8]}")
        db.add(org)
        db.commit()
        room = Mailroom(organization_id=org.id, name="East Hall", slug="east")
        db.add(room)
        db.commit()
        PackageQueue.provision(db, room.id, POOL_SIZE)
        db.commit()
        staff = Profile(
            email="desk@race.edu",
            role=UserRole.user,
            organization_id=org.id,
            mailroom_id=room.id,
            status=ProfileStatus.ACTIVE,
        )
        resident = Resident(
            mailroom_id=room.id,
            first_name="Ada",
            last_name="Lovelace",
            student_id="S1",
            status=ResidentStatus.ACTIVE,
        )
        db.add_all([staff, resident])
        db.commit()
        yield {"mailroom_id": room.id, "staff_id": staff.id, "resident_id": resident.id}
    finally:
        db.close()


def _run_together(count, work):
    """Start ``count`` threads at the same instant; return their outcomes."""
    barrier = threading.Barrier(count)
    outcomes = []
    lock = threading.Lock()

    def runner(index):
        barrier.wait()
        outcome = work(index)
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=runner, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return outcomes


class TestConcurrentTransition:
    def test_exactly_one_winner(self, session_factory, tenant):
        targets = [PackageStatus.RETRIEVED, PackageStatus.STAFF_REMOVED] * 4

        with patch("app.services.package.publish_event"):
            db = session_factory()
            package = Packages.create(
                db,
                tenant["mailroom_id"],
                str(tenant["resident_id"]),
                tenant["staff_id"],
                "UPS",
            )
            package_id, number = package.id, package.package_id
            db.close()

            def attempt(index):
                db = session_factory()
                try:
                    Packages.transition(
                        db,
                        tenant["mailroom_id"],
                        package_id,
                        targets[index],
                        tenant["staff_id"],
                    )
                    return "won"
                except InvalidTransition:
                    return "lost"
                except Exception as e:
                    return repr(e)
                finally:
                    db.close()

            outcomes = _run_together(len(targets), attempt)

        assert outcomes.count("won") == 1
        assert outcomes.count("lost") == len(targets) - 1

        db = session_factory()
        try:
            final = db.get(Package, package_id)
            assert final.status in {
                PackageStatus.RETRIEVED,
                PackageStatus.STAFF_REMOVED,
            }
            slot = db.get(PackageNumberSlot, (tenant["mailroom_id"], number))
            assert slot.is_available is True
        finally:
            db.close()


class TestConcurrentAllocate:
    def test_numbers_are_never_shared(self, session_factory, tenant):
        def attempt(index):
            db = session_factory()
            try:
                number = PackageQueue.allocate(db, tenant["mailroom_id"])
                db.commit()
                return number
            except Exception as e:
                db.rollback()
                return repr(e)
            finally:
                db.close()

        outcomes = _run_together(POOL_SIZE, attempt)

        assert len(outcomes) == POOL_SIZE
        assert set(outcomes) == set(range(1, POOL_SIZE + 1))
        db = session_factory()
        try:
            available = db.scalars(
                select(PackageNumberSlot).where(
                    PackageNumberSlot.mailroom_id == tenant["mailroom_id"],
                    PackageNumberSlot.is_available.is_(True),
                )
            ).all()
            assert available == []
        finally:
            db.close()
