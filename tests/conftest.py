import os
import uuid

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["PACKAGE_POOL_SIZE"] = "10"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import app.models  # noqa: E402,F401
from app.api.deps import get_db  # noqa: E402
from app.db import Base, get_engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models.mailroom import (  # noqa: E402
    Mailroom,
    Organization,
    Profile,
    ProfileStatus,
    UserRole,
)
from app.models.resident import Resident, ResidentStatus  # noqa: E402
from app.services.package_queue import PackageQueue  # noqa: E402

TEST_POOL_SIZE = 3


@pytest.fixture()
def engine():
    engine = get_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def organization(db_session):
    org = Organization(
        name="Test University",
        slug=f"org-{uuid.uuid4().hex[:8]}",
        notification_email="mail@test.edu",
        notification_email_password="secret",
    )
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture()
def mailroom(db_session, organization):
    """Mailroom with a package number pool of {1, 2, 3}."""
    room = Mailroom(
        organization_id=organization.id,
        name="North Hall",
        slug=f"room-{uuid.uuid4().hex[:8]}",
        admin_email="desk@test.edu",
    )
    db_session.add(room)
    db_session.commit()
    PackageQueue.provision(db_session, room.id, TEST_POOL_SIZE)
    db_session.commit()
    db_session.refresh(room)
    return room


def _make_profile(db_session, organization, mailroom, role):
    profile = Profile(
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.edu",
        role=role,
        organization_id=organization.id,
        mailroom_id=mailroom.id,
        status=ProfileStatus.ACTIVE,
    )
    db_session.add(profile)
    db_session.commit()
    db_session.refresh(profile)
    return profile


@pytest.fixture()
def staff(db_session, organization, mailroom):
    return _make_profile(db_session, organization, mailroom, UserRole.user)


@pytest.fixture()
def manager(db_session, organization, mailroom):
    return _make_profile(db_session, organization, mailroom, UserRole.manager)


@pytest.fixture()
def admin(db_session, organization, mailroom):
    return _make_profile(db_session, organization, mailroom, UserRole.admin)


@pytest.fixture()
def resident(db_session, mailroom):
    res = Resident(
        mailroom_id=mailroom.id,
        first_name="Ada",
        last_name="Lovelace",
        student_id="S1001",
        email="ada@test.edu",
        status=ResidentStatus.ACTIVE,
    )
    db_session.add(res)
    db_session.commit()
    db_session.refresh(res)
    return res
