from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.common import ListResponse
from app.schemas.package import (
    FailedPackageCreate,
    FailedPackageRead,
    FailedPackageResolve,
    PackageCreate,
    PackagePickupRequest,
    PackageRead,
    PackageTransitionRequest,
)
from app.services.package import failed_packages, packages

router = APIRouter(prefix="/mailrooms/{mailroom_id}", tags=["packages"])


@router.post(
    "/packages", response_model=PackageRead, status_code=status.HTTP_201_CREATED
)
def create_package(
    mailroom_id: str, payload: PackageCreate, db: Session = Depends(get_db)
):
    return packages.create(
        db, mailroom_id, payload.resident_id, payload.staff_id, payload.provider
    )


@router.get("/packages", response_model=ListResponse[PackageRead])
def list_packages(
    mailroom_id: str,
    status_filter: str | None = Query(default=None, alias="status"),
    resident_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return packages.list_response(
        db,
        mailroom_id,
        status_filter,
        resident_id,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.post("/packages/pickup", response_model=PackageRead)
def pickup_package(
    mailroom_id: str, payload: PackagePickupRequest, db: Session = Depends(get_db)
):
    return packages.pickup(
        db, mailroom_id, payload.package_number, payload.acting_staff_id
    )


@router.get("/packages/retrieved/{package_number}", response_model=PackageRead)
def get_retrieved_package(
    mailroom_id: str, package_number: int, db: Session = Depends(get_db)
):
    return packages.retrieved_log(db, mailroom_id, package_number)


@router.get("/packages/{package_id}", response_model=PackageRead)
def get_package(mailroom_id: str, package_id: str, db: Session = Depends(get_db)):
    return packages.get(db, mailroom_id, package_id)


@router.post("/packages/{package_id}/transition", response_model=PackageRead)
def transition_package(
    mailroom_id: str,
    package_id: str,
    payload: PackageTransitionRequest,
    db: Session = Depends(get_db),
):
    return packages.transition(
        db, mailroom_id, package_id, payload.status, payload.acting_staff_id
    )


@router.get("/residents/{resident_id}/packages", response_model=list[PackageRead])
def list_waiting_packages_for_resident(
    mailroom_id: str, resident_id: str, db: Session = Depends(get_db)
):
    return packages.waiting_for_resident(db, mailroom_id, resident_id)


# ------------------------------------------------------------------
# Failed registrations
# ------------------------------------------------------------------


@router.post(
    "/failed-packages",
    response_model=FailedPackageRead,
    status_code=status.HTTP_201_CREATED,
)
def log_failed_package(
    mailroom_id: str, payload: FailedPackageCreate, db: Session = Depends(get_db)
):
    return failed_packages.create(db, mailroom_id, payload)


@router.get("/failed-packages", response_model=ListResponse[FailedPackageRead])
def list_failed_packages(
    mailroom_id: str,
    resolved: bool | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return failed_packages.list_response(db, mailroom_id, resolved, limit, offset)


@router.post("/failed-packages/{log_id}/resolve", response_model=FailedPackageRead)
def resolve_failed_package(
    mailroom_id: str,
    log_id: str,
    payload: FailedPackageResolve,
    db: Session = Depends(get_db),
):
    return failed_packages.resolve(db, mailroom_id, log_id, payload.staff_id)
