from app.models.invitation import Invitation, InvitationStatus  # noqa: F401
from app.models.mailroom import (  # noqa: F401
    Mailroom,
    Organization,
    PickupOption,
    Profile,
    ProfileStatus,
    TenantStatus,
    UserRole,
)
from app.models.package import (  # noqa: F401
    FailedPackageLog,
    Package,
    PackageNumberSlot,
    PackageStatus,
)
from app.models.resident import Resident, ResidentStatus  # noqa: F401
