from typing import Optional

from agenda.schemas import AccessCode, AdminStats, Booking, BookingStatus, CodeStatus, Identity, Role
from agenda.services.access_control import authorize
from agenda.store import RecordStore


def admin_statistics(store: RecordStore, identity: Optional[Identity]) -> AdminStats:
    """Active codes per role and confirmed bookings, computed from current state."""
    authorize(identity, {Role.ADMIN})
    active_codes = store.list(AccessCode, where={"status": CodeStatus.ACTIVE})
    per_role = {role: 0 for role in Role}
    for code in active_codes:
        per_role[code.role] += 1
    confirmed = store.list(Booking, where={"status": BookingStatus.CONFIRMED})
    return AdminStats(
        admin_count=per_role[Role.ADMIN],
        provider_count=per_role[Role.PROVIDER],
        requester_count=per_role[Role.REQUESTER],
        active_bookings=len(confirmed),
    )
