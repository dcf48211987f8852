from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_EMPLOYEE = "employee"
ROLES = {ROLE_ADMIN, ROLE_EMPLOYEE}


@dataclass(frozen=True)
class Actor:
    """
    Opaque caller reference supplied by the identity collaborator.

    The core never checks credentials; it only records `id` on
    StockMovement.recorded_by_id, Sale.sold_by_id and Sale.approved_by_id.
    """
    id: int
    role: str = ROLE_EMPLOYEE

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
