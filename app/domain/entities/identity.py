"""Domain entity describing an authenticated recipient."""

from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_ASSESSOR = "assessor"
ROLE_CLIENT = "client"


@dataclass(frozen=True)
class Identity:
    """Recipient identity handed to the delivery layer by authentication."""

    recipient_id: str
    role: str

    def is_admin(self) -> bool:
        """Return ``True`` when the identity carries the administrator role."""

        return self.role.lower() == ROLE_ADMIN


__all__ = ["Identity", "ROLE_ADMIN", "ROLE_ASSESSOR", "ROLE_CLIENT"]
