"""
Request identity passed explicitly into every workflow operation.
"""
from dataclasses import dataclass

from app.core.errors import ForbiddenError
from app.features.users.models import UserRole


@dataclass(frozen=True)
class Actor:
    """The authenticated caller: a user id and the role it acts under."""
    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def require_admin(actor: Actor) -> Actor:
    """Raise FORBIDDEN unless the actor holds the admin role."""
    if not actor.is_admin:
        raise ForbiddenError("Admin privileges required")
    return actor
