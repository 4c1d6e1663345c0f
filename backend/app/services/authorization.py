"""Authorization boundary — the `has_role(actor, roles, scope)` predicate.

The booking core never authenticates anyone; it asks a RoleChecker whether an
already-identified actor holds one of a set of roles for a facility scope.
"""
import logging
from typing import Iterable, Optional, Protocol

from fastapi import Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import PermissionDeniedError
from app.models.role import UserRole, Role

logger = logging.getLogger(__name__)


class RoleChecker(Protocol):
    def has_role(self, actor_id: str, roles: Iterable[str], scope: Optional[str] = None) -> bool: ...


class DatabaseRoleChecker:
    """Role grants stored in `user_roles`; a grant with no facility applies everywhere."""

    def __init__(self, db: Session):
        self.db = db

    def has_role(self, actor_id: str, roles: Iterable[str], scope: Optional[str] = None) -> bool:
        wanted = [Role(r) for r in roles if r in Role.__members__]
        if not actor_id or not wanted:
            return False
        query = self.db.query(UserRole).filter(
            UserRole.user_id == actor_id,
            UserRole.role.in_(wanted),
        )
        if scope is not None:
            query = query.filter(or_(UserRole.facility_id.is_(None), UserRole.facility_id == scope))
        else:
            query = query.filter(UserRole.facility_id.is_(None))
        return query.first() is not None


def get_role_checker(db: Session = Depends(get_db)) -> RoleChecker:
    """FastAPI dependency — overridden in tests."""
    return DatabaseRoleChecker(db)


def require_role(
    role_checker: RoleChecker,
    actor_id: str,
    roles: Iterable[str],
    scope: Optional[str] = None,
    action: str = "perform this action",
) -> None:
    """Raise PermissionDeniedError unless the actor holds one of `roles` in `scope`."""
    roles = sorted(roles)
    if not role_checker.has_role(actor_id, roles, scope):
        logger.info("Permission denied: %s may not %s (scope=%s)", actor_id, action, scope)
        raise PermissionDeniedError(
            f"Insufficient permission to {action}.",
            actor_id=actor_id,
            required_roles=roles,
            scope=scope,
        )
