"""
shared/middleware/auth.py
FastAPI dependency functions for the auth context.
Sessions are issued upstream; the gateway forwards the viewer as
X-User-* headers and this service trusts them.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from shared.models.models import Actor, UserRole


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_company: Optional[str] = Header(None),
) -> Actor:
    """Build the viewer from forwarded headers. Missing or unknown → 401."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    try:
        role = UserRole(x_user_role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role: {x_user_role}",
        )
    return Actor(id=x_user_id, role=role, name=x_user_name, company_name=x_user_company)


async def get_optional_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_company: Optional[str] = Header(None),
) -> Optional[Actor]:
    """Same as get_current_user but guests get None instead of 401."""
    if not x_user_id or not x_user_role:
        return None
    return await get_current_user(x_user_id, x_user_role, x_user_name, x_user_company)


class RoleRequired:
    """Dependency factory for role-based access control."""

    def __init__(self, *roles: UserRole):
        self.roles = roles

    async def __call__(
        self,
        current_user: Actor = Depends(get_current_user),
    ) -> Actor:
        if current_user.role not in self.roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Required role: {[r.value for r in self.roles]}",
            )
        return current_user


# Convenience role dependencies
require_tourist = RoleRequired(UserRole.TOURIST)
require_provider = RoleRequired(UserRole.PROVIDER)
require_admin = RoleRequired(UserRole.ADMIN)
require_staff = RoleRequired(UserRole.PROVIDER, UserRole.ADMIN)
