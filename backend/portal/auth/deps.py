"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user   → decode JWT, load the account from the store
  require_role(...)  → restrict to specific roles
  require_reviewer   → staff, officials and admins (review endpoints)
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from portal.auth.jwt import decode_token
from portal.domain.records import REVIEWER_ROLES, UserRole
from portal.store import PortalStore, UserAccount, get_store

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    store: PortalStore = Depends(get_store),
) -> UserAccount:
    """Decode the JWT and return the matching active account."""
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account = store.users.get(user_id)
    if not account or not account.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return account


# ── Role-based access control ───────────────────────────────

def require_role(*roles: UserRole):
    """Dependency factory: restrict to one or more roles.

    Usage:
        @router.get("/admin-only")
        async def admin_view(user: UserAccount = Depends(require_role(UserRole.ADMIN))):
            ...
    """
    async def _check(user: UserAccount = Depends(get_current_user)) -> UserAccount:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(r.value for r in roles)}",
            )
        return user

    return _check


require_reviewer = require_role(*sorted(REVIEWER_ROLES, key=lambda r: r.value))
