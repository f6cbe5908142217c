"""Admin-only user management.

Route overview:
  GET  /api/admin/users                        — user table (search/filter/sort/page)
  PUT  /api/admin/users/{user_id}              — update name, phone, role or verification
  POST /api/admin/users/{user_id}/suspend      — suspend an account
  POST /api/admin/users/{user_id}/reactivate   — reactivate a suspended account

A suspended account can neither log in nor use an existing token.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from portal.auth.deps import require_role
from portal.core.listview import ALL, ListViewController, SortKind
from portal.domain.records import UserRole, utcnow
from portal.schemas.admin import SuspendRequest, UserSummary, UserUpdate
from portal.schemas.common import Envelope, PaginatedResponse
from portal.store import PortalStore, UserAccount, get_store
from portal.utils.activity import log_activity

logger = logging.getLogger(__name__)

router = APIRouter()

require_admin = require_role(UserRole.ADMIN)

USER_SEARCH_FIELDS = ("full_name", "email", "phone_number")
USER_FILTER_FIELDS = ("role", "status")
USER_SORT_FIELDS = {
    "created_at": SortKind.DATE,
    "last_login": SortKind.DATE,
    "first_name": SortKind.STRING,
    "last_name": SortKind.STRING,
    "email": SortKind.STRING,
}


# ── GET /users ──────────────────────────────────────────────

@router.get("/users", response_model=Envelope[PaginatedResponse[UserSummary]])
async def list_users(
    search: str = Query("", description="Substring of name, email or phone"),
    role: str = Query(ALL),
    status_filter: str = Query(ALL, alias="status"),
    sort: str = Query("created_at"),
    direction: str = Query("desc"),
    page: int = Query(0, ge=0),
    page_size: int = Query(10, ge=1, le=100),
    store: PortalStore = Depends(get_store),
    _admin: UserAccount = Depends(require_admin),
):
    view = ListViewController(
        (UserSummary.from_account(account) for account in store.users.values()),
        search_fields=USER_SEARCH_FIELDS,
        filter_fields=USER_FILTER_FIELDS,
        sort_fields=USER_SORT_FIELDS,
        sort=(sort, direction),
        page_size=page_size,
    )
    view.set_search_query(search)
    view.set_filter("role", role)
    view.set_filter("status", status_filter)
    view.set_page(page)
    return Envelope(data=view.get_page())


# ── PUT /users/{user_id} ────────────────────────────────────

@router.put("/users/{user_id}", response_model=Envelope[UserSummary])
async def update_user(
    user_id: str,
    payload: UserUpdate,
    store: PortalStore = Depends(get_store),
    admin: UserAccount = Depends(require_admin),
):
    """Update a user's name, phone, role or verification flag."""
    target = store.get_user(user_id)

    # Admins cannot change their own role
    if payload.role is not None and user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot change your own role")

    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    before = target.profile.model_dump(mode="json")
    changes = {
        name: {"from": before[name], "to": value}
        for name, value in payload.model_dump(mode="json", exclude_unset=True, exclude_none=True).items()
        if before[name] != value
    }
    profile = target.profile.model_copy(update={**updates, "updated_at": utcnow()})
    target = store.save_user(target.model_copy(update={"profile": profile}))

    log_activity(
        store, admin,
        action="user_updated",
        entity_type="user",
        entity_id=target.id,
        entity_code=profile.email,
        summary=f"Updated user {profile.full_name}",
        details=changes,
    )
    return Envelope(data=UserSummary.from_account(target), message="User updated")


# ── POST /users/{user_id}/suspend ───────────────────────────

@router.post("/users/{user_id}/suspend", response_model=Envelope[UserSummary])
async def suspend_user(
    user_id: str,
    body: SuspendRequest,
    store: PortalStore = Depends(get_store),
    admin: UserAccount = Depends(require_admin),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot suspend yourself")

    target = store.save_user(store.get_user(user_id).model_copy(update={"is_active": False}))
    log_activity(
        store, admin,
        action="user_suspended",
        entity_type="user",
        entity_id=target.id,
        entity_code=target.profile.email,
        summary=f"Suspended user {target.profile.full_name}",
        details={"reason": body.reason},
    )
    logger.info(f"User {target.id} suspended by {admin.id}")
    return Envelope(data=UserSummary.from_account(target), message="User suspended")


# ── POST /users/{user_id}/reactivate ────────────────────────

@router.post("/users/{user_id}/reactivate", response_model=Envelope[UserSummary])
async def reactivate_user(
    user_id: str,
    store: PortalStore = Depends(get_store),
    admin: UserAccount = Depends(require_admin),
):
    target = store.save_user(store.get_user(user_id).model_copy(update={"is_active": True}))
    store.notify(
        target.id,
        "Account reactivated",
        "Your portal account has been reactivated.",
    )
    log_activity(
        store, admin,
        action="user_reactivated",
        entity_type="user",
        entity_id=target.id,
        entity_code=target.profile.email,
        summary=f"Reactivated user {target.profile.full_name}",
    )
    return Envelope(data=UserSummary.from_account(target), message="User reactivated")
