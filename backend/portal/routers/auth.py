"""Auth routes.

Route overview:
  POST /register  — citizen self-registration, returns a bearer token
  POST /login     — email + password login, returns a bearer token
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from portal.auth.jwt import create_access_token
from portal.auth.password import verify_password
from portal.domain.records import UserProfile, UserRole, utcnow
from portal.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from portal.schemas.common import Envelope
from portal.store import PortalStore, get_store
from portal.utils.activity import log_activity

logger = logging.getLogger(__name__)

router = APIRouter()


# ── POST /register ──────────────────────────────────────────

@router.post("/register", response_model=Envelope[TokenResponse], status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, store: PortalStore = Depends(get_store)):
    """Create a citizen account and sign it in."""
    if store.find_user_by_email(body.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    account = store.add_user(
        UserProfile(
            email=body.email,
            first_name=body.first_name,
            last_name=body.last_name,
            phone_number=body.phone_number,
            address=body.address,
            role=UserRole.CITIZEN,
        ),
        body.password,
    )
    store.notify(
        account.id,
        "Welcome to the portal",
        "You can now apply for local government services online.",
    )
    log_activity(
        store, account,
        action="registered",
        entity_type="user",
        entity_id=account.id,
        entity_code=account.profile.email,
        summary=f"Registered {account.profile.full_name}",
    )
    logger.info(f"Registered citizen account {account.id}")

    token = create_access_token(user_id=account.id, role=account.role.value)
    return Envelope(
        data=TokenResponse(access_token=token, user=account.profile),
        message="Registration successful",
    )


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=Envelope[TokenResponse])
async def login(body: LoginRequest, store: PortalStore = Depends(get_store)):
    """Email + password login. Returns a JWT carrying the user's role."""
    account = store.find_user_by_email(body.email)

    if not account or not verify_password(body.password, account.password_hash):
        logger.warning("Failed login attempt", extra={"email": body.email})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not account.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account deactivated")

    store.save_user(account.model_copy(update={"last_login": utcnow()}))
    token = create_access_token(user_id=account.id, role=account.role.value)
    return Envelope(
        data=TokenResponse(access_token=token, user=account.profile),
        message="Login successful",
    )
