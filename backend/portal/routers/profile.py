"""Profile routes: the signed-in user's own data.

Route overview:
  GET    /                          — current profile
  PUT    /                          — update profile fields
  POST   /picture                   — upload a profile picture (multipart)
  GET    /applications              — caller's applications, newest first
  GET    /notifications             — caller's notifications, newest first
  PUT    /notifications             — channel preferences
  PUT    /notifications/read-all    — mark every notification read
  PUT    /notifications/{id}        — mark one notification read/unread
  DELETE /notifications/{id}        — delete a notification
  GET    /documents                 — caller's documents
  POST   /documents                 — upload a document (multipart)

``password_router`` carries PUT /api/change-password, which sits outside
the /api/profile prefix.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from portal.auth.deps import get_current_user
from portal.auth.password import hash_password, verify_password
from portal.config import settings
from portal.domain.records import (
    Application,
    Notification,
    NotificationPreference,
    UserDocument,
    UserProfile,
    utcnow,
)
from portal.schemas.common import Envelope
from portal.schemas.profile import (
    ChangePasswordRequest,
    NotificationPreferencesUpdate,
    NotificationUpdate,
    ProfileUpdate,
)
from portal.store import PortalStore, UserAccount, get_store
from portal.utils.activity import log_activity

logger = logging.getLogger(__name__)

router = APIRouter()
password_router = APIRouter()

DOCUMENT_CONTENT_TYPES = frozenset({"application/pdf", "image/jpeg", "image/png"})


# ── Helpers ──────────────────────────────────────────────────

async def _read_upload(upload: UploadFile, allowed: frozenset[str] | None = None) -> bytes:
    """Read an upload, enforcing the size limit and (optionally) content type."""
    content_type = upload.content_type or "application/octet-stream"
    if allowed is not None and content_type not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type: {content_type}",
        )
    data = await upload.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.max_upload_bytes // (1024 * 1024)} MB limit",
        )
    return data


# ── Profile ──────────────────────────────────────────────────

@router.get("", response_model=Envelope[UserProfile])
async def get_profile(user: UserAccount = Depends(get_current_user)):
    return Envelope(data=user.profile)


@router.put("", response_model=Envelope[UserProfile])
async def update_profile(
    body: ProfileUpdate,
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    profile = user.profile.model_copy(update={**body.model_dump(), "updated_at": utcnow()})
    store.save_user(user.model_copy(update={"profile": profile}))

    log_activity(
        store, user,
        action="updated",
        entity_type="profile",
        entity_id=user.id,
        details=body.model_dump(mode="json"),
    )
    return Envelope(data=profile, message="Profile updated successfully")


@router.post("/picture", response_model=Envelope[UserProfile])
async def upload_profile_picture(
    picture: UploadFile = File(...),
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    if not (picture.content_type or "").startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Profile picture must be an image",
        )
    await _read_upload(picture)

    profile = user.profile.model_copy(update={
        "profile_picture": f"/uploads/profiles/{user.id}/{picture.filename}",
        "updated_at": utcnow(),
    })
    store.save_user(user.model_copy(update={"profile": profile}))
    return Envelope(data=profile, message="Profile picture updated successfully")


# ── Applications ─────────────────────────────────────────────

@router.get("/applications", response_model=Envelope[list[Application]])
async def list_my_applications(
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    return Envelope(data=store.applications_for(user.id))


# ── Notifications ────────────────────────────────────────────

@router.get("/notifications", response_model=Envelope[list[Notification]])
async def list_notifications(
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    return Envelope(data=store.notifications_for(user.id))


@router.put("/notifications", response_model=Envelope[list[NotificationPreference]])
async def update_notification_preferences(
    body: NotificationPreferencesUpdate,
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    current = {p.kind: p for p in store.preferences.get(user.id, [])}
    for preference in body.preferences:
        current[preference.kind] = preference
    store.preferences[user.id] = list(current.values())
    return Envelope(data=store.preferences[user.id], message="Notification preferences updated")


# Declared before /notifications/{notification_id} so "read-all" is not taken as an id
@router.put("/notifications/read-all", response_model=Envelope[dict])
async def mark_all_notifications_read(
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    updated = 0
    for notification in store.notifications_for(user.id):
        if not notification.is_read:
            store.save_notification(notification.model_copy(update={"is_read": True}))
            updated += 1
    return Envelope(data={"updated": updated}, message="All notifications marked as read")


@router.put("/notifications/{notification_id}", response_model=Envelope[Notification])
async def update_notification(
    notification_id: str,
    body: NotificationUpdate,
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    notification = store.get_notification(user.id, notification_id)
    notification = store.save_notification(notification.model_copy(update={"is_read": body.is_read}))
    return Envelope(data=notification)


@router.delete("/notifications/{notification_id}", response_model=Envelope)
async def delete_notification(
    notification_id: str,
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    store.delete_notification(user.id, notification_id)
    return Envelope(message="Notification deleted")


# ── Documents ────────────────────────────────────────────────

@router.get("/documents", response_model=Envelope[list[UserDocument]])
async def list_documents(
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    return Envelope(data=store.documents_for(user.id))


@router.post(
    "/documents",
    response_model=Envelope[UserDocument],
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    document: UploadFile = File(...),
    doc_type: str = Form("other"),
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    data = await _read_upload(document, DOCUMENT_CONTENT_TYPES)
    record = store.add_document(UserDocument(
        owner_id=user.id,
        name=document.filename or "document",
        doc_type=doc_type,
        mime_type=document.content_type or "application/octet-stream",
        file_size=len(data),
    ))

    log_activity(
        store, user,
        action="uploaded",
        entity_type="document",
        entity_id=record.id,
        summary=f"Uploaded {record.name}",
    )
    return Envelope(data=record, message="Document uploaded successfully")


# ── PUT /api/change-password ─────────────────────────────────

@password_router.put("/change-password", response_model=Envelope)
async def change_password(
    body: ChangePasswordRequest,
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    if not verify_password(body.current_password, user.password_hash):
        logger.warning("Password change with wrong current password", extra={"user_id": user.id})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    store.save_user(user.model_copy(update={"password_hash": hash_password(body.new_password)}))
    log_activity(store, user, action="password_changed", entity_type="profile", entity_id=user.id)
    return Envelope(message="Password changed successfully")
