"""Profile screen: personal details, password, picture and documents."""

from __future__ import annotations

import logging
from typing import Any

from portal.client.api import PortalClient
from portal.client.errors import ApiError, ValidationFailedError
from portal.core.listview import ListViewController, SortKind
from portal.core.wizard import FieldErrors
from portal.domain.records import UserDocument, UserProfile
from portal.views.base import ActionBusy, NoticeBoard, View

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def validate_password_change(current: str, new: str, confirm: str) -> FieldErrors:
    """Client-side checks run before any request is sent."""
    errors: FieldErrors = {}
    if not current:
        errors["current_password"] = "Current password is required"
    if len(new) < MIN_PASSWORD_LENGTH:
        errors["new_password"] = f"New password must be at least {MIN_PASSWORD_LENGTH} characters long"
    if new != confirm:
        errors["confirm_password"] = "Passwords do not match"
    return errors


class ProfileView(View):
    def __init__(self, api: PortalClient | None = None, *, notices: NoticeBoard | None = None):
        super().__init__(api, notices)
        self.profile: UserProfile | None = None
        self.documents: ListViewController[UserDocument] = ListViewController(
            search_fields=("name", "doc_type"),
            filter_fields=("status", "doc_type"),
            sort_fields={"created_at": SortKind.DATE, "name": SortKind.STRING},
            sort=("created_at", "desc"),
        )
        self.documents.subscribe(self._notify)

    async def load(self) -> bool:
        api = self._require_api()

        def apply(result: tuple[UserProfile, list[UserDocument]]) -> None:
            self.profile, documents = result
            self.documents.set_items(documents)

        async def fetch() -> tuple[UserProfile, list[UserDocument]]:
            return await api.get_profile(), await api.list_documents()

        return await self._load(fetch, apply)

    async def _run(self, key: str, action: str, call) -> Any:
        """Run one guarded API call. Returns None (after reporting) on failure."""
        try:
            async with self.in_flight(key):
                result = await call()
        except ActionBusy:
            return None
        except ApiError as exc:
            self._fail(exc, action)
            return None
        self._ready()
        return result

    async def update_profile(self, **fields: Any) -> bool:
        api = self._require_api()
        profile = await self._run("profile", "update profile", lambda: api.update_profile(**fields))
        if profile is None:
            return False
        self.profile = profile
        self.notices.success("Profile updated successfully")
        return True

    async def change_password(self, current: str, new: str, confirm: str) -> FieldErrors:
        """Change the password. Returns field errors; empty means it changed.

        Mismatched or short passwords are reported without calling the API.
        """
        errors = validate_password_change(current, new, confirm)
        if errors:
            return errors

        api = self._require_api()
        try:
            async with self.in_flight("password"):
                await api.change_password(current, new)
        except ActionBusy:
            return {"current_password": "A password change is already in progress"}
        except ValidationFailedError as exc:
            self._fail(exc, "change password")
            return exc.fields or {"new_password": exc.message}
        except ApiError as exc:
            self._fail(exc, "change password")
            return {"current_password": exc.message}
        self.notices.success("Password changed successfully")
        self._ready()
        return {}

    async def upload_picture(self, filename: str, content: bytes, content_type: str = "image/png") -> bool:
        api = self._require_api()
        profile = await self._run(
            "picture", "upload picture",
            lambda: api.upload_profile_picture(filename, content, content_type),
        )
        if profile is None:
            return False
        self.profile = profile
        self.notices.success("Profile picture updated successfully")
        return True

    async def upload_document(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/pdf",
        doc_type: str = "other",
    ) -> UserDocument | None:
        api = self._require_api()
        document = await self._run(
            f"document:{filename}", "upload document",
            lambda: api.upload_document(filename, content, content_type, doc_type),
        )
        if document is not None:
            self.documents.append(document)
            self.notices.success("Document uploaded successfully")
        return document
