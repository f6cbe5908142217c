"""Async client for the portal HTTP API.

Every response body is the envelope ``{success, data, message}``. The
client unwraps ``data`` on success and raises an ``ApiError`` subclass
otherwise (see ``portal.client.errors``). The bearer token is read from
an injected ``token_provider`` on each request, so logging in or out
never requires rebuilding the client.

Usage:
    async with PortalClient(token_provider=lambda: ctx.token) as api:
        profile = await api.get_profile()
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from portal.client.errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    ServerError,
    error_for_status,
)
from portal.config import settings
from portal.domain.catalog import draft_fields
from portal.domain.records import (
    Application,
    Notification,
    NotificationPreference,
    PaymentMethod,
    ServiceType,
    UserDocument,
    UserProfile,
)
from portal.schemas.admin import UserSummary
from portal.schemas.application import PaymentReceipt
from portal.schemas.common import PaginatedResponse

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


class PortalClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        token_provider: TokenProvider | None = None,
        on_unauthorized: Callable[[], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        self._token_provider = token_provider or (lambda: None)
        self._on_unauthorized = on_unauthorized
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            transport=transport,
            timeout=timeout if timeout is not None else settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ── Core request ────────────────────────────────────────

    def _auth_headers(self) -> dict[str, str]:
        token = self._token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the envelope's ``data``."""
        try:
            response = await self._http.request(method, path, headers=self._auth_headers(), **kwargs)
        except httpx.TransportError as exc:
            logger.warning(f"{method} {path} failed: {exc!r}")
            raise NetworkError(str(exc) or None) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            if response.is_success:
                raise ApiError("Malformed response", status_code=response.status_code)
            raise error_for_status(response.status_code)

        error = body.get("error") or {}
        if not response.is_success:
            exc = error_for_status(
                response.status_code,
                body.get("message"),
                error.get("code"),
                error.get("details"),
            )
        elif body.get("success") is False:
            exc = ApiError(body.get("message"), status_code=response.status_code, error_code=error.get("code"))
        else:
            return body.get("data")

        if isinstance(exc, AuthenticationError) and self._on_unauthorized is not None:
            self._on_unauthorized()
        if isinstance(exc, ServerError):
            logger.error(f"{method} {path} → {response.status_code}: {exc.message}")
        else:
            logger.info(f"{method} {path} → {response.status_code}: {exc.message}")
        raise exc

    # ── Auth ────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> tuple[str, UserProfile]:
        data = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        return data["access_token"], UserProfile.model_validate(data["user"])

    async def register(
        self, email: str, password: str, first_name: str, last_name: str, **extra: Any
    ) -> tuple[str, UserProfile]:
        body = {
            "email": email,
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
            **extra,
        }
        data = await self._request("POST", "/api/auth/register", json=body)
        return data["access_token"], UserProfile.model_validate(data["user"])

    async def health(self) -> dict:
        response = await self._http.get("/health")
        return response.json()

    # ── Profile ─────────────────────────────────────────────

    async def get_profile(self) -> UserProfile:
        return UserProfile.model_validate(await self._request("GET", "/api/profile"))

    async def update_profile(self, **fields: Any) -> UserProfile:
        return UserProfile.model_validate(await self._request("PUT", "/api/profile", json=fields))

    async def upload_profile_picture(
        self, filename: str, content: bytes, content_type: str = "image/png"
    ) -> UserProfile:
        data = await self._request(
            "POST", "/api/profile/picture",
            files={"picture": (filename, content, content_type)},
        )
        return UserProfile.model_validate(data)

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self._request(
            "PUT", "/api/change-password",
            json={"current_password": current_password, "new_password": new_password},
        )

    # ── Applications ────────────────────────────────────────

    async def list_my_applications(self) -> list[Application]:
        data = await self._request("GET", "/api/profile/applications")
        return [Application.model_validate(item) for item in data or []]

    async def submit_application(
        self, service_type: ServiceType, fields: dict[str, Any]
    ) -> Application:
        data = await self._request(
            "POST", "/api/applications",
            json={"service_type": ServiceType(service_type).value, "fields": fields},
        )
        return Application.model_validate(data)

    async def submit_built(self, application: Application) -> Application:
        """Wizard submitter: persist a locally built application."""
        return await self.submit_application(application.service_type, draft_fields(application))

    async def pay_application(
        self, application_id: str, method: PaymentMethod, amount: float
    ) -> PaymentReceipt:
        data = await self._request(
            "POST", f"/api/applications/{application_id}/payments",
            json={"method": PaymentMethod(method).value, "amount": amount},
        )
        return PaymentReceipt.model_validate(data)

    # ── Notifications ───────────────────────────────────────

    async def list_notifications(self) -> list[Notification]:
        data = await self._request("GET", "/api/profile/notifications")
        return [Notification.model_validate(item) for item in data or []]

    async def mark_notification(self, notification_id: str, is_read: bool = True) -> Notification:
        data = await self._request(
            "PUT", f"/api/profile/notifications/{notification_id}", json={"is_read": is_read}
        )
        return Notification.model_validate(data)

    async def mark_all_notifications_read(self) -> int:
        data = await self._request("PUT", "/api/profile/notifications/read-all")
        return int((data or {}).get("updated", 0))

    async def delete_notification(self, notification_id: str) -> None:
        await self._request("DELETE", f"/api/profile/notifications/{notification_id}")

    async def update_notification_preferences(
        self, preferences: list[NotificationPreference]
    ) -> list[NotificationPreference]:
        data = await self._request(
            "PUT", "/api/profile/notifications",
            json={"preferences": [p.model_dump() for p in preferences]},
        )
        return [NotificationPreference.model_validate(item) for item in data or []]

    # ── Documents ───────────────────────────────────────────

    async def list_documents(self) -> list[UserDocument]:
        data = await self._request("GET", "/api/profile/documents")
        return [UserDocument.model_validate(item) for item in data or []]

    async def upload_document(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/pdf",
        doc_type: str = "other",
    ) -> UserDocument:
        data = await self._request(
            "POST", "/api/profile/documents",
            files={"document": (filename, content, content_type)},
            data={"doc_type": doc_type},
        )
        return UserDocument.model_validate(data)

    # ── Review (staff / officials / admins) ─────────────────

    async def review_queue(self, **params: Any) -> PaginatedResponse[Application]:
        query = {k: (v.value if hasattr(v, "value") else v) for k, v in params.items() if v is not None}
        data = await self._request("GET", "/api/admin/applications", params=query)
        return PaginatedResponse[Application].model_validate(data)

    async def change_status(
        self, application_id: str, status: str, notes: str | None = None
    ) -> Application:
        target = getattr(status, "value", status)
        data = await self._request(
            "POST", f"/api/admin/applications/{application_id}/status",
            json={"status": target, "notes": notes},
        )
        return Application.model_validate(data)

    # ── Users (admins) ──────────────────────────────────────

    async def list_users(self, **params: Any) -> PaginatedResponse[UserSummary]:
        query = {k: (v.value if hasattr(v, "value") else v) for k, v in params.items() if v is not None}
        data = await self._request("GET", "/api/admin/users", params=query)
        return PaginatedResponse[UserSummary].model_validate(data)

    async def update_user(self, user_id: str, **fields: Any) -> UserSummary:
        body = {k: (v.value if hasattr(v, "value") else v) for k, v in fields.items()}
        data = await self._request("PUT", f"/api/admin/users/{user_id}", json=body)
        return UserSummary.model_validate(data)

    async def suspend_user(self, user_id: str, reason: str) -> UserSummary:
        data = await self._request("POST", f"/api/admin/users/{user_id}/suspend", json={"reason": reason})
        return UserSummary.model_validate(data)

    async def reactivate_user(self, user_id: str) -> UserSummary:
        data = await self._request("POST", f"/api/admin/users/{user_id}/reactivate")
        return UserSummary.model_validate(data)
