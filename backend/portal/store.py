"""In-process record store backing the API.

Nothing is persisted: the store lives on ``app.state.store`` for the
lifetime of the process. Routers reach it through the ``get_store``
dependency, which tests override with a fresh store per test.

Collections:
  - users          → UserAccount (profile + password hash), keyed by user id
  - applications   → Application, keyed by id
  - notifications  → Notification, keyed by id
  - preferences    → per-user notification channel preferences
  - documents      → UserDocument, keyed by id
  - activity       → append-only ActivityEntry list
"""

from datetime import datetime
from typing import Any

from fastapi import Request
from pydantic import BaseModel, Field

from portal.auth.password import hash_password
from portal.domain.records import (
    Application,
    Notification,
    NotificationPreference,
    UserDocument,
    UserProfile,
    UserRole,
    new_id,
    utcnow,
)
from portal.middleware.exceptions import ResourceNotFoundError
from portal.utils.numbering import ReferenceNumberGenerator

DEFAULT_PREFERENCE_KINDS = ("application_updates", "payment_reminders", "announcements")


class UserAccount(BaseModel):
    profile: UserProfile
    password_hash: str
    is_active: bool = True
    last_login: datetime | None = None

    @property
    def id(self) -> str:
        return self.profile.id

    @property
    def role(self) -> UserRole:
        return self.profile.role


class ActivityEntry(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    user_name: str
    action: str
    entity_type: str
    entity_id: str | None = None
    entity_code: str | None = None
    summary: str | None = None
    details: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=utcnow)


class PortalStore:
    def __init__(self, numbers: ReferenceNumberGenerator | None = None):
        self.users: dict[str, UserAccount] = {}
        self.applications: dict[str, Application] = {}
        self.notifications: dict[str, Notification] = {}
        self.preferences: dict[str, list[NotificationPreference]] = {}
        self.documents: dict[str, UserDocument] = {}
        self.activity: list[ActivityEntry] = []
        self.numbers = numbers or ReferenceNumberGenerator()

    # ── Users ───────────────────────────────────────────────

    def add_user(self, profile: UserProfile, password: str) -> UserAccount:
        account = UserAccount(profile=profile, password_hash=hash_password(password))
        self.users[profile.id] = account
        self.preferences[profile.id] = [
            NotificationPreference(kind=kind) for kind in DEFAULT_PREFERENCE_KINDS
        ]
        return account

    def find_user_by_email(self, email: str) -> UserAccount | None:
        email = email.lower()
        for account in self.users.values():
            if account.profile.email.lower() == email:
                return account
        return None

    def get_user(self, user_id: str) -> UserAccount:
        account = self.users.get(user_id)
        if account is None:
            raise ResourceNotFoundError("User", user_id)
        return account

    def save_user(self, account: UserAccount) -> UserAccount:
        self.users[account.id] = account
        return account

    # ── Applications ────────────────────────────────────────

    def save_application(self, application: Application) -> Application:
        self.applications[application.id] = application
        if application.reference_number:
            self.numbers.observe(application.reference_number)
        return application

    def get_application(self, application_id: str) -> Application:
        application = self.applications.get(application_id)
        if application is None:
            raise ResourceNotFoundError("Application", application_id)
        return application

    def applications_for(self, user_id: str) -> list[Application]:
        owned = [a for a in self.applications.values() if a.applicant_id == user_id]
        return sorted(owned, key=lambda a: a.created_at, reverse=True)

    # ── Notifications ───────────────────────────────────────

    def notify(self, user_id: str, title: str, message: str, kind: str = "info") -> Notification:
        notification = Notification(user_id=user_id, title=title, message=message, kind=kind)
        self.notifications[notification.id] = notification
        return notification

    def notifications_for(self, user_id: str) -> list[Notification]:
        owned = [n for n in self.notifications.values() if n.user_id == user_id]
        return sorted(owned, key=lambda n: n.created_at, reverse=True)

    def get_notification(self, user_id: str, notification_id: str) -> Notification:
        notification = self.notifications.get(notification_id)
        # Another user's notification is reported as missing
        if notification is None or notification.user_id != user_id:
            raise ResourceNotFoundError("Notification", notification_id)
        return notification

    def save_notification(self, notification: Notification) -> Notification:
        self.notifications[notification.id] = notification
        return notification

    def delete_notification(self, user_id: str, notification_id: str) -> Notification:
        notification = self.get_notification(user_id, notification_id)
        del self.notifications[notification.id]
        return notification

    # ── Documents ───────────────────────────────────────────

    def add_document(self, document: UserDocument) -> UserDocument:
        self.documents[document.id] = document
        return document

    def documents_for(self, user_id: str) -> list[UserDocument]:
        owned = [d for d in self.documents.values() if d.owner_id == user_id]
        return sorted(owned, key=lambda d: d.created_at, reverse=True)


# ── Seed data ───────────────────────────────────────────────

SEED_PASSWORD = "password123"


def seed_store(store: PortalStore) -> PortalStore:
    """Populate ``store`` with one account per role and a welcome notification."""
    accounts = (
        ("citizen@portal.gov.ng", "Ada", "Okafor", UserRole.CITIZEN),
        ("staff@portal.gov.ng", "Bola", "Adeyemi", UserRole.STAFF),
        ("official@portal.gov.ng", "Chidi", "Nwosu", UserRole.OFFICIAL),
        ("admin@portal.gov.ng", "Dayo", "Balogun", UserRole.ADMIN),
    )
    for email, first_name, last_name, role in accounts:
        if store.find_user_by_email(email) is not None:
            continue
        account = store.add_user(
            UserProfile(
                email=email,
                first_name=first_name,
                last_name=last_name,
                role=role,
                is_verified=True,
            ),
            SEED_PASSWORD,
        )
        store.notify(
            account.id,
            "Welcome to the portal",
            "You can now apply for local government services online.",
        )
    return store


# ── Dependency ──────────────────────────────────────────────

def get_store(request: Request) -> PortalStore:
    """Return the store attached to the running app."""
    return request.app.state.store
