"""Notifications screen.

Read/unread and delete are applied optimistically: the collection changes
first, then the API call runs. If the call fails the previous collection
is restored (along with the page on screen) and an error notice is shown.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from portal.client.api import PortalClient
from portal.client.errors import ApiError
from portal.core.listview import ListViewController, SortKind
from portal.domain.records import Notification, NotificationPreference
from portal.views.base import ActionBusy, NoticeBoard, View

logger = logging.getLogger(__name__)


class NotificationsView(View):
    def __init__(
        self,
        api: PortalClient | None = None,
        *,
        notices: NoticeBoard | None = None,
        page_size: int | None = None,
    ):
        super().__init__(api, notices)
        self.controller: ListViewController[Notification] = ListViewController(
            search_fields=("title", "message"),
            filter_fields=("kind", "is_read"),
            sort_fields={"created_at": SortKind.DATE, "title": SortKind.STRING},
            sort=("created_at", "desc"),
            page_size=page_size,
        )
        self.controller.subscribe(self._notify)
        self.preferences: list[NotificationPreference] = []

    def seed(self, notifications: list[Notification]) -> None:
        self.controller.set_items(notifications)
        self._ready()

    async def load(self) -> bool:
        api = self._require_api()
        return await self._load(api.list_notifications, self.controller.set_items)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.controller.items if not n.is_read)

    # ── Optimistic mutations ────────────────────────────────

    async def _optimistic(
        self,
        key: str,
        apply: Callable[[], None],
        call: Callable[[], Awaitable[object]],
        action: str,
    ) -> bool:
        """Apply a local change, run ``call`` and roll back if it fails."""
        snapshot, page = list(self.controller.items), self.controller.page
        try:
            async with self.in_flight(key):
                apply()
                try:
                    await call()
                except ApiError as exc:
                    self.controller.set_items(snapshot)
                    self.controller.set_page(page)
                    self._fail(exc, action)
                    return False
        except ActionBusy:
            logger.debug("Ignoring %s while it is already running", key)
            return False
        self._ready()
        return True

    async def mark_read(self, notification_id: str, is_read: bool = True) -> bool:
        api = self._require_api()
        current = self.controller.get(notification_id)
        if current is None or current.is_read == is_read:
            return current is not None

        return await self._optimistic(
            f"notification:{notification_id}",
            lambda: self.controller.replace(current.model_copy(update={"is_read": is_read})),
            lambda: api.mark_notification(notification_id, is_read),
            "mark read",
        )

    async def mark_all_read(self) -> bool:
        api = self._require_api()
        if self.unread_count == 0:
            return True

        def apply() -> None:
            self.controller.set_items(
                n.model_copy(update={"is_read": True}) for n in self.controller.items
            )

        return await self._optimistic(
            "notifications:read-all", apply, api.mark_all_notifications_read, "mark all read"
        )

    async def delete(self, notification_id: str) -> bool:
        api = self._require_api()
        if self.controller.get(notification_id) is None:
            return False

        def apply() -> None:
            self.controller.remove(notification_id)
            self.controller.clamp_page()

        return await self._optimistic(
            f"notification:{notification_id}",
            apply,
            lambda: api.delete_notification(notification_id),
            "delete",
        )

    # ── Preferences ─────────────────────────────────────────

    async def save_preferences(self, preferences: list[NotificationPreference]) -> bool:
        api = self._require_api()
        try:
            async with self.in_flight("notifications:preferences"):
                self.preferences = await api.update_notification_preferences(preferences)
        except ActionBusy:
            return False
        except ApiError as exc:
            self._fail(exc, "save preferences")
            return False
        self.notices.success("Notification preferences updated")
        self._ready()
        return True
