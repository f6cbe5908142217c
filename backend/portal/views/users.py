"""Admin user table.

Like the review queue, paging, search, filters and sort run on the
server. Suspend and reactivate are guarded per user, and the returned
row replaces the one on the current page.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from portal.client.api import PortalClient
from portal.client.errors import ApiError
from portal.core.listview import ALL
from portal.schemas.admin import UserSummary
from portal.schemas.common import PaginatedResponse
from portal.views.base import ActionBusy, NoticeBoard, View

logger = logging.getLogger(__name__)


class UsersView(View):
    def __init__(
        self,
        api: PortalClient,
        *,
        notices: NoticeBoard | None = None,
        page_size: int = 10,
    ):
        super().__init__(api, notices)
        self.query: dict[str, Any] = {
            "search": "",
            "role": ALL,
            "status": ALL,
            "sort": "created_at",
            "direction": "desc",
            "page": 0,
            "page_size": page_size,
        }
        self.page: PaginatedResponse[UserSummary] | None = None

    @property
    def items(self) -> list[UserSummary]:
        return list(self.page.items) if self.page else []

    async def load(self) -> bool:
        api = self._require_api()

        def apply(page: PaginatedResponse[UserSummary]) -> None:
            self.page = page

        return await self._load(lambda: api.list_users(**self.query), apply)

    async def set_query(self, **changes: Any) -> bool:
        """Change search/filter/sort inputs and reload. Anything but a page change resets to page 0."""
        changes = {k: getattr(v, "value", v) for k, v in changes.items() if k in self.query}
        if "page" not in changes:
            changes["page"] = 0
        self.query.update(changes)
        return await self.load()

    async def suspend(self, user_id: str, reason: str) -> bool:
        api = self._require_api()
        return await self._act(user_id, "suspend user", lambda: api.suspend_user(user_id, reason), "suspended")

    async def reactivate(self, user_id: str) -> bool:
        api = self._require_api()
        return await self._act(user_id, "reactivate user", lambda: api.reactivate_user(user_id), "reactivated")

    async def _act(
        self,
        user_id: str,
        action: str,
        call: Callable[[], Awaitable[UserSummary]],
        verb: str,
    ) -> bool:
        try:
            async with self.in_flight(f"user:{user_id}"):
                updated = await call()
        except ActionBusy:
            logger.debug("Action on user %s already in flight", user_id)
            return False
        except ApiError as exc:
            self._fail(exc, action)
            return False

        if self.page is not None:
            items = [updated if u.id == updated.id else u for u in self.page.items]
            self.page = self.page.model_copy(update={"items": items})
        self.notices.success(f"{updated.full_name} {verb}")
        self._ready()
        return True
