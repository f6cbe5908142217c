"""Review queue for staff, officials and admins.

Paging, search, filters and sort run on the server (the queue can be
large); this view keeps the query inputs, the current page and the
per-application in-flight guard for status changes.
"""

from __future__ import annotations

import enum
import logging
from typing import Any

from portal.client.api import PortalClient
from portal.client.errors import ApiError
from portal.core.listview import ALL
from portal.domain.records import Application
from portal.schemas.common import PaginatedResponse
from portal.views.base import ActionBusy, NoticeBoard, View

logger = logging.getLogger(__name__)


class ReviewView(View):
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
            "status": ALL,
            "service_type": ALL,
            "sort": "created_at",
            "direction": "desc",
            "page": 0,
            "page_size": page_size,
        }
        self.page: PaginatedResponse[Application] | None = None

    @property
    def items(self) -> list[Application]:
        return list(self.page.items) if self.page else []

    async def load(self) -> bool:
        api = self._require_api()

        def apply(page: PaginatedResponse[Application]) -> None:
            self.page = page

        return await self._load(lambda: api.review_queue(**self.query), apply)

    async def set_query(self, **changes: Any) -> bool:
        """Change search/filter/sort inputs and reload. Anything but a page change resets to page 0."""
        changes = {k: getattr(v, "value", v) for k, v in changes.items() if k in self.query}
        if "page" not in changes:
            changes["page"] = 0
        self.query.update(changes)
        return await self.load()

    @staticmethod
    def allowed_transitions(application: Application) -> list[enum.Enum]:
        return sorted(application.graph.allowed(application.status), key=lambda s: s.value)

    async def transition(self, application_id: str, status: enum.Enum | str, notes: str | None = None) -> bool:
        api = self._require_api()
        try:
            async with self.in_flight(f"application:{application_id}"):
                updated = await api.change_status(application_id, status, notes)
        except ActionBusy:
            logger.debug("Status change for %s already in flight", application_id)
            return False
        except ApiError as exc:
            self._fail(exc, "status change")
            return False

        if self.page is not None:
            items = [updated if a.id == updated.id else a for a in self.page.items]
            self.page = self.page.model_copy(update={"items": items})
        self.notices.success(f"{updated.reference_number} moved to {updated.status.value}")
        self._ready()
        return True
