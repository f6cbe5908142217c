"""Shared plumbing for screen-level views.

A view owns its record collections, talks to the API through a
``PortalClient`` and reports outcomes two ways:

  - ``state`` / ``error``: the explicit load state the screen renders
  - ``notices``: transient, dismissible messages (the toast area)

API failures never escape a view: they are caught here, turned into
``LoadState.ERROR`` plus an error notice, and optimistic changes are
rolled back by the caller.
"""

from __future__ import annotations

import enum
import itertools
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable

from portal.client.api import PortalClient
from portal.client.errors import ApiError
from portal.domain.records import utcnow

logger = logging.getLogger(__name__)


class LoadState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class NoticeLevel(str, enum.Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_notice_ids = itertools.count(1)


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    id: int = field(default_factory=lambda: next(_notice_ids))
    created_at: datetime = field(default_factory=utcnow)


class NoticeBoard:
    """Ordered list of live notices. Shared by every view of one app."""

    def __init__(self, limit: int = 5):
        self.limit = limit
        self._notices: list[Notice] = []

    @property
    def items(self) -> tuple[Notice, ...]:
        return tuple(self._notices)

    def push(self, level: NoticeLevel, message: str) -> Notice:
        notice = Notice(level=NoticeLevel(level), message=message)
        self._notices.append(notice)
        # Oldest notices drop off first
        del self._notices[:-self.limit]
        return notice

    def success(self, message: str) -> Notice:
        return self.push(NoticeLevel.SUCCESS, message)

    def error(self, message: str) -> Notice:
        return self.push(NoticeLevel.ERROR, message)

    def dismiss(self, notice_id: int) -> bool:
        for i, notice in enumerate(self._notices):
            if notice.id == notice_id:
                del self._notices[i]
                return True
        return False

    def clear(self) -> None:
        self._notices.clear()


class ActionBusy(Exception):
    """Raised by ``View.in_flight`` when the same action is already running."""


class View:
    def __init__(self, api: PortalClient | None, notices: NoticeBoard | None = None):
        self.api = api
        self.notices = notices or NoticeBoard()
        self.state = LoadState.IDLE
        self.error: str | None = None
        self._busy: set[str] = set()
        self._listeners: list[Callable[[], None]] = []

    # ── Change notification ─────────────────────────────────

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ── In-flight guards ────────────────────────────────────

    def is_busy(self, key: str) -> bool:
        return key in self._busy

    @asynccontextmanager
    async def in_flight(self, key: str) -> AsyncIterator[None]:
        if key in self._busy:
            raise ActionBusy(key)
        self._busy.add(key)
        try:
            yield
        finally:
            self._busy.discard(key)

    # ── Outcomes ────────────────────────────────────────────

    def _ready(self) -> None:
        self.state = LoadState.READY
        self.error = None
        self._notify()

    def _fail(self, exc: ApiError, action: str) -> None:
        self.state = LoadState.ERROR
        self.error = exc.message
        self.notices.error(exc.message)
        logger.warning(f"{type(self).__name__}: {action} failed: {exc.message}")
        self._notify()

    def _require_api(self) -> PortalClient:
        if self.api is None:
            raise RuntimeError(f"{type(self).__name__} has no API client; seed it instead")
        return self.api

    async def _load(self, fetch: Callable[[], Awaitable[Any]], apply: Callable[[Any], None]) -> bool:
        """Run ``fetch`` and hand the result to ``apply``. False on API failure."""
        self.state = LoadState.LOADING
        self.error = None
        self._notify()
        try:
            result = await fetch()
        except ApiError as exc:
            self._fail(exc, "load")
            return False
        apply(result)
        self._ready()
        return True
