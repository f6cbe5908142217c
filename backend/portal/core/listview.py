"""Searchable, filterable, sortable, paginated view over an in-memory collection.

The visible page is always derived, never stored:

    paginate(sort(filter(filters, search(query, items))), page, page_size)

Order of application is fixed:
  1. Search      — case-insensitive substring over ``search_fields``;
                   an empty query matches everything.
  2. Filters     — exact equality per active named filter. The sentinel
                   value "all" (or None) removes a filter.
  3. Sort        — stable; strings lexicographic, dates chronological,
                   numbers numeric. "desc" reverses the order but equal
                   keys keep their original relative order.
  4. Paginate    — slice [page*size, page*size+size). A page past the end
                   is an empty slice, not an error.

This sits underneath UI rendering, so nothing here raises on bad input:
unknown filter or sort fields are ignored and logged at DEBUG.
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Callable, Generic, Iterable, TypeVar

from portal.config import settings
from portal.schemas.common import PaginatedResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL = "all"


class SortKind(str, enum.Enum):
    STRING = "string"
    DATE = "date"
    NUMBER = "number"


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


# ── Field access / sort keys ────────────────────────────────

def field_value(record: Any, name: str) -> Any:
    """Read ``name`` from a mapping or an attribute-bearing record."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    # Naive values are taken as UTC so they compare with aware ones
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


_MISSING = (1, 0)


def sort_key(kind: SortKind, value: Any) -> tuple:
    """Comparable key for ``value``; missing/unparseable values sort last (asc)."""
    value = _plain(value)
    if value is None or value == "":
        return _MISSING
    if kind is SortKind.DATE:
        converted = _as_datetime(value)
    elif kind is SortKind.NUMBER:
        converted = _as_number(value)
    else:
        converted = str(value)
    return _MISSING if converted is None else (0, converted)


# ── Controller ──────────────────────────────────────────────

class ListViewController(Generic[T]):
    """Owns a record collection plus the search/filter/sort/page inputs."""

    def __init__(
        self,
        items: Iterable[T] = (),
        *,
        search_fields: Iterable[str] = (),
        filter_fields: Iterable[str] = (),
        sort_fields: Mapping[str, SortKind] | None = None,
        sort: tuple[str, str] | None = None,
        page_size: int | None = None,
    ):
        self._items: list[T] = list(items)
        self.search_fields = tuple(search_fields)
        self.filter_fields = frozenset(filter_fields)
        self.sort_fields = dict(sort_fields or {})

        self.search_query = ""
        self.filters: dict[str, Any] = {}
        self.sort_field: str | None = None
        self.sort_direction = SortDirection.ASC
        self.page = 0
        self.page_size = page_size or settings.default_page_size

        self._listeners: list[Callable[[], None]] = []

        if sort:
            self.set_sort(*sort)

    # ── Change notification ─────────────────────────────────

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a callback run after any change. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ── Collection (owned by the containing view) ───────────

    @property
    def items(self) -> tuple[T, ...]:
        return tuple(self._items)

    def set_items(self, items: Iterable[T]) -> None:
        self._items = list(items)
        self._notify()

    def append(self, record: T) -> None:
        self._items.append(record)
        self._notify()

    def replace(self, record: T) -> bool:
        """Swap in ``record`` for the item with the same id. False if absent."""
        record_id = field_value(record, "id")
        for i, existing in enumerate(self._items):
            if field_value(existing, "id") == record_id:
                self._items[i] = record
                self._notify()
                return True
        return False

    def remove(self, record_id: str) -> T | None:
        for i, existing in enumerate(self._items):
            if field_value(existing, "id") == record_id:
                removed = self._items.pop(i)
                self._notify()
                return removed
        return None

    def get(self, record_id: str) -> T | None:
        for existing in self._items:
            if field_value(existing, "id") == record_id:
                return existing
        return None

    # ── Inputs ──────────────────────────────────────────────

    def set_search_query(self, text: str | None) -> None:
        self.search_query = (text or "").strip()
        self.page = 0
        self._notify()

    def set_filter(self, name: str, value: Any) -> None:
        if name not in self.filter_fields:
            logger.debug("Ignoring unknown filter field %r", name)
            return
        if value is None or value == ALL:
            self.filters.pop(name, None)
        else:
            self.filters[name] = value
        self.page = 0
        self._notify()

    def clear_filters(self) -> None:
        self.search_query = ""
        self.filters.clear()
        self.page = 0
        self._notify()

    def set_sort(self, field: str, direction: str = SortDirection.ASC) -> None:
        if field not in self.sort_fields:
            logger.debug("Ignoring unknown sort field %r", field)
            return
        try:
            parsed = SortDirection(direction)
        except ValueError:
            logger.debug("Ignoring unknown sort direction %r", direction)
            return
        self.sort_field = field
        self.sort_direction = parsed
        self._notify()

    def set_page(self, page: int) -> None:
        if page < 0:
            logger.debug("Ignoring negative page %d", page)
            return
        self.page = page
        self._notify()

    def set_page_size(self, page_size: int) -> None:
        if page_size < 1:
            logger.debug("Ignoring page size %d", page_size)
            return
        self.page_size = page_size
        self.page = 0
        self._notify()

    # ── Derived view ────────────────────────────────────────

    def _matches_search(self, record: T, needle: str) -> bool:
        for name in self.search_fields:
            value = _plain(field_value(record, name))
            if value is not None and needle in str(value).lower():
                return True
        return False

    def _matches_filters(self, record: T) -> bool:
        return all(
            _plain(field_value(record, name)) == _plain(value)
            for name, value in self.filters.items()
        )

    def filtered_items(self) -> list[T]:
        needle = self.search_query.lower()
        return [
            record for record in self._items
            if (not needle or self._matches_search(record, needle))
            and self._matches_filters(record)
        ]

    def sorted_items(self) -> list[T]:
        items = self.filtered_items()
        if self.sort_field is None:
            return items
        kind = self.sort_fields[self.sort_field]
        # sorted() is stable and reverse=True keeps ties in original order
        return sorted(
            items,
            key=lambda record: sort_key(kind, field_value(record, self.sort_field)),
            reverse=self.sort_direction is SortDirection.DESC,
        )

    def get_visible_items(self) -> list[T]:
        start = self.page * self.page_size
        return self.sorted_items()[start:start + self.page_size]

    @property
    def total(self) -> int:
        return len(self.filtered_items())

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.page_size)

    def clamp_page(self) -> int:
        """Pull ``page`` back onto the last non-empty page after the set shrinks."""
        last = max(self.page_count - 1, 0)
        if self.page > last:
            self.page = last
            self._notify()
        return self.page

    def get_page(self) -> PaginatedResponse:
        return PaginatedResponse(
            items=self.get_visible_items(),
            total=self.total,
            limit=self.page_size,
            offset=self.page * self.page_size,
        )
