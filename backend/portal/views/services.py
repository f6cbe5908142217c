"""Services catalog screen: browse offerings and start an application."""

from __future__ import annotations

from typing import Iterable

from portal.core.listview import ListViewController, SortKind
from portal.core.wizard import Wizard
from portal.domain.catalog import CATALOG
from portal.domain.records import ServiceOffering
from portal.domain.status import ServiceAvailability
from portal.views.applications import ApplicationsView
from portal.views.base import View


class ServicesView(View):
    def __init__(
        self,
        applications: ApplicationsView,
        offerings: Iterable[ServiceOffering] = CATALOG,
        *,
        page_size: int | None = None,
    ):
        super().__init__(applications.api, applications.notices)
        self.applications = applications
        self.controller: ListViewController[ServiceOffering] = ListViewController(
            offerings,
            search_fields=("name", "description", "category"),
            filter_fields=("category", "status"),
            sort_fields={
                "name": SortKind.STRING,
                "fee": SortKind.NUMBER,
                "category": SortKind.STRING,
            },
            sort=("name", "asc"),
            page_size=page_size,
        )
        self.controller.subscribe(self._notify)
        self._ready()

    @property
    def categories(self) -> list[str]:
        return sorted({offering.category for offering in self.controller.items})

    def start_application(self, offering_id: str) -> Wizard | None:
        """Open the wizard for an offering. None if it is unknown or not accepting applications."""
        offering = self.controller.get(offering_id)
        if offering is None or offering.service_type is None:
            return None
        if offering.status is ServiceAvailability.SUSPENDED:
            self.notices.push("warning", f"{offering.name} is not accepting applications right now.")
            return None
        return self.applications.open_wizard(offering.service_type)
