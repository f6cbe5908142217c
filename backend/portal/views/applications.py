"""My Applications screen.

Owns the signed-in citizen's application collection. The list controller
derives what is on screen; wizards opened from here append submitted
applications straight into that collection, and payments replace the
paid application in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from portal.client.api import PortalClient
from portal.client.errors import ApiError
from portal.core.listview import ListViewController, SortKind
from portal.core.wizard import Wizard
from portal.domain.catalog import service_wizard
from portal.domain.records import Application, ServiceType, UserProfile
from portal.domain.status import ApplicationStatus, PaymentStatus, TransportApplicationStatus
from portal.schemas.application import PaymentReceipt
from portal.utils.numbering import ReferenceNumberGenerator
from portal.views.base import NoticeBoard, View
from portal.views.payment import PaymentFlow

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("service_name", "reference_number")
FILTER_FIELDS = ("status", "service_type")
SORT_FIELDS = {
    "created_at": SortKind.DATE,
    "updated_at": SortKind.DATE,
    "service_name": SortKind.STRING,
    "status": SortKind.STRING,
}

PENDING_STATUSES = frozenset({
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.PENDING_DOCUMENTS,
    TransportApplicationStatus.SUBMITTED,
    TransportApplicationStatus.UNDER_REVIEW,
    TransportApplicationStatus.DOCUMENT_VERIFICATION,
    TransportApplicationStatus.TESTING,
})
APPROVED_STATUSES = frozenset({
    ApplicationStatus.APPROVED,
    TransportApplicationStatus.APPROVED,
    TransportApplicationStatus.READY_FOR_COLLECTION,
})
COMPLETED_STATUSES = frozenset({ApplicationStatus.COMPLETED, TransportApplicationStatus.COMPLETED})
REJECTED_STATUSES = frozenset({ApplicationStatus.REJECTED, TransportApplicationStatus.REJECTED})


@dataclass(frozen=True)
class ApplicationStats:
    total: int
    pending: int
    approved: int
    completed: int
    rejected: int
    unpaid: int


class ApplicationsView(View):
    def __init__(
        self,
        api: PortalClient | None = None,
        *,
        user: UserProfile | None = None,
        notices: NoticeBoard | None = None,
        numbers: ReferenceNumberGenerator | None = None,
        page_size: int | None = None,
    ):
        super().__init__(api, notices)
        self.user = user
        # Only used when there is no API: wizards then number submissions locally
        self.numbers = numbers or ReferenceNumberGenerator()
        self.controller: ListViewController[Application] = ListViewController(
            search_fields=SEARCH_FIELDS,
            filter_fields=FILTER_FIELDS,
            sort_fields=SORT_FIELDS,
            sort=("created_at", "desc"),
            page_size=page_size,
        )
        self.controller.subscribe(self._notify)
        self.wizard: Wizard | None = None
        self.payment: PaymentFlow | None = None

    # ── Collection ──────────────────────────────────────────

    def seed(self, applications: list[Application]) -> None:
        """Inject records explicitly (demo data, tests, offline use)."""
        self.controller.set_items(applications)
        for application in applications:
            if application.reference_number:
                self.numbers.observe(application.reference_number)
        self._ready()

    async def load(self) -> bool:
        api = self._require_api()
        return await self._load(api.list_my_applications, self.controller.set_items)

    @property
    def stats(self) -> ApplicationStats:
        items = self.controller.items
        return ApplicationStats(
            total=len(items),
            pending=sum(1 for a in items if a.status in PENDING_STATUSES),
            approved=sum(1 for a in items if a.status in APPROVED_STATUSES),
            completed=sum(1 for a in items if a.status in COMPLETED_STATUSES),
            rejected=sum(1 for a in items if a.status in REJECTED_STATUSES),
            unpaid=sum(
                1 for a in items
                if a.fee > 0 and a.payment_status is PaymentStatus.PENDING
            ),
        )

    # ── Wizard ──────────────────────────────────────────────

    def open_wizard(self, service_type: ServiceType) -> Wizard:
        """Open the application wizard for ``service_type``.

        Only one wizard is open at a time; opening another disposes the first.
        """
        if self.wizard is not None:
            self.wizard.dispose()

        online = self.api is not None
        definition = service_wizard(
            service_type,
            applicant=self.user,
            numbers=None if online else self.numbers,
        )
        self.wizard = Wizard(
            definition,
            append=self._submitted,
            submitter=self._submit if online else None,
            on_close=self._wizard_closed,
        )
        self.wizard.open()
        return self.wizard

    async def _submit(self, application: Application) -> Application:
        try:
            return await self.api.submit_built(application)
        except ApiError as exc:
            # The wizard keeps the draft and exposes submit_error for retry
            self.notices.error(exc.message)
            raise

    def _submitted(self, application: Application) -> None:
        self.controller.append(application)
        self.notices.success(
            f"Application submitted successfully. Reference: {application.reference_number}"
        )

    def _wizard_closed(self) -> None:
        self.wizard = None
        self._notify()

    # ── Payment ─────────────────────────────────────────────

    def open_payment(self, application_id: str) -> PaymentFlow | None:
        api = self._require_api()
        application = self.controller.get(application_id)
        if application is None:
            logger.debug("No application %r to pay for", application_id)
            return None
        if self.payment is not None:
            self.payment.cancel()
        self.payment = PaymentFlow(
            api, application, payer=self.user, on_paid=self._paid, notices=self.notices
        )
        return self.payment

    def _paid(self, application: Application, receipt: PaymentReceipt) -> None:
        self.controller.replace(application)
        self.notices.success("Payment successful! Your application will be processed shortly.")
