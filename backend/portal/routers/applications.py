"""Application routes: submission, payment and review.

Route overview:
  POST /api/applications                       — submit a completed wizard draft
  POST /api/applications/{id}/payments         — pay the application fee
  GET  /api/admin/applications                 — review queue (search/filter/sort/page)
  POST /api/admin/applications/{id}/status     — move an application along its status graph

Submission re-runs every wizard step's validation, so a client cannot
skip a step by posting directly.
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from portal.auth.deps import get_current_user, require_reviewer
from portal.core.listview import ALL, ListViewController, SortKind
from portal.domain.catalog import build_application, service_steps
from portal.domain.records import Application, utcnow
from portal.middleware.exceptions import BusinessLogicError, PermissionDeniedError
from portal.schemas.application import (
    ApplicationCreate,
    PaymentReceipt,
    PaymentRequest,
    StatusChangeRequest,
)
from portal.schemas.common import Envelope, PaginatedResponse
from portal.store import PortalStore, UserAccount, get_store
from portal.utils.activity import log_activity

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()

REVIEW_SEARCH_FIELDS = ("service_name", "reference_number", "applicant_name")
REVIEW_FILTER_FIELDS = ("status", "service_type", "payment_status")
REVIEW_SORT_FIELDS = {
    "created_at": SortKind.DATE,
    "updated_at": SortKind.DATE,
    "service_name": SortKind.STRING,
    "applicant_name": SortKind.STRING,
    "status": SortKind.STRING,
    "fee": SortKind.NUMBER,
}


# ── POST / ──────────────────────────────────────────────────

@router.post("", response_model=Envelope[Application], status_code=status.HTTP_201_CREATED)
async def submit_application(
    body: ApplicationCreate,
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    """Validate the draft, assign a reference number and store the submission."""
    for step in service_steps(body.service_type):
        errors = step.validate(body.fields)
        if errors:
            message = next(iter(errors.values()))
            raise BusinessLogicError(
                f"{step.title}: {message}",
                error_code="APPLICATION_INCOMPLETE",
                details={"step": step.title, "fields": errors},
            )

    draft = build_application(body.service_type, body.fields, user.profile)
    application = draft.submit(store.numbers.generate(body.service_type.value))
    store.save_application(application)

    store.notify(
        user.id,
        "Application submitted",
        f"Your {application.service_name} application {application.reference_number} was received.",
        kind="application",
    )
    log_activity(
        store, user,
        action="submitted",
        entity_type="application",
        entity_id=application.id,
        entity_code=application.reference_number,
        summary=f"Submitted {application.service_name} application",
    )
    return Envelope(data=application, message="Application submitted successfully")


# ── POST /{application_id}/payments ─────────────────────────

@router.post("/{application_id}/payments", response_model=Envelope[PaymentReceipt])
async def pay_application(
    application_id: str,
    body: PaymentRequest,
    store: PortalStore = Depends(get_store),
    user: UserAccount = Depends(get_current_user),
):
    application = store.get_application(application_id)
    if application.applicant_id != user.id:
        raise PermissionDeniedError("You can only pay for your own applications")
    if body.amount != application.fee:
        raise BusinessLogicError(
            f"Payment amount {body.amount:.2f} does not match fee {application.fee:.2f}",
            error_code="PAYMENT_AMOUNT_MISMATCH",
        )

    application = store.save_application(application.mark_paid())
    receipt = PaymentReceipt(
        transaction_id=store.numbers.generate("PAYMENT"),
        application_id=application.id,
        reference_number=application.reference_number,
        amount=body.amount,
        method=body.method,
        paid_at=utcnow(),
    )

    store.notify(
        user.id,
        "Payment received",
        f"Payment {receipt.transaction_id} for {application.reference_number} was successful.",
        kind="payment",
    )
    log_activity(
        store, user,
        action="paid",
        entity_type="application",
        entity_id=application.id,
        entity_code=receipt.transaction_id,
        details={"method": body.method.value, "amount": body.amount},
    )
    return Envelope(data=receipt, message="Payment successful")


# ── GET /api/admin/applications ─────────────────────────────

@admin_router.get("/applications", response_model=Envelope[PaginatedResponse[Application]])
async def review_queue(
    search: str = Query("", description="Substring of service, reference or applicant"),
    status_filter: str = Query(ALL, alias="status"),
    service_type: str = Query(ALL),
    payment_status: str = Query(ALL),
    sort: str = Query("created_at"),
    direction: str = Query("desc"),
    page: int = Query(0, ge=0),
    page_size: int = Query(10, ge=1, le=100),
    store: PortalStore = Depends(get_store),
    _reviewer: UserAccount = Depends(require_reviewer),
):
    """Every submitted application, shaped the same way the client list views are."""
    view = ListViewController(
        (a for a in store.applications.values() if a.reference_number),
        search_fields=REVIEW_SEARCH_FIELDS,
        filter_fields=REVIEW_FILTER_FIELDS,
        sort_fields=REVIEW_SORT_FIELDS,
        sort=(sort, direction),
        page_size=page_size,
    )
    view.set_search_query(search)
    view.set_filter("status", status_filter)
    view.set_filter("service_type", service_type)
    view.set_filter("payment_status", payment_status)
    view.set_page(page)
    return Envelope(data=view.get_page())


# ── POST /api/admin/applications/{application_id}/status ────

@admin_router.post("/applications/{application_id}/status", response_model=Envelope[Application])
async def change_application_status(
    application_id: str,
    body: StatusChangeRequest,
    store: PortalStore = Depends(get_store),
    reviewer: UserAccount = Depends(require_reviewer),
):
    application = store.get_application(application_id)
    status_enum = type(application.status)
    try:
        target = status_enum(body.status)
    except ValueError:
        raise BusinessLogicError(
            f"Unknown {status_enum.__name__} value: {body.status}",
            error_code="UNKNOWN_STATUS",
        )

    previous = application.status
    application = application.transition(target).model_copy(update={
        "reviewed_by": reviewer.id,
        "notes": body.notes if body.notes is not None else application.notes,
    })
    store.save_application(application)

    if application.applicant_id:
        store.notify(
            application.applicant_id,
            "Application status updated",
            f"{application.service_name} {application.reference_number} is now {target.value}.",
            kind="application",
        )
    log_activity(
        store, reviewer,
        action="status_changed",
        entity_type="application",
        entity_id=application.id,
        entity_code=application.reference_number,
        details={"from": previous.value, "to": target.value},
    )
    return Envelope(data=application, message=f"Application moved to {target.value}")
