"""Fee payment flow for one application.

Four stages, the first two of which are wizard steps:

    Select Payment Method → Enter Payment Details → Process Payment → Payment Confirmation

"Process Payment" is the wizard's in-flight submit; "Payment
Confirmation" is reached once the API returns a receipt. A failed payment
leaves the flow on the details step with ``submit_error`` set, so the
payer can retry without re-entering anything.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from portal.client.api import PortalClient
from portal.client.errors import ApiError
from portal.core.wizard import FieldErrors, Wizard, WizardDefinition, WizardOutcome, WizardStep
from portal.domain.catalog import validate_contact
from portal.domain.records import Application, PaymentMethod, UserProfile
from portal.domain.status import PaymentStatus
from portal.schemas.application import PaymentReceipt, PaymentRequest
from portal.views.base import NoticeBoard

logger = logging.getLogger(__name__)

PAYMENT_STAGES = (
    "Select Payment Method",
    "Enter Payment Details",
    "Process Payment",
    "Payment Confirmation",
)
STAGE_PROCESSING = 2
STAGE_CONFIRMATION = 3

PAYMENT_METHOD_INFO: dict[PaymentMethod, dict[str, str]] = {
    PaymentMethod.PAYSTACK: {
        "name": "Paystack",
        "description": "Pay with card, bank transfer, or USSD",
        "processing_time": "Instant",
    },
    PaymentMethod.FLUTTERWAVE: {
        "name": "Flutterwave",
        "description": "Card payments and mobile money",
        "processing_time": "Instant",
    },
    PaymentMethod.BANK_TRANSFER: {
        "name": "Bank Transfer",
        "description": "Direct bank transfer",
        "processing_time": "1-2 business days",
    },
    PaymentMethod.CASH_OFFICE: {
        "name": "Cash at Office",
        "description": "Pay at local government office",
        "processing_time": "Same day",
    },
}


def _validate_method(fields: Mapping[str, Any]) -> FieldErrors:
    try:
        PaymentMethod(fields.get("method"))
    except ValueError:
        return {"method": "Select a payment method"}
    return {}


def _validate_payer(fields: Mapping[str, Any]) -> FieldErrors:
    errors = validate_contact({"email": fields.get("email"), "phone_number": fields.get("phone")})
    if "phone_number" in errors:
        errors["phone"] = errors.pop("phone_number")
    return errors


METHOD_STEP = WizardStep(
    title=PAYMENT_STAGES[0],
    required=("method",),
    validator=_validate_method,
    labels={"method": "Payment method"},
)
DETAILS_STEP = WizardStep(
    title=PAYMENT_STAGES[1],
    required=("full_name", "email", "phone"),
    validator=_validate_payer,
)


class PaymentFlow:
    def __init__(
        self,
        api: PortalClient,
        application: Application,
        *,
        payer: UserProfile | None = None,
        on_paid: Callable[[Application, PaymentReceipt], None] | None = None,
        notices: NoticeBoard | None = None,
    ):
        self.api = api
        self.application = application
        self.receipt: PaymentReceipt | None = None
        self._on_paid = on_paid
        self.notices = notices or NoticeBoard()

        definition = WizardDefinition(
            name=f"Payment for {application.reference_number or application.id}",
            steps=(METHOD_STEP, DETAILS_STEP),
            defaults={
                "method": "",
                "full_name": payer.full_name if payer else "",
                "email": payer.email if payer else "",
                "phone": (payer.phone_number or "") if payer else "",
            },
            build_record=self._build_request,
        )
        self.wizard = Wizard(definition, append=self._paid, submitter=self._pay)
        self.wizard.open()

    # ── State ───────────────────────────────────────────────

    @property
    def stage(self) -> int:
        if self.receipt is not None:
            return STAGE_CONFIRMATION
        if self.wizard.in_flight:
            return STAGE_PROCESSING
        return self.wizard.step_index

    @property
    def stage_title(self) -> str:
        return PAYMENT_STAGES[self.stage]

    @property
    def amount(self) -> float:
        return self.application.fee

    @property
    def submit_error(self) -> str | None:
        return self.wizard.submit_error

    # ── Actions ─────────────────────────────────────────────

    async def select_method(self, method: PaymentMethod | str) -> WizardOutcome:
        self.wizard.set_field("method", getattr(method, "value", method))
        return await self.wizard.next()

    async def submit_details(self, **fields: str) -> WizardOutcome:
        """Fill in payer details and pay. Returns SUBMITTED once a receipt is in."""
        self.wizard.update(**fields)
        return await self.wizard.next()

    def back(self) -> bool:
        return self.wizard.back()

    def cancel(self) -> None:
        self.wizard.cancel()

    # ── Wizard plumbing ─────────────────────────────────────

    def _build_request(self, fields: dict[str, Any]) -> PaymentRequest:
        if self.application.payment_status is not PaymentStatus.PENDING:
            raise ValueError("This application has already been paid")
        return PaymentRequest(method=fields["method"], amount=self.application.fee)

    async def _pay(self, request: PaymentRequest) -> PaymentReceipt:
        try:
            return await self.api.pay_application(self.application.id, request.method, request.amount)
        except ApiError as exc:
            self.notices.error(f"Payment failed. {exc.message}")
            raise

    def _paid(self, receipt: PaymentReceipt) -> None:
        self.receipt = receipt
        self.application = self.application.mark_paid()
        logger.info(f"Paid {receipt.amount:.2f} for {self.application.id} ({receipt.transaction_id})")
        if self._on_paid is not None:
            self._on_paid(self.application, receipt)
