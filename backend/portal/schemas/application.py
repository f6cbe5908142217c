from datetime import datetime

from pydantic import BaseModel, Field

from portal.core.wizard import FieldValue
from portal.domain.records import PaymentMethod, ServiceType


class ApplicationCreate(BaseModel):
    """Wizard draft fields for one service, submitted as a whole."""
    service_type: ServiceType
    fields: dict[str, FieldValue] = Field(default_factory=dict)


class StatusChangeRequest(BaseModel):
    """Review transition. ``status`` is a value of the application's status enum."""
    status: str
    notes: str | None = None


class PaymentRequest(BaseModel):
    method: PaymentMethod
    amount: float = Field(..., ge=0)


class PaymentReceipt(BaseModel):
    transaction_id: str
    application_id: str
    reference_number: str | None = None
    amount: float
    method: PaymentMethod
    paid_at: datetime
