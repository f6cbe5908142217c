"""Domain records: the entities the portal lists, submits and reviews.

All records with a lifecycle derive from ``DomainRecord``. Records are
treated as values: ``transition`` / ``submit`` / ``with_reference`` return
updated copies, so an owner can keep the previous version around to roll
back an optimistic update.

Invariants:
  - ``id`` is a UUID4 string fixed at construction.
  - ``updated_at`` is restamped on every status transition.
  - ``reference_number`` is assigned once (at submission) and never again.
"""

import enum
import uuid
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, model_validator

from portal.domain.status import (
    PAYMENT_GRAPH,
    ApplicationStatus,
    BeneficiaryStatus,
    DocumentStatus,
    PaymentStatus,
    ServiceAvailability,
    StatusGraph,
    TransportApplicationStatus,
    VehicleStatus,
    graph_for,
)
from portal.middleware.exceptions import ReferenceNumberError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class ServiceType(str, enum.Enum):
    IDENTIFICATION_LETTER = "IDENTIFICATION_LETTER"
    BIRTH_CERTIFICATE = "BIRTH_CERTIFICATE"
    HEALTH_APPOINTMENT = "HEALTH_APPOINTMENT"
    BUSINESS_REGISTRATION = "BUSINESS_REGISTRATION"
    VEHICLE_REGISTRATION = "VEHICLE_REGISTRATION"
    DRIVER_LICENSE = "DRIVER_LICENSE"
    EDUCATION_APPLICATION = "EDUCATION_APPLICATION"
    HOUSING_APPLICATION = "HOUSING_APPLICATION"
    SOCIAL_SECURITY = "SOCIAL_SECURITY"


# Services processed by the licensing office flow
TRANSPORT_SERVICE_TYPES = frozenset({ServiceType.VEHICLE_REGISTRATION, ServiceType.DRIVER_LICENSE})


class UserRole(str, enum.Enum):
    CITIZEN = "citizen"
    STAFF = "staff"
    OFFICIAL = "official"
    ADMIN = "admin"


REVIEWER_ROLES = frozenset({UserRole.STAFF, UserRole.OFFICIAL, UserRole.ADMIN})


# ── Base ────────────────────────────────────────────────────

class DomainRecord(BaseModel):
    """Base for records with a status lifecycle.

    Subclasses declare ``status`` with their own enum and default.
    """
    id: str = Field(default_factory=new_id)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    reference_number: str | None = None

    model_config = {"from_attributes": True}

    @property
    def graph(self) -> StatusGraph:
        return graph_for(self.status)

    def transition(self, target: enum.Enum, *, at: datetime | None = None):
        """Return a copy moved to ``target``; raises InvalidTransitionError."""
        self.graph.check(self.status, target)
        return self.model_copy(update={"status": target, "updated_at": at or utcnow()})

    def with_reference(self, number: str):
        if self.reference_number is not None:
            raise ReferenceNumberError(self.id)
        return self.model_copy(update={"reference_number": number})

    def submit(self, reference_number: str, *, at: datetime | None = None):
        """Move to the domain's submitted status and assign the reference number."""
        record = self
        if record.status != record.graph.submitted:
            record = record.transition(record.graph.submitted, at=at)
        return record.with_reference(reference_number)


# ── Applications ────────────────────────────────────────────

class PaymentMethod(str, enum.Enum):
    PAYSTACK = "paystack"
    FLUTTERWAVE = "flutterwave"
    BANK_TRANSFER = "bank_transfer"
    CASH_OFFICE = "cash_office"


class Application(DomainRecord):
    """A citizen's service application.

    Transport services (vehicle registration, driver's licenses) go through
    the licensing office lifecycle; everything else uses the general review
    lifecycle. The two status enums share no values, so the JSON form
    round-trips to the right one.
    """
    status: ApplicationStatus | TransportApplicationStatus | None = None
    service_type: ServiceType
    service_name: str
    applicant_id: str | None = None
    applicant_name: str = ""
    applicant_email: str | None = None
    fee: float = 0.0
    payment_status: PaymentStatus = PaymentStatus.PENDING
    documents: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = None
    reviewed_by: str | None = None
    estimated_completion: date | None = None

    @model_validator(mode="after")
    def _status_matches_service(self):
        expected = initial_status_for(self.service_type)
        if self.status is None:
            self.status = expected
        elif type(self.status) is not type(expected):
            raise ValueError(
                f"{self.service_type.value} applications use {type(expected).__name__}"
            )
        return self

    @property
    def is_transport(self) -> bool:
        return self.service_type in TRANSPORT_SERVICE_TYPES

    @property
    def submitted_at(self) -> datetime:
        return self.created_at

    def mark_paid(self):
        PAYMENT_GRAPH.check(self.payment_status, PaymentStatus.PAID)
        return self.model_copy(update={"payment_status": PaymentStatus.PAID, "updated_at": utcnow()})


def initial_status_for(service_type: ServiceType) -> ApplicationStatus | TransportApplicationStatus:
    if service_type in TRANSPORT_SERVICE_TYPES:
        return TransportApplicationStatus.DRAFT
    return ApplicationStatus.DRAFT


# ── Registries ──────────────────────────────────────────────

class Vehicle(DomainRecord):
    status: VehicleStatus = VehicleStatus.ACTIVE
    owner_name: str
    plate_number: str
    vehicle_type: str
    make: str
    model: str
    year: int
    color: str | None = None
    registration_date: date | None = None
    expiry_date: date | None = None
    violations: int = 0


class Beneficiary(DomainRecord):
    status: BeneficiaryStatus = BeneficiaryStatus.PENDING
    full_name: str
    email: str | None = None
    programme: str
    monthly_amount: float = 0.0
    enrolled_on: date | None = None


class UserDocument(DomainRecord):
    status: DocumentStatus = DocumentStatus.PENDING
    owner_id: str
    name: str
    doc_type: str
    mime_type: str = "application/octet-stream"
    file_size: int = 0
    verified_by: str | None = None
    verified_at: datetime | None = None
    expiry_date: date | None = None
    notes: str | None = None


# ── Catalog / profile (no lifecycle) ────────────────────────

class ServiceOffering(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str
    category: str
    service_type: ServiceType | None = None
    fee: float = 0.0
    processing_time: str = ""
    requirements: list[str] = Field(default_factory=list)
    status: ServiceAvailability = ServiceAvailability.AVAILABLE
    renewal_required: bool = False


class Notification(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    title: str
    message: str
    kind: str = "info"
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class NotificationPreference(BaseModel):
    kind: str
    email: bool = True
    sms: bool = False
    push: bool = True


class UserProfile(BaseModel):
    id: str = Field(default_factory=new_id)
    email: str
    first_name: str
    last_name: str
    phone_number: str | None = None
    address: str | None = None
    date_of_birth: date | None = None
    role: UserRole = UserRole.CITIZEN
    is_verified: bool = False
    profile_picture: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
