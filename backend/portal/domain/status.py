"""Closed status enums and explicit transition graphs per domain.

Every record type that moves through a review or lifecycle has its own
``str``-valued enum and a ``StatusGraph`` listing the allowed edges.
Anything not listed is rejected with ``InvalidTransitionError``.

Application review lifecycle:

    DRAFT → SUBMITTED → UNDER_REVIEW → APPROVED → COMPLETED
    UNDER_REVIEW → PENDING_DOCUMENTS → UNDER_REVIEW
    UNDER_REVIEW → REJECTED

Transport applications follow the longer licensing office flow
(document verification and testing before approval).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Mapping

from portal.middleware.exceptions import InvalidTransitionError


class ApplicationStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    PENDING_DOCUMENTS = "PENDING_DOCUMENTS"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class TransportApplicationStatus(str, enum.Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    DOCUMENT_VERIFICATION = "Document Verification"
    TESTING = "Testing"
    APPROVED = "Approved"
    READY_FOR_COLLECTION = "Ready for Collection"
    COMPLETED = "Completed"
    REJECTED = "Rejected"
    EXPIRED = "Expired"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class VehicleStatus(str, enum.Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    SUSPENDED = "Suspended"
    IMPOUNDED = "Impounded"


class BeneficiaryStatus(str, enum.Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    REJECTED = "Rejected"


class ServiceAvailability(str, enum.Enum):
    """Catalog availability. Not a lifecycle, so it has no graph."""
    AVAILABLE = "Available"
    LIMITED = "Limited"
    SEASONAL = "Seasonal"
    SUSPENDED = "Suspended"


# ── Graphs ──────────────────────────────────────────────────

@dataclass(frozen=True)
class StatusGraph:
    """Allowed status moves for one domain.

    ``initial`` is the status a freshly built record starts in and
    ``submitted`` the first post-submission status (where the reference
    number is assigned).
    """
    domain: str
    initial: enum.Enum
    submitted: enum.Enum
    edges: Mapping[enum.Enum, frozenset] = field(default_factory=dict)

    def allowed(self, current: enum.Enum) -> frozenset:
        return self.edges.get(current, frozenset())

    def can_transition(self, current: enum.Enum, target: enum.Enum) -> bool:
        return target in self.allowed(current)

    def is_terminal(self, status: enum.Enum) -> bool:
        return not self.allowed(status)

    def check(self, current: enum.Enum, target: enum.Enum) -> None:
        if not self.can_transition(current, target):
            raise InvalidTransitionError(self.domain, current.value, target.value)


_A = ApplicationStatus
APPLICATION_GRAPH = StatusGraph(
    domain="application",
    initial=_A.DRAFT,
    submitted=_A.SUBMITTED,
    edges={
        _A.DRAFT: frozenset({_A.SUBMITTED}),
        _A.SUBMITTED: frozenset({_A.UNDER_REVIEW}),
        _A.UNDER_REVIEW: frozenset({_A.PENDING_DOCUMENTS, _A.APPROVED, _A.REJECTED}),
        _A.PENDING_DOCUMENTS: frozenset({_A.UNDER_REVIEW}),
        _A.APPROVED: frozenset({_A.COMPLETED}),
    },
)

_T = TransportApplicationStatus
TRANSPORT_GRAPH = StatusGraph(
    domain="transport_application",
    initial=_T.DRAFT,
    submitted=_T.SUBMITTED,
    edges={
        _T.DRAFT: frozenset({_T.SUBMITTED}),
        _T.SUBMITTED: frozenset({_T.UNDER_REVIEW}),
        _T.UNDER_REVIEW: frozenset({_T.DOCUMENT_VERIFICATION, _T.REJECTED}),
        _T.DOCUMENT_VERIFICATION: frozenset({_T.TESTING, _T.REJECTED}),
        _T.TESTING: frozenset({_T.APPROVED, _T.REJECTED}),
        _T.APPROVED: frozenset({_T.READY_FOR_COLLECTION}),
        _T.READY_FOR_COLLECTION: frozenset({_T.COMPLETED, _T.EXPIRED}),
    },
)

PAYMENT_GRAPH = StatusGraph(
    domain="payment",
    initial=PaymentStatus.PENDING,
    submitted=PaymentStatus.PENDING,
    edges={
        PaymentStatus.PENDING: frozenset({PaymentStatus.PAID}),
        PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    },
)

DOCUMENT_GRAPH = StatusGraph(
    domain="document",
    initial=DocumentStatus.PENDING,
    submitted=DocumentStatus.PENDING,
    edges={
        DocumentStatus.PENDING: frozenset({DocumentStatus.VERIFIED, DocumentStatus.REJECTED}),
    },
)

_V = VehicleStatus
VEHICLE_GRAPH = StatusGraph(
    domain="vehicle",
    initial=_V.ACTIVE,
    submitted=_V.ACTIVE,
    edges={
        _V.ACTIVE: frozenset({_V.SUSPENDED, _V.EXPIRED, _V.IMPOUNDED}),
        _V.SUSPENDED: frozenset({_V.ACTIVE}),
        _V.IMPOUNDED: frozenset({_V.ACTIVE}),
        _V.EXPIRED: frozenset({_V.ACTIVE}),  # renewal
    },
)

_B = BeneficiaryStatus
BENEFICIARY_GRAPH = StatusGraph(
    domain="beneficiary",
    initial=_B.PENDING,
    submitted=_B.PENDING,
    edges={
        _B.PENDING: frozenset({_B.ACTIVE, _B.REJECTED}),
        _B.ACTIVE: frozenset({_B.SUSPENDED}),
        _B.SUSPENDED: frozenset({_B.ACTIVE}),
    },
)

GRAPHS: dict[type, StatusGraph] = {
    ApplicationStatus: APPLICATION_GRAPH,
    TransportApplicationStatus: TRANSPORT_GRAPH,
    PaymentStatus: PAYMENT_GRAPH,
    DocumentStatus: DOCUMENT_GRAPH,
    VehicleStatus: VEHICLE_GRAPH,
    BeneficiaryStatus: BENEFICIARY_GRAPH,
}


def graph_for(status: enum.Enum) -> StatusGraph:
    """Return the graph governing ``status``'s enum."""
    try:
        return GRAPHS[type(status)]
    except KeyError:
        raise LookupError(f"No status graph for {type(status).__name__}") from None
