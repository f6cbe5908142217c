"""Portal domain: records, status enums and transition graphs."""

from portal.domain.records import (
    Application,
    Beneficiary,
    DomainRecord,
    Notification,
    NotificationPreference,
    PaymentMethod,
    ServiceOffering,
    ServiceType,
    UserDocument,
    UserProfile,
    UserRole,
    Vehicle,
    initial_status_for,
)
from portal.domain.status import (
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

__all__ = [
    "Application",
    "ApplicationStatus",
    "Beneficiary",
    "BeneficiaryStatus",
    "DocumentStatus",
    "DomainRecord",
    "Notification",
    "NotificationPreference",
    "PaymentMethod",
    "PaymentStatus",
    "ServiceAvailability",
    "ServiceOffering",
    "ServiceType",
    "StatusGraph",
    "TransportApplicationStatus",
    "UserDocument",
    "UserProfile",
    "UserRole",
    "Vehicle",
    "VehicleStatus",
    "graph_for",
    "initial_status_for",
]
