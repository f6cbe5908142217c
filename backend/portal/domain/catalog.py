"""Service catalog and the application wizard for each service.

Every service page offers the same shape of wizard:

    Personal Details → Service Details → Documents → Review & Submit

except identification letters, which only need the purpose/destination
details plus a review step. Step requirements and default fees live here
so the API and the client build identical records.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from portal.core.wizard import FieldErrors, WizardDefinition, WizardStep
from portal.domain.records import (
    Application,
    ServiceOffering,
    ServiceType,
    UserProfile,
)
from portal.domain.status import ServiceAvailability
from portal.utils.numbering import ReferenceNumberGenerator

SERVICE_NAMES: dict[ServiceType, str] = {
    ServiceType.IDENTIFICATION_LETTER: "Identification Letter",
    ServiceType.BIRTH_CERTIFICATE: "Birth Certificate",
    ServiceType.HEALTH_APPOINTMENT: "Health Services",
    ServiceType.BUSINESS_REGISTRATION: "Business Registration",
    ServiceType.VEHICLE_REGISTRATION: "Vehicle Registration",
    ServiceType.DRIVER_LICENSE: "Driver's License",
    ServiceType.EDUCATION_APPLICATION: "Education Services",
    ServiceType.HOUSING_APPLICATION: "Housing & Land",
    ServiceType.SOCIAL_SECURITY: "Social Security",
}

DEFAULT_FEES: dict[ServiceType, float] = {
    ServiceType.IDENTIFICATION_LETTER: 500,
    ServiceType.BIRTH_CERTIFICATE: 1000,
    ServiceType.HEALTH_APPOINTMENT: 0,
    ServiceType.BUSINESS_REGISTRATION: 2500,
    ServiceType.VEHICLE_REGISTRATION: 3000,
    ServiceType.DRIVER_LICENSE: 1500,
    ServiceType.EDUCATION_APPLICATION: 1500,
    ServiceType.HOUSING_APPLICATION: 5000,
    ServiceType.SOCIAL_SECURITY: 0,
}

URGENCY_LEVELS = ("NORMAL", "URGENT", "EMERGENCY")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^\+?[\d\s-]{7,20}$")


# ── Validators ──────────────────────────────────────────────

def _text(fields: Mapping[str, Any], name: str) -> str | None:
    """Stripped text value of an optional field; None when it is not text."""
    value = fields.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        return None
    return value.strip()


def validate_contact(fields: Mapping[str, Any]) -> FieldErrors:
    errors: FieldErrors = {}
    email = _text(fields, "email")
    if email is None or (email and not _EMAIL_RE.match(email)):
        errors["email"] = "Enter a valid email address"
    phone = _text(fields, "phone_number")
    if phone is None or (phone and not _PHONE_RE.match(phone)):
        errors["phone_number"] = "Enter a valid phone number"
    return errors


def _validate_urgency(fields: Mapping[str, Any]) -> FieldErrors:
    if fields.get("urgency") not in URGENCY_LEVELS:
        return {"urgency": f"Urgency must be one of {', '.join(URGENCY_LEVELS)}"}
    return {}


# ── Step tables ─────────────────────────────────────────────

PERSONAL_STEP = WizardStep(
    title="Personal Details",
    required=("first_name", "last_name", "phone_number"),
    validator=validate_contact,
)
DOCUMENTS_STEP = WizardStep(
    title="Documents",
    required=("uploaded_documents",),
    labels={"uploaded_documents": "At least one document"},
)
REVIEW_STEP = WizardStep(
    title="Review & Submit",
    required=("agree_to_terms",),
    labels={"agree_to_terms": "Agreement to the terms"},
)

# Service-specific middle step: (title, required fields, extra optional fields)
DETAIL_STEPS: dict[ServiceType, tuple[str, tuple[str, ...], tuple[str, ...]]] = {
    ServiceType.BIRTH_CERTIFICATE: (
        "Child Details",
        ("child_first_name", "child_last_name", "child_date_of_birth", "place_of_birth", "mother_name"),
        ("father_name", "hospital_name"),
    ),
    ServiceType.HEALTH_APPOINTMENT: (
        "Appointment Details",
        ("facility", "preferred_date", "reason"),
        ("insurance_number",),
    ),
    ServiceType.BUSINESS_REGISTRATION: (
        "Business Details",
        ("business_name", "business_type", "business_address"),
        ("tax_id", "employees"),
    ),
    ServiceType.VEHICLE_REGISTRATION: (
        "Vehicle Information",
        ("vehicle_type", "vehicle_make", "vehicle_model", "engine_number", "chassis_number"),
        ("vehicle_year", "vehicle_color"),
    ),
    ServiceType.DRIVER_LICENSE: (
        "License Information",
        ("license_class", "medical_fitness"),
        ("previous_license", "experience_years"),
    ),
    ServiceType.EDUCATION_APPLICATION: (
        "Education Details",
        ("institution", "programme", "level"),
        ("student_id", "previous_school"),
    ),
    ServiceType.HOUSING_APPLICATION: (
        "Property Details",
        ("property_address", "property_type", "application_kind"),
        ("plot_number", "land_size"),
    ),
    ServiceType.SOCIAL_SECURITY: (
        "Benefit Details",
        ("programme", "employment_status", "household_size"),
        ("monthly_income", "bank_account"),
    ),
}

PERSONAL_FIELDS = ("first_name", "last_name", "phone_number", "email", "address")


# ── Catalog ─────────────────────────────────────────────────

CATALOG: tuple[ServiceOffering, ...] = (
    ServiceOffering(
        id="svc-identification",
        name="Identification Letter",
        description="Local government identification letter for official use",
        category="Identification",
        service_type=ServiceType.IDENTIFICATION_LETTER,
        fee=DEFAULT_FEES[ServiceType.IDENTIFICATION_LETTER],
        processing_time="3-5 business days",
        requirements=["Valid means of identification", "Proof of residence"],
    ),
    ServiceOffering(
        id="svc-birth-certificate",
        name="Birth Certificate",
        description="Register a birth and obtain a certified birth certificate",
        category="Civil Registration",
        service_type=ServiceType.BIRTH_CERTIFICATE,
        fee=DEFAULT_FEES[ServiceType.BIRTH_CERTIFICATE],
        processing_time="5-7 business days",
        requirements=["Hospital birth record", "Parents' identification"],
    ),
    ServiceOffering(
        id="svc-health",
        name="Health Appointment",
        description="Book an appointment at a primary health care centre",
        category="Health",
        service_type=ServiceType.HEALTH_APPOINTMENT,
        processing_time="Same day",
        requirements=["Health card or identification"],
    ),
    ServiceOffering(
        id="svc-business",
        name="Business Registration",
        description="Register a business premises and obtain a trade permit",
        category="Business",
        service_type=ServiceType.BUSINESS_REGISTRATION,
        fee=DEFAULT_FEES[ServiceType.BUSINESS_REGISTRATION],
        processing_time="7-14 business days",
        requirements=["Certificate of incorporation", "Tax identification number"],
        renewal_required=True,
    ),
    ServiceOffering(
        id="svc-vehicle-registration",
        name="Vehicle Registration",
        description="Register new vehicles and obtain license plates",
        category="Transport",
        service_type=ServiceType.VEHICLE_REGISTRATION,
        fee=DEFAULT_FEES[ServiceType.VEHICLE_REGISTRATION],
        processing_time="3-5 business days",
        requirements=[
            "Certificate of Ownership or Purchase Receipt",
            "Valid Driver's License",
            "Vehicle Insurance Certificate",
            "Roadworthiness Certificate",
        ],
        renewal_required=True,
    ),
    ServiceOffering(
        id="svc-driver-license",
        name="Driver's License (New Application)",
        description="Apply for a new driver's license",
        category="Transport",
        service_type=ServiceType.DRIVER_LICENSE,
        fee=DEFAULT_FEES[ServiceType.DRIVER_LICENSE],
        processing_time="2-4 weeks",
        requirements=["Medical fitness certificate", "Driving school certificate"],
        renewal_required=True,
    ),
    ServiceOffering(
        id="svc-education",
        name="Education Services",
        description="Scholarships, admissions and transcript requests",
        category="Education",
        service_type=ServiceType.EDUCATION_APPLICATION,
        fee=DEFAULT_FEES[ServiceType.EDUCATION_APPLICATION],
        processing_time="2-3 weeks",
        requirements=["Academic records", "Identification"],
        status=ServiceAvailability.SEASONAL,
    ),
    ServiceOffering(
        id="svc-housing",
        name="Housing & Land",
        description="Building permits, land allocation and property records",
        category="Housing",
        service_type=ServiceType.HOUSING_APPLICATION,
        fee=DEFAULT_FEES[ServiceType.HOUSING_APPLICATION],
        processing_time="4-6 weeks",
        requirements=["Survey plan", "Proof of ownership"],
        status=ServiceAvailability.LIMITED,
    ),
    ServiceOffering(
        id="svc-social-security",
        name="Social Security",
        description="Enrol in pension, disability and welfare programmes",
        category="Social Security",
        service_type=ServiceType.SOCIAL_SECURITY,
        processing_time="2-4 weeks",
        requirements=["Identification", "Proof of income"],
    ),
)


def find_offering(service_type: ServiceType) -> ServiceOffering | None:
    for offering in CATALOG:
        if offering.service_type == service_type:
            return offering
    return None


# ── Record building ─────────────────────────────────────────

def build_application(
    service_type: ServiceType,
    fields: Mapping[str, Any],
    applicant: UserProfile | None = None,
) -> Application:
    """Build a DRAFT application for ``service_type`` from wizard fields."""
    service_type = ServiceType(service_type)

    applicant_name = " ".join(
        part for part in (fields.get("first_name"), fields.get("last_name")) if part
    ).strip()
    if not applicant_name and applicant is not None:
        applicant_name = applicant.full_name

    details = {
        name: value for name, value in fields.items()
        if name not in ("uploaded_documents", "agree_to_terms")
    }
    return Application(
        service_type=service_type,
        service_name=SERVICE_NAMES[service_type],
        applicant_id=applicant.id if applicant else None,
        applicant_name=applicant_name,
        applicant_email=fields.get("email") or (applicant.email if applicant else None),
        fee=DEFAULT_FEES[service_type],
        documents=list(fields.get("uploaded_documents") or []),
        details=details,
    )


def draft_fields(application: Application) -> dict[str, Any]:
    """Wizard fields a built application came from (inverse of ``build_application``)."""
    fields = dict(application.details)
    if application.service_type != ServiceType.IDENTIFICATION_LETTER:
        fields["uploaded_documents"] = list(application.documents)
        # Only a fully validated draft is ever built
        fields["agree_to_terms"] = True
    return fields


def service_steps(service_type: ServiceType) -> tuple[WizardStep, ...]:
    if service_type == ServiceType.IDENTIFICATION_LETTER:
        return (
            WizardStep(
                title="Application Details",
                required=("purpose", "destination"),
                validator=_validate_urgency,
            ),
            WizardStep(title="Review & Submit"),
        )
    title, required, _ = DETAIL_STEPS[service_type]
    return (
        PERSONAL_STEP,
        WizardStep(title=title, required=required),
        DOCUMENTS_STEP,
        REVIEW_STEP,
    )


def service_defaults(service_type: ServiceType, applicant: UserProfile | None = None) -> dict[str, Any]:
    if service_type == ServiceType.IDENTIFICATION_LETTER:
        return {"purpose": "", "destination": "", "additional_info": "", "urgency": "NORMAL"}

    _, required, optional = DETAIL_STEPS[service_type]
    defaults: dict[str, Any] = {name: "" for name in PERSONAL_FIELDS}
    if applicant is not None:
        defaults.update(
            first_name=applicant.first_name,
            last_name=applicant.last_name,
            phone_number=applicant.phone_number or "",
            email=applicant.email,
            address=applicant.address or "",
        )
    defaults.update({name: "" for name in required + optional})
    defaults["uploaded_documents"] = []
    defaults["agree_to_terms"] = False
    return defaults


def service_wizard(
    service_type: ServiceType,
    *,
    applicant: UserProfile | None = None,
    numbers: ReferenceNumberGenerator | None = None,
) -> WizardDefinition:
    """Wizard definition for one service.

    With ``numbers`` the wizard assigns the reference number itself
    (offline use). Without it the submitter (the API) is expected to
    return the submitted record with its reference number.
    """
    service_type = ServiceType(service_type)

    finalize = None
    if numbers is not None:
        def finalize(record: Application) -> Application:
            return record.submit(numbers.generate(record.service_type.value))

    return WizardDefinition(
        name=SERVICE_NAMES[service_type],
        steps=service_steps(service_type),
        defaults=service_defaults(service_type, applicant),
        build_record=lambda fields: build_application(service_type, fields, applicant),
        finalize=finalize,
    )
