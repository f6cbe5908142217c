"""PortalClient tests: envelope unwrapping and error mapping."""

import httpx
import pytest

from portal.client.api import PortalClient
from portal.client.errors import (
    ApiError,
    AuthenticationError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationFailedError,
    error_for_status,
)
from portal.domain import ApplicationStatus, ServiceType, UserProfile
from portal.domain.catalog import build_application
from portal.store import SEED_PASSWORD

BASE_URL = "http://test"


def _mock_client(handler, **kwargs) -> PortalClient:
    return PortalClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


def _envelope_error(status_code: int, message: str, code: str, details=None) -> httpx.Response:
    error = {"code": code}
    if details is not None:
        error["details"] = details
    return httpx.Response(status_code, json={"success": False, "message": message, "error": error})


@pytest.mark.unit
class TestErrorForStatus:
    @pytest.mark.parametrize("status_code,expected", [
        (401, AuthenticationError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (422, ValidationFailedError),
        (429, RateLimitedError),
        (500, ServerError),
        (503, ServerError),
        (400, ApiError),
    ])
    def test_mapping(self, status_code, expected):
        exc = error_for_status(status_code)
        assert type(exc) is expected
        assert exc.status_code == status_code

    def test_default_messages(self):
        assert error_for_status(401).message == "Session expired. Please login again."
        assert error_for_status(404, "Application not found: x").message == "Application not found: x"


@pytest.mark.unit
@pytest.mark.asyncio
class TestRequestHandling:
    async def test_unwraps_data_and_sends_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={
                "success": True,
                "data": {"id": "u1", "email": "a@b.co", "first_name": "Ada", "last_name": "Okafor"},
            })

        async with _mock_client(handler, token_provider=lambda: "tok") as api:
            profile = await api.get_profile()

        assert isinstance(profile, UserProfile)
        assert profile.full_name == "Ada Okafor"
        assert seen["auth"] == "Bearer tok"

    async def test_no_token_no_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"success": True, "data": []})

        async with _mock_client(handler) as api:
            assert await api.list_notifications() == []
        assert seen["auth"] is None

    async def test_401_calls_on_unauthorized(self):
        cleared = []

        async with _mock_client(
            lambda request: _envelope_error(401, "Invalid or expired token", "HTTP_401"),
            token_provider=lambda: "expired",
            on_unauthorized=lambda: cleared.append(True),
        ) as api:
            with pytest.raises(AuthenticationError) as exc_info:
                await api.get_profile()

        assert exc_info.value.message == "Invalid or expired token"
        assert cleared == [True]

    async def test_validation_error_carries_field_errors(self):
        details = {"errors": [{"field": "body -> new_password", "message": "too short", "type": "string_too_short"}]}

        async with _mock_client(
            lambda request: _envelope_error(422, "Validation error", "VALIDATION_ERROR", details)
        ) as api:
            with pytest.raises(ValidationFailedError) as exc_info:
                await api.change_password("password123", "short")

        assert exc_info.value.error_code == "VALIDATION_ERROR"
        assert exc_info.value.field_errors[0]["field"] == "body -> new_password"

    async def test_incomplete_application_carries_field_messages(self):
        details = {"step": "Documents", "fields": {"uploaded_documents": "At least one document is required"}}

        async with _mock_client(
            lambda request: _envelope_error(422, "Documents: missing", "APPLICATION_INCOMPLETE", details)
        ) as api:
            with pytest.raises(ValidationFailedError) as exc_info:
                await api.submit_application(ServiceType.BIRTH_CERTIFICATE, {})

        assert exc_info.value.fields == {"uploaded_documents": "At least one document is required"}
        assert exc_info.value.field_errors == []

    async def test_server_error_without_envelope(self):
        async with _mock_client(lambda request: httpx.Response(502, text="Bad Gateway")) as api:
            with pytest.raises(ServerError) as exc_info:
                await api.list_documents()
        assert exc_info.value.message == "Server error. Please try again later."

    async def test_success_false_on_2xx_is_an_error(self):
        async with _mock_client(
            lambda request: httpx.Response(200, json={"success": False, "message": "Nope"})
        ) as api:
            with pytest.raises(ApiError, match="Nope"):
                await api.list_notifications()

    async def test_malformed_success_body(self):
        async with _mock_client(lambda request: httpx.Response(200, text="<html>")) as api:
            with pytest.raises(ApiError, match="Malformed response"):
                await api.list_notifications()

    async def test_transport_failure_is_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _mock_client(handler) as api:
            with pytest.raises(NetworkError):
                await api.get_profile()

    async def test_review_queue_drops_none_params(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={
                "success": True,
                "data": {"items": [], "total": 0, "limit": 10, "offset": 0},
            })

        async with _mock_client(handler) as api:
            page = await api.review_queue(status=ApplicationStatus.SUBMITTED, search=None, page=0)

        assert seen["params"] == {"status": "SUBMITTED", "page": "0"}
        assert page.total == 0


@pytest.mark.integration
@pytest.mark.asyncio
class TestAgainstApp:
    async def test_login_round_trip(self, transport):
        async with PortalClient(BASE_URL, transport=transport) as api:
            token, user = await api.login("citizen@portal.gov.ng", SEED_PASSWORD)
        assert token
        assert user.email == "citizen@portal.gov.ng"

    async def test_submit_built_application(self, api: PortalClient, citizen):
        fields = {"purpose": "School", "destination": "University", "additional_info": "", "urgency": "URGENT"}
        draft = build_application(ServiceType.IDENTIFICATION_LETTER, fields, citizen.profile)

        submitted = await api.submit_built(draft)

        assert submitted.status is ApplicationStatus.SUBMITTED
        assert submitted.reference_number.startswith("OLG-IDE-")
        assert submitted.details["urgency"] == "URGENT"
        assert [a.id for a in await api.list_my_applications()] == [submitted.id]

    async def test_pay_and_review(self, api: PortalClient, reviewer_api: PortalClient, citizen):
        fields = {"purpose": "School", "destination": "University", "additional_info": "", "urgency": "NORMAL"}
        submitted = await api.submit_application(ServiceType.IDENTIFICATION_LETTER, fields)

        receipt = await api.pay_application(submitted.id, "paystack", submitted.fee)
        assert receipt.application_id == submitted.id

        page = await reviewer_api.review_queue(payment_status="PAID")
        assert [a.id for a in page.items] == [submitted.id]

        moved = await reviewer_api.change_status(submitted.id, ApplicationStatus.UNDER_REVIEW, "Checking")
        assert moved.status is ApplicationStatus.UNDER_REVIEW
        assert moved.notes == "Checking"

    async def test_not_found_maps_to_not_found_error(self, api: PortalClient):
        with pytest.raises(NotFoundError):
            await api.delete_notification("missing")

    async def test_forbidden_for_citizen_review(self, api: PortalClient):
        with pytest.raises(ForbiddenError):
            await api.review_queue()
