"""Application submission, payment and review endpoint tests."""

import pytest
from httpx import AsyncClient

from portal.domain import ApplicationStatus, PaymentStatus, ServiceType, TransportApplicationStatus
from portal.store import PortalStore, UserAccount

IDENTIFICATION_FIELDS = {
    "purpose": "Passport application",
    "destination": "Immigration Service",
    "additional_info": "",
    "urgency": "NORMAL",
}

VEHICLE_FIELDS = {
    "first_name": "Ada",
    "last_name": "Okafor",
    "phone_number": "08012345678",
    "email": "citizen@portal.gov.ng",
    "vehicle_type": "Car",
    "vehicle_make": "Toyota",
    "vehicle_model": "Corolla",
    "engine_number": "ENG-1",
    "chassis_number": "CH-1",
    "uploaded_documents": ["receipt.pdf"],
    "agree_to_terms": True,
}


async def _submit(client: AsyncClient, headers: dict, service_type: ServiceType, fields: dict) -> dict:
    response = await client.post(
        "/api/applications",
        json={"service_type": service_type.value, "fields": fields},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.mark.api
@pytest.mark.asyncio
class TestSubmitApplication:
    async def test_submit_identification_letter(
        self, client: AsyncClient, auth_headers: dict, citizen: UserAccount, store: PortalStore
    ):
        response = await client.post(
            "/api/applications",
            json={"service_type": "IDENTIFICATION_LETTER", "fields": IDENTIFICATION_FIELDS},
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Application submitted successfully"
        data = body["data"]
        assert data["status"] == ApplicationStatus.SUBMITTED.value
        assert data["reference_number"].startswith("OLG-IDE-")
        assert data["applicant_id"] == citizen.id
        assert data["applicant_name"] == "Ada Okafor"
        assert data["fee"] == 500
        assert data["payment_status"] == PaymentStatus.PENDING.value

        assert store.get_application(data["id"]).reference_number == data["reference_number"]
        assert any(n.title == "Application submitted" for n in store.notifications_for(citizen.id))
        assert store.activity[-1].action == "submitted"

    async def test_transport_application_uses_licensing_lifecycle(
        self, client: AsyncClient, auth_headers: dict
    ):
        data = await _submit(client, auth_headers, ServiceType.VEHICLE_REGISTRATION, VEHICLE_FIELDS)
        assert data["status"] == TransportApplicationStatus.SUBMITTED.value
        assert data["reference_number"].startswith("TR")
        assert data["documents"] == ["receipt.pdf"]

    async def test_reference_numbers_are_unique(self, client: AsyncClient, auth_headers: dict):
        first = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)
        second = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)
        assert first["reference_number"] != second["reference_number"]

    async def test_incomplete_draft_is_rejected(self, client: AsyncClient, auth_headers: dict, store: PortalStore):
        fields = {**VEHICLE_FIELDS, "uploaded_documents": []}
        response = await client.post(
            "/api/applications",
            json={"service_type": "VEHICLE_REGISTRATION", "fields": fields},
            headers=auth_headers,
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"]["code"] == "APPLICATION_INCOMPLETE"
        assert body["message"].startswith("Documents:")
        assert body["error"]["details"] == {
            "step": "Documents",
            "fields": {"uploaded_documents": "At least one document is required"},
        }
        assert store.applications == {}

    async def test_non_text_field_is_a_validation_error(
        self, client: AsyncClient, auth_headers: dict, store: PortalStore
    ):
        fields = {**VEHICLE_FIELDS, "email": 42}
        response = await client.post(
            "/api/applications",
            json={"service_type": "VEHICLE_REGISTRATION", "fields": fields},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert store.applications == {}

    async def test_boolean_contact_field_fails_the_personal_step(
        self, client: AsyncClient, auth_headers: dict, store: PortalStore
    ):
        fields = {**VEHICLE_FIELDS, "email": True}
        response = await client.post(
            "/api/applications",
            json={"service_type": "VEHICLE_REGISTRATION", "fields": fields},
            headers=auth_headers,
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"]["code"] == "APPLICATION_INCOMPLETE"
        assert body["message"] == "Personal Details: Enter a valid email address"
        assert store.applications == {}

    async def test_unknown_service_type(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/applications",
            json={"service_type": "PARKING_PERMIT", "fields": {}},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_my_applications_newest_first(self, client: AsyncClient, auth_headers: dict):
        first = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)
        second = await _submit(client, auth_headers, ServiceType.VEHICLE_REGISTRATION, VEHICLE_FIELDS)

        response = await client.get("/api/profile/applications", headers=auth_headers)
        assert response.status_code == 200
        assert [a["id"] for a in response.json()["data"]] == [second["id"], first["id"]]


@pytest.mark.api
@pytest.mark.asyncio
class TestPayments:
    async def test_pay_application_fee(
        self, client: AsyncClient, auth_headers: dict, citizen: UserAccount, store: PortalStore
    ):
        application = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)

        response = await client.post(
            f"/api/applications/{application['id']}/payments",
            json={"method": "paystack", "amount": 500},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Payment successful"
        assert body["data"]["transaction_id"].startswith("TXN-")
        assert body["data"]["reference_number"] == application["reference_number"]
        assert store.get_application(application["id"]).payment_status is PaymentStatus.PAID
        assert any(n.kind == "payment" for n in store.notifications_for(citizen.id))

    async def test_amount_must_match_fee(self, client: AsyncClient, auth_headers: dict):
        application = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)
        response = await client.post(
            f"/api/applications/{application['id']}/payments",
            json={"method": "bank_transfer", "amount": 100},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "PAYMENT_AMOUNT_MISMATCH"

    async def test_cannot_pay_twice(self, client: AsyncClient, auth_headers: dict):
        application = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)
        url = f"/api/applications/{application['id']}/payments"
        payment = {"method": "cash_office", "amount": 500}

        assert (await client.post(url, json=payment, headers=auth_headers)).status_code == 200
        response = await client.post(url, json=payment, headers=auth_headers)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    async def test_only_owner_can_pay(
        self, client: AsyncClient, auth_headers: dict, reviewer_headers: dict
    ):
        application = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)
        response = await client.post(
            f"/api/applications/{application['id']}/payments",
            json={"method": "paystack", "amount": 500},
            headers=reviewer_headers,
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PERMISSION_DENIED"

    async def test_unknown_application(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/applications/missing/payments",
            json={"method": "paystack", "amount": 500},
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.api
@pytest.mark.asyncio
class TestReviewQueue:
    async def _seed(self, client: AsyncClient, headers: dict) -> list[dict]:
        return [
            await _submit(client, headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS),
            await _submit(client, headers, ServiceType.VEHICLE_REGISTRATION, VEHICLE_FIELDS),
            await _submit(client, headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS),
        ]

    async def test_queue_lists_submitted_applications_newest_first(
        self, client: AsyncClient, auth_headers: dict, reviewer_headers: dict
    ):
        submitted = await self._seed(client, auth_headers)

        response = await client.get("/api/admin/applications", headers=reviewer_headers)

        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total"] == 3
        assert page["limit"] == 10
        assert page["offset"] == 0
        assert [a["id"] for a in page["items"]] == [a["id"] for a in reversed(submitted)]

    async def test_filter_search_and_page(
        self, client: AsyncClient, auth_headers: dict, reviewer_headers: dict
    ):
        submitted = await self._seed(client, auth_headers)

        response = await client.get(
            "/api/admin/applications",
            params={"service_type": "IDENTIFICATION_LETTER", "sort": "created_at", "direction": "asc"},
            headers=reviewer_headers,
        )
        assert [a["id"] for a in response.json()["data"]["items"]] == [submitted[0]["id"], submitted[2]["id"]]

        response = await client.get(
            "/api/admin/applications",
            params={"search": submitted[1]["reference_number"].lower()},
            headers=reviewer_headers,
        )
        assert [a["id"] for a in response.json()["data"]["items"]] == [submitted[1]["id"]]

        response = await client.get(
            "/api/admin/applications",
            params={"page": 1, "page_size": 2},
            headers=reviewer_headers,
        )
        page = response.json()["data"]
        assert (page["total"], page["offset"], len(page["items"])) == (3, 2, 1)

    async def test_status_filter(self, client: AsyncClient, auth_headers: dict, reviewer_headers: dict):
        await self._seed(client, auth_headers)
        response = await client.get(
            "/api/admin/applications",
            params={"status": "Submitted"},
            headers=reviewer_headers,
        )
        items = response.json()["data"]["items"]
        assert [a["service_type"] for a in items] == ["VEHICLE_REGISTRATION"]


@pytest.mark.api
@pytest.mark.asyncio
class TestStatusChanges:
    async def test_review_path(
        self,
        client: AsyncClient,
        auth_headers: dict,
        reviewer_headers: dict,
        citizen: UserAccount,
        official: UserAccount,
        store: PortalStore,
    ):
        application = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)
        url = f"/api/admin/applications/{application['id']}/status"

        for target in ("UNDER_REVIEW", "APPROVED", "COMPLETED"):
            response = await client.post(url, json={"status": target}, headers=reviewer_headers)
            assert response.status_code == 200, response.text
            assert response.json()["message"] == f"Application moved to {target}"

        stored = store.get_application(application["id"])
        assert stored.status is ApplicationStatus.COMPLETED
        assert stored.reference_number == application["reference_number"]
        assert stored.reviewed_by == official.id
        updates = [n for n in store.notifications_for(citizen.id) if n.title == "Application status updated"]
        assert len(updates) == 3

    async def test_invalid_transition_is_rejected(
        self, client: AsyncClient, auth_headers: dict, reviewer_headers: dict, store: PortalStore
    ):
        application = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)
        response = await client.post(
            f"/api/admin/applications/{application['id']}/status",
            json={"status": "APPROVED"},
            headers=reviewer_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"
        assert store.get_application(application["id"]).status is ApplicationStatus.SUBMITTED

    async def test_status_must_belong_to_the_application_lifecycle(
        self, client: AsyncClient, auth_headers: dict, reviewer_headers: dict
    ):
        application = await _submit(client, auth_headers, ServiceType.VEHICLE_REGISTRATION, VEHICLE_FIELDS)
        response = await client.post(
            f"/api/admin/applications/{application['id']}/status",
            json={"status": "UNDER_REVIEW"},
            headers=reviewer_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "UNKNOWN_STATUS"

        response = await client.post(
            f"/api/admin/applications/{application['id']}/status",
            json={"status": "Under Review", "notes": "Checking documents"},
            headers=reviewer_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["notes"] == "Checking documents"

    async def test_citizen_cannot_change_status(self, client: AsyncClient, auth_headers: dict):
        application = await _submit(client, auth_headers, ServiceType.IDENTIFICATION_LETTER, IDENTIFICATION_FIELDS)
        response = await client.post(
            f"/api/admin/applications/{application['id']}/status",
            json={"status": "UNDER_REVIEW"},
            headers=auth_headers,
        )
        assert response.status_code == 403
