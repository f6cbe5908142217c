"""Citizen registration and admin user management tests."""

import pytest
from httpx import AsyncClient

from portal.auth.jwt import decode_token
from portal.client.api import PortalClient
from portal.client.session import AppContext, TokenStore
from portal.domain import UserRole
from portal.store import SEED_PASSWORD, PortalStore, UserAccount
from portal.views.users import UsersView

NEW_CITIZEN = {
    "email": "emeka@portal.gov.ng",
    "password": "long-enough-pass",
    "first_name": " Emeka ",
    "last_name": "Eze",
    "phone_number": "08031234567",
}


@pytest.mark.auth
@pytest.mark.asyncio
class TestRegister:
    async def test_register_creates_signed_in_citizen(self, client: AsyncClient, store: PortalStore):
        response = await client.post("/api/auth/register", json=NEW_CITIZEN)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Registration successful"
        user = body["data"]["user"]
        assert user["first_name"] == "Emeka"
        assert user["role"] == UserRole.CITIZEN.value
        assert decode_token(body["data"]["access_token"])["sub"] == user["id"]

        account = store.get_user(user["id"])
        assert account.password_hash != NEW_CITIZEN["password"]
        assert store.notifications_for(account.id)[0].title == "Welcome to the portal"
        assert store.activity[-1].action == "registered"

        login = await client.post(
            "/api/auth/login",
            json={"email": NEW_CITIZEN["email"], "password": NEW_CITIZEN["password"]},
        )
        assert login.status_code == 200

    async def test_role_cannot_be_chosen(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json={**NEW_CITIZEN, "role": "admin"})
        assert response.status_code == 201
        assert response.json()["data"]["user"]["role"] == "citizen"

    async def test_duplicate_email_is_refused(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/register", json={**NEW_CITIZEN, "email": "Citizen@portal.gov.ng"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Email already registered"

    async def test_short_password_is_a_field_error(self, client: AsyncClient, store: PortalStore):
        response = await client.post("/api/auth/register", json={**NEW_CITIZEN, "password": "short"})
        assert response.status_code == 422
        assert "password" in response.json()["error"]["details"]["fields"]
        assert store.find_user_by_email(NEW_CITIZEN["email"]) is None

    async def test_app_context_register_persists_token(self, transport, tmp_path):
        token_store = TokenStore(tmp_path / "storage.json")
        async with AppContext(token_store, transport=transport, base_url="http://test") as ctx:
            user = await ctx.register(
                NEW_CITIZEN["email"], NEW_CITIZEN["password"], "Emeka", "Eze"
            )
        assert user.email == NEW_CITIZEN["email"]
        assert token_store.load() is not None


@pytest.mark.api
@pytest.mark.asyncio
class TestUserManagement:
    async def test_list_users_with_search_filter_and_sort(self, client: AsyncClient, admin_headers: dict):
        response = await client.get(
            "/api/admin/users",
            params={"sort": "email", "direction": "asc"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total"] == 4
        assert [u["email"] for u in page["items"]] == [
            "admin@portal.gov.ng",
            "citizen@portal.gov.ng",
            "official@portal.gov.ng",
            "staff@portal.gov.ng",
        ]

        response = await client.get(
            "/api/admin/users", params={"role": "official"}, headers=admin_headers
        )
        assert [u["email"] for u in response.json()["data"]["items"]] == ["official@portal.gov.ng"]

        response = await client.get(
            "/api/admin/users", params={"search": "okafor"}, headers=admin_headers
        )
        assert [u["full_name"] for u in response.json()["data"]["items"]] == ["Ada Okafor"]

    async def test_paging(self, client: AsyncClient, admin_headers: dict):
        response = await client.get(
            "/api/admin/users", params={"page": 1, "page_size": 3}, headers=admin_headers
        )
        page = response.json()["data"]
        assert (page["total"], page["limit"], page["offset"]) == (4, 3, 3)
        assert len(page["items"]) == 1

    async def test_reviewers_cannot_manage_users(self, client: AsyncClient, reviewer_headers: dict):
        response = await client.get("/api/admin/users", headers=reviewer_headers)
        assert response.status_code == 403

    async def test_update_user(
        self, client: AsyncClient, admin_headers: dict, citizen: UserAccount, store: PortalStore
    ):
        response = await client.put(
            f"/api/admin/users/{citizen.id}",
            json={"role": "staff", "phone_number": "08099999999"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["role"] == "staff"
        assert data["first_name"] == "Ada"
        assert store.get_user(citizen.id).profile.phone_number == "08099999999"
        assert store.activity[-1].details["role"] == {"from": "citizen", "to": "staff"}

    async def test_admin_cannot_change_own_role(
        self, client: AsyncClient, admin_headers: dict, admin: UserAccount
    ):
        response = await client.put(
            f"/api/admin/users/{admin.id}", json={"role": "citizen"}, headers=admin_headers
        )
        assert response.status_code == 400

    async def test_unknown_user(self, client: AsyncClient, admin_headers: dict):
        response = await client.put("/api/admin/users/nope", json={}, headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    async def test_suspend_blocks_login_and_tokens_until_reactivated(
        self,
        client: AsyncClient,
        admin_headers: dict,
        auth_headers: dict,
        citizen: UserAccount,
        store: PortalStore,
    ):
        response = await client.post(
            f"/api/admin/users/{citizen.id}/suspend",
            json={"reason": "Repeated fraudulent submissions"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "suspended"
        assert store.activity[-1].details == {"reason": "Repeated fraudulent submissions"}

        assert (await client.get("/api/profile", headers=auth_headers)).status_code == 401
        login = await client.post(
            "/api/auth/login", json={"email": "citizen@portal.gov.ng", "password": SEED_PASSWORD}
        )
        assert login.status_code == 403

        listed = await client.get("/api/admin/users", params={"status": "suspended"}, headers=admin_headers)
        assert [u["id"] for u in listed.json()["data"]["items"]] == [citizen.id]

        response = await client.post(f"/api/admin/users/{citizen.id}/reactivate", headers=admin_headers)
        assert response.json()["data"]["is_active"] is True
        assert (await client.get("/api/profile", headers=auth_headers)).status_code == 200

    async def test_suspend_needs_a_reason_and_not_yourself(
        self, client: AsyncClient, admin_headers: dict, admin: UserAccount, citizen: UserAccount
    ):
        response = await client.post(
            f"/api/admin/users/{citizen.id}/suspend", json={"reason": "spam"}, headers=admin_headers
        )
        assert response.status_code == 422

        response = await client.post(
            f"/api/admin/users/{admin.id}/suspend",
            json={"reason": "Locking myself out"},
            headers=admin_headers,
        )
        assert response.status_code == 400


@pytest.mark.integration
@pytest.mark.asyncio
class TestUsersView:
    async def test_filter_suspend_and_reactivate(self, admin_api: PortalClient, citizen: UserAccount):
        view = UsersView(admin_api)
        assert await view.set_query(role="citizen")
        assert [u.id for u in view.items] == [citizen.id]

        assert await view.suspend(citizen.id, "Repeated fraudulent submissions")
        assert view.items[0].status == "suspended"
        assert view.notices.items[-1].message == "Ada Okafor suspended"

        assert await view.reactivate(citizen.id)
        assert view.items[0].is_active is True

    async def test_failure_sets_error_state(self, admin_api: PortalClient):
        view = UsersView(admin_api)
        assert await view.suspend("missing-user", "Repeated fraudulent submissions") is False
        assert view.error == "User not found: missing-user"
