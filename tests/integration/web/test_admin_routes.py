"""관리자 엔드포인트 통합 테스트 (X-Service-Key)"""

from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from core.config.loader import Settings, get_settings
from web.app import app, init_database

SERVICE_KEY = {"X-Service-Key": "test_service_key_123"}


@pytest_asyncio.fixture
async def client(temp_secrets_file: Path):
    Settings.reset()
    await init_database(get_settings(temp_secrets_file))

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c

    Settings.reset()


async def founder_headers(client: httpx.AsyncClient) -> dict[str, str]:
    await client.post(
        "/api/auth/signup",
        json={"name": "Taro", "email": "taro@example.com", "password": "secret123"},
    )
    response = await client.post(
        "/api/auth/signin",
        json={"email": "taro@example.com", "password": "secret123"},
    )
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestServiceKey:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"X-Service-Key": "wrong"}])
    async def test_rejected_without_valid_key(self, client: httpx.AsyncClient, headers: dict[str, str]) -> None:
        response = await client.post("/proposals/recalculate", headers=headers)

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    @pytest.mark.asyncio
    async def test_recalculate(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/proposals/recalculate", headers=SERVICE_KEY)

        assert response.status_code == 200
        assert response.json() == {"success": True}


class TestDeleteUser:
    @pytest.mark.asyncio
    async def test_delete_auth_account(self, client: httpx.AsyncClient) -> None:
        headers = await founder_headers(client)
        me = (await client.get("/api/auth/me", headers=headers)).json()

        response = await client.post(
            "/admin/delete-user",
            json={"authUserId": me["auth_user_id"]},
            headers=SERVICE_KEY,
        )

        assert response.json() == {"success": True}
        assert (await client.get("/api/auth/me", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_missing_field(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/admin/delete-user", json={}, headers=SERVICE_KEY)

        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_unknown_account(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/admin/delete-user",
            json={"authUserId": "no-such-user"},
            headers=SERVICE_KEY,
        )

        assert response.status_code == 404


class TestMarkInviteUsed:
    @pytest.mark.asyncio
    async def test_mark_used(self, client: httpx.AsyncClient) -> None:
        headers = await founder_headers(client)
        spare = (await client.post("/api/invite-codes", headers=headers)).json()
        joining = (await client.post("/api/invite-codes", headers=headers)).json()
        await client.post(
            "/api/auth/signup",
            json={
                "name": "Hanako",
                "email": "hanako@example.com",
                "password": "secret123",
                "invite_code": joining["code"],
            },
        )

        body = {"inviteCodeId": spare["id"], "email": "hanako@example.com"}
        first = await client.post("/invite-code/mark-used", json=body, headers=SERVICE_KEY)
        second = await client.post("/invite-code/mark-used", json=body, headers=SERVICE_KEY)

        assert first.json() == {"success": True}
        assert second.status_code == 409

        invites = {i["id"]: i for i in (await client.get("/api/invite-codes", headers=headers)).json()}
        assert invites[spare["id"]]["is_used"] is True

    @pytest.mark.asyncio
    async def test_missing_fields(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/invite-code/mark-used",
            json={"email": "x@example.com"},
            headers=SERVICE_KEY,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_email(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/invite-code/mark-used",
            json={"inviteCodeId": "inv-x", "email": "nobody@example.com"},
            headers=SERVICE_KEY,
        )

        assert response.status_code == 404
