"""Web API 통합 테스트 (httpx AsyncClient + ASGITransport)"""

from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from core.config.loader import Settings, get_settings
from web.app import app, init_database


@pytest_asyncio.fixture
async def client(temp_secrets_file: Path):
    Settings.reset()
    settings = get_settings(temp_secrets_file)
    await init_database(settings)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c

    Settings.reset()


async def sign_up_and_in(
    client: httpx.AsyncClient,
    name: str = "Taro",
    email: str = "taro@example.com",
    invite_code: str | None = None,
) -> dict[str, str]:
    body = {"name": name, "email": email, "password": "secret123"}
    if invite_code:
        body["invite_code"] = invite_code
    response = await client.post("/api/auth/signup", json=body)
    assert response.status_code == 200, response.text

    response = await client.post("/api/auth/signin", json={"email": email, "password": "secret123"})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest_asyncio.fixture
async def auth(client: httpx.AsyncClient) -> dict[str, str]:
    return await sign_up_and_in(client)


@pytest_asyncio.fixture
async def fiscal_year_id(client: httpx.AsyncClient, auth: dict[str, str]) -> int:
    response = await client.post(
        "/api/fiscal-years",
        json={
            "name": "2024年度",
            "start_date": "2024-04-01",
            "end_date": "2025-03-31",
            "starting_balance_cash": "10000",
            "starting_balance_bank": "50000",
        },
        headers=auth,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


INCOME = {
    "type": "income",
    "amount": "3000",
    "description": "部費",
    "recorded_at": "2024-05-01",
    "category": "部費",
    "account_id": 1,
}


class TestHealthAndAuth:
    @pytest.mark.asyncio
    async def test_health(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["database"] == "ok"

    @pytest.mark.asyncio
    async def test_requires_login(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/transactions")

        assert response.status_code == 401
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_me_and_signout(self, client: httpx.AsyncClient, auth: dict[str, str]) -> None:
        me = await client.get("/api/auth/me", headers=auth)
        assert me.json()["name"] == "Taro"

        await client.post("/api/auth/signout", headers=auth)

        assert (await client.get("/api/auth/me", headers=auth)).status_code == 401

    @pytest.mark.asyncio
    async def test_bad_password(self, client: httpx.AsyncClient, auth: dict[str, str]) -> None:
        response = await client.post(
            "/api/auth/signin",
            json={"email": "taro@example.com", "password": "wrong-password"},
        )

        assert response.status_code == 401


class TestTransactionsApi:
    """거래 API 테스트"""

    @pytest.mark.asyncio
    async def test_create_list_and_balances(
        self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int
    ) -> None:
        created = await client.post("/api/transactions", json=INCOME, headers=auth)
        assert created.status_code == 201
        assert created.json()["fiscal_year_id"] == fiscal_year_id

        listing = (await client.get("/api/transactions", headers=auth)).json()
        assert listing["count"] == 1
        assert listing["total_income"] == "3000"

        balances = (await client.get(f"/api/fiscal-years/{fiscal_year_id}/balances", headers=auth)).json()
        assert balances == {"1": "13000", "2": "50000"}

    @pytest.mark.asyncio
    async def test_validation_error_shape(
        self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int
    ) -> None:
        response = await client.post(
            "/api/transactions",
            json={**INCOME, "type": "gift"},
            headers=auth,
        )

        assert response.status_code == 400
        assert set(response.json()) == {"error"}

    @pytest.mark.asyncio
    async def test_out_of_range(self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int) -> None:
        response = await client.post(
            "/api/transactions",
            json={**INCOME, "recorded_at": "2023-12-01"},
            headers=auth,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_restore_cycle(
        self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int
    ) -> None:
        tx_id = (await client.post("/api/transactions", json=INCOME, headers=auth)).json()["id"]

        wrong = await client.post(
            f"/api/transactions/{tx_id}/delete",
            json={"confirmation_name": "Someone"},
            headers=auth,
        )
        assert wrong.status_code == 400

        deleted = await client.post(
            f"/api/transactions/{tx_id}/delete",
            json={"confirmation_name": "Taro"},
            headers=auth,
        )
        assert deleted.json()["is_deleted"] is True
        assert len((await client.get("/api/transactions/deleted", headers=auth)).json()) == 1

        restored = await client.post(f"/api/transactions/{tx_id}/restore", headers=auth)
        assert restored.json()["is_deleted"] is False

        history = (await client.get(f"/api/transactions/{tx_id}/history", headers=auth)).json()
        assert [h["action"] for h in history] == ["restored", "deleted", "created"]
        assert history[0]["changed_by_name"] == "Taro"

    @pytest.mark.asyncio
    async def test_edit(self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int) -> None:
        tx_id = (await client.post("/api/transactions", json=INCOME, headers=auth)).json()["id"]

        response = await client.put(
            f"/api/transactions/{tx_id}",
            json={**INCOME, "amount": "4500"},
            headers=auth,
        )

        assert response.json()["amount"] == "4500"
        accounts = (await client.get("/api/accounts", headers=auth)).json()
        assert accounts[0]["balance"] == "14500"

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int) -> None:
        response = await client.get("/api/transactions/missing", headers=auth)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_receipt_upload_and_fetch(
        self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int
    ) -> None:
        response = await client.post(
            "/api/receipts",
            content=b"\x89PNG\r\n",
            headers={**auth, "Content-Type": "image/png"},
        )
        assert response.status_code == 201
        url = response.json()["url"]

        fetched = await client.get(url)
        assert fetched.status_code == 200
        assert fetched.content == b"\x89PNG\r\n"

    @pytest.mark.asyncio
    async def test_receipt_rejects_non_image(
        self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int
    ) -> None:
        response = await client.post(
            "/api/receipts",
            content=b"hello",
            headers={**auth, "Content-Type": "text/plain"},
        )

        assert response.status_code == 400


class TestFiscalYearsAndCategories:
    @pytest.mark.asyncio
    async def test_current_and_statement(
        self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int
    ) -> None:
        await client.post("/api/transactions", json=INCOME, headers=auth)

        current = (await client.get("/api/fiscal-years/current", headers=auth)).json()
        statement = (await client.get(f"/api/fiscal-years/{fiscal_year_id}/statement", headers=auth)).json()

        assert current["id"] == fiscal_year_id
        assert statement["income_by_category"] == {"部費": "3000"}

    @pytest.mark.asyncio
    async def test_category_crud(self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int) -> None:
        created = await client.post(
            "/api/categories",
            json={"fiscal_year_id": fiscal_year_id, "name": "合宿費", "type": "income"},
            headers=auth,
        )
        assert created.status_code == 201
        category_id = created.json()["id"]

        renamed = await client.put(f"/api/categories/{category_id}", json={"name": "遠征費"}, headers=auth)
        assert renamed.json()["name"] == "遠征費"

        deleted = await client.delete(f"/api/categories/{category_id}", headers=auth)
        assert deleted.json() == {"success": True}

        names = [
            c["name"]
            for c in (
                await client.get(
                    "/api/categories",
                    params={"fiscal_year_id": fiscal_year_id, "type": "income"},
                    headers=auth,
                )
            ).json()
        ]
        assert "遠征費" not in names

    @pytest.mark.asyncio
    async def test_dashboard(self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int) -> None:
        response = await client.get("/api/dashboard", headers=auth)

        assert response.status_code == 200
        assert response.json()["total_balance"] == "60000"


class TestMembersAndProposals:
    """회원 / 초대 / 삭제 투표 API"""

    @pytest.mark.asyncio
    async def test_invite_flow(self, client: httpx.AsyncClient, auth: dict[str, str]) -> None:
        invite = (await client.post("/api/invite-codes", headers=auth)).json()

        verify = await client.post("/api/invite-codes/verify", json={"code": invite["code"]})
        assert verify.json()["valid"] is True

        await sign_up_and_in(client, "Hanako", "hanako@example.com", invite["code"])

        members = (await client.get("/api/members", headers=auth)).json()
        assert [m["name"] for m in members] == ["Taro", "Hanako"]

        reused = await client.post("/api/invite-codes/verify", json={"code": invite["code"]})
        assert reused.status_code == 400

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, client: httpx.AsyncClient, auth: dict[str, str]) -> None:
        me = (await client.get("/api/auth/me", headers=auth)).json()

        response = await client.delete(f"/api/members/{me['id']}", headers=auth)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_proposal_vote_execute(
        self, client: httpx.AsyncClient, auth: dict[str, str], fiscal_year_id: int
    ) -> None:
        """2명 기준: 필요 승인 1"""
        invite = (await client.post("/api/invite-codes", headers=auth)).json()
        other = await sign_up_and_in(client, "Hanako", "hanako@example.com", invite["code"])

        created = await client.post("/api/proposals", json={"fiscal_year_id": fiscal_year_id}, headers=auth)
        assert created.status_code == 201
        proposal = created.json()
        assert proposal["required_approvals"] == 1

        duplicate = await client.post("/api/proposals", json={"fiscal_year_id": fiscal_year_id}, headers=other)
        assert duplicate.status_code == 409

        voted = await client.post(f"/api/proposals/{proposal['id']}/vote", json={"vote": "approve"}, headers=other)
        assert voted.json()["status"] == "approved"

        years = (await client.get("/api/fiscal-years", headers=auth)).json()
        assert years[0]["active_proposal"]["id"] == proposal["id"]

        executed = await client.post(f"/api/proposals/{proposal['id']}/execute", headers=auth)
        assert executed.status_code == 200
        assert executed.json()["fiscal_year_id"] == fiscal_year_id

        assert (await client.get(f"/api/fiscal-years/{fiscal_year_id}", headers=auth)).status_code == 404
        detail = (await client.get(f"/api/proposals/{proposal['id']}", headers=auth)).json()
        assert detail["status"] == "executed"
        assert len(detail["votes"]) == 1
