"""End-to-end route tests over ASGI with an in-memory database."""

import logging
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio

from tradeledger.config import Settings
from tradeledger.database import get_db
from tradeledger.main import app, log_config_warnings
from tradeledger.services.assistant import TradingAssistant

PASSWORD = "s3cure-passw0rd"


@pytest_asyncio.fixture
async def client(session_factory, delivery):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.delivery = delivery
    app.state.assistant = TradingAssistant(Settings(_env_file=None, anthropic_api_key=""))
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as c:
        yield c
    app.dependency_overrides.clear()


async def sign_in(client, email="asha@example.com") -> dict:
    """Sign up, log in through demo mode and return auth headers."""
    resp = await client.post(
        "/api/auth/signup", json={"name": "Asha", "email": email, "password": PASSWORD}
    )
    assert resp.status_code == 201
    resp = await client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    body = resp.json()
    resp = await client.post(
        "/api/auth/verify-otp", json={"user_id": body["user_id"], "otp": body["demo_otp"]}
    )
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


TRADE = {
    "symbol": "infy",
    "trade_type": "BUY",
    "entry_price": 100,
    "exit_price": 110,
    "quantity": 10,
    "stop_loss": 95,
    "take_profit": 120,
    "trade_date": "2026-03-02T15:00:00Z",
}


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestStartupWarnings:
    def test_fallback_secret_is_announced(self, caplog):
        config = Settings(_env_file=None, app_env="development", secret_key="", otp_demo_mode=False)
        with caplog.at_level(logging.WARNING, logger="tradeledger.main"):
            log_config_warnings(config)
        assert "SECRET_KEY is not set" in caplog.text
        assert "demo mode" not in caplog.text

    def test_configured_secret_is_quiet(self, caplog):
        config = Settings(
            _env_file=None, app_env="development", secret_key="x" * 48, otp_demo_mode=True
        )
        with caplog.at_level(logging.WARNING, logger="tradeledger.main"):
            log_config_warnings(config)
        assert "SECRET_KEY" not in caplog.text
        assert "Passcode demo mode is enabled" in caplog.text


class TestAuthRoutes:
    @pytest.mark.asyncio
    async def test_demo_login_flow(self, client):
        await client.post(
            "/api/auth/signup",
            json={"name": "Asha", "email": "asha@example.com", "password": PASSWORD},
        )
        resp = await client.post(
            "/api/auth/login", json={"email": "asha@example.com", "password": PASSWORD}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["demo_mode"] is True
        assert len(body["demo_otp"]) == 6
        assert body["expires_in"] == 300

        resp = await client.post(
            "/api/auth/verify-otp", json={"user_id": body["user_id"], "otp": body["demo_otp"]}
        )
        assert resp.status_code == 200
        assert "tl_session" in resp.headers["set-cookie"]
        assert resp.json()["user"]["email"] == "asha@example.com"

        replay = await client.post(
            "/api/auth/verify-otp", json={"user_id": body["user_id"], "otp": body["demo_otp"]}
        )
        assert replay.status_code == 400

    @pytest.mark.asyncio
    async def test_bad_credentials(self, client):
        resp = await client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD}
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_duplicate_signup(self, client):
        payload = {"name": "Asha", "email": "asha@example.com", "password": PASSWORD}
        await client.post("/api/auth/signup", json=payload)
        resp = await client.post("/api/auth/signup", json=payload)
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_short_password_rejected(self, client):
        resp = await client.post(
            "/api/auth/signup", json={"name": "A", "email": "a@example.com", "password": "short"}
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_me_and_logout(self, client):
        headers = await sign_in(client)
        resp = await client.get("/api/auth/me", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["user"]["name"] == "Asha"

        resp = await client.post("/api/auth/logout", headers=headers)
        assert resp.status_code == 200
        assert (await client.get("/api/auth/me", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_otp_status(self, client):
        await client.post(
            "/api/auth/signup",
            json={"name": "Asha", "email": "asha@example.com", "password": PASSWORD},
        )
        body = (
            await client.post(
                "/api/auth/login", json={"email": "asha@example.com", "password": PASSWORD}
            )
        ).json()
        resp = await client.get(f"/api/auth/otp-status/{body['user_id']}")
        assert resp.json()["state"] == "otp_pending"
        assert 0 < resp.json()["expires_in"] <= 300


class TestTradeRoutes:
    @pytest.mark.asyncio
    async def test_requires_session(self, client):
        assert (await client.get("/api/trades/")).status_code == 401
        bad = {"Authorization": "Bearer nonsense"}
        assert (await client.get("/api/trades/", headers=bad)).status_code == 401

    @pytest.mark.asyncio
    async def test_crud(self, client):
        headers = await sign_in(client)

        resp = await client.post("/api/trades/", json=TRADE, headers=headers)
        assert resp.status_code == 201
        trade = resp.json()["trade"]
        assert trade["symbol"] == "INFY"
        assert trade["status"] == "CLOSED"
        assert trade["profit_loss"] == pytest.approx(100)

        resp = await client.patch(f"/api/trades/{trade['id']}", json={}, headers=headers)
        assert resp.json()["trade"]["is_starred"] is True

        resp = await client.put(
            f"/api/trades/{trade['id']}", json={"exit_price": 90}, headers=headers
        )
        assert resp.json()["trade"]["profit_loss"] == pytest.approx(-100)

        resp = await client.get("/api/trades/", params={"status": "CLOSED"}, headers=headers)
        assert len(resp.json()["trades"]) == 1

        assert (await client.delete(f"/api/trades/{trade['id']}", headers=headers)).status_code == 200
        resp = await client.get(f"/api/trades/{trade['id']}", headers=headers)
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Trade not found"

    @pytest.mark.asyncio
    async def test_invalid_trades(self, client):
        headers = await sign_in(client)
        resp = await client.post(
            "/api/trades/", json={**TRADE, "exit_price": None, "status": "CLOSED"}, headers=headers
        )
        assert resp.status_code == 400

        resp = await client.post("/api/trades/", json={**TRADE, "entry_price": -5}, headers=headers)
        assert resp.status_code == 422

        resp = await client.post("/api/trades/", json={**TRADE, "trade_type": "HOLD"}, headers=headers)
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_cannot_touch_other_users_trades(self, client):
        owner = await sign_in(client, "owner@example.com")
        other = await sign_in(client, "other@example.com")
        trade_id = (await client.post("/api/trades/", json=TRADE, headers=owner)).json()["trade"]["id"]

        assert (await client.get(f"/api/trades/{trade_id}", headers=other)).status_code == 404
        assert (await client.delete(f"/api/trades/{trade_id}", headers=other)).status_code == 404
        assert (await client.get("/api/trades/", headers=other)).json()["trades"] == []


class TestAnalyticsRoutes:
    @pytest.mark.asyncio
    async def test_summary_serializes_infinite_profit_factor(self, client):
        headers = await sign_in(client)
        await client.post("/api/trades/", json=TRADE, headers=headers)

        resp = await client.get("/api/analytics/summary", headers=headers)
        summary = resp.json()["summary"]
        assert summary["profit_factor"] == "Infinity"
        assert summary["win_rate"] == 100

        resp = await client.get(
            "/api/analytics/summary", params={"month": 4, "year": 2026}, headers=headers
        )
        assert resp.json()["summary"]["total_trades"] == 0

        resp = await client.get("/api/analytics/summary", params={"month": 4}, headers=headers)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_risk_and_distribution(self, client):
        headers = await sign_in(client)
        await client.post("/api/trades/", json=TRADE, headers=headers)
        await client.post(
            "/api/trades/",
            json={**TRADE, "exit_price": 105, "trade_date": "2026-03-03T10:00:00Z"},
            headers=headers,
        )
        risk = (await client.get("/api/analytics/risk", headers=headers)).json()["risk"]
        assert risk["avg_risk_reward"] == pytest.approx(4)
        assert risk["max_drawdown"] == 0

        dist = (await client.get("/api/analytics/distribution", headers=headers)).json()["distribution"]
        assert dist["by_symbol"]["INFY"]["count"] == 2
        assert dist["by_day_of_week"]["Monday"]["count"] == 1
        assert dist["by_day_of_week"]["Tuesday"]["count"] == 1

    @pytest.mark.asyncio
    async def test_goal_progress_and_calendar(self, client):
        headers = await sign_in(client)
        resp = await client.put(
            "/api/goals/2026/3", json={"target_pnl": 200, "max_trades_per_day": 2}, headers=headers
        )
        assert resp.status_code == 200
        await client.post("/api/trades/", json=TRADE, headers=headers)

        resp = await client.get(
            "/api/analytics/goal-progress", params={"month": 3, "year": 2026}, headers=headers
        )
        body = resp.json()
        assert body["goal"]["target_pnl"] == 200
        assert body["progress"]["targets"]["pnl"]["progress"] == pytest.approx(50)
        assert body["progress"]["targets"]["win_rate"]["status"] == "not_set"
        assert body["progress"]["targets"]["max_trades_per_day"]["status"] == "within_limit"

        resp = await client.get(
            "/api/analytics/calendar", params={"month": 3, "year": 2026}, headers=headers
        )
        assert resp.json()["days"]["2026-03-02"]["pnl"] == pytest.approx(100)

        resp = await client.get(
            "/api/analytics/calendar", params={"view": "monthly", "year": 2026}, headers=headers
        )
        months = resp.json()["months"]
        assert len(months) == 12
        assert months["3"]["trades"] == 1

    @pytest.mark.asyncio
    async def test_invalid_goal_month(self, client):
        headers = await sign_in(client)
        resp = await client.put("/api/goals/2026/13", json={"target_pnl": 1}, headers=headers)
        assert resp.status_code == 422


class TestJournalRoutes:
    @pytest.mark.asyncio
    async def test_mistakes(self, client):
        headers = await sign_in(client)
        resp = await client.post(
            "/api/mistakes/", json={"title": "FOMO", "category": "Psychology"}, headers=headers
        )
        mistake_id = resp.json()["mistake"]["id"]
        resp = await client.post(f"/api/mistakes/{mistake_id}/increment", headers=headers)
        assert resp.json()["mistake"]["frequency"] == 2
        assert (await client.post("/api/mistakes/999/increment", headers=headers)).status_code == 404
        assert (await client.delete(f"/api/mistakes/{mistake_id}", headers=headers)).status_code == 200
        assert (await client.get("/api/mistakes/", headers=headers)).json()["mistakes"] == []

    @pytest.mark.asyncio
    async def test_rules(self, client):
        headers = await sign_in(client)
        rule_id = (
            await client.post("/api/rules/", json={"rule": "Always set a stop"}, headers=headers)
        ).json()["rule"]["id"]
        resp = await client.post(f"/api/rules/{rule_id}/toggle", headers=headers)
        assert resp.json()["rule"]["is_active"] is False
        resp = await client.get("/api/rules/", params={"active_only": True}, headers=headers)
        assert resp.json()["rules"] == []

    @pytest.mark.asyncio
    async def test_notifications(self, client):
        headers = await sign_in(client)
        resp = await client.get("/api/notifications/", headers=headers)
        assert resp.json()["settings"]["weekly_reports"] is True
        resp = await client.put("/api/notifications/", json={"goal_alerts": False}, headers=headers)
        assert resp.json()["settings"] == {
            "weekly_reports": True,
            "goal_alerts": False,
            "last_weekly_report": None,
        }


class TestChatRoute:
    @pytest.mark.asyncio
    async def test_unavailable_without_key(self, client):
        headers = await sign_in(client)
        resp = await client.post("/api/chat/", json={"message": "How am I doing?"}, headers=headers)
        assert resp.status_code == 503

    @pytest.mark.asyncio
    async def test_reply(self, client):
        headers = await sign_in(client)
        await client.post("/api/trades/", json=TRADE, headers=headers)
        assistant = MagicMock()
        assistant.generate = AsyncMock(return_value="Solid start to March.")
        app.state.assistant = assistant

        resp = await client.post("/api/chat/", json={"message": "How am I doing?"}, headers=headers)

        assert resp.status_code == 200
        assert resp.json() == {"response": "Solid start to March."}
        prompt, question = assistant.generate.call_args.args
        assert "INFY" in prompt
        assert question == "How am I doing?"
