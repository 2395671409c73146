"""Tests for message rendering, delivery fallbacks and the scheduled report helpers."""

from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from tests.conftest import make_closed, make_trade
from tradeledger.config import Settings
from tradeledger.services.analytics import compute_streaks_and_goal_progress
from tradeledger.services.auth.errors import DeliveryUnavailable
from tradeledger.services.delivery import Channel, DeliveryService
from tradeledger.services.reports import (
    GoalAlert,
    build_goal_alerts,
    build_weekly_report,
    format_amount,
    render_goal_alert,
    render_otp_message,
    render_weekly_report,
)
from tradeledger.tasks.report_tasks import _already_sent, previous_week


class TestFormatting:
    def test_format_amount(self):
        assert format_amount(1234.5, "₹") == "+₹1,234.50"
        assert format_amount(-20, "$") == "-$20.00"
        assert format_amount(0, "$") == "+$0.00"

    def test_otp_message(self):
        subject, body = render_otp_message("042042", 300)
        assert "verification code" in subject
        assert "042042" in body
        assert "5 minutes" in body


class TestWeeklyReport:
    def test_build(self):
        trades = [
            make_closed(120, symbol="INFY"),
            make_closed(-45, symbol="TCS"),
            make_closed(30, symbol="HDFC"),
            make_trade(symbol="SBIN"),
        ]
        report = build_weekly_report("Asha", trades, date(2026, 3, 2), date(2026, 3, 8))
        assert report.total_trades == 4
        assert report.closed_trades == 3
        assert report.total_pnl == pytest.approx(105)
        assert report.best_trade.symbol == "INFY"
        assert report.worst_trade.symbol == "TCS"

        subject, body = render_weekly_report(report, "₹")
        assert "02 Mar to 08 Mar 2026" in subject
        assert "Hello Asha" in body
        assert "+₹105.00" in body
        assert "Worst trade:       TCS -₹45.00" in body

    def test_empty_week(self):
        report = build_weekly_report("Asha", [], date(2026, 3, 2), date(2026, 3, 8))
        assert report.best_trade is None
        _, body = render_weekly_report(report, "$")
        assert "Best trade" not in body
        assert "Win rate:          0.0%" in body


class TestGoalAlerts:
    def test_alert_only_on_crossing(self):
        goal = SimpleNamespace(target_pnl=100, target_win_rate=None, max_trades_per_day=None)
        before = compute_streaks_and_goal_progress([make_closed(60)], goal)
        after = compute_streaks_and_goal_progress([make_closed(60), make_closed(50, day=3)], goal)

        alerts = build_goal_alerts("Asha", before, after)
        assert len(alerts) == 1
        assert alerts[0].goal_type == "pnl"
        assert alerts[0].percentage == 100
        assert alerts[0].current == pytest.approx(110)

        # Already achieved: no repeat alert
        later = compute_streaks_and_goal_progress(
            [make_closed(60), make_closed(50, day=3), make_closed(5, day=4)], goal
        )
        assert build_goal_alerts("Asha", after, later) == []

    def test_unset_targets_never_alert(self):
        before = compute_streaks_and_goal_progress([])
        after = compute_streaks_and_goal_progress([make_closed(1000)])
        assert build_goal_alerts("Asha", before, after) == []

    def test_render(self):
        subject, body = render_goal_alert(GoalAlert("Asha", "win_rate", 62.5, 60, 100), "$")
        assert "100% of your Win Rate target" in subject
        assert "Current: 62.5%" in body
        assert "Target:  60%" in body
        assert "achieved your goal" in body


class TestDeliveryService:
    @pytest.mark.asyncio
    async def test_unconfigured_otp_raises(self, delivery):
        assert delivery.is_delivery_configured(Channel.EMAIL) is False
        with pytest.raises(DeliveryUnavailable):
            await delivery.send_otp("a@example.com", "123456", Channel.EMAIL)

    @pytest.mark.asyncio
    async def test_unconfigured_reports_fall_back_to_logging(self, delivery):
        report = build_weekly_report("Asha", [], date(2026, 3, 2), date(2026, 3, 8))
        assert await delivery.send_weekly_report("a@example.com", report) is False
        assert await delivery.send_goal_alert("a@example.com", GoalAlert("Asha", "pnl", 1, 1, 100)) is False

    @pytest.mark.asyncio
    async def test_email_send_runs_smtp(self):
        config = Settings(_env_file=None, smtp_host="smtp.test", smtp_user="bot@test", smtp_password="pw")
        service = DeliveryService(config)
        with patch.object(service, "_smtp_send") as smtp_send:
            await service.send_otp("a@example.com", "123456", "email")
        msg = smtp_send.call_args.args[0]
        assert msg["To"] == "a@example.com"
        assert "123456" in msg.get_content()

    @pytest.mark.asyncio
    async def test_smtp_failure_is_delivery_unavailable(self):
        import smtplib

        config = Settings(_env_file=None, smtp_host="smtp.test", smtp_user="bot@test", smtp_password="pw")
        service = DeliveryService(config)
        with patch.object(service, "_smtp_send", side_effect=smtplib.SMTPAuthenticationError(535, b"no")):
            with pytest.raises(DeliveryUnavailable):
                await service.send_otp("a@example.com", "123456", Channel.EMAIL)

    @pytest.mark.asyncio
    async def test_sms_gateway(self):
        config = Settings(
            _env_file=None, sms_gateway_url="https://sms.test/send", sms_gateway_token="tok"
        )
        client = AsyncMock(spec=httpx.AsyncClient)
        client.post = AsyncMock(return_value=MagicMock(status_code=202))
        service = DeliveryService(config, http_client=client)

        await service.send_otp("+15550001111", "654321", Channel.PHONE)

        args, kwargs = client.post.call_args
        assert args[0] == "https://sms.test/send"
        assert kwargs["json"]["to"] == "+15550001111"
        assert "654321" in kwargs["json"]["message"]
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_sms_gateway_error(self):
        config = Settings(_env_file=None, sms_gateway_url="https://sms.test/send")
        client = AsyncMock(spec=httpx.AsyncClient)
        client.post = AsyncMock(side_effect=httpx.ConnectError("down"))
        service = DeliveryService(config, http_client=client)

        with pytest.raises(DeliveryUnavailable):
            await service.send_otp("+15550001111", "654321", Channel.PHONE)


class TestScheduleHelpers:
    def test_previous_week_from_monday(self):
        assert previous_week(date(2026, 3, 9)) == (date(2026, 3, 2), date(2026, 3, 8))

    def test_previous_week_midweek(self):
        assert previous_week(date(2026, 3, 12)) == (date(2026, 3, 2), date(2026, 3, 8))

    def test_already_sent(self):
        now = datetime(2026, 3, 9, 8, tzinfo=timezone.utc)
        assert _already_sent(None, now) is False
        assert _already_sent(datetime(2026, 3, 2, 8, tzinfo=timezone.utc), now) is False
        assert _already_sent(datetime(2026, 3, 9, 7), now) is True
