"""Outbound delivery: passcodes, weekly reports and goal alerts.

Email goes over SMTP, SMS through an HTTP gateway. One DeliveryService is
built at startup and shared through the app state. When a channel is not
configured, report mail falls back to logging and passcode delivery raises
DeliveryUnavailable so the login flow can decide whether demo mode applies.
"""

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from enum import Enum

import httpx

from tradeledger.config import Settings
from tradeledger.services.auth.errors import DeliveryUnavailable
from tradeledger.services.reports import (
    GoalAlert,
    WeeklyReport,
    render_goal_alert,
    render_otp_message,
    render_weekly_report,
)

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    """Passcode delivery channels."""

    EMAIL = "email"
    PHONE = "phone"


class DeliveryService:
    """Send messages over email (SMTP) or SMS (HTTP gateway)."""

    def __init__(self, config: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._http = http_client

    def is_delivery_configured(self, channel: Channel | str) -> bool:
        channel = Channel(channel)
        if channel is Channel.EMAIL:
            return bool(self._config.smtp_host and self._config.smtp_user and self._config.smtp_password)
        return bool(self._config.sms_gateway_url)

    async def send_otp(self, destination: str, code: str, channel: Channel | str) -> None:
        """Deliver a passcode. Raises DeliveryUnavailable when it cannot be sent."""
        channel = Channel(channel)
        if not self.is_delivery_configured(channel):
            raise DeliveryUnavailable(f"{channel.value} delivery is not configured")

        subject, body = render_otp_message(code, self._config.otp_ttl_seconds)
        if channel is Channel.EMAIL:
            sent = await self._send_email(destination, subject, body)
        else:
            sent = await self._send_sms(destination, body)

        if not sent:
            raise DeliveryUnavailable(f"Failed to send verification code by {channel.value}")

    async def send_weekly_report(self, email: str, report: WeeklyReport) -> bool:
        if not self.is_delivery_configured(Channel.EMAIL):
            logger.info("Email not configured, weekly report for %s not sent", email)
            return False
        subject, body = render_weekly_report(report, self._config.currency_symbol)
        return await self._send_email(email, subject, body)

    async def send_goal_alert(self, email: str, alert: GoalAlert) -> bool:
        if not self.is_delivery_configured(Channel.EMAIL):
            logger.info("Email not configured, goal alert for %s not sent", email)
            return False
        subject, body = render_goal_alert(alert, self._config.currency_symbol)
        return await self._send_email(email, subject, body)

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _send_email(self, to: str, subject: str, body: str) -> bool:
        msg = EmailMessage()
        msg["From"] = f"{self._config.smtp_sender_name} <{self._config.smtp_user}>"
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        try:
            await asyncio.to_thread(self._smtp_send, msg)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            return False

    def _smtp_send(self, msg: EmailMessage) -> None:
        ctx = ssl.create_default_context()
        with smtplib.SMTP(self._config.smtp_host, self._config.smtp_port, timeout=10) as smtp:
            smtp.starttls(context=ctx)
            smtp.login(self._config.smtp_user, self._config.smtp_password)
            smtp.send_message(msg)

    async def _send_sms(self, phone: str, body: str) -> bool:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=10.0)

        headers = {}
        if self._config.sms_gateway_token:
            headers["Authorization"] = f"Bearer {self._config.sms_gateway_token}"

        try:
            resp = await self._http.post(
                self._config.sms_gateway_url,
                json={"to": phone, "message": body},
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error("SMS gateway request failed: %s", e)
            return False

        if resp.status_code in (200, 201, 202, 204):
            return True
        logger.warning("SMS gateway returned %d: %s", resp.status_code, resp.text[:200])
        return False
