# SPDX-License-Identifier: MIT
# src/shipment_alerts/alerts/delivery.py
"""
Alert notification: user-preference filtering, immediate vs digest dispatch,
and the channels that actually send (email, webhook, Telegram, log).

Delivery is best-effort. A failed send is logged and counted, never raised to
the caller, and never affects which alerts are stored.
"""
from __future__ import annotations
import logging
import smtplib
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from shipment_alerts.config import Settings
from shipment_alerts.preferences import UserPreferences
from shipment_alerts.utils.dates import parse_ts, utcnow
from .types import HIGH, SUCCESS, WARNING, Alert

logger = logging.getLogger(__name__)

ALERT_KIND = "alert"
DIGEST_KIND = "digest"


class NotificationChannel(Protocol):
    """Sends one notification. Returns True on success; may also raise."""

    name: str

    def send(self, recipient: str, kind: str, payload: Dict[str, Any]) -> bool: ...


# ---- rendering -----------------------------------------------------------

def format_subject(kind: str, payload: Dict[str, Any]) -> str:
    if kind == DIGEST_KIND:
        return f"📬 {payload.get('count', 0)} shipment update(s)"
    return f"🔔 {payload.get('title', 'Shipment alert')}: {payload.get('tracking_number', '')}".strip()


def render_text(kind: str, payload: Dict[str, Any]) -> str:
    """Plain-text body shared by email and chat channels."""
    if kind == DIGEST_KIND:
        lines = [f"You have {payload.get('count', 0)} new shipment update(s):", ""]
        for alert in payload.get("alerts", []):
            lines.append(f"  {alert.get('icon', '•')} {alert.get('title')}: {alert.get('message')}")
    else:
        lines = [
            payload.get("title", "Shipment alert"),
            "",
            payload.get("message", ""),
            "",
            f"Tracking number: {payload.get('tracking_number', 'n/a')}",
            f"Current status: {str(payload.get('status') or 'unknown').replace('_', ' ')}",
        ]
    lines.extend([
        "",
        "---",
        "This is an automated notification from shipment-alerts.",
        "To change which alerts you receive, update your notification preferences.",
    ])
    return "\n".join(lines)


# ---- channels ------------------------------------------------------------

class LogChannel:
    """Writes notifications to the log. Default when no real channel is configured."""

    name = "log"

    def send(self, recipient: str, kind: str, payload: Dict[str, Any]) -> bool:
        logger.info(f"[notify:{kind}] to={recipient} subject={format_subject(kind, payload)!r}")
        return True


class EmailChannel:
    """Send notifications via SMTP (STARTTLS)."""

    name = "email"

    def __init__(self, smtp_config: Dict[str, Any], timeout: float = 10.0):
        """
        Args:
            smtp_config: host, port, username, password, from_address
            timeout: Socket timeout for the SMTP session
        """
        self.smtp_config = smtp_config or {}
        self.timeout = timeout

    def send(self, recipient: str, kind: str, payload: Dict[str, Any]) -> bool:
        if not self.smtp_config.get("host"):
            logger.warning("SMTP not configured, skipping email delivery")
            return False
        if not recipient:
            logger.warning("No recipient address, skipping email delivery")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = format_subject(kind, payload)
        msg["From"] = self.smtp_config.get("from_address", "alerts@shipment-alerts.local")
        msg["To"] = recipient
        msg.attach(MIMEText(render_text(kind, payload), "plain"))

        with smtplib.SMTP(
            self.smtp_config["host"],
            int(self.smtp_config.get("port", 587)),
            timeout=self.timeout,
        ) as server:
            server.starttls()
            if self.smtp_config.get("username"):
                server.login(self.smtp_config["username"], self.smtp_config.get("password", ""))
            server.send_message(msg)

        logger.info(f"Email {kind} sent to {recipient}")
        return True


class WebhookChannel:
    """POST notifications as JSON to an HTTP endpoint."""

    name = "webhook"

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def send(self, recipient: str, kind: str, payload: Dict[str, Any]) -> bool:
        if not self.url:
            logger.warning("No webhook URL configured, skipping webhook delivery")
            return False
        response = requests.post(
            self.url,
            json={"recipient": recipient, "kind": kind, "payload": payload},
            timeout=self.timeout,
            headers={"User-Agent": "shipment-alerts/1.0"},
        )
        response.raise_for_status()
        logger.info(f"Webhook {kind} sent to {self.url}")
        return True


class TelegramChannel:
    """
    Send notifications through the Telegram Bot API.

    The recipient is the chat_id the user obtained by messaging the bot.
    """

    name = "telegram"
    api_base = "https://api.telegram.org"

    def __init__(self, bot_token: str, timeout: float = 10.0):
        self.bot_token = bot_token
        self.timeout = timeout

    def send(self, recipient: str, kind: str, payload: Dict[str, Any]) -> bool:
        if not self.bot_token:
            logger.warning("Telegram bot_token not configured, skipping telegram delivery")
            return False
        response = requests.post(
            f"{self.api_base}/bot{self.bot_token}/sendMessage",
            json={
                "chat_id": recipient,
                "text": render_text(kind, payload),
                "disable_web_page_preview": True,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.info(f"Telegram {kind} sent to chat_id {recipient}")
        return True


def build_channel(settings: Settings) -> NotificationChannel:
    """Pick the notification channel named by ``settings.notify_channel``."""
    name = (settings.notify_channel or "log").strip().lower()
    if name == "log":
        return LogChannel()
    if name == "email":
        return EmailChannel(
            {
                "host": settings.smtp_host,
                "port": settings.smtp_port,
                "username": settings.smtp_username,
                "password": settings.smtp_password,
                "from_address": settings.smtp_from_address,
            },
            timeout=settings.http_timeout,
        )
    if name == "webhook":
        return WebhookChannel(settings.webhook_url, timeout=settings.http_timeout)
    if name == "telegram":
        return TelegramChannel(settings.telegram_bot_token, timeout=settings.http_timeout)
    raise ValueError(f"Unknown notification channel '{name}'. Expected one of: log, email, webhook, telegram")


# ---- delivery ------------------------------------------------------------

def filter_for_preferences(alerts: Sequence[Alert], preferences: UserPreferences) -> List[Alert]:
    """Drop alert types the user opted out of. Empty when email notifications are off."""
    if not preferences.email_notifications:
        return []
    kept = []
    for alert in alerts:
        if alert.get("type") == WARNING and not preferences.delay_alerts:
            continue
        if alert.get("type") == SUCCESS and not preferences.delivery_alerts:
            continue
        kept.append(alert)
    return kept


class AlertDelivery:
    """
    Fans newly admitted alerts out to a notification channel.

    High-priority alerts go out one by one as ``alert`` notifications; everything
    else is batched into a single ``digest``. ``notify_async`` runs the same work
    on a small thread pool so the alert cycle never waits on the network.
    """

    def __init__(self, channel: Optional[NotificationChannel] = None, max_workers: int = 4):
        """
        Args:
            channel: Where notifications are sent (default: LogChannel)
            max_workers: Size of the background dispatch pool
        """
        self.channel = channel or LogChannel()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="alert-notify")

    def _dispatch(self, recipient: str, kind: str, payload: Dict[str, Any]) -> bool:
        channel_name = getattr(self.channel, "name", type(self.channel).__name__)
        try:
            ok = bool(self.channel.send(recipient, kind, payload))
        except Exception as e:
            logger.error(f"Failed to send {kind} via {channel_name} to {recipient}: {e}", exc_info=True)
            return False
        if not ok:
            logger.warning(f"{channel_name} rejected {kind} notification to {recipient}")
        return ok

    def notify(
        self,
        admitted: Sequence[Alert],
        recipient: str,
        preferences: UserPreferences,
    ) -> Dict[str, Any]:
        """
        Send notifications for newly admitted alerts.

        Args:
            admitted: Alerts created this cycle (never previously stored ones)
            recipient: Address / chat id understood by the channel
            preferences: User notification preferences

        Returns:
            Stats dict: considered, filtered_out, sent, failed
        """
        stats = {"considered": len(admitted), "filtered_out": 0, "sent": 0, "failed": 0}
        if not admitted:
            return stats
        if not preferences.email_notifications:
            logger.info("Notifications disabled by user preference")
            stats["filtered_out"] = len(admitted)
            return stats

        wanted = filter_for_preferences(admitted, preferences)
        stats["filtered_out"] = len(admitted) - len(wanted)

        immediate = [a for a in wanted if a.get("priority") == HIGH]
        batched = [a for a in wanted if a.get("priority") != HIGH]

        for alert in immediate:
            payload = {
                "tracking_number": alert.get("tracking_number"),
                "status": (alert.get("metadata") or {}).get("status"),
                "message": alert.get("message"),
                "title": alert.get("title"),
            }
            if self._dispatch(recipient, ALERT_KIND, payload):
                stats["sent"] += 1
            else:
                stats["failed"] += 1

        if batched:
            if self._dispatch(recipient, DIGEST_KIND, {"alerts": batched, "count": len(batched)}):
                stats["sent"] += 1
            else:
                stats["failed"] += 1

        logger.info(
            f"Notified {recipient}: {len(immediate)} immediate, {len(batched)} in digest "
            f"(sent={stats['sent']}, failed={stats['failed']}, filtered={stats['filtered_out']})"
        )
        return stats

    def _notify_safely(self, admitted, recipient, preferences) -> Dict[str, Any]:
        try:
            return self.notify(admitted, recipient, preferences)
        except Exception as e:
            logger.error(f"Alert notification task failed: {e}", exc_info=True)
            return {"considered": len(admitted), "filtered_out": 0, "sent": 0, "failed": len(admitted)}

    def notify_async(
        self,
        admitted: Sequence[Alert],
        recipient: str,
        preferences: UserPreferences,
    ) -> Future:
        """Schedule ``notify`` in the background. The returned future never raises."""
        return self._executor.submit(self._notify_safely, list(admitted), recipient, preferences)

    def send_weekly_digest(
        self,
        alerts: Sequence[Alert],
        recipient: str,
        preferences: UserPreferences,
        now: Optional[datetime] = None,
    ) -> bool:
        """Send one digest of the past week's visible alerts, if the user asked for it."""
        if not (preferences.weekly_digest and preferences.email_notifications):
            logger.debug("Weekly digest not enabled")
            return False

        now = now or utcnow()
        since = now - timedelta(days=7)
        recent = []
        for alert in alerts:
            created = parse_ts(alert.get("timestamp"))
            if not alert.get("dismissed") and created is not None and created >= since:
                recent.append(alert)

        if not recent:
            logger.info("No alerts in the past week, skipping weekly digest")
            return False
        return self._dispatch(recipient, DIGEST_KIND, {"alerts": recent, "count": len(recent)})

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
