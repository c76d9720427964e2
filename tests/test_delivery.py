from datetime import timedelta

import pytest
import requests

from shipment_alerts.alerts import delivery as delivery_mod
from shipment_alerts.alerts.delivery import (
    AlertDelivery,
    EmailChannel,
    LogChannel,
    TelegramChannel,
    WebhookChannel,
    build_channel,
    filter_for_preferences,
    render_text,
)
from shipment_alerts.config import Settings
from shipment_alerts.preferences import UserPreferences


class RecordingChannel:
    name = "recording"

    def __init__(self, result=True):
        self.result = result
        self.sent = []

    def send(self, recipient, kind, payload):
        self.sent.append((kind, payload))
        return self.result


class ExplodingChannel:
    name = "exploding"

    def send(self, recipient, kind, payload):
        raise ConnectionError("smtp server unreachable")


@pytest.fixture
def mixed_alerts(alert_factory):
    return [
        alert_factory("ship_1"),  # warning / high
        alert_factory("ship_2", type="error", priority="high", title="Address Problem"),
        alert_factory("ship_3", type="info", priority="medium", title="Delivery Today"),
        alert_factory("ship_4", type="success", priority="medium", title="Package Delivered"),
    ]


def test_preference_filtering(mixed_alerts):
    prefs = UserPreferences(delay_alerts=False, delivery_alerts=False)
    kept = filter_for_preferences(mixed_alerts, prefs)
    assert [a["shipment_id"] for a in kept] == ["ship_2", "ship_3"]

    assert filter_for_preferences(mixed_alerts, UserPreferences(email_notifications=False)) == []


def test_high_priority_sent_individually_rest_as_digest(mixed_alerts):
    channel = RecordingChannel()
    delivery = AlertDelivery(channel=channel, max_workers=1)
    try:
        stats = delivery.notify(mixed_alerts, "owner@example.com", UserPreferences())
    finally:
        delivery.shutdown()

    assert stats == {"considered": 4, "filtered_out": 0, "sent": 3, "failed": 0}
    assert [kind for kind, _ in channel.sent] == ["alert", "alert", "digest"]
    digest = channel.sent[-1][1]
    assert digest["count"] == 2
    assert [a["shipment_id"] for a in digest["alerts"]] == ["ship_3", "ship_4"]
    first = channel.sent[0][1]
    assert set(first) == {"tracking_number", "status", "message", "title"}
    assert first["status"] == "in_transit"


def test_email_notifications_off_short_circuits(mixed_alerts):
    channel = RecordingChannel()
    delivery = AlertDelivery(channel=channel, max_workers=1)
    try:
        stats = delivery.notify(mixed_alerts, "owner@example.com", UserPreferences(email_notifications=False))
    finally:
        delivery.shutdown()

    assert channel.sent == []
    assert stats["filtered_out"] == 4


def test_channel_failures_are_counted_not_raised(mixed_alerts):
    for channel in (ExplodingChannel(), RecordingChannel(result=False)):
        delivery = AlertDelivery(channel=channel, max_workers=1)
        try:
            stats = delivery.notify(mixed_alerts, "owner@example.com", UserPreferences())
            future_stats = delivery.notify_async(mixed_alerts, "owner@example.com", UserPreferences()).result(timeout=5)
        finally:
            delivery.shutdown()
        assert stats["sent"] == 0
        assert stats["failed"] == 3
        assert future_stats == stats


def test_webhook_channel_posts_json(monkeypatch):
    captured = {}

    class FakeResponse:
        def raise_for_status(self):
            return None

    def fake_post(url, json=None, timeout=None, headers=None):
        captured.update(url=url, json=json, timeout=timeout)
        return FakeResponse()

    monkeypatch.setattr(delivery_mod.requests, "post", fake_post)

    channel = WebhookChannel("https://hooks.example.com/shipments", timeout=3)
    assert channel.send("owner@example.com", "alert", {"title": "Shipment Delayed"}) is True
    assert captured["url"] == "https://hooks.example.com/shipments"
    assert captured["timeout"] == 3
    assert captured["json"] == {
        "recipient": "owner@example.com",
        "kind": "alert",
        "payload": {"title": "Shipment Delayed"},
    }


def test_webhook_http_error_is_swallowed_by_delivery(monkeypatch, alert_factory):
    class FakeResponse:
        def raise_for_status(self):
            raise requests.HTTPError("503 Service Unavailable")

    monkeypatch.setattr(delivery_mod.requests, "post", lambda *a, **kw: FakeResponse())

    delivery = AlertDelivery(channel=WebhookChannel("https://hooks.example.com/x"), max_workers=1)
    try:
        stats = delivery.notify([alert_factory()], "owner@example.com", UserPreferences())
    finally:
        delivery.shutdown()
    assert stats["failed"] == 1


def test_telegram_channel_uses_bot_api(monkeypatch):
    captured = {}

    class FakeResponse:
        def raise_for_status(self):
            return None

    def fake_post(url, json=None, timeout=None):
        captured.update(url=url, json=json)
        return FakeResponse()

    monkeypatch.setattr(delivery_mod.requests, "post", fake_post)

    payload = {"title": "Package Delivered", "message": "Gift has been successfully delivered",
               "tracking_number": "1Z1", "status": "delivered"}
    assert TelegramChannel("123:abc").send("42", "alert", payload) is True
    assert captured["url"] == "https://api.telegram.org/bot123:abc/sendMessage"
    assert captured["json"]["chat_id"] == "42"
    assert "Gift has been successfully delivered" in captured["json"]["text"]


def test_email_channel_without_host_declines():
    assert EmailChannel({}).send("owner@example.com", "alert", {"title": "x"}) is False


def test_email_channel_sends_via_smtp(monkeypatch):
    sent = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            self.host, self.port = host, port

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            pass

        def login(self, username, password):
            sent.append(("login", username))

        def send_message(self, msg):
            sent.append(("send", msg["To"], msg["Subject"]))

    monkeypatch.setattr(delivery_mod.smtplib, "SMTP", FakeSMTP)

    channel = EmailChannel({"host": "smtp.example.com", "port": 587, "username": "bot"})
    assert channel.send("owner@example.com", "digest", {"alerts": [], "count": 2}) is True
    assert sent[0] == ("login", "bot")
    assert sent[1][1] == "owner@example.com"
    assert "2 shipment update(s)" in sent[1][2]


def test_build_channel():
    assert isinstance(build_channel(Settings.from_overrides(notify_channel="log")), LogChannel)
    assert isinstance(build_channel(Settings.from_overrides(notify_channel="email")), EmailChannel)
    with pytest.raises(ValueError):
        build_channel(Settings.from_overrides(notify_channel="carrier-pigeon"))


def test_render_text_digest_lists_alerts(alert_factory):
    text = render_text("digest", {"alerts": [alert_factory(message="Gift is 2 day(s) overdue")], "count": 1})
    assert "1 new shipment update(s)" in text
    assert "Gift is 2 day(s) overdue" in text


def test_weekly_digest(alert_factory, now):
    recent = alert_factory("ship_1")
    old = alert_factory("ship_2", timestamp=(now - timedelta(days=8)).isoformat())
    hidden = alert_factory("ship_3", dismissed=True)

    channel = RecordingChannel()
    delivery = AlertDelivery(channel=channel, max_workers=1)
    try:
        assert delivery.send_weekly_digest([recent, old, hidden], "owner@example.com", UserPreferences(), now=now) is False
        assert channel.sent == []

        prefs = UserPreferences(weekly_digest=True)
        assert delivery.send_weekly_digest([recent, old, hidden], "owner@example.com", prefs, now=now) is True
    finally:
        delivery.shutdown()

    kind, payload = channel.sent[0]
    assert kind == "digest"
    assert payload["count"] == 1
    assert payload["alerts"] == [recent]
