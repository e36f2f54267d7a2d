# tests/services/test_notifications.py
import json
from datetime import datetime, timezone

import httpx
import pytest

from tripshare.core.config import get_settings
from tripshare.core.exceptions import DeliveryFailedError
from tripshare.schemas.notification import InviteNotification, WelcomeNotification
from tripshare.services.notifications import (
    EmailApiNotifier,
    LoggingNotifier,
    build_notifier,
    render_invite_email,
)

INVITE = InviteNotification(
    to="a@x.com",
    tripTitle='Rock & "Roll" <Tour>',
    inviteUrl="https://app.tripshare.test/accept-invite/abc123",
    expiresAt=datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc),
)
WELCOME = WelcomeNotification(to="a@x.com", trip_title="Alps", trip_url="https://app.tripshare.test/trips/t1")


def _notifier(handler) -> EmailApiNotifier:
    return EmailApiNotifier(
        api_url="https://email.test/emails",
        api_key="re_test_key",
        sender="TripShare <noreply@tripshare.app>",
        timeout=2.0,
        transport=httpx.MockTransport(handler),
    )


def test_invite_template_escapes_trip_title():
    subject, body = render_invite_email(INVITE)
    assert 'Rock & "Roll" <Tour>' in subject
    assert "<Tour>" not in body
    assert "Rock &amp; &quot;Roll&quot; &lt;Tour&gt;" in body
    assert "https://app.tripshare.test/accept-invite/abc123" in body
    assert "2025-06-02 12:00 UTC" in body


async def test_email_api_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["url"] = str(request.url)
        seen["json"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_1"})

    await _notifier(handler).send_invite(INVITE)

    assert seen["url"] == "https://email.test/emails"
    assert seen["auth"] == "Bearer re_test_key"
    assert seen["json"]["to"] == ["a@x.com"]
    assert seen["json"]["from"] == "TripShare <noreply@tripshare.app>"
    assert "accept-invite/abc123" in seen["json"]["html"]


async def test_email_api_rejection_is_a_delivery_failure():
    notifier = _notifier(lambda request: httpx.Response(422, json={"message": "bad from"}))
    with pytest.raises(DeliveryFailedError):
        await notifier.send_welcome(WELCOME)


async def test_email_api_timeout_is_a_delivery_failure():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(DeliveryFailedError, match="timed out"):
        await _notifier(handler).send_invite(INVITE)


async def test_email_api_unreachable_is_a_delivery_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DeliveryFailedError):
        await _notifier(handler).send_invite(INVITE)


async def test_logging_notifier_never_delivers():
    with pytest.raises(DeliveryFailedError):
        await LoggingNotifier().send_invite(INVITE)
    with pytest.raises(DeliveryFailedError):
        await LoggingNotifier().send_welcome(WELCOME)


def test_build_notifier_depends_on_api_key(monkeypatch):
    assert isinstance(build_notifier(get_settings()), LoggingNotifier)

    monkeypatch.setenv("EMAIL_API_KEY", "re_live")
    configured = build_notifier(get_settings())
    assert isinstance(configured, EmailApiNotifier)
    assert configured.api_key == "re_live"
