"""
Notification sink for invitation and welcome emails.

Two implementations:
  * ``EmailApiNotifier`` – posts to a Resend-compatible HTTP API with httpx,
    bounded by a timeout.
  * ``LoggingNotifier`` – used when no API key is configured; logs the message
    and reports non-delivery so callers fall back to sharing the link by hand.

Both raise ``DeliveryFailedError`` when the message did not go out.
"""
from __future__ import annotations

import html
import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import httpx

from tripshare.core.config import Settings
from tripshare.core.exceptions import DeliveryFailedError
from tripshare.schemas.notification import InviteNotification, WelcomeNotification

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
#  Templates                                                                  #
# --------------------------------------------------------------------------- #
def render_invite_email(msg: InviteNotification) -> Tuple[str, str]:
    title = html.escape(msg.trip_title)
    url = html.escape(msg.invite_url, quote=True)
    expiry = ""
    if msg.expires_at is not None:
        expiry = (
            '<p style="color:#666;font-size:14px;"><strong>Note:</strong> '
            f"This invitation will expire on {msg.expires_at:%Y-%m-%d %H:%M} UTC.</p>"
        )
    body = (
        '<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;padding:20px;">'
        "<h2>You're invited to collaborate!</h2>"
        f"<p>You have been invited to collaborate on the trip <strong>\"{title}\"</strong>.</p>"
        f'<p><a href="{url}">Accept Invitation</a></p>'
        f"{expiry}"
        "<p>If you can't click the link above, copy and paste this URL into your browser:<br>"
        f"{url}</p>"
        '<p style="color:#999;font-size:12px;">If you didn\'t expect this invitation, '
        "you can safely ignore this email.</p>"
        "</div>"
    )
    return f'You\'re invited to collaborate on "{msg.trip_title}"', body


def render_welcome_email(msg: WelcomeNotification) -> Tuple[str, str]:
    title = html.escape(msg.trip_title)
    url = html.escape(msg.trip_url, quote=True)
    body = (
        '<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;padding:20px;">'
        f"<h2>Welcome to \"{title}\"!</h2>"
        "<p>You now have access to this trip and can add and edit its places.</p>"
        f'<p><a href="{url}">Open the trip</a></p>'
        "</div>"
    )
    return f'Welcome to "{msg.trip_title}"!', body


# --------------------------------------------------------------------------- #
#  Sinks                                                                      #
# --------------------------------------------------------------------------- #
class NotificationSink(ABC):

    @abstractmethod
    async def send_invite(self, message: InviteNotification) -> None:
        ...

    @abstractmethod
    async def send_welcome(self, message: WelcomeNotification) -> None:
        ...


class EmailApiNotifier(NotificationSink):

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _send(self, to: str, subject: str, body: str) -> None:
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": body}
        try:
            async with httpx.AsyncClient(
                headers=self._get_headers(),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(self.api_url, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("Timed out after %ss sending email to %s", self.timeout, to)
            raise DeliveryFailedError("Email service timed out.") from exc
        except httpx.HTTPError as exc:
            logger.warning("Email API unreachable while sending to %s: %s", to, exc)
            raise DeliveryFailedError("Email service is unreachable.") from exc

        if response.status_code >= 400:
            logger.warning("Email API returned %s for %s: %s", response.status_code, to, response.text[:200])
            raise DeliveryFailedError(f"Email service rejected the message ({response.status_code}).")
        logger.info("Email '%s' sent to %s", subject, to)

    async def send_invite(self, message: InviteNotification) -> None:
        subject, body = render_invite_email(message)
        await self._send(message.to, subject, body)

    async def send_welcome(self, message: WelcomeNotification) -> None:
        subject, body = render_welcome_email(message)
        await self._send(message.to, subject, body)


class LoggingNotifier(NotificationSink):
    """Nothing is delivered; the message is logged so a developer can pick the link up."""

    async def send_invite(self, message: InviteNotification) -> None:
        logger.info(
            "Email delivery not configured. Invite for %s to '%s': %s",
            message.to, message.trip_title, message.invite_url,
        )
        raise DeliveryFailedError("Email delivery is not configured.")

    async def send_welcome(self, message: WelcomeNotification) -> None:
        logger.info("Email delivery not configured. Welcome for %s to '%s' not sent.", message.to, message.trip_title)
        raise DeliveryFailedError("Email delivery is not configured.")


def build_notifier(settings: Settings) -> NotificationSink:
    if settings.EMAIL_API_KEY:
        return EmailApiNotifier(
            api_url=settings.EMAIL_API_URL,
            api_key=settings.EMAIL_API_KEY,
            sender=settings.EMAIL_FROM,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    return LoggingNotifier()
