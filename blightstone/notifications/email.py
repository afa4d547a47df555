import logging

import httpx

from blightstone.exceptions import NotificationError
from blightstone.notifications.settings import EmailSettings, email_settings
from blightstone.notifications.templates import build_invite_url, render_team_invite

logger = logging.getLogger(__name__)


class EmailSender:
    """Sends transactional email through the Resend HTTP API.

    Without an API key the message is logged instead, so local development
    works without a provider account.
    """

    def __init__(
        self,
        settings: EmailSettings = email_settings,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        self._client = client

    async def send(self, to: str, subject: str, html: str) -> str | None:
        """Send one message. Returns the provider message id, or None when only logged."""
        if not self.settings.delivery_enabled:
            logger.info("Email (Resend not configured): To=%s Subject=%s", to, subject)
            return None

        payload = {
            "from": self.settings.EMAIL_FROM,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        headers = {"Authorization": f"Bearer {self.settings.RESEND_API_KEY}"}
        try:
            if self._client is not None:
                response = await self._client.post(
                    self.settings.RESEND_API_URL, json=payload, headers=headers
                )
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.settings.EMAIL_TIMEOUT_SECONDS)
                ) as client:
                    response = await client.post(
                        self.settings.RESEND_API_URL, json=payload, headers=headers
                    )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Resend error sending to %s: %s", to, e)
            raise NotificationError(detail=str(e)) from e

        message_id = response.json().get("id")
        logger.info("Email sent: To=%s Subject=%s id=%s", to, subject, message_id)
        return message_id

    async def send_team_invite(
        self,
        *,
        email: str,
        inviter_name: str,
        invite_token: str,
        organization_name: str | None = None,
    ) -> str | None:
        subject, html = render_team_invite(
            inviter_name=inviter_name,
            organization_name=organization_name or self.settings.ORGANIZATION_NAME,
            invite_url=build_invite_url(invite_token),
        )
        return await self.send(email, subject, html)


def get_email_sender() -> EmailSender:
    return EmailSender()
