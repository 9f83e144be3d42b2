from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field

import httpx

from itinerary_desk.core.config import Settings
from itinerary_desk.core.errors import DispatchNotConfiguredError, TransportError
from itinerary_desk.integrations.http_utils import build_timeout, safe_json, send_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str
    text: str | None = None
    attachments: list[EmailAttachment] = field(default_factory=list)


class ResendMailer:
    """Transactional email through the Resend HTTP API."""

    def __init__(
        self,
        *,
        api_key: str,
        from_email: str,
        from_name: str = "",
        base_url: str = "https://api.resend.com",
        timeout: httpx.Timeout | None = None,
        trust_env: bool = False,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._from_name = from_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._trust_env = trust_env

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    @property
    def sender(self) -> str:
        if self._from_name:
            return f"{self._from_name} <{self._from_email}>"
        return self._from_email

    def send(self, email: OutgoingEmail) -> str | None:
        """Send one email and return the provider's message id.

        Not retried: a timeout may still have delivered the message.
        """
        if not self.enabled:
            raise DispatchNotConfiguredError(
                "Email service not configured. Set RESEND_API_KEY to send itineraries."
            )

        payload: dict[str, object] = {
            "from": self.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
        }
        if email.text:
            payload["text"] = email.text
        if email.attachments:
            payload["attachments"] = [
                {
                    "filename": attachment.filename,
                    "content": base64.b64encode(attachment.content).decode("ascii"),
                    "content_type": attachment.content_type,
                }
                for attachment in email.attachments
            ]

        try:
            response = send_request(
                "POST",
                f"{self._base_url}/emails",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
                trust_env=self._trust_env,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = safe_json(exc.response)
            logger.warning(
                "Resend rejected email: status=%s body=%s", exc.response.status_code, body
            )
            message = body.get("message") if isinstance(body, dict) else None
            raise TransportError(
                f"Failed to send email: {message or 'email provider error'}"
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("Resend unreachable: %s", type(exc).__name__)
            raise TransportError("Failed to send email: email provider unreachable") from exc

        data = safe_json(response)
        return data.get("id") if isinstance(data, dict) else None


def build_mailer(settings: Settings) -> ResendMailer:
    return ResendMailer(
        api_key=settings.resend_api_key,
        from_email=settings.resend_from_email,
        from_name=settings.resend_from_name,
        base_url=settings.resend_base_url,
        timeout=build_timeout(settings.http_timeout_seconds),
        trust_env=settings.http_trust_env,
    )
