"""
Transactional mail service for volunteer notifications.
Sends SendGrid dynamic-template emails over the v3 HTTP API.
"""

from typing import Any

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAIL_SEND_PATH = "/mail/send"


class MailServiceError(Exception):
    """Custom exception for mail delivery errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data or {}


class MailService:
    """
    Thin client over the SendGrid mail/send endpoint.

    One attempt per email; callers decide what a failure means.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        template_ids: dict[int, str | None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SENDGRID_API_KEY
        self.base_url = (base_url or settings.SENDGRID_BASE_URL).rstrip("/")
        self.template_ids = (
            template_ids if template_ids is not None else settings.get_inactivity_template_ids()
        )
        self.sender = {"email": settings.MAIL_SENDER_EMAIL, "name": settings.MAIL_SENDER_NAME}
        self._transport = transport

    def _build_message(self, to_email: str, template_id: str, data: dict[str, Any]) -> dict:
        return {
            "from": self.sender,
            "template_id": template_id,
            "personalizations": [
                {
                    "to": [{"email": to_email}],
                    "dynamic_template_data": data,
                }
            ],
        }

    async def send_template(self, to_email: str, template_id: str | None, data: dict) -> None:
        """
        Send one dynamic-template email.

        Raises:
            MailServiceError: If mail is not configured or SendGrid rejects the request
        """
        if not self.api_key:
            raise MailServiceError("SENDGRID_API_KEY not configured")
        if not template_id:
            raise MailServiceError("Email template id not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = self._build_message(to_email, template_id, data)

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=settings.MAIL_REQUEST_TIMEOUT,
                transport=self._transport,
            ) as client:
                response = await client.post(MAIL_SEND_PATH, json=payload, headers=headers)
        except httpx.RequestError as e:
            logger.error(
                "Mail request error",
                template_id=template_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise MailServiceError(f"Mail request failed: {e}") from e

        if response.is_success:
            logger.debug("Email accepted", template_id=template_id, status_code=response.status_code)
            return

        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            error_data = {"raw": response.text[:200]}

        if not isinstance(error_data, dict):
            error_data = {"raw": error_data}

        errors = error_data.get("errors")
        first_error = errors[0] if isinstance(errors, list) and errors else None
        if isinstance(first_error, dict) and first_error.get("message"):
            error_message = first_error["message"]
        else:
            error_message = response.reason_phrase
        logger.warning(
            "Email rejected",
            template_id=template_id,
            status_code=response.status_code,
            error=error_message,
        )
        raise MailServiceError(
            f"Mail send failed ({response.status_code}): {error_message}",
            status_code=response.status_code,
            response_data=error_data,
        )

    async def _send_volunteer_inactive(self, days: int, contact: dict[str, str]) -> None:
        await self.send_template(
            contact["email"],
            self.template_ids.get(days),
            {"firstName": contact["first_name"]},
        )

    async def send_volunteer_inactive_thirty_days(self, contact: dict[str, str]) -> None:
        await self._send_volunteer_inactive(30, contact)

    async def send_volunteer_inactive_sixty_days(self, contact: dict[str, str]) -> None:
        await self._send_volunteer_inactive(60, contact)

    async def send_volunteer_inactive_ninety_days(self, contact: dict[str, str]) -> None:
        await self._send_volunteer_inactive(90, contact)


mail_service = MailService()
