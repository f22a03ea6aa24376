"""Email notification service using SendGrid."""

import asyncio
import logging
from typing import Protocol
from uuid import UUID

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the provider."""


class Notifier(Protocol):
    async def send_email(self, to: list[str], subject: str, text_body: str, html_body: str = "") -> None: ...


class EmailService:
    """Email service for booking notifications.

    Callers treat every send as best-effort: they log and swallow
    ``EmailDeliveryError``.
    """

    def __init__(self, api_key: str, from_email: str, from_name: str):
        self.from_email = from_email
        self.from_name = from_name

        if not api_key:
            logger.warning("SENDGRID_API_KEY not configured. Emails will not be sent.")
            self.client = None
            self.enabled = False
        else:
            self.client = SendGridAPIClient(api_key)
            self.enabled = True
            logger.info("Email service initialized successfully")

    async def send_email(self, to: list[str], subject: str, text_body: str, html_body: str = "") -> None:
        """
        Send an email to one or more recipients.

        Args:
            to: Recipient email addresses
            subject: Email subject
            text_body: Plain text body
            html_body: HTML body (optional)

        Raises:
            EmailDeliveryError: no recipients, no content, or provider failure
        """
        if not to:
            raise EmailDeliveryError("at least one recipient is required")
        if not text_body and not html_body:
            raise EmailDeliveryError("either text or HTML content must be provided")

        if not self.enabled:
            logger.info("Email service disabled. Would have sent to %s: %s", to, subject)
            return

        message = Mail(
            from_email=(self.from_email, self.from_name),
            to_emails=to,
            subject=subject,
            plain_text_content=text_body or None,
            html_content=html_body or None,
        )

        try:
            response = await asyncio.to_thread(self.client.send, message)
        except Exception as e:
            raise EmailDeliveryError(f"error sending email to {to}: {e}") from e

        if not 200 <= response.status_code < 300:
            raise EmailDeliveryError(f"failed to send email to {to}: {response.status_code} {response.body}")

        logger.info("Email sent successfully to %s: %s", to, subject)

    async def send_quote_created(
        self,
        admin_emails: list[str],
        quote_id: UUID,
        description: str,
        client_name: str,
    ) -> None:
        """Tell the admins a client has requested a new quote."""
        subject = "Se ha creado una nueva cotización"

        plain_body = (
            "Una nueva cotización se ha creado\n"
            f"\tid: {quote_id}\n"
            f"\tDescripción: {description}\n"
            f"\tCliente: {client_name}"
        )

        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
                <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                    <h2 style="color: #D6336C;">Nueva cotización</h2>
                    <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">
                        <p><strong>ID:</strong> {quote_id}</p>
                        <p><strong>Descripción:</strong> {description}</p>
                        <p><strong>Cliente:</strong> {client_name}</p>
                    </div>
                </div>
            </body>
        </html>
        """

        await self.send_email(admin_emails, subject, plain_body, html_body)

    async def send_proof_required(self, client_email: str) -> None:
        """Tell a client their quote needs a strand test before it can be booked."""
        subject = "Respuesta a su cotización"
        plain_body = (
            "Estimado cliente, su cotización requiere una prueba de mechón. "
            "Para esto necesitamos que agende una cita en nuestro sistema."
        )
        await self.send_email([client_email], subject, plain_body)
