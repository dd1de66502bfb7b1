# app/services/email_notifier.py
from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from email.message import EmailMessage

from app.core.config import Settings
from app.core.constants import MEETING_DURATION_MINUTES, TARGET_TIMEZONE_LABEL
from app.core.exceptions import NotificationFailed
from app.schemas.booking import NotificationResult, NotificationType, UserDetails
from app.services.graph_client import GraphClient, GraphClientError

logger = logging.getLogger(__name__)


@dataclass
class EmailMessageContent:
    subject: str
    text: str

    @property
    def html(self) -> str:
        paragraphs = "".join(
            f"<p>{html.escape(block).replace(chr(10), '<br>')}</p>"
            for block in self.text.split("\n\n")
        )
        return f"<html><body>{paragraphs}</body></html>"


@dataclass
class BookingEmailContext:
    """
    Everything the email builders need to describe a booked meeting.
    """

    subject: str
    date_label: str
    time_label: str
    join_url: str | None
    user_details: UserDetails | None = None
    guest_emails: list[str] = field(default_factory=list)
    organizer_email: str | None = None
    timezone_label: str = TARGET_TIMEZONE_LABEL
    duration_label: str = f"{MEETING_DURATION_MINUTES} minutes"


def _meeting_block(ctx: BookingEmailContext) -> list[str]:
    return [
        f"Date: {ctx.date_label}",
        f"Time: {ctx.time_label} ({ctx.timezone_label})",
        f"Duration: {ctx.duration_label}",
        f"Join link: {ctx.join_url or 'will be shared separately'}",
    ]


def build_confirmation_email(ctx: BookingEmailContext, recipient_name: str) -> EmailMessageContent:
    """
    Confirmation sent to the requester and to every guest.
    """
    lines = [
        f"Hi {recipient_name or 'there'},",
        "",
        f"Your {ctx.subject} is confirmed.",
        "",
        *_meeting_block(ctx),
        "",
        "We look forward to speaking with you.",
    ]
    return EmailMessageContent(
        subject=f"Meeting Confirmation - {ctx.date_label}",
        text="\n".join(lines),
    )


def _requester_block(ctx: BookingEmailContext) -> list[str]:
    user = ctx.user_details
    if user is None:
        return []
    lines = [
        f"Name: {user.full_name}",
        f"Email: {user.email}",
    ]
    if user.company_name:
        lines.append(f"Company: {user.company_name}")
    if user.revenue:
        lines.append(f"Revenue: {user.revenue}")
    if user.phone:
        lines.append(f"Phone: {user.phone}")
    if ctx.guest_emails:
        lines.append(f"Guests: {', '.join(ctx.guest_emails)}")
    return lines


def build_organizer_email(ctx: BookingEmailContext) -> EmailMessageContent:
    lines = [
        "A new discovery call has been booked.",
        "",
        *_meeting_block(ctx),
        "",
        *_requester_block(ctx),
        "",
        "Please review the details before the call.",
    ]
    return EmailMessageContent(
        subject="New Discovery Call Booked - Action Required",
        text="\n".join(lines),
    )


def build_admin_email(ctx: BookingEmailContext) -> EmailMessageContent:
    lines = [
        "A new discovery call has been booked.",
        "",
        *_meeting_block(ctx),
        f"Organizer: {ctx.organizer_email or 'n/a'}",
        "",
        *_requester_block(ctx),
    ]
    return EmailMessageContent(
        subject="New Discovery Call Booked - Admin Notification",
        text="\n".join(lines),
    )


class MailTransport(ABC):
    name: str = "abstract"

    @abstractmethod
    async def send(self, recipient: str, content: EmailMessageContent) -> None:
        """Deliver one message or raise."""


class LoggingMailTransport(MailTransport):
    """
    Used when neither Graph nor SMTP is configured: the message is logged
    instead of sent.
    """

    name = "log"

    async def send(self, recipient: str, content: EmailMessageContent) -> None:
        logger.info("Email (not sent, no transport configured) to=%s subject=%s", recipient, content.subject)
        logger.debug("Email body:\n%s", content.text)


class GraphMailTransport(MailTransport):
    """
    Sends through POST /v1.0/users/{sender}/sendMail.
    """

    name = "graph"

    def __init__(self, graph_client: GraphClient, sender: str) -> None:
        self.graph = graph_client
        self.sender = sender

    async def send(self, recipient: str, content: EmailMessageContent) -> None:
        body = {
            "message": {
                "subject": content.subject,
                "body": {"contentType": "HTML", "content": content.html},
                "toRecipients": [{"emailAddress": {"address": recipient}}],
            }
        }
        try:
            await self.graph.post_json(f"/v1.0/users/{self.sender}/sendMail", json=body)
        except GraphClientError as exc:
            raise NotificationFailed(str(exc)) from exc


class SmtpMailTransport(MailTransport):
    """
    Plain SMTP delivery. smtplib is blocking, so each send runs in a worker
    thread.
    """

    name = "smtp"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _send_sync(self, recipient: str, content: EmailMessageContent) -> None:
        settings = self.settings

        msg = EmailMessage()
        msg["Subject"] = content.subject
        msg["From"] = settings.SMTP_FROM_ADDRESS
        msg["To"] = recipient
        msg.set_content(content.text)
        msg.add_alternative(content.html, subtype="html")

        with smtplib.SMTP(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        ) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            smtp.send_message(msg)

    async def send(self, recipient: str, content: EmailMessageContent) -> None:
        try:
            await asyncio.to_thread(self._send_sync, recipient, content)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationFailed(f"SMTP delivery failed: {exc}") from exc


def build_mail_transport(settings: Settings, graph_client: GraphClient | None) -> MailTransport:
    """
    Pick the mail transport from configuration: Graph when credentials are
    present, then SMTP, else log-only.
    """
    if graph_client is not None:
        return GraphMailTransport(graph_client, sender=settings.GRAPH_MAIL_SENDER or settings.ADMIN_EMAIL)
    if settings.smtp_configured:
        return SmtpMailTransport(settings)
    return LoggingMailTransport()


class Notifier:
    """
    Sends booking emails. Every send is isolated: a failure or timeout for
    one recipient becomes a failed NotificationResult and never propagates.
    """

    def __init__(self, transport: MailTransport, timeout_seconds: float = 15.0) -> None:
        self.transport = transport
        self.timeout_seconds = timeout_seconds

    async def send(
        self,
        recipient: str,
        notification_type: NotificationType,
        content: EmailMessageContent,
    ) -> NotificationResult:
        try:
            await asyncio.wait_for(
                self.transport.send(recipient, content),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Email to %s (%s) timed out", recipient, notification_type.value)
            return NotificationResult(
                recipient=recipient,
                type=notification_type,
                success=False,
                error=f"Timed out after {self.timeout_seconds}s",
            )
        except Exception as exc:
            logger.warning("Email to %s (%s) failed: %s", recipient, notification_type.value, exc)
            return NotificationResult(
                recipient=recipient,
                type=notification_type,
                success=False,
                error=str(exc),
            )

        return NotificationResult(recipient=recipient, type=notification_type, success=True)

    async def send_confirmation(
        self, ctx: BookingEmailContext, recipient: str, recipient_name: str
    ) -> NotificationResult:
        return await self.send(
            recipient,
            NotificationType.CONFIRMATION,
            build_confirmation_email(ctx, recipient_name),
        )

    async def send_organizer_notification(
        self, ctx: BookingEmailContext, organizer_email: str
    ) -> NotificationResult:
        return await self.send(
            organizer_email,
            NotificationType.ORGANIZER,
            build_organizer_email(ctx),
        )

    async def send_admin_notification(
        self, ctx: BookingEmailContext, admin_email: str
    ) -> NotificationResult:
        return await self.send(
            admin_email,
            NotificationType.ADMIN,
            build_admin_email(ctx),
        )
