"""SMTP delivery for the transactional mails sent by DineDesk."""
from __future__ import annotations

import smtplib
from contextlib import contextmanager
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Iterable, Iterator

from flask import current_app, render_template

from dinedesk_ext.errors import UpstreamError


@dataclass(frozen=True)
class MailSettings:
    host: str
    port: int
    username: str
    password: str
    use_ssl: bool
    use_tls: bool
    timeout: int = 15

    @classmethod
    def from_config(cls, config) -> "MailSettings":
        use_ssl = bool(config.get("SMTP_USE_SSL"))
        return cls(
            host=config.get("SMTP_HOST") or "localhost",
            port=int(config.get("SMTP_PORT", 587)),
            username=config.get("SMTP_USER") or "",
            password=config.get("SMTP_PASS") or "",
            use_ssl=use_ssl,
            # STARTTLS only applies to plain connections.
            use_tls=bool(config.get("SMTP_USE_TLS", True)) and not use_ssl,
        )


@contextmanager
def _transport(settings: MailSettings) -> Iterator[smtplib.SMTP]:
    smtp_cls = smtplib.SMTP_SSL if settings.use_ssl else smtplib.SMTP
    server = smtp_cls(settings.host, settings.port, timeout=settings.timeout)
    try:
        if settings.use_tls:
            server.starttls()
        if settings.username and settings.password:
            server.login(settings.username, settings.password)
        yield server
    finally:
        try:
            server.quit()
        except (smtplib.SMTPException, OSError):
            current_app.logger.debug("SMTP quit failed", exc_info=True, extra={"component": "email"})


def _sender() -> str:
    address = current_app.config.get("EMAIL_FROM") or current_app.config.get("SMTP_USER")
    if not address:
        raise UpstreamError(user_msg="Email delivery is not configured.", detail="EMAIL_FROM is not set")
    name = current_app.config.get("EMAIL_FROM_NAME")
    return formataddr((name, address)) if name else address


def _build_message(
    subject: str,
    recipients: list[str],
    html_template: str,
    text_template: str,
    context: dict[str, object],
) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = _sender()
    message["To"] = ", ".join(recipients)
    message.set_content(render_template(text_template, **context))
    message.add_alternative(render_template(html_template, **context), subtype="html")
    return message


def send_email(
    *,
    subject: str,
    recipients: Iterable[str],
    html_template: str,
    text_template: str,
    context: dict[str, object] | None = None,
) -> None:
    """Render a text and an HTML body and send them as one message.

    With ``MAIL_SUPPRESS_SEND`` the message is rendered and logged but not
    sent. Connection and protocol failures raise :class:`UpstreamError`.
    """
    to = list(recipients)
    variables = {"app_name": current_app.config.get("APP_NAME", "DineDesk"), **(context or {})}
    message = _build_message(subject, to, html_template, text_template, variables)
    log_context = {"subject": subject, "to": to}

    if current_app.config.get("MAIL_SUPPRESS_SEND"):
        current_app.logger.info("Email suppressed", extra={"component": "email", "context": log_context})
        return

    try:
        with _transport(MailSettings.from_config(current_app.config)) as smtp:
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        raise UpstreamError(user_msg="Failed to send email.", detail=f"{type(exc).__name__}: {exc}") from exc
    current_app.logger.info("Email dispatched", extra={"component": "email", "context": log_context})
