"""SMTP delivery for queued email jobs.

Templates are Jinja2 HTML files named ``<template>.html`` rendered with
auto-escaping. Delivery goes through fastapi-mail. In test mode the rendered
message is logged instead of sent.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateNotFound

from warden.core.config.email import EmailSettings
from warden.core.config.settings import settings as app_settings
from warden.core.exceptions import EmailServiceError, TemplateNotFoundError
from warden.domain.entities import EmailJob
from warden.domain.security.data_protection import DataProtectionService

logger = structlog.get_logger(__name__)

PACKAGED_TEMPLATES_DIR = Path(__file__).resolve().parents[3] / "templates" / "email"


class EmailSender:
    """Renders and delivers one ``EmailJob`` at a time.

    Attributes:
        settings: Email configuration settings
        jinja_env: Jinja2 environment for template rendering
        fastmail: FastMail instance, None in test mode
    """

    def __init__(self, settings: EmailSettings = app_settings):
        self.settings = settings
        self.templates_dir = (
            Path(settings.EMAIL_TEMPLATES_DIR) if settings.EMAIL_TEMPLATES_DIR else PACKAGED_TEMPLATES_DIR
        )
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.fastmail: Optional[FastMail] = None if settings.EMAIL_TEST_MODE else FastMail(self._connection_config())

    def _connection_config(self) -> ConnectionConfig:
        try:
            return ConnectionConfig(
                MAIL_USERNAME=self.settings.SMTP_USERNAME or "",
                MAIL_PASSWORD=self.settings.SMTP_PASSWORD.get_secret_value() if self.settings.SMTP_PASSWORD else "",
                MAIL_FROM=self.settings.FROM_EMAIL,
                MAIL_FROM_NAME=self.settings.FROM_NAME,
                MAIL_PORT=self.settings.SMTP_PORT,
                MAIL_SERVER=self.settings.SMTP_HOST,
                MAIL_STARTTLS=self.settings.SMTP_USE_TLS,
                MAIL_SSL_TLS=self.settings.SMTP_USE_SSL,
                USE_CREDENTIALS=bool(self.settings.SMTP_USERNAME and self.settings.SMTP_PASSWORD),
                VALIDATE_CERTS=True,
            )
        except Exception as e:
            logger.error("Failed to configure FastMail", error=str(e))
            raise EmailServiceError(f"Failed to configure email service: {e}") from e

    def render(self, template_name: str, data: Dict[str, Any]) -> str:
        """Render ``template_name`` with ``data``.

        Raises:
            TemplateNotFoundError: If no such template exists.
            EmailServiceError: If the template fails to render.
        """
        try:
            return self.jinja_env.get_template(f"{template_name}.html").render(**data)
        except TemplateNotFound as e:
            logger.error("Template not found", template=template_name)
            raise TemplateNotFoundError(f"Template not found: {template_name}") from e
        except TemplateError as e:
            logger.error("Template rendering failed", template=template_name, error=str(e))
            raise EmailServiceError(f"Template rendering failed: {e}") from e

    async def send(self, job: EmailJob) -> bool:
        """Deliver ``job``. Returns False when the transport fails.

        Raises:
            TemplateNotFoundError: If the job names a missing template.
        """
        body = self.render(job.template_name, json.loads(job.template_data or "{}"))
        recipient = DataProtectionService.mask_sensitive_data(job.to_email)

        if self.fastmail is None:
            logger.info(
                "Email sent in test mode",
                job_id=job.id,
                to=recipient,
                subject=job.subject,
                html_length=len(body),
            )
            return True

        message = MessageSchema(
            subject=job.subject,
            recipients=[job.to_email],
            body=body,
            subtype=MessageType.html,
        )
        try:
            await self.fastmail.send_message(message)
        except Exception as e:
            logger.error("Failed to send email", job_id=job.id, to=recipient, error=str(e))
            return False
        logger.info("Email sent successfully", job_id=job.id, to=recipient, subject=job.subject)
        return True

    def validate_configuration(self) -> bool:
        try:
            self.settings.validate_smtp_config()
        except ValueError as e:
            logger.error("Email configuration is invalid or incomplete", error=str(e))
            return False
        if not self.templates_dir.is_dir():
            logger.error("Email templates directory not found", path=str(self.templates_dir))
            return False
        return True
