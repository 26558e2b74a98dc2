"""
The public contact form: validation, spam and cooldown guards, and delivery
through the mail relay.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, StringConstraints
from pydantic import ValidationError as PydanticValidationError

from portfolio_admin.api.mail import MailRelayClient
from portfolio_admin.exceptions import (
    CooldownError,
    MailRelayError,
    PortfolioError,
    ValidationError,
)
from portfolio_admin.models.config import AppConfig
from portfolio_admin.models.records import field_errors
from portfolio_admin.storage.cooldown import SubmissionCooldown

from .repository import PortfolioRepository

log = logging.getLogger(__name__)


class ContactMessage(BaseModel):
    """A message submitted through the contact form."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Annotated[str, StringConstraints(min_length=2)]
    email: EmailStr
    subject: Annotated[str, StringConstraints(min_length=3)]
    message: Annotated[str, StringConstraints(min_length=10)]

    def template_params(self) -> dict[str, str]:
        return {
            "from_name": self.name,
            "from_email": str(self.email),
            "subject": self.subject,
            "message": self.message,
        }


@dataclass(frozen=True)
class MailRelayConfig:
    service_id: str
    template_id: str
    public_key: str


class ContactFormService:
    """
    Sends contact-form messages.

    Relay credentials saved in the settings record take precedence over the
    configured defaults, field by field.
    """

    def __init__(
        self,
        repo: PortfolioRepository,
        mail_client: MailRelayClient,
        cooldown: SubmissionCooldown,
        config: AppConfig,
    ):
        self.repo = repo
        self.mail_client = mail_client
        self.cooldown = cooldown
        self.config = config

    async def resolve_relay(self) -> MailRelayConfig:
        """Merges relay settings from the store with the configured defaults."""
        try:
            settings = await self.repo.get_settings()
        except PortfolioError as e:
            log.warning(f"Could not read settings, using configured relay: {e}")
            service_id = template_id = public_key = None
        else:
            service_id = settings.emailjs_service_id
            template_id = settings.emailjs_template_id
            public_key = settings.emailjs_public_key

        relay = MailRelayConfig(
            service_id=service_id or self.config.mail_service_id,
            template_id=template_id or self.config.mail_template_id,
            public_key=public_key or self.config.mail_public_key,
        )
        if not (relay.service_id and relay.template_id and relay.public_key):
            raise MailRelayError(
                "Mail relay is not configured. Set it with 'portfolio-admin settings' "
                "or in the configuration file."
            )
        return relay

    async def submit(self, fields: dict, honeypot: Optional[str] = None) -> bool:
        """
        Validates and sends one message.

        Returns:
            True if the message was sent, False if it was dropped as spam.

        Raises:
            CooldownError: If a message was sent less than a minute ago.
            ValidationError: If a field is invalid.
            MailRelayError: If the relay is not configured or rejects the message.
            NetworkError: If the relay could not be reached.
        """
        if honeypot and honeypot.strip():
            log.debug("Honeypot field filled in, dropping submission.")
            return False

        remaining = self.cooldown.remaining_seconds()
        if remaining > 0:
            raise CooldownError(remaining)

        try:
            message = ContactMessage.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError(field_errors(e)) from e

        relay = await self.resolve_relay()
        await self.mail_client.send(
            relay.service_id,
            relay.template_id,
            relay.public_key,
            message.template_params(),
        )
        self.cooldown.record_success()
        log.info(f"Contact message from {message.name} sent.")
        return True
