"""
Client for the EmailJS mail relay used by the public contact form.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from portfolio_admin.exceptions import MailRelayError, NetworkError

log = logging.getLogger(__name__)


class MailRelayClient:
    """Sends templated messages through the EmailJS REST API."""

    SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"

    def __init__(self, send_url: str | None = None, timeout: int = 30):
        self.send_url = send_url or self.SEND_URL
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout, connect=10),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def send(
        self,
        service_id: str,
        template_id: str,
        public_key: str,
        params: dict[str, str],
    ) -> None:
        """
        Relays one message.

        Args:
            service_id: EmailJS service the message goes through.
            template_id: EmailJS template rendering the message.
            public_key: EmailJS public key of the account.
            params: Flat template parameters (from_name, from_email, subject, message).

        Raises:
            MailRelayError: If the relay answers with an error.
            NetworkError: If the relay could not be reached.
        """
        await self._initialize_session()
        payload = {
            "service_id": service_id,
            "template_id": template_id,
            "user_id": public_key,
            "template_params": params,
        }

        try:
            async with self._session.post(self.send_url, json=payload) as r:
                if r.status >= 400:
                    text = (await r.text()).strip()
                    raise MailRelayError(
                        f"Mail relay rejected the message (HTTP {r.status}): "
                        f"{text or 'no details'}"
                    )
                log.debug(f"Mail relay accepted message via service {service_id}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Could not reach the mail relay: {e}") from e
