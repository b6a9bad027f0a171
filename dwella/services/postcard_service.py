"""Verification postcard delivery via Lob.

Operates in simulated mode when no LOB_API_KEY is configured: nothing is
mailed and a ``psc_sim_*`` provider id is returned.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

import httpx

from dwella.config import settings

logger = logging.getLogger(__name__)


class PostcardDeliveryError(Exception):
    """The postcard provider rejected the request or could not be reached."""


@dataclass(frozen=True)
class PostalAddress:
    name: str
    address_line1: str
    city: str
    state: str
    postal_code: str
    address_line2: str | None = None
    country: str = "US"


class PostcardSender(Protocol):
    async def send(self, to: PostalAddress, home_id: str, code: str) -> str:
        """Mail ``code`` to ``to``; return the provider-assigned id."""
        ...


def render_front_html(street: str, code: str) -> str:
    return f"""
    <html>
      <head>
        <meta charset="utf-8" />
        <style>
          body {{ font-family: system-ui, -apple-system, "Segoe UI", sans-serif; }}
          .wrapper {{ padding: 24px; }}
          .title {{ font-size: 24px; font-weight: 700; margin-bottom: 8px; }}
          .code-box {{ font-size: 32px; font-weight: 700; letter-spacing: 4px;
                      border: 2px dashed #000; padding: 16px; display: inline-block; }}
        </style>
      </head>
      <body>
        <div class="wrapper">
          <div class="title">Verify your home on Dwella</div>
          <div>For property: {street}</div>
          <p>Someone added this address to their Dwella account.</p>
          <p>To confirm you are the homeowner, enter this code in the app:</p>
          <div class="code-box">{code}</div>
        </div>
      </body>
    </html>
    """


def render_back_html() -> str:
    return """
    <html>
      <head><meta charset="utf-8" /></head>
      <body>
        <div style="padding: 24px; font-size: 12px;">
          <p>Dwella helps homeowners keep a verified record of work done on their home.</p>
          <p>If you did not attempt to verify this address, you can ignore this postcard.</p>
        </div>
      </body>
    </html>
    """


class LobPostcardSender:
    """Sends postcards through the Lob REST API."""

    def __init__(
        self,
        api_key: str = "",
        from_address_id: str = "",
        api_url: str = "https://api.lob.com/v1/postcards",
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.from_address_id = from_address_id
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._simulated = not api_key

    @property
    def simulated(self) -> bool:
        return self._simulated

    def _build_payload(self, to: PostalAddress, home_id: str, code: str) -> dict:
        recipient = {
            "name": to.name,
            "address_line1": to.address_line1,
            "address_city": to.city,
            "address_state": to.state,
            "address_zip": to.postal_code,
            "address_country": to.country,
        }
        if to.address_line2:
            recipient["address_line2"] = to.address_line2
        return {
            "description": f"Dwella verification for home {home_id}",
            "to": recipient,
            "from": self.from_address_id,
            "front": render_front_html(to.address_line1, code),
            "back": render_back_html(),
        }

    async def send(self, to: PostalAddress, home_id: str, code: str) -> str:
        if self._simulated:
            provider_id = f"psc_sim_{uuid.uuid4().hex[:16]}"
            logger.info("Simulated postcard %s for home %s", provider_id, home_id)
            return provider_id

        if not self.from_address_id:
            raise PostcardDeliveryError("Lob configuration missing (LOB_FROM_ADDRESS_ID)")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self.api_url,
                    json=self._build_payload(to, home_id, code),
                    auth=(self.api_key, ""),
                )
        except httpx.HTTPError as exc:
            logger.error("Lob request failed for home %s: %s", home_id, exc)
            raise PostcardDeliveryError("POSTCARD_SEND_FAILED") from exc

        if response.status_code >= 400:
            logger.error(
                "Lob API error for home %s: %s %s",
                home_id, response.status_code, response.text[:500],
            )
            raise PostcardDeliveryError(f"Lob API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            logger.error("Unexpected Lob response for home %s: %s", home_id, response.text[:500])
            raise PostcardDeliveryError("Lob API returned a malformed response")
        return data.get("id") or "unknown"


_sender: LobPostcardSender | None = None


def get_postcard_sender() -> PostcardSender:
    """FastAPI dependency returning the process-wide postcard sender."""
    global _sender
    if _sender is None:
        _sender = LobPostcardSender(
            api_key=settings.lob_api_key,
            from_address_id=settings.lob_from_address_id,
            api_url=settings.lob_api_url,
            timeout_seconds=settings.lob_timeout_seconds,
        )
    return _sender
