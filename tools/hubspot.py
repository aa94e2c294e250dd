import asyncio
import httpx
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Callable, Awaitable
from urllib.parse import quote
from loguru import logger

from tools.errors import UpstreamUnavailable
from tools.facebook import AdMetadata
from tools.settings import Settings, RetryPolicy

CONTACTS_PATH = "/crm/v3/objects/contacts"


@dataclass(frozen=True)
class PatchResult:
    """Status and body of a HubSpot contact update."""
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HubSpotClient:
    """HubSpot CRM client for contact search and update."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.token = settings.hubspot_token
        self.base_url = settings.hubspot_api_base_url.rstrip("/")
        self.timeout = settings.http_timeout
        self.transport = transport

    def _get_headers(self) -> Dict[str, str]:
        """Get headers for HubSpot API requests."""
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json"
        }

    async def search_contact_by_email(self, email: str) -> Optional[str]:
        """
        Search contacts whose email contains the given address.

        Args:
            email: Address to look for, already lowercased

        Returns:
            Id of the first matching contact, or None
        """
        body = {
            "filterGroups": [{
                "filters": [{
                    "propertyName": "email",
                    "operator": "CONTAINS_TOKEN",
                    "value": email
                }]
            }],
            "properties": ["email"]
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}{CONTACTS_PATH}/search",
                    headers=self._get_headers(),
                    json=body
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(
                "hubspot", f"contact search returned HTTP {e.response.status_code}", e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable("hubspot", f"contact search failed: {e!r}") from e
        except ValueError as e:
            raise UpstreamUnavailable("hubspot", f"invalid JSON from contact search: {e}") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not results or not isinstance(results[0], dict):
            return None
        contact_id = results[0].get("id")
        return str(contact_id) if contact_id else None

    async def patch_contact(self, contact_id: str, properties: Dict[str, Any]) -> PatchResult:
        """
        Update contact properties.

        Non-2xx answers are returned, not raised, so the caller can report
        HubSpot's error body. Transport failures raise UpstreamUnavailable.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.patch(
                    f"{self.base_url}{CONTACTS_PATH}/{quote(str(contact_id), safe='')}",
                    headers=self._get_headers(),
                    json={"properties": properties}
                )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable("hubspot", f"contact update failed: {e!r}") from e

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}
        if not isinstance(body, dict):
            body = {"result": body}

        return PatchResult(status_code=response.status_code, body=body)


class ContactLocator:
    """
    Finds the HubSpot contact for a lead email.

    HubSpot's Facebook integration creates the contact asynchronously, so a
    miss is retried a few times before giving up.
    """

    def __init__(
        self,
        gateway,
        policy: RetryPolicy,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.policy = policy
        self.sleep = sleep

    async def locate(self, email: str) -> Optional[str]:
        """
        Return the contact id for ``email`` or None after the retry budget.

        Raises:
            UpstreamUnavailable: every attempt failed with an upstream error
        """
        email = email.lower()
        attempts = max(1, self.policy.max_attempts)
        last_error: Optional[UpstreamUnavailable] = None
        failures = 0

        for attempt in range(1, attempts + 1):
            logger.info(f"[Attempt {attempt}/{attempts}] Searching HubSpot contact for {email}")
            try:
                contact_id = await self.gateway.search_contact_by_email(email)
            except UpstreamUnavailable as e:
                logger.error(f"HubSpot search failed on attempt {attempt}: {e}")
                last_error = e
                failures += 1
                contact_id = None

            if contact_id:
                logger.info(f"Found HubSpot contact {contact_id} on attempt {attempt}")
                return contact_id

            if attempt < attempts:
                logger.info(f"No contact on attempt {attempt}, retrying in {self.policy.inter_attempt_delay}s")
                await self.sleep(self.policy.inter_attempt_delay)

        if failures == attempts and last_error is not None:
            raise last_error

        logger.warning(f"No HubSpot contact found after {attempts} attempts for {email}")
        return None


def sync_date_ms(now: Optional[datetime] = None) -> int:
    """UTC midnight of the current day in epoch milliseconds (HubSpot date format)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    midnight = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp()) * 1000


def build_sync_properties(metadata: AdMetadata, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Contact properties written on every sync; all four go in one update."""
    return {
        "fb_campaign_name": metadata.campaign_name,
        "fb_adset_name": metadata.adset_name,
        "fb_ad_name": metadata.ad_name,
        "last_fb_ad_sync": sync_date_ms(now),
    }
