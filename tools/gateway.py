import httpx
from typing import Dict, Any, Optional, Protocol

from tools.facebook import FacebookGraphClient, LeadRecord
from tools.hubspot import HubSpotClient, PatchResult
from tools.settings import Settings


class LeadSyncGateway(Protocol):
    """Everything the sync pipeline needs from Facebook and HubSpot."""

    async def fetch_lead(self, lead_id: str) -> LeadRecord: ...

    async def fetch_entity_name(self, entity_id: str) -> Optional[str]: ...

    async def search_contact_by_email(self, email: str) -> Optional[str]: ...

    async def patch_contact(self, contact_id: str, properties: Dict[str, Any]) -> PatchResult: ...


class HttpLeadSyncGateway:
    """Gateway backed by the real Graph API and HubSpot clients."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.facebook = FacebookGraphClient(settings, transport=transport)
        self.hubspot = HubSpotClient(settings, transport=transport)

    async def fetch_lead(self, lead_id: str) -> LeadRecord:
        return await self.facebook.fetch_lead(lead_id)

    async def fetch_entity_name(self, entity_id: str) -> Optional[str]:
        return await self.facebook.fetch_entity_name(entity_id)

    async def search_contact_by_email(self, email: str) -> Optional[str]:
        return await self.hubspot.search_contact_by_email(email)

    async def patch_contact(self, contact_id: str, properties: Dict[str, Any]) -> PatchResult:
        return await self.hubspot.patch_contact(contact_id, properties)
