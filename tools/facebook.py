import asyncio
import httpx
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional
from urllib.parse import quote
from loguru import logger

from tools.errors import UpstreamUnavailable
from tools.settings import Settings

LEAD_FIELDS = "field_data,ad_id,adset_id,campaign_id"


@dataclass(frozen=True)
class LeadRecord:
    """A Facebook lead as returned by the Graph API."""
    lead_id: str
    fields: List[Dict[str, Any]] = field(default_factory=list)
    ad_id: Optional[str] = None
    adset_id: Optional[str] = None
    campaign_id: Optional[str] = None

    @classmethod
    def from_graph(cls, lead_id: str, data: Dict[str, Any]) -> "LeadRecord":
        fields = data.get("field_data") or []
        if not isinstance(fields, list):
            fields = []
        return cls(
            lead_id=lead_id,
            fields=fields,
            ad_id=_optional_id(data.get("ad_id")),
            adset_id=_optional_id(data.get("adset_id")),
            campaign_id=_optional_id(data.get("campaign_id")),
        )


@dataclass(frozen=True)
class AdMetadata:
    """Display names of the ad, ad set and campaign a lead came from."""
    ad_name: str = ""
    adset_name: str = ""
    campaign_name: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _optional_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class FacebookGraphClient:
    """Facebook Graph API client for lead retrieval and ad name lookups."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.access_token = settings.fb_access_token
        self.base_url = settings.graph_url
        self.timeout = settings.http_timeout
        self.transport = transport

    async def fetch_lead(self, lead_id: str) -> LeadRecord:
        """Fetch field data and ad/adset/campaign ids for a lead."""
        data = await self._get(lead_id, LEAD_FIELDS)
        return LeadRecord.from_graph(lead_id, data)

    async def fetch_entity_name(self, entity_id: str) -> Optional[str]:
        """Fetch the display name of an ad, ad set or campaign."""
        data = await self._get(entity_id, "name")
        name = data.get("name")
        return name if isinstance(name, str) else None

    async def _get(self, object_id: str, fields: str) -> Dict[str, Any]:
        params = {"fields": fields, "access_token": self.access_token}
        url = f"{self.base_url}/{quote(str(object_id), safe='')}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(
                "facebook", _graph_error_message(e.response), e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable("facebook", f"request failed: {e!r}") from e
        except ValueError as e:
            raise UpstreamUnavailable("facebook", f"invalid JSON response: {e}") from e

        if not isinstance(data, dict):
            raise UpstreamUnavailable("facebook", "unexpected response shape")
        return data


def _graph_error_message(response: httpx.Response) -> str:
    """Graph API errors look like {"error": {"message": ..., "code": ...}}."""
    try:
        error = response.json().get("error") or {}
        message = error.get("message")
    except (ValueError, AttributeError):
        message = None
    return message or f"HTTP {response.status_code}"


async def resolve_ad_metadata(gateway, lead: LeadRecord) -> AdMetadata:
    """
    Resolve the ad, ad set and campaign names of a lead.

    Lookups run concurrently. A missing id or a failed lookup yields an empty
    name; this never raises.

    Args:
        gateway: Anything with an async ``fetch_entity_name(entity_id)``
        lead: Lead whose ids should be resolved

    Returns:
        AdMetadata with possibly empty names
    """
    async def lookup(kind: str, entity_id: Optional[str]) -> str:
        if not entity_id:
            return ""
        try:
            name = await gateway.fetch_entity_name(entity_id)
        except Exception as e:
            logger.warning(f"Could not resolve {kind} name for {entity_id}: {e}")
            return ""
        if not name:
            logger.warning(f"No {kind} name returned for {entity_id}")
            return ""
        return name

    ad_name, adset_name, campaign_name = await asyncio.gather(
        lookup("ad", lead.ad_id),
        lookup("adset", lead.adset_id),
        lookup("campaign", lead.campaign_id),
    )
    return AdMetadata(ad_name=ad_name, adset_name=adset_name, campaign_name=campaign_name)
