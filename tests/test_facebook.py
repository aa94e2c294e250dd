import asyncio

import httpx
import pytest

from tools.errors import UpstreamUnavailable
from tools.facebook import AdMetadata, FacebookGraphClient, LeadRecord, resolve_ad_metadata
from tools.settings import Settings


class TestResolveAdMetadata:
    """Test ad, ad set and campaign name resolution."""

    @pytest.mark.asyncio
    async def test_resolves_all_names(self, gateway_factory, lead_factory):
        gateway = gateway_factory(names={"A1": "Spring Ad", "S1": "Lookalike 1%", "C1": "Spring Campaign"})
        lead = lead_factory(ad_id="A1", adset_id="S1", campaign_id="C1")

        metadata = await resolve_ad_metadata(gateway, lead)

        assert metadata == AdMetadata(ad_name="Spring Ad", adset_name="Lookalike 1%", campaign_name="Spring Campaign")
        assert sorted(call[1] for call in gateway.calls_to("fetch_entity_name")) == ["A1", "C1", "S1"]

    @pytest.mark.asyncio
    async def test_absent_ids_make_no_calls(self, gateway_factory, lead_factory):
        gateway = gateway_factory(names={"C1": "Spring Campaign"})
        lead = lead_factory(campaign_id="C1")

        metadata = await resolve_ad_metadata(gateway, lead)

        assert metadata.ad_name == ""
        assert metadata.adset_name == ""
        assert metadata.campaign_name == "Spring Campaign"
        assert gateway.calls_to("fetch_entity_name") == [("fetch_entity_name", "C1")]

    @pytest.mark.asyncio
    async def test_failed_lookup_degrades_to_empty(self, gateway_factory, lead_factory):
        gateway = gateway_factory(names={
            "A1": UpstreamUnavailable("facebook", "boom", 500),
            "S1": None,
            "C1": "Spring Campaign",
        })
        lead = lead_factory(ad_id="A1", adset_id="S1", campaign_id="C1")

        metadata = await resolve_ad_metadata(gateway, lead)

        assert metadata == AdMetadata(ad_name="", adset_name="", campaign_name="Spring Campaign")


class BarrierNameGateway:
    """Answers a lookup only once all expected lookups are in flight."""

    def __init__(self, expected: int):
        self.expected = expected
        self.in_flight = 0
        self.all_started = asyncio.Event()

    async def fetch_entity_name(self, entity_id):
        self.in_flight += 1
        if self.in_flight == self.expected:
            self.all_started.set()
        await self.all_started.wait()
        return f"name-{entity_id}"


class TestResolveAdMetadataConcurrency:

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self, lead_factory):
        """Sequential lookups would block on the first one forever."""
        gateway = BarrierNameGateway(expected=3)
        lead = lead_factory(ad_id="A1", adset_id="S1", campaign_id="C1")

        metadata = await asyncio.wait_for(resolve_ad_metadata(gateway, lead), timeout=2)

        assert metadata == AdMetadata(ad_name="name-A1", adset_name="name-S1", campaign_name="name-C1")


class TestFacebookGraphClient:
    """Test the Graph API client against a mock transport."""

    def setup_method(self):
        self.settings = Settings(fb_access_token="fb-token", http_timeout=5)
        self.requests = []

    def _client(self, handler):
        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)
        return FacebookGraphClient(self.settings, transport=httpx.MockTransport(record))

    @pytest.mark.asyncio
    async def test_fetch_lead(self):
        client = self._client(lambda request: httpx.Response(200, json={
            "field_data": [{"name": "email", "values": ["a@b.com"]}],
            "ad_id": "A1",
            "adset_id": "S1",
            "id": "123",
        }))

        lead = await client.fetch_lead("123")

        assert lead == LeadRecord(
            lead_id="123",
            fields=[{"name": "email", "values": ["a@b.com"]}],
            ad_id="A1",
            adset_id="S1",
            campaign_id=None,
        )
        request = self.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/v19.0/123"
        assert request.url.params["fields"] == "field_data,ad_id,adset_id,campaign_id"
        assert request.url.params["access_token"] == "fb-token"

    @pytest.mark.asyncio
    async def test_fetch_lead_graph_error(self):
        client = self._client(lambda request: httpx.Response(400, json={
            "error": {"message": "Invalid OAuth access token.", "code": 190}
        }))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.fetch_lead("123")

        assert exc_info.value.status_code == 400
        assert "Invalid OAuth access token." in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_fetch_lead_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = self._client(handler)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.fetch_lead("123")

        assert exc_info.value.upstream == "facebook"

    @pytest.mark.asyncio
    async def test_fetch_entity_name(self):
        client = self._client(lambda request: httpx.Response(200, json={"name": "Spring Ad", "id": "A1"}))

        assert await client.fetch_entity_name("A1") == "Spring Ad"
        assert self.requests[0].url.params["fields"] == "name"

    @pytest.mark.asyncio
    async def test_fetch_entity_name_missing(self):
        client = self._client(lambda request: httpx.Response(200, json={"id": "A1"}))

        assert await client.fetch_entity_name("A1") is None
