import os
import sys
from typing import Any, Dict, List, Optional

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tools.facebook import LeadRecord
from tools.hubspot import PatchResult
from tools.settings import RetryPolicy, Settings


class FakeGateway:
    """In-memory LeadSyncGateway that records every call."""

    def __init__(
        self,
        lead: Any = None,
        names: Optional[Dict[str, Any]] = None,
        search_results: Optional[List[Any]] = None,
        default_contact: Optional[str] = None,
        patch_result: Any = None,
    ):
        self.lead = lead
        self.names = names or {}
        self.search_results = list(search_results or [])
        self.default_contact = default_contact
        self.patch_result = patch_result or PatchResult(200, {"id": "C9"})
        self.calls: List[tuple] = []

    def calls_to(self, method: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == method]

    async def fetch_lead(self, lead_id: str) -> LeadRecord:
        self.calls.append(("fetch_lead", lead_id))
        if isinstance(self.lead, Exception):
            raise self.lead
        return self.lead

    async def fetch_entity_name(self, entity_id: str) -> Optional[str]:
        self.calls.append(("fetch_entity_name", entity_id))
        name = self.names.get(entity_id)
        if isinstance(name, Exception):
            raise name
        return name

    async def search_contact_by_email(self, email: str) -> Optional[str]:
        self.calls.append(("search_contact_by_email", email))
        result = self.search_results.pop(0) if self.search_results else self.default_contact
        if isinstance(result, Exception):
            raise result
        return result

    async def patch_contact(self, contact_id: str, properties: Dict[str, Any]) -> PatchResult:
        self.calls.append(("patch_contact", contact_id, dict(properties)))
        if isinstance(self.patch_result, Exception):
            raise self.patch_result
        return self.patch_result


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers the requested delays."""

    def __init__(self, gateway: Optional[FakeGateway] = None):
        self.delays: List[float] = []
        self.gateway = gateway

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.gateway is not None:
            self.gateway.calls.append(("sleep", delay))


def make_lead(lead_id: str = "123", fields=None, ad_id=None, adset_id=None, campaign_id=None) -> LeadRecord:
    return LeadRecord(
        lead_id=lead_id,
        fields=fields if fields is not None else [{"name": "Work Email", "values": ["a@b.com"]}],
        ad_id=ad_id,
        adset_id=adset_id,
        campaign_id=campaign_id,
    )


@pytest.fixture
def gateway_factory():
    return FakeGateway


@pytest.fixture
def lead_factory():
    return make_lead


@pytest.fixture
def recording_sleep():
    return RecordingSleep


@pytest.fixture
def no_delay_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, inter_attempt_delay=0, pre_delay=0)


@pytest.fixture
def test_settings(no_delay_policy) -> Settings:
    return Settings(
        fb_access_token="fb-token",
        hubspot_token="hs-token",
        verify_token="verify-secret",
        retry=no_delay_policy,
        log_file="logs/test.log",
    )


@pytest.fixture
def webhook_payload():
    return {
        "object": "page",
        "entry": [{"id": "page-1", "changes": [{"field": "leadgen", "value": {"leadgen_id": "123"}}]}],
    }
