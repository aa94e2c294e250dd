from typing import TypedDict, Optional, List, Dict, Any
from graph.outcomes import SyncOutcome
from tools.facebook import LeadRecord, AdMetadata

class SyncState(TypedDict, total=False):
    """State shape for the lead sync workflow."""
    raw: Dict[str, Any]              # webhook payload
    lead_id: Optional[str]           # leadgen_id
    skip_pre_delay: bool
    lead: LeadRecord                 # fetched from the Graph API
    email: Optional[str]
    ad_metadata: AdMetadata
    contact_id: Optional[str]        # HubSpot contact id
    properties: Dict[str, Any]       # written to the contact
    outcome: SyncOutcome             # terminal state, set once
    errors: List[str]
