from langchain_core.runnables import RunnableConfig
from loguru import logger

from graph.context import get_gateway
from graph.outcomes import NoEmail, UpstreamError
from graph.state import SyncState
from tools.errors import UpstreamUnavailable
from tools.fields import extract_email as find_email


async def fetch_lead(state: SyncState, config: RunnableConfig) -> SyncState:
    """Fetch the full lead from the Graph API."""
    lead_id = state["lead_id"]

    try:
        lead = await get_gateway(config).fetch_lead(lead_id)
    except UpstreamUnavailable as e:
        error_msg = f"Lead fetch failed for {lead_id}: {e}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["outcome"] = UpstreamError(reason=str(e))
        return state

    state["lead"] = lead
    logger.info(f"Fetched lead {lead_id}: {len(lead.fields)} fields, ad={lead.ad_id} adset={lead.adset_id} campaign={lead.campaign_id}")
    return state


def extract_email(state: SyncState) -> SyncState:
    """Find the email among the lead form fields."""
    email = find_email(state["lead"].fields)
    state["email"] = email

    if not email:
        logger.warning(f"No email found in lead {state['lead_id']}, HubSpot contact cannot be updated")
        state["outcome"] = NoEmail(lead_id=state["lead_id"])
    return state
