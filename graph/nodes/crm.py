from langchain_core.runnables import RunnableConfig
from loguru import logger

from graph.context import get_gateway, get_policy, get_sleep
from graph.outcomes import NoContactFound, Success, UpdateFailed, UpstreamError
from graph.state import SyncState
from tools.errors import UpstreamUnavailable
from tools.hubspot import ContactLocator, build_sync_properties


async def locate_contact(state: SyncState, config: RunnableConfig) -> SyncState:
    """Find the HubSpot contact for the lead email, retrying while HubSpot catches up."""
    locator = ContactLocator(get_gateway(config), get_policy(config), sleep=get_sleep(config))
    email = state["email"]

    try:
        contact_id = await locator.locate(email)
    except UpstreamUnavailable as e:
        error_msg = f"HubSpot contact search failed for {email}: {e}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["outcome"] = UpstreamError(reason=str(e))
        return state

    state["contact_id"] = contact_id
    if not contact_id:
        state["outcome"] = NoContactFound(lead_id=state["lead_id"], email=email)
    return state


async def update_contact(state: SyncState, config: RunnableConfig) -> SyncState:
    """Write the attribution names and sync date to the contact in one update."""
    lead_id = state["lead_id"]
    contact_id = state["contact_id"]
    properties = build_sync_properties(state["ad_metadata"])
    state["properties"] = properties

    try:
        result = await get_gateway(config).patch_contact(contact_id, properties)
    except UpstreamUnavailable as e:
        error_msg = f"HubSpot update failed for contact {contact_id}: {e}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["outcome"] = UpdateFailed(
            lead_id=lead_id, contact_id=contact_id, reason={"message": str(e)}
        )
        return state

    if not result.ok:
        logger.error(f"HubSpot update error for contact {contact_id}: {result.status_code} {result.body}")
        state["outcome"] = UpdateFailed(
            lead_id=lead_id,
            contact_id=contact_id,
            reason=result.body,
            hubspot_status=result.status_code,
        )
        return state

    logger.info(f"Updated contact {state['email']} ({contact_id}) for lead {lead_id}")
    state["outcome"] = Success(
        lead_id=lead_id,
        contact_id=contact_id,
        updated_fields=properties,
        hubspot_status=result.status_code,
        hubspot_result=result.body,
    )
    return state
