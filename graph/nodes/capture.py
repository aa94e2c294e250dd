from typing import Any, Dict, Optional
from langchain_core.runnables import RunnableConfig
from loguru import logger

from graph.context import get_policy, get_sleep
from graph.outcomes import NoLeadId
from graph.state import SyncState


def extract_lead_id(payload: Any) -> Optional[str]:
    """Read entry[0].changes[0].value.leadgen_id from a leadgen webhook envelope."""
    if not isinstance(payload, dict):
        return None
    entries = payload.get("entry")
    if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
        return None
    changes = entries[0].get("changes")
    if not isinstance(changes, list) or not changes or not isinstance(changes[0], dict):
        return None
    value: Dict[str, Any] = changes[0].get("value") or {}
    if not isinstance(value, dict):
        return None

    lead_id = value.get("leadgen_id")
    if lead_id is None:
        return None
    lead_id = str(lead_id).strip()
    return lead_id or None


def capture(state: SyncState) -> SyncState:
    """Pick the lead id out of the webhook payload."""
    lead_id = state.get("lead_id") or extract_lead_id(state.get("raw"))

    if not lead_id:
        logger.warning("Webhook payload carries no leadgen_id")
        state["lead_id"] = None
        state["outcome"] = NoLeadId()
        return state

    state["lead_id"] = lead_id
    logger.info(f"New lead received: {lead_id}")
    return state


async def wait(state: SyncState, config: RunnableConfig) -> SyncState:
    """Give HubSpot's own Facebook sync a head start before calling anything."""
    delay = get_policy(config).pre_delay
    if state.get("skip_pre_delay") or delay <= 0:
        return state

    await get_sleep(config)(delay)
    logger.info(f"Waited {delay}s before syncing lead {state.get('lead_id')} to HubSpot")
    return state
