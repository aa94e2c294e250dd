from langchain_core.runnables import RunnableConfig
from loguru import logger

from graph.context import get_gateway
from graph.state import SyncState
from tools.facebook import resolve_ad_metadata


async def resolve_metadata(state: SyncState, config: RunnableConfig) -> SyncState:
    """Look up ad, ad set and campaign names; missing names stay empty."""
    metadata = await resolve_ad_metadata(get_gateway(config), state["lead"])
    state["ad_metadata"] = metadata

    logger.info(
        f"FB attribution for {state['lead_id']}: "
        f"{metadata.campaign_name or '-'} | {metadata.adset_name or '-'} | {metadata.ad_name or '-'}"
    )
    return state
