import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional
from langgraph.graph import StateGraph, START, END
from loguru import logger

from graph.context import sync_config
from graph.nodes.capture import capture, wait
from graph.nodes.crm import locate_contact, update_contact
from graph.nodes.enrich import resolve_metadata
from graph.nodes.fetch import fetch_lead, extract_email
from graph.state import SyncState
from tools.settings import RetryPolicy


def _continue_to(next_node: str):
    """Stop as soon as a node has recorded a terminal outcome."""
    def decide(state: SyncState) -> str:
        if state.get("outcome") is not None:
            return END
        return next_node
    return decide


def build_workflow():
    """Build the lead sync workflow."""
    workflow = StateGraph(SyncState)

    # Add nodes
    workflow.add_node("capture", capture)
    workflow.add_node("wait", wait)
    workflow.add_node("fetch_lead", fetch_lead)
    workflow.add_node("extract_email", extract_email)
    workflow.add_node("resolve_metadata", resolve_metadata)
    workflow.add_node("locate_contact", locate_contact)
    workflow.add_node("update_contact", update_contact)

    workflow.add_edge(START, "capture")
    workflow.add_conditional_edges("capture", _continue_to("wait"), {"wait": "wait", END: END})
    workflow.add_edge("wait", "fetch_lead")
    workflow.add_conditional_edges(
        "fetch_lead", _continue_to("extract_email"), {"extract_email": "extract_email", END: END}
    )
    workflow.add_conditional_edges(
        "extract_email", _continue_to("resolve_metadata"), {"resolve_metadata": "resolve_metadata", END: END}
    )
    workflow.add_edge("resolve_metadata", "locate_contact")
    workflow.add_conditional_edges(
        "locate_contact", _continue_to("update_contact"), {"update_contact": "update_contact", END: END}
    )
    workflow.add_edge("update_contact", END)

    return workflow.compile()


async def run_sync(
    app_graph,
    gateway,
    policy: RetryPolicy,
    payload: Any = None,
    lead_id: Optional[str] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Dict[str, Any]:
    """
    Run one lead through the workflow.

    Args:
        app_graph: Compiled workflow from build_workflow()
        gateway: LeadSyncGateway used for every outbound call
        policy: Delays and contact search attempts
        payload: Webhook envelope; ignored when lead_id is given
        lead_id: Known lead id, skips envelope parsing and the pre-delay
        sleep: Coroutine used for every delay

    Returns:
        Final workflow state; ``outcome`` holds the terminal SyncOutcome
    """
    initial_state: Dict[str, Any] = {"raw": payload, "errors": []}
    if lead_id:
        initial_state["lead_id"] = lead_id
        initial_state["skip_pre_delay"] = True

    result = await app_graph.ainvoke(initial_state, config=sync_config(gateway, policy, sleep))
    logger.debug(f"Workflow finished for {result.get('lead_id')}: {type(result.get('outcome')).__name__}")
    return result
