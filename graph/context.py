import asyncio
from typing import Any, Awaitable, Callable, Dict
from langchain_core.runnables import RunnableConfig

from tools.settings import RetryPolicy


def sync_config(gateway, policy: RetryPolicy, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep) -> Dict[str, Any]:
    """Run config handing the gateway, retry policy and sleep function to the nodes."""
    return {"configurable": {"gateway": gateway, "policy": policy, "sleep": sleep}}


def get_gateway(config: RunnableConfig):
    return config["configurable"]["gateway"]


def get_policy(config: RunnableConfig) -> RetryPolicy:
    return config["configurable"].get("policy") or RetryPolicy()


def get_sleep(config: RunnableConfig) -> Callable[[float], Awaitable[Any]]:
    return config["configurable"].get("sleep") or asyncio.sleep
