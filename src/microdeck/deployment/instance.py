"""Agent-facing steps shared by deploy and delete."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from microdeck.agent.client import AgentClient
from microdeck.agent.retry import PingRetryPolicy, wait_for_agent
from microdeck.lib.errors import AgentRequestError, DeploymentError
from microdeck.lib.ui.stage import Stage

logger = logging.getLogger(__name__)

T = TypeVar("T")

# The delete path does not know the instance's job name
UNKNOWN_INSTANCE = "unknown/0"


def agent_operation(operation: str, call: Callable[[], T]) -> T:
    """Run an agent call, reporting a failed request as a step failure.

    Raises:
        DeploymentError: If the agent request failed
    """
    try:
        return call()
    except AgentRequestError as exc:
        raise DeploymentError(operation=operation, message=str(exc)) from exc


def wait_for_agent_step(
    stage: Stage,
    agent: AgentClient,
    vm_cid: str,
    mbus_url: str,
    policy: PingRetryPolicy,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Report and run the bounded wait for a VM's agent.

    Raises:
        AgentUnreachableError: If the agent never answered; the step has
            already been reported as failed
    """
    stage.perform(
        f"Waiting for the agent on VM '{vm_cid}'",
        lambda: wait_for_agent(agent, policy, mbus_url, clock=clock, sleep=sleep),
    )


def shutdown_instance(
    stage: Stage, agent: AgentClient, instance_name: str
) -> list[str]:
    """Stop all jobs, then unmount every disk the agent reports.

    Returns:
        The cids that were unmounted, in the order the agent listed them.

    Raises:
        DeploymentError: If the agent rejects one of the requests
    """
    stop_step = f"Stopping jobs on instance '{instance_name}'"
    stage.perform(stop_step, lambda: agent_operation(stop_step, agent.stop))

    mounted = agent_operation(
        f"Listing disks on instance '{instance_name}'", agent.list_disk
    )
    logger.debug(f"Agent reports mounted disks: {mounted}")
    for disk_cid in mounted:
        unmount_step = f"Unmounting disk '{disk_cid}'"
        stage.perform(
            unmount_step,
            lambda cid=disk_cid, step=unmount_step: agent_operation(
                step, lambda: agent.unmount_disk(cid)
            ),
        )
    return mounted
