"""Bounded-retry liveness check for agents.

``PingRetryPolicy`` decides; ``wait_for_agent`` does the sleeping. Keeping
the decision pure makes the timeout behaviour testable without a clock.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from microdeck.agent.client import AgentClient
from microdeck.config import defaults
from microdeck.lib.errors import AgentRequestError, AgentUnreachableError

logger = logging.getLogger(__name__)


class PingDecision(str, Enum):
    """Outcome of one ping attempt."""

    REACHABLE = "reachable"
    RETRY = "retry"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class PingRetryPolicy:
    """Poll every ``delay`` seconds until ``timeout`` seconds have elapsed.

    Attributes:
        timeout: Overall time budget for reaching the agent
        delay: Wait between attempts
    """

    timeout: float = defaults.DEFAULT_PING_TIMEOUT
    delay: float = defaults.DEFAULT_PING_DELAY

    def __post_init__(self) -> None:
        if self.timeout <= 0 or self.delay <= 0:
            raise ValueError("ping timeout and delay must be positive")

    def decide(self, succeeded: bool, elapsed: float) -> PingDecision:
        """Decide what to do after an attempt.

        Args:
            succeeded: Whether the attempt got an answer
            elapsed: Seconds since the first attempt started

        Returns:
            REACHABLE on success, RETRY while another attempt fits in the
            budget, UNREACHABLE otherwise.
        """
        if succeeded:
            return PingDecision.REACHABLE
        if elapsed + self.delay < self.timeout:
            return PingDecision.RETRY
        return PingDecision.UNREACHABLE


def wait_for_agent(
    client: AgentClient,
    policy: PingRetryPolicy,
    mbus_url: str = "",
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Ping the agent until it answers or the policy gives up.

    Blocks the caller; there is no cancellation other than terminating the
    process.

    Returns:
        The state reported by the successful ping.

    Raises:
        AgentUnreachableError: If no ping succeeded within the timeout
    """
    started = clock()
    attempts = 0
    while True:
        attempts += 1
        last_error: AgentRequestError | None = None
        state = ""
        try:
            state = client.ping()
        except AgentRequestError as exc:
            last_error = exc
            logger.debug(f"Ping attempt {attempts} failed: {exc}")

        decision = policy.decide(last_error is None, clock() - started)
        if decision is PingDecision.REACHABLE:
            logger.debug(f"Agent responded after {attempts} attempt(s)")
            return state
        if decision is PingDecision.UNREACHABLE:
            raise AgentUnreachableError(mbus_url, policy.timeout, last_error)
        sleep(policy.delay)
