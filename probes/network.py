"""Network reachability probes.

These are the slow probes, so they sit at the bottom of the priority range.
Reachability alone cannot rule out an unrelated service on the same port,
which caps their confidence below the file and environment markers.
"""
import asyncio
import logging
from typing import Optional

import httpx

from core.context import DetectionContext, ProbeAccessors
from core.probe_registry import ProbeRegistry
from models.evidence import Category, Evidence
from probes.scheduler import SCHEDULER_KUBERNETES, SCHEDULER_SWARM

logger = logging.getLogger(__name__)

SWARM_MANAGER_ADDRESS = "127.0.0.1:2377"
KUBERNETES_API_URL = "http://kubernetes.default.svc"


@ProbeRegistry.register("swarm-port-probe", priority=20, probe_type="network")
class SwarmPortProbe:
    """A Swarm manager listens on 2377 for cluster management traffic."""

    def __init__(self, accessors: ProbeAccessors):
        self.network = accessors.network
        self.timeout = accessors.timeout

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        timeout = ctx.timeout_for(self.timeout)
        try:
            conn = await self.network.dial_with_timeout(SWARM_MANAGER_ADDRESS, timeout)
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug(f"Swarm port {SWARM_MANAGER_ADDRESS} unreachable: {type(e).__name__}")
            return None
        conn.close()
        try:
            await conn.wait_closed()
        except OSError as e:
            # The port answered; a reset while closing does not change that
            logger.debug(f"Swarm port connection closed uncleanly: {type(e).__name__}")

        return Evidence(
            category=Category.SCHEDULER,
            value=SCHEDULER_SWARM,
            confidence=0.80,
            source=self.name,
        )


@ProbeRegistry.register("kubernetes-api-probe", priority=10, probe_type="network")
class KubernetesAPIProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.network = accessors.network
        self.timeout = accessors.timeout

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        timeout = ctx.timeout_for(self.timeout)
        try:
            await self.network.http_get(KUBERNETES_API_URL, timeout=timeout)
        except (httpx.HTTPError, OSError, asyncio.TimeoutError) as e:
            logger.debug(f"Kubernetes API unreachable: {type(e).__name__}")
            return None

        return Evidence(
            category=Category.SCHEDULER,
            value=SCHEDULER_KUBERNETES,
            confidence=0.80,
            source=self.name,
        )
