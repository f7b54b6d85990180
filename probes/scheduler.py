"""Orchestration scheduler probes based on service-account files, environment and cgroups."""
import logging
from typing import Optional

from core.context import DetectionContext, ProbeAccessors
from core.probe_registry import ProbeRegistry
from fetch.filesystem import path_exists, read_text
from models.evidence import Category, Evidence

logger = logging.getLogger(__name__)

SCHEDULER_KUBERNETES = "kubernetes"
SCHEDULER_NOMAD = "nomad"
SCHEDULER_MESOS = "mesos"
SCHEDULER_SWARM = "swarm"
SCHEDULER_ECS = "ecs"
SCHEDULER_FARGATE = "fargate"
SCHEDULER_CLOUD_RUN = "cloud-run"
SCHEDULER_LAMBDA = "lambda"
SCHEDULER_ACI = "aci"

SERVICE_ACCOUNT_TOKEN = "/run/secrets/kubernetes.io/serviceaccount/token"


def _scheduler(probe, value: str, confidence: float) -> Evidence:
    return Evidence(category=Category.SCHEDULER, value=value, confidence=confidence, source=probe.name)


@ProbeRegistry.register("kubernetes-service-account", priority=95)
class KubernetesServiceAccountProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, SERVICE_ACCOUNT_TOKEN):
            return _scheduler(self, SCHEDULER_KUBERNETES, 0.99)
        return None


@ProbeRegistry.register("kubernetes-env", priority=85)
class KubernetesEnvProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "KUBERNETES_SERVICE_HOST" in self.env:
            return _scheduler(self, SCHEDULER_KUBERNETES, 0.95)
        return None


@ProbeRegistry.register("nomad-env", priority=85)
class NomadEnvProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "NOMAD_TASK_DIR" in self.env:
            return _scheduler(self, SCHEDULER_NOMAD, 0.95)
        return None


@ProbeRegistry.register("mesos-env", priority=85)
class MesosEnvProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "MESOS_TASK_ID" in self.env or "MESOS_CONTAINER_NAME" in self.env:
            return _scheduler(self, SCHEDULER_MESOS, 0.95)
        return None


@ProbeRegistry.register("aws-ecs", priority=85)
class ECSProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "ECS_CONTAINER_METADATA_URI" in self.env or "ECS_CONTAINER_METADATA_URI_V4" in self.env:
            return _scheduler(self, SCHEDULER_ECS, 0.98)
        return None


@ProbeRegistry.register("aws-fargate", priority=85)
class FargateProbe:
    """Fargate is ECS with its own launch type, advertised via AWS_EXECUTION_ENV."""

    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        execution_env = self.env.get("AWS_EXECUTION_ENV")
        if execution_env is None:
            return None
        if "fargate" in execution_env.lower():
            return _scheduler(self, SCHEDULER_FARGATE, 0.99)
        if "ECS_CONTAINER_METADATA_URI_V4" in self.env:
            return _scheduler(self, SCHEDULER_FARGATE, 0.85)
        return None


@ProbeRegistry.register("google-cloud-run", priority=85)
class CloudRunProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "K_SERVICE" in self.env:
            return _scheduler(self, SCHEDULER_CLOUD_RUN, 0.98)
        if "K_REVISION" in self.env:
            return _scheduler(self, SCHEDULER_CLOUD_RUN, 0.95)
        return None


@ProbeRegistry.register("aws-lambda-container", priority=85)
class LambdaContainerProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "AWS_LAMBDA_FUNCTION_NAME" in self.env:
            return _scheduler(self, SCHEDULER_LAMBDA, 0.99)
        if "LAMBDA_TASK_ROOT" in self.env:
            return _scheduler(self, SCHEDULER_LAMBDA, 0.98)
        return None


@ProbeRegistry.register("azure-container-instances", priority=85)
class ACIProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "ACI_RESOURCE_GROUP" in self.env:
            return _scheduler(self, SCHEDULER_ACI, 0.98)
        if "CONTAINER_GROUP_NAME" in self.env:
            return _scheduler(self, SCHEDULER_ACI, 0.90)
        return None


@ProbeRegistry.register("nomad-hostname", priority=80)
class NomadHostnameProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.hostname = accessors.hostname

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        try:
            hostname = self.hostname()
        except OSError as e:
            logger.debug(f"Hostname unavailable: {e}")
            return None
        if hostname.startswith("nomad-task-"):
            return _scheduler(self, SCHEDULER_NOMAD, 0.85)
        return None


@ProbeRegistry.register("mesos-cgroup", priority=80)
class MesosCgroupProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        cgroup = read_text(self.fs, "/proc/1/cgroup")
        if cgroup and "mesos" in cgroup:
            return _scheduler(self, SCHEDULER_MESOS, 0.90)
        return None
