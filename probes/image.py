"""Image format probes."""
from typing import Optional

from core.context import DetectionContext, ProbeAccessors
from core.probe_registry import ProbeRegistry
from fetch.filesystem import path_exists
from models.evidence import Category, Evidence

FORMAT_DOCKER = "docker"
FORMAT_ACI = "aci"
FORMAT_CRI = "cri"
FORMAT_OCI = "oci"
FORMAT_SINGULARITY = "singularity"


def _image_format(probe, value: str, confidence: float) -> Evidence:
    return Evidence(category=Category.IMAGE_FORMAT, value=value, confidence=confidence, source=probe.name)


@ProbeRegistry.register("docker-image-format", priority=95)
class DockerImageProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, "/.dockerenv"):
            return _image_format(self, FORMAT_DOCKER, 0.95)
        if path_exists(self.fs, "/.dockerinit"):
            return _image_format(self, FORMAT_DOCKER, 0.90)
        return None


@ProbeRegistry.register("cri-image-format", priority=95)
class CRIImageProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, "/run/.containerenv"):
            return _image_format(self, FORMAT_CRI, 0.90)
        return None


@ProbeRegistry.register("aci-env", priority=85)
class ACIEnvProbe:
    """App Container Image, announced by the rkt metadata variables."""

    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "AC_METADATA_URL" in self.env or "AC_APP_NAME" in self.env:
            return _image_format(self, FORMAT_ACI, 0.95)
        return None


@ProbeRegistry.register("oci-image-format", priority=85)
class OCIImageProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, "/var/lib/containers"):
            return _image_format(self, FORMAT_OCI, 0.80)
        # Podman builds OCI images by default
        if "PODMAN_SYSTEMD_UNIT" in self.env:
            return _image_format(self, FORMAT_OCI, 0.85)
        return None


@ProbeRegistry.register("singularity-image-format", priority=85)
class SingularityImageProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "SINGULARITY_CONTAINER" in self.env or "APPTAINER_CONTAINER" in self.env:
            return _image_format(self, FORMAT_SINGULARITY, 0.95)
        return None
