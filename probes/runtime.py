"""Container runtime probes: filesystem markers, cgroups, environment and build target."""
import sys
from typing import Optional

from core.context import DetectionContext, ProbeAccessors
from core.probe_registry import ProbeRegistry
from fetch.filesystem import path_exists, read_text
from models.evidence import Category, Evidence

RUNTIME_DOCKER = "docker"
RUNTIME_RKT = "rkt"
RUNTIME_CONTAINERD = "containerd"
RUNTIME_LXD = "lxd"
RUNTIME_OPENVZ = "openvz"
RUNTIME_WASM = "wasm"
RUNTIME_PODMAN = "podman"
RUNTIME_CRIO = "cri-o"
RUNTIME_FIRECRACKER = "firecracker"
RUNTIME_KATA = "kata"
RUNTIME_GVISOR = "gvisor"
RUNTIME_SYSBOX = "sysbox"
RUNTIME_SINGULARITY = "singularity"
RUNTIME_APPTAINER = "apptainer"

SELF_CGROUP = "/proc/self/cgroup"
CONTAINERENV = "/run/.containerenv"
DMI_PRODUCT_NAME = "/sys/class/dmi/id/product_name"

# sys.platform values of interpreters built for a WebAssembly target
WASM_PLATFORMS = ("emscripten", "wasi")


def _runtime(probe, value: str, confidence: float) -> Evidence:
    return Evidence(category=Category.RUNTIME, value=value, confidence=confidence, source=probe.name)


@ProbeRegistry.register("docker-file-marker", priority=100)
class DockerFileProbe:
    """Docker drops /.dockerenv (and historically /.dockerinit) into every container."""

    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, "/.dockerenv"):
            return _runtime(self, RUNTIME_DOCKER, 0.95)
        if path_exists(self.fs, "/.dockerinit"):
            return _runtime(self, RUNTIME_DOCKER, 0.90)
        return None


@ProbeRegistry.register("wasm-build-target", priority=100)
class WASMBuildProbe:
    """Fixed at build time: the interpreter itself was compiled for WebAssembly."""

    def __init__(self, accessors: ProbeAccessors):
        pass

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if sys.platform in WASM_PLATFORMS:
            return _runtime(self, RUNTIME_WASM, 1.0)
        return None


@ProbeRegistry.register("podman-marker", priority=95)
class PodmanProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, CONTAINERENV):
            content = read_text(self.fs, CONTAINERENV)
            if content and "podman" in content:
                return _runtime(self, RUNTIME_PODMAN, 0.95)
            # A bare .containerenv is also written by CRI-O
            return _runtime(self, RUNTIME_PODMAN, 0.70)
        if "PODMAN_SYSTEMD_UNIT" in self.env:
            return _runtime(self, RUNTIME_PODMAN, 0.90)
        return None


@ProbeRegistry.register("cri-o-marker", priority=95)
class CRIOProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, "/var/run/crio/crio.sock"):
            return _runtime(self, RUNTIME_CRIO, 0.95)
        cgroup = read_text(self.fs, SELF_CGROUP)
        if cgroup and "crio" in cgroup:
            return _runtime(self, RUNTIME_CRIO, 0.90)
        return None


@ProbeRegistry.register("containerd-file-marker", priority=95)
class ContainerdFileProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, CONTAINERENV):
            return _runtime(self, RUNTIME_CONTAINERD, 0.90)
        return None


@ProbeRegistry.register("lxd-socket", priority=95)
class LXDSocketProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, "/dev/lxd/sock"):
            return _runtime(self, RUNTIME_LXD, 0.95)
        return None


@ProbeRegistry.register("docker-cgroup", priority=90)
class DockerCgroupProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        cgroup = read_text(self.fs, SELF_CGROUP)
        if cgroup and "docker" in cgroup:
            return _runtime(self, RUNTIME_DOCKER, 0.85)
        return None


@ProbeRegistry.register("openvz-proc", priority=90)
class OpenVZProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, "/proc/vz"):
            return _runtime(self, RUNTIME_OPENVZ, 0.90)
        return None


@ProbeRegistry.register("firecracker-dmi", priority=90)
class FirecrackerProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        product = read_text(self.fs, DMI_PRODUCT_NAME)
        if product and product.strip() == "Firecracker":
            return _runtime(self, RUNTIME_FIRECRACKER, 0.98)
        return None


@ProbeRegistry.register("kata-containers", priority=90)
class KataContainersProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if path_exists(self.fs, "/run/kata-containers"):
            return _runtime(self, RUNTIME_KATA, 0.95)

        # Kata guests run under QEMU, but so does any QEMU VM
        product = read_text(self.fs, DMI_PRODUCT_NAME)
        if product and "QEMU" in product:
            cpuinfo = read_text(self.fs, "/proc/cpuinfo")
            if cpuinfo and "QEMU" in cpuinfo:
                return _runtime(self, RUNTIME_KATA, 0.60)
        return None


@ProbeRegistry.register("gvisor-marker", priority=90)
class GVisorProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        cgroup = read_text(self.fs, SELF_CGROUP)
        if cgroup and ("runsc" in cgroup or "gvisor" in cgroup):
            return _runtime(self, RUNTIME_GVISOR, 0.95)
        if path_exists(self.fs, "/proc/self/root/dev/gvisor"):
            return _runtime(self, RUNTIME_GVISOR, 0.98)
        return None


@ProbeRegistry.register("sysbox-marker", priority=90)
class SysboxProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.fs = accessors.fs
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "SYSBOX_CONTAINER" in self.env:
            return _runtime(self, RUNTIME_SYSBOX, 0.98)
        cgroup = read_text(self.fs, SELF_CGROUP)
        if cgroup and "sysbox" in cgroup:
            return _runtime(self, RUNTIME_SYSBOX, 0.90)
        return None


@ProbeRegistry.register("singularity-apptainer", priority=90)
class SingularityProbe:
    """Singularity and its Apptainer fork, common on HPC clusters."""

    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "SINGULARITY_CONTAINER" in self.env:
            return _runtime(self, RUNTIME_SINGULARITY, 0.99)
        if "APPTAINER_CONTAINER" in self.env:
            return _runtime(self, RUNTIME_APPTAINER, 0.99)
        if "SINGULARITY_NAME" in self.env:
            return _runtime(self, RUNTIME_SINGULARITY, 0.95)
        return None


@ProbeRegistry.register("rkt-env", priority=80)
class RktEnvProbe:
    def __init__(self, accessors: ProbeAccessors):
        self.env = accessors.env

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        if "AC_METADATA_URL" in self.env or "AC_APP_NAME" in self.env:
            return _runtime(self, RUNTIME_RKT, 0.95)
        return None
