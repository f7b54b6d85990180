"""Tests for runtime probes against an in-memory filesystem and environment."""
import sys

import pytest

from core.context import DetectionContext
from models.evidence import Category
from probes.runtime import (
    CRIOProbe,
    ContainerdFileProbe,
    DockerCgroupProbe,
    DockerFileProbe,
    FirecrackerProbe,
    GVisorProbe,
    KataContainersProbe,
    LXDSocketProbe,
    OpenVZProbe,
    PodmanProbe,
    RktEnvProbe,
    SingularityProbe,
    SysboxProbe,
    WASMBuildProbe,
)

CTX = DetectionContext.background()


async def _detect(probe_class, accessors):
    return await probe_class(accessors).detect(CTX)


@pytest.mark.asyncio
@pytest.mark.parametrize("files,confidence", [
    ({"/.dockerenv": None}, 0.95),
    ({"/.dockerinit": None}, 0.90),
    ({"/.dockerenv": None, "/.dockerinit": None}, 0.95),
])
async def test_docker_file_probe(make_accessors, files, confidence):
    evidence = await _detect(DockerFileProbe, make_accessors(files=files))

    assert evidence.category == Category.RUNTIME
    assert evidence.value == "docker"
    assert evidence.confidence == confidence
    assert evidence.source == "docker-file-marker"


@pytest.mark.asyncio
async def test_docker_file_probe_absent(make_accessors):
    assert await _detect(DockerFileProbe, make_accessors()) is None


@pytest.mark.asyncio
async def test_unexpected_io_error_is_raised(make_accessors):
    accessors = make_accessors(errors={"/.dockerenv": PermissionError("denied")})
    with pytest.raises(PermissionError):
        await _detect(DockerFileProbe, accessors)


@pytest.mark.asyncio
async def test_docker_cgroup_probe(make_accessors):
    cgroup = b"12:cpu,cpuacct:/docker/0123456789abcdef\n"
    evidence = await _detect(DockerCgroupProbe, make_accessors(files={"/proc/self/cgroup": cgroup}))
    assert (evidence.value, evidence.confidence) == ("docker", 0.85)

    plain = make_accessors(files={"/proc/self/cgroup": b"0::/user.slice\n"})
    assert await _detect(DockerCgroupProbe, plain) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("files,env,confidence", [
    ({"/run/.containerenv": b'engine="podman-4.5.0"\n'}, {}, 0.95),
    ({"/run/.containerenv": b""}, {}, 0.70),
    ({}, {"PODMAN_SYSTEMD_UNIT": "app.service"}, 0.90),
])
async def test_podman_probe(make_accessors, files, env, confidence):
    evidence = await _detect(PodmanProbe, make_accessors(files=files, env=env))
    assert evidence.value == "podman"
    assert evidence.confidence == confidence


@pytest.mark.asyncio
async def test_podman_probe_absent(make_accessors):
    assert await _detect(PodmanProbe, make_accessors()) is None


@pytest.mark.asyncio
async def test_crio_probe(make_accessors):
    socket_ev = await _detect(CRIOProbe, make_accessors(files={"/var/run/crio/crio.sock": None}))
    assert (socket_ev.value, socket_ev.confidence) == ("cri-o", 0.95)

    cgroup_ev = await _detect(CRIOProbe, make_accessors(files={"/proc/self/cgroup": b"0::/kubepods/crio-abc.scope"}))
    assert cgroup_ev.confidence == 0.90

    assert await _detect(CRIOProbe, make_accessors()) is None


@pytest.mark.asyncio
async def test_containerd_and_lxd_and_openvz(make_accessors):
    containerd = await _detect(ContainerdFileProbe, make_accessors(files={"/run/.containerenv": None}))
    assert (containerd.value, containerd.confidence) == ("containerd", 0.90)

    lxd = await _detect(LXDSocketProbe, make_accessors(files={"/dev/lxd/sock": None}))
    assert (lxd.value, lxd.confidence) == ("lxd", 0.95)

    openvz = await _detect(OpenVZProbe, make_accessors(files={"/proc/vz": None}))
    assert (openvz.value, openvz.confidence) == ("openvz", 0.90)


@pytest.mark.asyncio
async def test_firecracker_probe_requires_exact_product(make_accessors):
    evidence = await _detect(FirecrackerProbe, make_accessors(
        files={"/sys/class/dmi/id/product_name": b"Firecracker\n"}))
    assert (evidence.value, evidence.confidence) == ("firecracker", 0.98)

    other = make_accessors(files={"/sys/class/dmi/id/product_name": b"Firecracker VM\n"})
    assert await _detect(FirecrackerProbe, other) is None


@pytest.mark.asyncio
async def test_kata_probe(make_accessors):
    marker = await _detect(KataContainersProbe, make_accessors(files={"/run/kata-containers": None}))
    assert marker.confidence == 0.95

    qemu = await _detect(KataContainersProbe, make_accessors(files={
        "/sys/class/dmi/id/product_name": b"Standard PC (QEMU)\n",
        "/proc/cpuinfo": b"model name : QEMU Virtual CPU\n",
    }))
    assert (qemu.value, qemu.confidence) == ("kata", 0.60)

    # DMI alone is just a QEMU VM
    dmi_only = make_accessors(files={"/sys/class/dmi/id/product_name": b"QEMU\n"})
    assert await _detect(KataContainersProbe, dmi_only) is None


@pytest.mark.asyncio
async def test_gvisor_probe(make_accessors):
    cgroup = await _detect(GVisorProbe, make_accessors(files={"/proc/self/cgroup": b"0::/runsc/abc"}))
    assert cgroup.confidence == 0.95

    device = await _detect(GVisorProbe, make_accessors(files={"/proc/self/root/dev/gvisor": None}))
    assert device.confidence == 0.98


@pytest.mark.asyncio
async def test_sysbox_probe(make_accessors):
    env = await _detect(SysboxProbe, make_accessors(env={"SYSBOX_CONTAINER": "1"}))
    assert (env.value, env.confidence) == ("sysbox", 0.98)

    cgroup = await _detect(SysboxProbe, make_accessors(files={"/proc/self/cgroup": b"0::/sysbox/abc"}))
    assert cgroup.confidence == 0.90


@pytest.mark.asyncio
@pytest.mark.parametrize("env,value,confidence", [
    ({"SINGULARITY_CONTAINER": "/img.sif"}, "singularity", 0.99),
    ({"APPTAINER_CONTAINER": "/img.sif"}, "apptainer", 0.99),
    ({"SINGULARITY_NAME": "img.sif"}, "singularity", 0.95),
])
async def test_singularity_probe(make_accessors, env, value, confidence):
    evidence = await _detect(SingularityProbe, make_accessors(env=env))
    assert (evidence.value, evidence.confidence) == (value, confidence)


@pytest.mark.asyncio
@pytest.mark.parametrize("var", ["AC_METADATA_URL", "AC_APP_NAME"])
async def test_rkt_env_probe(make_accessors, var):
    evidence = await _detect(RktEnvProbe, make_accessors(env={var: "x"}))
    assert (evidence.value, evidence.confidence) == ("rkt", 0.95)


@pytest.mark.asyncio
async def test_wasm_probe(make_accessors, monkeypatch):
    assert await _detect(WASMBuildProbe, make_accessors()) is None

    monkeypatch.setattr(sys, "platform", "emscripten")
    evidence = await _detect(WASMBuildProbe, make_accessors())
    assert (evidence.value, evidence.confidence) == ("wasm", 1.0)
