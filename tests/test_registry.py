import pytest

import core.engine  # noqa: F401  registers the built-in probes
from core.probe_registry import ProbeRegistry


class _Probe:
    def __init__(self, accessors):
        self.accessors = accessors

    async def detect(self, ctx):
        return None


def test_register_stamps_name_and_priority(isolated_registry):
    ProbeRegistry.clear()

    @ProbeRegistry.register("sample-probe", priority=42)
    class SampleProbe(_Probe):
        pass

    assert SampleProbe.name == "sample-probe"
    assert SampleProbe.priority == 42
    assert ProbeRegistry.get_probe_class("sample-probe") is SampleProbe
    assert ProbeRegistry.get_probe_type("sample-probe") == "passive"


def test_registration_order_and_types(isolated_registry):
    ProbeRegistry.clear()
    ProbeRegistry.register("b-probe", priority=10)(type("B", (_Probe,), {}))
    ProbeRegistry.register("a-probe", priority=90, probe_type="network")(type("A", (_Probe,), {}))
    ProbeRegistry.register("c-probe", priority=50)(type("C", (_Probe,), {}))

    assert ProbeRegistry.get_all_names() == ["b-probe", "a-probe", "c-probe"]
    assert ProbeRegistry.get_probes_by_type("network") == ["a-probe"]
    assert ProbeRegistry.get_probes_by_type("passive") == ["b-probe", "c-probe"]


def test_reregistering_overwrites_without_duplicating(isolated_registry):
    ProbeRegistry.clear()
    ProbeRegistry.register("dup", priority=1)(type("First", (_Probe,), {}))
    second = ProbeRegistry.register("dup", priority=2)(type("Second", (_Probe,), {}))

    assert ProbeRegistry.get_all_names() == ["dup"]
    assert ProbeRegistry.get_probe_class("dup") is second


def test_invalid_probe_type():
    with pytest.raises(ValueError):
        ProbeRegistry.register("bad", priority=1, probe_type="active")


def test_instantiate_all_filters(isolated_registry, make_accessors):
    ProbeRegistry.clear()
    ProbeRegistry.register("file", priority=90)(type("File", (_Probe,), {}))
    ProbeRegistry.register("env", priority=80)(type("Env", (_Probe,), {}))
    ProbeRegistry.register("port", priority=20, probe_type="network")(type("Port", (_Probe,), {}))
    accessors = make_accessors()

    everything = ProbeRegistry.instantiate_all(accessors)
    assert [p.name for p in everything] == ["file", "env", "port"]
    assert all(p.accessors is accessors for p in everything)

    passive = ProbeRegistry.instantiate_all(accessors, exclude={"env"}, include_network=False)
    assert [p.name for p in passive] == ["file"]


def test_builtin_roster_is_registered():
    names = ProbeRegistry.get_all_names()

    assert len(names) == len(set(names))
    assert "docker-file-marker" in names
    assert "kubernetes-service-account" in names
    assert "docker-image-format" in names
    assert ProbeRegistry.get_probes_by_type("network") == ["swarm-port-probe", "kubernetes-api-probe"]
