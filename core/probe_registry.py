"""Dynamic probe registration system."""
import logging
from typing import Dict, List, Optional, Set, Type

from core.context import ProbeAccessors

logger = logging.getLogger(__name__)

PROBE_TYPES = ("passive", "network")


class ProbeRegistry:
    """Registry for discovering and instantiating probes."""

    _probes: Dict[str, Type] = {}
    _order: List[str] = []  # Preserve registration order
    _probe_types: Dict[str, str] = {}  # Maps probe name to "passive" or "network"

    @classmethod
    def register(cls, name: str, priority: int, probe_type: str = "passive"):
        """Decorator to register a probe class.

        Args:
            name: Unique identifier for the probe (e.g., "docker-file-marker")
            priority: Execution priority, higher runs earlier
            probe_type: "passive" (files, env, build target) or "network"

        Example:
            @ProbeRegistry.register("docker-file-marker", priority=100)
            class DockerFileProbe:
                def __init__(self, accessors: ProbeAccessors):
                    self.fs = accessors.fs

                async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
                    ...
        """
        if probe_type not in PROBE_TYPES:
            raise ValueError(f"probe_type must be 'passive' or 'network', got {probe_type}")

        def decorator(probe_class: Type):
            if name in cls._probes:
                logger.warning(f"Probe '{name}' already registered, overwriting")
            else:
                cls._order.append(name)

            probe_class.name = name
            probe_class.priority = priority
            cls._probes[name] = probe_class
            cls._probe_types[name] = probe_type

            logger.debug(f"Registered probe: {name} ({probe_type}, priority {priority}) -> {probe_class.__name__}")
            return probe_class
        return decorator

    @classmethod
    def get_all_names(cls) -> List[str]:
        """Get names of all registered probes in registration order."""
        return cls._order.copy()

    @classmethod
    def get_probe_type(cls, name: str) -> str:
        return cls._probe_types.get(name, "passive")

    @classmethod
    def get_probes_by_type(cls, probe_type: str) -> List[str]:
        """Get all probe names of a specific type."""
        return [name for name in cls._order if cls._probe_types.get(name, "passive") == probe_type]

    @classmethod
    def get_probe_class(cls, name: str) -> Optional[Type]:
        return cls._probes.get(name)

    @classmethod
    def instantiate_all(
        cls,
        accessors: ProbeAccessors,
        exclude: Optional[Set[str]] = None,
        include_network: bool = True,
    ) -> List[object]:
        """Instantiate registered probes in registration order.

        Args:
            accessors: Collaborators handed to every probe
            exclude: Set of probe names to leave out
            include_network: Whether to include probes that touch the network

        Returns:
            List of probe instances
        """
        exclude = exclude or set()
        instances = []

        for name in cls._order:
            if name in exclude:
                logger.info(f"Skipping excluded probe: {name}")
                continue
            if not include_network and cls._probe_types[name] == "network":
                logger.debug(f"Skipping network probe: {name}")
                continue

            instances.append(cls._probes[name](accessors))
            logger.debug(f"Instantiated probe: {name}")

        return instances

    @classmethod
    def clear(cls):
        """Clear all registered probes (useful for testing)."""
        cls._probes.clear()
        cls._order.clear()
        cls._probe_types.clear()
