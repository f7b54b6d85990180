"""Probes assembled from user-supplied marker rules instead of code."""
import logging
from typing import List, Optional

from core.context import DetectionContext, ProbeAccessors
from fetch.filesystem import path_exists, read_text
from models.evidence import Evidence
from models.marker import MarkerCheck, MarkerRule

logger = logging.getLogger(__name__)


class MarkerProbe:
    """Evaluates a MarkerRule's checks in order and reports the first that matches."""

    def __init__(self, rule: MarkerRule, accessors: ProbeAccessors):
        self.rule = rule
        self.name = rule.name
        self.priority = rule.priority
        self.fs = accessors.fs
        self.env = accessors.env

    def _matches(self, check: MarkerCheck) -> bool:
        if check.type == "file_exists":
            return path_exists(self.fs, check.path)
        if check.type == "file_contains":
            content = read_text(self.fs, check.path)
            return content is not None and check.contains in content
        if check.type == "env_set":
            value = self.env.get(check.variable)
            if value is None:
                return False
            return check.contains is None or check.contains in value
        return False

    async def detect(self, ctx: DetectionContext) -> Optional[Evidence]:
        for check in self.rule.checks:
            if self._matches(check):
                logger.debug(f"Marker rule {self.name} matched {check.type}")
                return Evidence(
                    category=self.rule.category,
                    value=self.rule.value,
                    confidence=check.confidence,
                    source=self.name,
                )
        return None

    def __repr__(self) -> str:
        return f"<MarkerProbe {self.name!r} priority={self.priority}>"


def build_marker_probes(rules: List[MarkerRule], accessors: ProbeAccessors) -> List[MarkerProbe]:
    return [MarkerProbe(rule, accessors) for rule in rules]
