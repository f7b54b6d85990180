from dataclasses import dataclass
from enum import Enum


class Category(Enum):
    """Classification axes a probe can report on."""
    RUNTIME = "runtime"
    SCHEDULER = "scheduler"
    IMAGE_FORMAT = "image_format"


@dataclass(frozen=True)
class Evidence:
    """A single probe finding for one category."""
    category: Category
    value: str  # e.g. "docker", "kubernetes"
    confidence: float  # 0.0 - 1.0
    source: str  # name of the probe that produced it

    def __post_init__(self):
        if not isinstance(self.category, Category):
            raise ValueError(f"category must be a Category, got {self.category!r}")
        if not self.value:
            raise ValueError("evidence value must be non-empty")
        if not self.source:
            raise ValueError("evidence source must be non-empty")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0.0, 1.0], got {self.confidence}")
