from dataclasses import dataclass, field
from typing import List, Optional

from models.evidence import Category

CHECK_TYPES = ("file_exists", "file_contains", "env_set")


@dataclass(frozen=True)
class MarkerCheck:
    """One observable marker and the confidence it carries."""
    type: str  # 'file_exists', 'file_contains' or 'env_set'
    path: Optional[str] = None  # File to stat or read
    variable: Optional[str] = None  # Environment variable name
    contains: Optional[str] = None  # Substring the file or variable must contain
    confidence: float = 0.5


@dataclass(frozen=True)
class MarkerRule:
    """A user-defined probe: checks evaluated in order, first match reports ``value``."""
    name: str
    category: Category
    value: str
    checks: List[MarkerCheck] = field(default_factory=list)
    priority: int = 50
