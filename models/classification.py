import json
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

UNDETERMINED = "undetermined"
UNKNOWN_HOSTNAME = "unknown"


@dataclass(frozen=True)
class ClassificationRecord:
    """Final output of a detection run: winning value per category plus process identity."""
    hostname: str
    id: str
    image_format: str
    pid: int
    runtime: str
    scheduler: str

    def to_dict(self) -> Dict[str, Any]:
        return dict(sorted(asdict(self).items()))

    def to_json(self, indent: Optional[int] = None) -> str:
        # Only strings and ints live here; a failure is a bug and should surface.
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def fallback(cls) -> "ClassificationRecord":
        """Record returned when detection could not complete at all."""
        return cls(
            hostname=UNKNOWN_HOSTNAME,
            id=UNDETERMINED,
            image_format=UNDETERMINED,
            pid=0,
            runtime=UNDETERMINED,
            scheduler=UNDETERMINED,
        )
