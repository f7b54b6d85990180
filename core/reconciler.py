"""Evidence reconciliation for combining findings from multiple probes.

Each category keeps the single strongest piece of evidence. Reconciliation is
a pure fold over probe outcomes in roster order, so it can be tested without
any I/O.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from models.evidence import Category, Evidence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of running one probe: evidence, nothing, or a probe-local error."""
    source: str
    priority: int
    evidence: Optional[Evidence] = None
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class EvidenceReconciler:
    """Selects the winning evidence per category."""

    @staticmethod
    def outcome_order(outcome: ProbeOutcome) -> Tuple[int, str]:
        """Sort key: higher priority first, then lexicographically smaller source."""
        return (-outcome.priority, outcome.source)

    @staticmethod
    def reconcile(outcomes: Iterable[ProbeOutcome]) -> Dict[Category, Evidence]:
        """
        Fold outcomes, already in execution order, into best evidence per category.

        A new piece of evidence replaces the current best only when its
        confidence is strictly greater, so on ties the earlier one stays.

        Args:
            outcomes: Probe outcomes in the order the probes were executed

        Returns:
            Mapping of category to winning evidence; categories nobody
            reported on are absent
        """
        best: Dict[Category, Evidence] = {}
        for outcome in outcomes:
            evidence = outcome.evidence
            if outcome.failed or evidence is None:
                continue

            current = best.get(evidence.category)
            if current is None or evidence.confidence > current.confidence:
                if current is not None:
                    logger.debug(
                        f"{evidence.category.value}: {evidence.value} ({evidence.source}, "
                        f"{evidence.confidence:.2f}) beats {current.value} "
                        f"({current.source}, {current.confidence:.2f})"
                    )
                best[evidence.category] = evidence
        return best

    @staticmethod
    def reconcile_unordered(outcomes: Iterable[ProbeOutcome]) -> Dict[Category, Evidence]:
        """
        Reconcile outcomes that may have arrived in any order.

        Outcomes are first put in a canonical order (priority descending, then
        source ascending) so ties resolve the same way for every arrival order.
        """
        ordered: List[ProbeOutcome] = sorted(outcomes, key=EvidenceReconciler.outcome_order)
        return EvidenceReconciler.reconcile(ordered)
