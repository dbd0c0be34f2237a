# scanner/reporter.py
"""
Evidence sink used by checks.

A check calls report(context, record) once per resource that produced at
least one field; what happens to the record afterwards is up to the reporter.
"""

from typing import Any, Dict, List, Protocol

from models import Evidence, EvidenceContext


class Reporter(Protocol):
    def report(self, context: EvidenceContext, record: Dict[str, Any]) -> None:
        ...


class EvidenceCollector:
    """
    Keeps reported records in memory, in the order they were reported.
    """

    def __init__(self):
        self.evidence: List[Evidence] = []

    def report(self, context: EvidenceContext, record: Dict[str, Any]) -> None:
        self.evidence.append(Evidence(
            rule_id=context.rule_id,
            resource=context.resource,
            data=dict(record),
        ))

    def __len__(self) -> int:
        return len(self.evidence)
