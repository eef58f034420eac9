"""
Data models for the Knowledge Graph module.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, Any, List

CONFIDENCE_MEMORY = 0.3
VERIFICATION_WEIGHT = 0.7


@dataclass
class RelationshipEdge:
    """Directed edge data stored on the source node, keyed by target id."""
    type: str
    confidence: float


@dataclass
class VerificationResult:
    """One entry of a node's verification history."""
    timestamp: str
    method: str
    result: bool
    confidence: float
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VerificationOutcome:
    """What a verification method reports for a node."""
    method: str
    result: bool
    confidence: float
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class VerificationStatus:
    """Summary of a node's verification history."""
    is_verified: bool
    score: float
    results: List[VerificationResult]


@dataclass
class KnowledgeNode:
    """A verifiable unit of knowledge with its own confidence and edge set."""
    type: str
    name: str
    source: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    confidence: float = 1.0
    relationships: Dict[str, RelationshipEdge] = field(default_factory=dict)
    verification_results: List[VerificationResult] = field(default_factory=list)

    def add_relationship(self, target_node_id: str, type: str, confidence: float):
        """Set the edge to ``target_node_id``, replacing any previous one."""
        self.relationships[target_node_id] = RelationshipEdge(type=type, confidence=confidence)

    def add_verification_result(
        self,
        method: str,
        result: bool,
        confidence: float,
        details: Dict[str, Any] = None
    ):
        """
        Append a verification result and recompute the node's confidence.

        Args:
            method: Verification method used
            result: Whether the node passed
            confidence: Confidence of the verification, clamped to [0, 1]
            details: Additional details about the verification
        """
        self.verification_results.append(VerificationResult(
            timestamp=datetime.now(timezone.utc).isoformat(),
            method=method,
            result=result,
            confidence=max(0.0, min(1.0, confidence)),
            details=details or {}
        ))

        self._update_confidence()

    def get_relationships(self) -> List[Dict[str, Any]]:
        return [
            {"node_id": node_id, "type": edge.type, "confidence": edge.confidence}
            for node_id, edge in self.relationships.items()
        ]

    def get_verification_status(self) -> VerificationStatus:
        """Verified when any method passed; score averages passing confidences over all results."""
        positive = [r for r in self.verification_results if r.result]
        score = 0.0
        if self.verification_results:
            score = sum(r.confidence for r in positive) / len(self.verification_results)

        return VerificationStatus(
            is_verified=len(positive) > 0,
            score=score,
            results=list(self.verification_results)
        )

    def _update_confidence(self):
        """Blend the previous confidence with the normalized verification history."""
        total_weight = sum(r.confidence for r in self.verification_results)
        if total_weight == 0:
            return

        weighted_sum = sum(r.confidence if r.result else -r.confidence for r in self.verification_results)
        normalized = (weighted_sum + total_weight) / (2 * total_weight)

        self.confidence = CONFIDENCE_MEMORY * self.confidence + VERIFICATION_WEIGHT * normalized

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeNode":
        return cls(
            id=data["id"],
            type=data["type"],
            name=data["name"],
            source=data["source"],
            attributes=data.get("attributes", {}),
            confidence=data.get("confidence", 1.0),
            relationships={
                target_id: RelationshipEdge(**edge)
                for target_id, edge in data.get("relationships", {}).items()
            },
            verification_results=[
                VerificationResult(**result) for result in data.get("verification_results", [])
            ]
        )
