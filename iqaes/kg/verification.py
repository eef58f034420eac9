"""
Verification methods that score the trustworthiness of knowledge nodes.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Callable, Awaitable

from .models import KnowledgeNode, VerificationOutcome

logger = logging.getLogger(__name__)

SOURCE_RELIABILITY = {
    "quran": 1.0,
    "hadith_sahih": 0.95,
    "hadith_hasan": 0.8,
    "tafsir_ibn_kathir": 0.9,
    "tafsir_tabari": 0.85,
    "linguistic_analysis": 0.75,
    "inference": 0.6,
    "user_input": 0.5
}
DEFAULT_RELIABILITY = 0.5

SOURCE_RELIABILITY_THRESHOLD = 0.7
ATTRIBUTE_CONSISTENCY_THRESHOLD = 0.6
RELATIONSHIP_COHERENCE_THRESHOLD = 0.5

# Node types that are expected to carry a specific attribute
REQUIRED_ATTRIBUTES = {
    "concept": "definition",
    "event": "time"
}
MISSING_ATTRIBUTE_FACTOR = 0.8

CONTRADICTORY_RELATIONSHIPS = [("similar_to", "opposite_of")]
CONTRADICTION_PENALTY = 0.2


@dataclass
class VerificationMethod:
    """A named async check producing a VerificationOutcome for a node."""
    name: str
    verify: Callable[[KnowledgeNode], Awaitable[VerificationOutcome]]


class SourceReliabilityMethod:
    """Scores a node by how reliable its source is."""

    def __init__(self, reliability: Optional[Dict[str, float]] = None, default_reliability: float = DEFAULT_RELIABILITY):
        self.reliability = dict(SOURCE_RELIABILITY)
        if reliability:
            self.reliability.update(reliability)
        self.default_reliability = default_reliability

    def get_source_reliability(self, source: str) -> float:
        if source not in self.reliability:
            logger.debug(f"Unknown source '{source}', using default reliability {self.default_reliability}")
        return self.reliability.get(source, self.default_reliability)

    async def __call__(self, node: KnowledgeNode) -> VerificationOutcome:
        reliability = self.get_source_reliability(node.source)
        return VerificationOutcome(
            method="source_reliability",
            result=reliability > SOURCE_RELIABILITY_THRESHOLD,
            confidence=reliability,
            details={"source_reliability": reliability, "source": node.source}
        )


def check_attribute_consistency(node: KnowledgeNode) -> float:
    """More attributes score higher; a node missing its type's key attribute is discounted."""
    score = min(0.5 + len(node.attributes) * 0.1, 1.0)

    required = REQUIRED_ATTRIBUTES.get(node.type)
    if required is not None and not node.attributes.get(required):
        score *= MISSING_ATTRIBUTE_FACTOR

    return score


def check_contradictions(node: KnowledgeNode) -> float:
    """Penalty for each pair of contradictory relationship types present on the node."""
    types = {edge.type for edge in node.relationships.values()}
    penalty = 0.0
    for first, second in CONTRADICTORY_RELATIONSHIPS:
        if first in types and second in types:
            penalty += CONTRADICTION_PENALTY
    return penalty


def check_relationship_coherence(node: KnowledgeNode) -> float:
    if not node.relationships:
        return 0.5

    score_by_count = min(0.5 + len(node.relationships) * 0.05, 0.9)
    return max(0.1, score_by_count - check_contradictions(node))


async def verify_attribute_consistency(node: KnowledgeNode) -> VerificationOutcome:
    score = check_attribute_consistency(node)
    return VerificationOutcome(
        method="attribute_consistency",
        result=score > ATTRIBUTE_CONSISTENCY_THRESHOLD,
        confidence=score,
        details={"consistency_score": score, "attributes": list(node.attributes.keys())}
    )


async def verify_relationship_coherence(node: KnowledgeNode) -> VerificationOutcome:
    score = check_relationship_coherence(node)
    return VerificationOutcome(
        method="relationship_coherence",
        result=score > RELATIONSHIP_COHERENCE_THRESHOLD,
        confidence=score,
        details={"coherence_score": score, "relationship_count": len(node.relationships)}
    )


def build_default_methods(config: Optional[Dict[str, Any]] = None) -> List[VerificationMethod]:
    """
    Build the default verification methods in their fold order.

    Args:
        config: Optional ``source_reliability`` overrides and ``default_reliability``
    """
    config = config or {}
    source_method = SourceReliabilityMethod(
        reliability=config.get("source_reliability"),
        default_reliability=config.get("default_reliability", DEFAULT_RELIABILITY)
    )

    return [
        VerificationMethod(name="source_reliability", verify=source_method),
        VerificationMethod(name="attribute_consistency", verify=verify_attribute_consistency),
        VerificationMethod(name="relationship_coherence", verify=verify_relationship_coherence)
    ]
