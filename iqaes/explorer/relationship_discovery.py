"""
Relationship Discovery for proposing typed relationships between extracted entities.
"""

import logging
import uuid
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Any, List, Optional

from .models import Entity, Relationship, Evidence

logger = logging.getLogger(__name__)

RELATIONSHIP_TYPES = [
    "co_occurs_with",
    "has_attribute",
    "located_in",
    "participates_in",
    "related_to",
    "occurs_in",
    "part_of",
    "performs",
    "receives",
    "causes",
    "implies",
    "contrasts_with",
    "similar_to"
]

VALUE_CATEGORY = "قيمة"

PROXIMITY_WINDOW = 100
PROXIMITY_THRESHOLD = 0.6
ATTRIBUTE_CONFIDENCE = 0.75
SEMANTIC_THRESHOLD = 0.5


@dataclass
class SemanticRule:
    """Type-pair rule for the semantic relationship pass."""
    source_type: str
    target_type: str
    relationship_type: str
    confidence_score: float


SEMANTIC_RULES = [
    SemanticRule("person", "place", "located_in", 0.6),
    SemanticRule("person", "event", "participates_in", 0.7),
    SemanticRule("concept", "concept", "related_to", 0.5),
    SemanticRule("event", "place", "occurs_in", 0.7)
]


class RelationshipDiscoverer:
    """Proposes relationships from proximity, attribute overlap and entity type pairs."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.min_confidence = self.config.get("min_confidence", 0.7)
        self.semantic_rules = list(SEMANTIC_RULES)

    async def discover_relationships(
        self,
        entities: List[Entity],
        text: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Relationship]:
        """
        Discover relationships between entities.

        Args:
            entities: Entities extracted from ``text``
            text: The original text context
            parameters: Optional ``min_confidence`` threshold

        Returns:
            Proximity, attribute and semantic relationships, in that order,
            that reach the confidence threshold
        """
        parameters = parameters or {}
        min_confidence = parameters.get("min_confidence", self.min_confidence)

        relationships = []
        relationships.extend(self._proximity_relationships(entities))
        relationships.extend(self._attribute_relationships(entities))
        relationships.extend(self._semantic_relationships(entities))

        filtered = [rel for rel in relationships if rel.confidence >= min_confidence]
        logger.debug(f"Discovered {len(relationships)} candidate relationships, kept {len(filtered)}")
        return filtered

    def _proximity_relationships(self, entities: List[Entity]) -> List[Relationship]:
        relationships = []

        for entity_a, entity_b in combinations(entities, 2):
            score = self.calculate_proximity(entity_a, entity_b)
            if score > PROXIMITY_THRESHOLD:
                relationships.append(Relationship(
                    id=str(uuid.uuid4()),
                    type="co_occurs_with",
                    source_entity_id=entity_a.id,
                    target_entity_id=entity_b.id,
                    confidence=score,
                    evidence=[Evidence(
                        source="proximity_analysis",
                        text="Entities appear in close proximity in the text"
                    )]
                ))

        return relationships

    def _attribute_relationships(self, entities: List[Entity]) -> List[Relationship]:
        relationships = []

        for entity in entities:
            if entity.type not in ("person", "concept"):
                continue

            for attribute in entities:
                if attribute.type != "attribute" or not self.check_attribute_applicability(entity, attribute):
                    continue

                relationships.append(Relationship(
                    id=str(uuid.uuid4()),
                    type="has_attribute",
                    source_entity_id=entity.id,
                    target_entity_id=attribute.id,
                    confidence=ATTRIBUTE_CONFIDENCE,
                    evidence=[Evidence(
                        source="attribute_analysis",
                        text=f"Entity {entity.name} may have attribute {attribute.name}"
                    )]
                ))

        return relationships

    def _semantic_relationships(self, entities: List[Entity]) -> List[Relationship]:
        relationships = []

        for rule in self.semantic_rules:
            sources = [e for e in entities if e.type == rule.source_type]
            targets = [e for e in entities if e.type == rule.target_type]

            for source in sources:
                for target in targets:
                    if source.id == target.id:
                        continue

                    similarity = self.calculate_semantic_similarity(source, target)
                    if similarity <= SEMANTIC_THRESHOLD:
                        continue

                    relationships.append(Relationship(
                        id=str(uuid.uuid4()),
                        type=rule.relationship_type,
                        source_entity_id=source.id,
                        target_entity_id=target.id,
                        confidence=rule.confidence_score * similarity,
                        evidence=[Evidence(
                            source="semantic_analysis",
                            text=f"Semantic relationship between {source.name} and {target.name}"
                        )]
                    ))

        return relationships

    @staticmethod
    def calculate_proximity(entity_a: Entity, entity_b: Entity) -> float:
        """Proximity in [0, 1] from the smallest gap between any two references."""
        if not entity_a.references or not entity_b.references:
            return 0.0

        min_distance = min(
            min(abs(ref_a.end - ref_b.start), abs(ref_b.end - ref_a.start))
            for ref_a in entity_a.references
            for ref_b in entity_b.references
        )

        return max(0.0, 1 - min_distance / PROXIMITY_WINDOW)

    @staticmethod
    def check_attribute_applicability(entity: Entity, attribute: Entity) -> bool:
        if entity.type == "person" and attribute.attributes.get("category") == VALUE_CATEGORY:
            return True

        if entity.type == "concept" and entity.attributes.get("category") == attribute.attributes.get("category"):
            return True

        return False

    @staticmethod
    def calculate_semantic_similarity(entity_a: Entity, entity_b: Entity) -> float:
        """Share of matching (key, value) attribute pairs over the smaller attribute set."""
        if not entity_a.attributes or not entity_b.attributes:
            return 0.0

        matches = sum(
            1 for key, value in entity_a.attributes.items()
            if key in entity_b.attributes and entity_b.attributes[key] == value
        )

        return matches / min(len(entity_a.attributes), len(entity_b.attributes))
