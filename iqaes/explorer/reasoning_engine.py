"""
Reasoning Engine for discovering relations between knowledge items and
inferring new knowledge from them.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Callable

from ..errors import NotFoundError
from .models import KnowledgeItem, Relation, Evidence, Inference

logger = logging.getLogger(__name__)

RELATION_TYPES = [
    "has_attribute",
    "similar_to",
    "opposite_of",
    "part_of",
    "has_example",
    "implies",
    "causes"
]

TYPE_MATCH_CONFIDENCE = 0.6
CATEGORY_MATCH_CONFIDENCE = 0.7
CATEGORY_MATCH_BOOST = 0.2
EXPLICIT_IMPLICATION_CONFIDENCE = 0.9

SEED_KNOWLEDGE_ITEMS = [
    KnowledgeItem(
        id="concept-1",
        type="concept",
        name="تقوى",
        description="الوقاية من عذاب الله بطاعته",
        attributes={"category": "قيمة", "domain": "أخلاق", "implications": ["خشية", "طاعة"]}
    ),
    KnowledgeItem(
        id="concept-2",
        type="concept",
        name="إيمان",
        description="التصديق بالقلب والإقرار باللسان والعمل بالجوارح",
        attributes={"category": "قيمة", "domain": "عقيدة", "implications": ["عمل صالح", "تقوى"]}
    ),
    KnowledgeItem(
        id="concept-3",
        type="attribute",
        name="خشية",
        description="الخوف المقترن بالتعظيم",
        attributes={"category": "صفة", "domain": "أخلاق"}
    ),
    KnowledgeItem(
        id="concept-4",
        type="attribute",
        name="طاعة",
        description="الانقياد للأوامر والابتعاد عن النواهي",
        attributes={"category": "سلوك", "domain": "أخلاق"}
    ),
    KnowledgeItem(
        id="concept-5",
        type="concept",
        name="عمل صالح",
        description="كل عمل يوافق شرع الله",
        attributes={"category": "سلوك", "domain": "عبادات"}
    )
]


def _same_category(a: KnowledgeItem, b: KnowledgeItem) -> bool:
    category = a.attributes.get("category")
    return category is not None and category == b.attributes.get("category")


def _lists_implication(a: KnowledgeItem, b: KnowledgeItem) -> bool:
    implications = a.attributes.get("implications")
    return isinstance(implications, list) and b.name in implications


@dataclass
class InferenceRule:
    """A predicate over an item pair and the relation it yields when it holds."""
    name: str
    relation_type: str
    confidence: float
    condition: Callable[[KnowledgeItem, KnowledgeItem], bool]
    explain: Callable[[KnowledgeItem, KnowledgeItem], str]

    def generate_relation(self, a: KnowledgeItem, b: KnowledgeItem) -> Relation:
        return Relation(
            id=str(uuid.uuid4()),
            source_id=a.id,
            target_id=b.id,
            type=self.relation_type,
            confidence=self.confidence,
            evidence=[Evidence(source="inference_rule", text=self.explain(a, b))]
        )


INFERENCE_RULES = [
    InferenceRule(
        name="similarity_transitivity",
        relation_type="similar_to",
        confidence=0.7,
        condition=lambda a, b: a.type == b.type and _same_category(a, b),
        explain=lambda a, b: (
            f"Both {a.name} and {b.name} are of type {a.type} "
            f"and category {a.attributes.get('category')}"
        )
    ),
    InferenceRule(
        name="attribute_inheritance",
        relation_type="has_attribute",
        confidence=0.8,
        condition=lambda a, b: (
            a.type == "concept"
            and b.type == "attribute"
            and a.attributes.get("domain") is not None
            and a.attributes.get("domain") == b.attributes.get("domain")
        ),
        explain=lambda a, b: f"{a.name} may have attribute {b.name} based on domain matching"
    ),
    InferenceRule(
        name="implication_chain",
        relation_type="implies",
        confidence=0.75,
        condition=_lists_implication,
        explain=lambda a, b: f"{a.name} implies {b.name} based on explicit implication listing"
    )
]


class ReasoningEngine:
    """Rule-based reasoning over a small knowledge-item universe."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, items: Optional[List[KnowledgeItem]] = None):
        self.config = config or {}
        self.min_confidence = self.config.get("min_confidence", 0.6)
        self.inference_min_confidence = self.config.get("inference_min_confidence", 0.7)
        self.max_depth = self.config.get("max_depth", 2)

        self.relation_types = list(RELATION_TYPES)
        self.inference_rules = list(INFERENCE_RULES)

        self.knowledge_items: Dict[str, KnowledgeItem] = {}
        for item in (items if items is not None else SEED_KNOWLEDGE_ITEMS):
            self.add_knowledge_item(item)

        logger.info(f"Reasoning engine loaded {len(self.knowledge_items)} knowledge items")

    def add_knowledge_item(self, item: KnowledgeItem):
        """Add or replace a knowledge item."""
        if item.id in self.knowledge_items:
            logger.warning(f"Knowledge item {item.id} already exists, updating")
        self.knowledge_items[item.id] = item

    def get_knowledge_item(self, item_id: str) -> Optional[KnowledgeItem]:
        return self.knowledge_items.get(item_id)

    def list_knowledge_items(self) -> List[KnowledgeItem]:
        return list(self.knowledge_items.values())

    def get_relation_types(self) -> List[str]:
        return list(self.relation_types)

    async def discover_relations(
        self,
        source_id: str,
        target_id: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Relation]:
        """
        Discover relations between two knowledge items.

        Args:
            source_id: ID of the source item
            target_id: ID of the target item
            parameters: Optional ``min_confidence`` threshold (default 0.6)

        Returns:
            Relations from type/category matching, inference rules and
            explicit implications, filtered by confidence

        Raises:
            NotFoundError: If either item is unknown
        """
        parameters = parameters or {}
        min_confidence = parameters.get("min_confidence", self.min_confidence)

        source = self.knowledge_items.get(source_id)
        target = self.knowledge_items.get(target_id)
        if source is None or target is None:
            missing = source_id if source is None else target_id
            raise NotFoundError(f"Knowledge item {missing} not found", item_id=missing)

        relations: List[Relation] = []

        if source.type == target.type:
            relations.append(Relation(
                id=str(uuid.uuid4()),
                source_id=source_id,
                target_id=target_id,
                type="similar_to",
                confidence=TYPE_MATCH_CONFIDENCE,
                evidence=[Evidence(source="type_matching", text=f"Both items are of type {source.type}")]
            ))

        if _same_category(source, target):
            category_evidence = Evidence(
                source="category_matching",
                text=f"Both items belong to category {source.attributes.get('category')}"
            )
            existing = next((r for r in relations if r.type == "similar_to"), None)

            if existing is not None:
                existing.confidence = min(1.0, existing.confidence + CATEGORY_MATCH_BOOST)
                existing.evidence.append(category_evidence)
            else:
                relations.append(Relation(
                    id=str(uuid.uuid4()),
                    source_id=source_id,
                    target_id=target_id,
                    type="similar_to",
                    confidence=CATEGORY_MATCH_CONFIDENCE,
                    evidence=[category_evidence]
                ))

        for rule in self.inference_rules:
            if rule.condition(source, target):
                logger.debug(f"Rule {rule.name} fired for {source_id} -> {target_id}")
                relations.append(rule.generate_relation(source, target))

        if _lists_implication(source, target):
            relations.append(Relation(
                id=str(uuid.uuid4()),
                source_id=source_id,
                target_id=target_id,
                type="implies",
                confidence=EXPLICIT_IMPLICATION_CONFIDENCE,
                evidence=[Evidence(
                    source="explicit_implication",
                    text=f"{source.name} explicitly implies {target.name}"
                )]
            ))

        return [r for r in relations if r.confidence >= min_confidence]

    async def infer_knowledge(
        self,
        concept_id: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Inference]:
        """
        Infer relations from one concept to every other knowledge item.

        ``max_depth`` is accepted for API compatibility; the sweep is a single
        flat pass and does not chain relations transitively.

        Args:
            concept_id: ID of the concept to infer from
            parameters: Optional ``min_confidence`` (default 0.7) and ``max_depth``

        Returns:
            Flattened inference records

        Raises:
            NotFoundError: If the concept is unknown
        """
        parameters = parameters or {}
        min_confidence = parameters.get("min_confidence", self.inference_min_confidence)
        max_depth = parameters.get("max_depth", self.max_depth)

        if concept_id not in self.knowledge_items:
            raise NotFoundError(f"Knowledge item {concept_id} not found", item_id=concept_id)

        logger.info(f"Inferring knowledge for {concept_id} (max_depth={max_depth} unused)")

        inferences = []
        for target in list(self.knowledge_items.values()):
            if target.id == concept_id:
                continue

            relations = await self.discover_relations(concept_id, target.id, {"min_confidence": min_confidence})
            for relation in relations:
                inferences.append(Inference(
                    relation_id=relation.id,
                    source_id=relation.source_id,
                    target_id=relation.target_id,
                    relation_type=relation.type,
                    confidence=relation.confidence,
                    evidence=relation.evidence
                ))

        logger.info(f"Inferred {len(inferences)} relations for {concept_id}")
        return inferences
