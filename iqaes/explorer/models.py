"""
Data models for the exploration and analysis module.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, Any, List


@dataclass
class Pattern:
    """A linguistic or semantic pattern found in text."""
    id: str
    type: str
    text: str
    start: int
    end: int
    confidence: float
    metadata: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "text": self.text,
            "position": {"start": self.start, "end": self.end},
            "confidence": self.confidence,
            "metadata": self.metadata
        }


@dataclass
class EntityReference:
    """A single occurrence of an entity in the source text."""
    text: str
    source: str
    start: int
    end: int


@dataclass
class Entity:
    """A typed entity recognized in text via dictionary matching."""
    id: str
    type: str
    name: str
    attributes: Dict[str, Any]
    references: List[EntityReference] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Evidence:
    """Evidence backing a relationship or relation."""
    source: str
    text: str


@dataclass
class Relationship:
    """A relationship discovered between two entities of one text."""
    id: str
    type: str
    source_entity_id: str
    target_entity_id: str
    confidence: float
    evidence: List[Evidence] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class KnowledgeItem:
    """An item of the reasoning engine's knowledge universe."""
    id: str
    type: str
    name: str
    description: str
    attributes: Dict[str, Any]


@dataclass
class Relation:
    """A relation between two knowledge items produced by reasoning."""
    id: str
    source_id: str
    target_id: str
    type: str
    confidence: float
    evidence: List[Evidence] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Inference:
    """A relation found during a knowledge inference sweep."""
    relation_id: str
    source_id: str
    target_id: str
    relation_type: str
    confidence: float
    evidence: List[Evidence]
    type: str = "inferred_relation"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ConceptRecord:
    """A concept held in the concept store."""
    id: str
    name: str
    type: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    references: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConceptRecord":
        return cls(
            id=data["id"],
            name=data["name"],
            type=data["type"],
            attributes=data.get("attributes", {}),
            references=data.get("references", [])
        )


class ExplorationStatus(Enum):
    """Lifecycle of an exploration record."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ExplorationRecord:
    """State and results of one concept exploration."""
    id: str
    concept: str
    timestamp: str
    status: ExplorationStatus = ExplorationStatus.PENDING
    results: List[ConceptRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "concept": self.concept,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "results": [result.to_dict() for result in self.results]
        }


@dataclass
class AnalysisResult:
    """Result of an integrated text analysis."""
    id: str
    text: str
    entities: List[Entity]
    relationships: List[Relationship]
    patterns: List[Pattern]
    metadata: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "entities": [entity.to_dict() for entity in self.entities],
            "relationships": [rel.to_dict() for rel in self.relationships],
            "patterns": [pattern.to_dict() for pattern in self.patterns],
            "metadata": self.metadata
        }
