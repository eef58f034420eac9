"""
Systematic Explorer for bounded-depth, cycle-safe exploration of concepts.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Set

from ..errors import ExplorationError, ValidationError
from .concept_store import ConceptStore
from .models import ConceptRecord, ExplorationRecord, ExplorationStatus

logger = logging.getLogger(__name__)


class ConceptExplorer:
    """
    Explores a concept and its related concepts recursively.

    Concepts that are not in the store are created with type ``unknown`` the
    first time exploration reaches them, so exploring grows the store.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, concept_store: Optional[ConceptStore] = None):
        self.config = config or {}
        self.max_depth = self.config.get("max_depth", 2)
        self.related_limit = self.config.get("related_limit", 3)

        if concept_store is None:
            storage_path = self.config.get("storage_path")
            concept_store = ConceptStore(storage_path)
        self.concept_store = concept_store

        self.explorations: Dict[str, ExplorationRecord] = {}

    async def explore_concept(
        self,
        concept: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> ExplorationRecord:
        """
        Explore a concept and its relationships.

        Args:
            concept: Name of the concept to explore
            parameters: Optional ``max_depth`` (default 2)

        Returns:
            The completed exploration record

        Raises:
            ValidationError: If the concept name is empty
            ExplorationError: If traversal fails; the record is kept as failed
        """
        if not isinstance(concept, str) or not concept.strip():
            raise ValidationError("Concept must be a non-empty string")

        parameters = parameters or {}
        max_depth = parameters.get("max_depth", self.max_depth)

        exploration = ExplorationRecord(
            id=str(uuid.uuid4()),
            concept=concept,
            timestamp=datetime.now(timezone.utc).isoformat()
        )
        self.explorations[exploration.id] = exploration
        logger.info(f"Exploring '{concept}' (max_depth={max_depth}, id={exploration.id})")

        try:
            exploration.results = self._explore_recursively(concept, max_depth, set())
        except Exception as e:
            exploration.status = ExplorationStatus.FAILED
            logger.error(f"Exploration {exploration.id} failed: {e}")
            raise ExplorationError(f"Exploration failed: {e}") from e

        exploration.status = ExplorationStatus.COMPLETED
        logger.info(f"Exploration {exploration.id} completed with {len(exploration.results)} results")
        return exploration

    def get_exploration(self, exploration_id: str) -> Optional[ExplorationRecord]:
        """Get an exploration by ID."""
        return self.explorations.get(exploration_id)

    def list_explorations(self) -> List[ExplorationRecord]:
        return list(self.explorations.values())

    def get_exploration_methods(self) -> List[Dict[str, str]]:
        return [
            {
                "id": "systematic",
                "name": "Systematic Exploration",
                "description": "Systematically explore concepts and their relationships"
            },
            {
                "id": "pattern",
                "name": "Pattern Discovery",
                "description": "Discover linguistic and semantic patterns in text"
            },
            {
                "id": "reasoning",
                "name": "Reasoning Engine",
                "description": "Use reasoning to discover new relationships and inferences"
            }
        ]

    def _explore_recursively(self, concept_name: str, depth: int, visited: Set[str]) -> List[ConceptRecord]:
        if depth <= 0 or concept_name in visited:
            return []

        visited.add(concept_name)

        matching = self.concept_store.find_by_name(concept_name)
        if not matching:
            return [self._materialize_concept(concept_name)]

        results = []
        for concept in matching:
            related = self._find_related_concepts(concept.id)

            results.append(ConceptRecord(
                id=concept.id,
                name=concept.name,
                type=concept.type,
                attributes=dict(concept.attributes),
                references=[c.id for c in related]
            ))

            if depth > 1:
                for related_concept in related:
                    if related_concept.name not in visited:
                        results.extend(self._explore_recursively(related_concept.name, depth - 1, visited))

        return results

    def _materialize_concept(self, concept_name: str) -> ConceptRecord:
        """Create a placeholder for a concept the store does not know yet."""
        concept = ConceptRecord(
            id=str(uuid.uuid4()),
            name=concept_name,
            type="unknown",
            attributes={},
            references=[]
        )
        self.concept_store.add_concept(concept)
        logger.info(f"Materialized unknown concept '{concept_name}' ({concept.id})")
        return concept

    def _find_related_concepts(self, concept_id: str) -> List[ConceptRecord]:
        # Placeholder relatedness: the first other concepts in store order
        others = [c for c in self.concept_store.get_all_concepts() if c.id != concept_id]
        return others[:self.related_limit]
