"""
Concept Store for managing and persisting concepts used by exploration.
"""

import json
import logging
from pathlib import Path
from typing import List, Dict, Any, Optional

from .models import ConceptRecord

logger = logging.getLogger(__name__)

SEED_CONCEPTS = [
    {"id": "concept-1", "name": "تقوى", "type": "قيمة", "attributes": {"importance": "high"}},
    {"id": "concept-2", "name": "إيمان", "type": "قيمة", "attributes": {"importance": "high"}},
    {"id": "concept-3", "name": "صبر", "type": "قيمة", "attributes": {"importance": "high"}}
]


class ConceptStore:
    """Keyed store of concepts, persisted as JSON when given a storage path."""

    def __init__(self, storage_path: Optional[Path] = None, seed: bool = True):
        self.storage_path = Path(storage_path) if storage_path is not None else None
        self.concepts_file: Optional[Path] = None

        self.concepts: List[ConceptRecord] = []
        self.concept_index: Dict[str, int] = {}  # id -> index mapping

        if self.storage_path is not None:
            self.storage_path.mkdir(parents=True, exist_ok=True)
            self.concepts_file = self.storage_path / "concepts.json"
            self._load_concepts()

        if seed and not self.concepts:
            for concept_data in SEED_CONCEPTS:
                self.add_concept(ConceptRecord.from_dict(concept_data))

    def _load_concepts(self):
        """Load concepts from persistent storage."""
        try:
            if self.concepts_file.exists():
                with open(self.concepts_file, 'r', encoding='utf-8') as f:
                    concepts_data = json.load(f)

                self.concepts = []
                for concept_data in concepts_data:
                    concept = ConceptRecord.from_dict(concept_data)
                    self.concepts.append(concept)
                    self.concept_index[concept.id] = len(self.concepts) - 1

                logger.info(f"Loaded {len(self.concepts)} concepts from storage")
            else:
                logger.info("No existing concepts found, starting with seed concepts")

        except Exception as e:
            logger.error(f"Failed to load concepts: {e}")
            self.concepts = []
            self.concept_index = {}

    def _save_concepts(self):
        """Save concepts to persistent storage."""
        if self.concepts_file is None:
            return

        try:
            concepts_data = [concept.to_dict() for concept in self.concepts]

            with open(self.concepts_file, 'w', encoding='utf-8') as f:
                json.dump(concepts_data, f, indent=2, ensure_ascii=False)

            logger.debug(f"Saved {len(self.concepts)} concepts to storage")

        except Exception as e:
            logger.error(f"Failed to save concepts: {e}")

    def add_concept(self, concept: ConceptRecord):
        """Add a concept, replacing any concept with the same id."""
        if concept.id in self.concept_index:
            logger.warning(f"Concept with id {concept.id} already exists, updating")
            self.concepts[self.concept_index[concept.id]] = concept
        else:
            self.concepts.append(concept)
            self.concept_index[concept.id] = len(self.concepts) - 1

        self._save_concepts()

    def get_concept(self, concept_id: str) -> Optional[ConceptRecord]:
        """Get a concept by ID."""
        if concept_id in self.concept_index:
            return self.concepts[self.concept_index[concept_id]]
        return None

    def get_all_concepts(self) -> List[ConceptRecord]:
        """Get all concepts in insertion order."""
        return self.concepts.copy()

    def find_by_name(self, name: str) -> List[ConceptRecord]:
        """Concepts whose name equals or contains ``name``."""
        return [concept for concept in self.concepts if concept.name == name or name in concept.name]

    def __len__(self) -> int:
        return len(self.concepts)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_concepts": len(self.concepts),
            "types": sorted(set(concept.type for concept in self.concepts)),
            "unknown_concepts": sum(1 for concept in self.concepts if concept.type == "unknown")
        }

    def export_concepts(self, filepath: str):
        """Export concepts to a JSON file."""
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump([concept.to_dict() for concept in self.concepts], f, indent=2, ensure_ascii=False)

            logger.info(f"Exported {len(self.concepts)} concepts to {filepath}")

        except Exception as e:
            logger.error(f"Failed to export concepts: {e}")
            raise

    def import_concepts(self, filepath: str):
        """Import concepts from a JSON file."""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                concepts_data = json.load(f)

            for concept_data in concepts_data:
                self.add_concept(ConceptRecord.from_dict(concept_data))

            logger.info(f"Imported {len(concepts_data)} concepts from {filepath}")

        except Exception as e:
            logger.error(f"Failed to import concepts: {e}")
            raise
