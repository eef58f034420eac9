"""
Entity Extractor for dictionary-driven entity recognition.
"""

import logging
import re
import uuid
from typing import Dict, Any, List, Optional

from .models import Entity, EntityReference

logger = logging.getLogger(__name__)

ENTITY_TYPES = [
    "person",
    "place",
    "concept",
    "event",
    "attribute",
    "command",
    "prohibition"
]

# term -> {type, attributes}
ENTITY_TERMS: Dict[str, Dict[str, Any]] = {
    "الله": {"type": "concept", "attributes": {"category": "ذات إلهية"}},
    "الرحمن": {"type": "concept", "attributes": {"category": "اسم من أسماء الله"}},
    "الرحيم": {"type": "concept", "attributes": {"category": "اسم من أسماء الله"}},
    "المؤمنون": {"type": "person", "attributes": {"category": "جماعة", "faith": "إيمان"}},
    "المتقون": {"type": "person", "attributes": {"category": "جماعة", "attribute": "تقوى"}},
    "الكافرون": {"type": "person", "attributes": {"category": "جماعة", "faith": "كفر"}},
    "الجنة": {"type": "place", "attributes": {"category": "آخرة", "function": "ثواب"}},
    "النار": {"type": "place", "attributes": {"category": "آخرة", "function": "عقاب"}},
    "الصلاة": {"type": "concept", "attributes": {"category": "عبادة"}},
    "الزكاة": {"type": "concept", "attributes": {"category": "عبادة"}},
    "الصيام": {"type": "concept", "attributes": {"category": "عبادة"}},
    "الحج": {"type": "concept", "attributes": {"category": "عبادة"}},
    "التقوى": {"type": "attribute", "attributes": {"category": "قيمة"}},
    "الإيمان": {"type": "attribute", "attributes": {"category": "قيمة"}},
    "الصبر": {"type": "attribute", "attributes": {"category": "قيمة"}},
    "القيامة": {"type": "event", "attributes": {"category": "آخرة"}}
}


class EntityExtractor:
    """Extracts typed entities by matching a fixed term dictionary against text."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, terms: Optional[Dict[str, Dict[str, Any]]] = None):
        self.config = config or {}
        self.min_confidence = self.config.get("min_confidence", 0.7)
        self.terms = terms if terms is not None else ENTITY_TERMS
        self._term_regexes = {
            term: re.compile(rf"\b{re.escape(term)}\b") for term in self.terms
        }

    async def extract_entities(
        self,
        text: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Entity]:
        """
        Extract entities from text.

        Args:
            text: The text to extract entities from
            parameters: Optional parameters; ``min_confidence`` is accepted but
                dictionary matches are exact, so it does not filter anything

        Returns:
            One entity per dictionary term found, in dictionary order
        """
        entities = []

        for term, details in self.terms.items():
            references = [
                EntityReference(
                    text=match.group(0),
                    source="text_match",
                    start=match.start(),
                    end=match.end()
                )
                for match in self._term_regexes[term].finditer(text)
            ]

            if not references:
                continue

            entities.append(Entity(
                id=str(uuid.uuid4()),
                type=details["type"],
                name=term,
                attributes=dict(details["attributes"]),
                references=references
            ))

        logger.debug(f"Extracted {len(entities)} entities")
        return entities
