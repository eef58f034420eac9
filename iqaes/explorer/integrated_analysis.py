"""
Integrated Analysis combining pattern discovery, entity extraction and
relationship discovery into one text-analysis pass.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from ..errors import AnalysisError, ValidationError
from .entity_extractor import EntityExtractor
from .models import AnalysisResult
from .pattern_discovery import PatternDetector
from .relationship_discovery import RelationshipDiscoverer

logger = logging.getLogger(__name__)


class IntegratedAnalysis:
    """Runs the full text-analysis pipeline and keeps its results."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        pattern_detector: Optional[PatternDetector] = None,
        entity_extractor: Optional[EntityExtractor] = None,
        relationship_discoverer: Optional[RelationshipDiscoverer] = None
    ):
        self.config = config or {}
        self.pattern_detector = pattern_detector or PatternDetector(self.config.get("patterns", {}))
        self.entity_extractor = entity_extractor or EntityExtractor(self.config.get("analysis", {}))
        self.relationship_discoverer = relationship_discoverer or RelationshipDiscoverer(self.config.get("analysis", {}))
        self.analyses: Dict[str, AnalysisResult] = {}

    async def analyze_text(
        self,
        text: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> AnalysisResult:
        """
        Analyze text with patterns, entities and relationships.

        Args:
            text: The text to analyze
            parameters: Options passed through to every stage
                (``min_confidence``, ``include_semantic_patterns``)

        Returns:
            AnalysisResult with timing metadata

        Raises:
            ValidationError: If the text or parameters are malformed
            AnalysisError: If any stage fails
        """
        parameters = self._validate(text, parameters)

        start_time = time.perf_counter()
        analysis_id = str(uuid.uuid4())
        logger.info(f"Starting analysis {analysis_id} ({len(text)} chars)")

        try:
            patterns = await self.pattern_detector.detect_patterns(text, parameters)
            entities = await self.entity_extractor.extract_entities(text, parameters)
            relationships = await self.relationship_discoverer.discover_relationships(entities, text, parameters)
        except Exception as e:
            logger.error(f"Analysis {analysis_id} failed: {e}")
            raise AnalysisError(f"Analysis failed: {e}") from e

        duration_ms = (time.perf_counter() - start_time) * 1000

        result = AnalysisResult(
            id=analysis_id,
            text=text,
            entities=entities,
            relationships=relationships,
            patterns=patterns,
            metadata={
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "duration_ms": duration_ms,
                "parameters": dict(parameters)
            }
        )
        self.analyses[analysis_id] = result

        logger.info(
            f"Analysis {analysis_id} complete: {len(patterns)} patterns, "
            f"{len(entities)} entities, {len(relationships)} relationships"
        )
        return result

    def get_analysis(self, analysis_id: str) -> Optional[AnalysisResult]:
        """Get a previous analysis by ID."""
        return self.analyses.get(analysis_id)

    def get_analysis_methods(self) -> List[Dict[str, str]]:
        return [
            {
                "id": "integrated",
                "name": "Integrated Analysis",
                "description": "Patterns, entities and relationships in a single pass"
            },
            {
                "id": "entities",
                "name": "Entity Extraction",
                "description": "Dictionary-based extraction of typed entities"
            },
            {
                "id": "patterns",
                "name": "Pattern Discovery",
                "description": "Linguistic and semantic pattern detection"
            }
        ]

    @staticmethod
    def _validate(text: Any, parameters: Any) -> Dict[str, Any]:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Text must be a non-empty string")

        if parameters is None:
            return {}
        if not isinstance(parameters, dict):
            raise ValidationError("Parameters must be a mapping")

        if "min_confidence" in parameters and parameters["min_confidence"] is None:
            parameters = {key: value for key, value in parameters.items() if key != "min_confidence"}

        min_confidence = parameters.get("min_confidence")
        if min_confidence is not None:
            if isinstance(min_confidence, bool) or not isinstance(min_confidence, (int, float)):
                raise ValidationError("min_confidence must be a number")
            if not 0.0 <= min_confidence <= 1.0:
                raise ValidationError("min_confidence must be between 0 and 1")

        return parameters
