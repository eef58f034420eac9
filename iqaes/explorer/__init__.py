"""
Text analysis, reasoning and concept exploration.
"""

from .concept_store import ConceptStore
from .entity_extractor import EntityExtractor
from .integrated_analysis import IntegratedAnalysis
from .pattern_discovery import PatternDetector
from .reasoning_engine import ReasoningEngine
from .relationship_discovery import RelationshipDiscoverer
from .systematic_explorer import ConceptExplorer

__all__ = [
    "ConceptStore",
    "EntityExtractor",
    "IntegratedAnalysis",
    "PatternDetector",
    "ReasoningEngine",
    "RelationshipDiscoverer",
    "ConceptExplorer"
]
