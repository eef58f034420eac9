"""
Knowledge Graph module for verified knowledge integration.
"""

from .knowledge_integrator import KnowledgeIntegrator
from .models import KnowledgeNode, VerificationOutcome
from .node_store import NodeStore

__all__ = ["KnowledgeIntegrator", "KnowledgeNode", "NodeStore", "VerificationOutcome"]
