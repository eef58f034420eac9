"""
Exception types shared across the exploration and knowledge graph modules.
"""

from typing import Optional


class IQAESError(Exception):
    """Base exception for all system errors."""


class NotFoundError(IQAESError):
    """Raised when a node, concept or knowledge item id cannot be resolved."""

    def __init__(self, message: str, item_id: Optional[str] = None):
        super().__init__(message)
        self.item_id = item_id


class ValidationError(IQAESError, ValueError):
    """Raised for malformed input at the analysis boundary."""


class AnalysisError(IQAESError):
    """Raised when an integrated text analysis fails."""


class ExplorationError(IQAESError):
    """Raised when a concept exploration fails."""
