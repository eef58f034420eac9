"""
Pattern Discovery for detecting linguistic and semantic patterns in text.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Callable

from .models import Pattern

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.7
LONG_MATCH_LENGTH = 20
LONG_MATCH_BONUS = 0.1
TYPE_BONUSES = {
    "conditional_sequence": 0.1,
    "exclusivity": 0.15
}

QUESTION_ANSWER_CONFIDENCE = 0.85
THEME_BASE_CONFIDENCE = 0.75
THEME_OCCURRENCE_BONUS = 0.05

DEFAULT_THEME_TERMS = ["هداية", "رحمة", "عذاب", "توحيد", "إيمان", "كفر"]

VOCATIVE = "يا أيها"


@dataclass
class PatternMatcher:
    """A structural matcher: trigger regex, pattern type and metadata extractor."""
    name: str
    regex: re.Pattern
    type: str
    metadata_fn: Callable[[re.Match], Dict[str, Any]]


def _addressee(match: re.Match) -> str:
    remainder = match.group(0).replace(VOCATIVE, "", 1).strip()
    return remainder.split(" ")[0]


LINGUISTIC_MATCHERS = [
    PatternMatcher(
        name="إن/لم/ثم",
        regex=re.compile(r"\bإن\b.*?\bلم\b.*?\bثم\b"),
        type="conditional_sequence",
        metadata_fn=lambda match: {
            "pattern_type": "conditional_sequence",
            "structure": "condition-negation-result"
        }
    ),
    PatternMatcher(
        name="وما/إلا",
        regex=re.compile(r"\bوما\b.*?\bإلا\b"),
        type="exclusivity",
        metadata_fn=lambda match: {
            "pattern_type": "exclusivity",
            "structure": "negation-exception"
        }
    ),
    PatternMatcher(
        name="يا أيها",
        regex=re.compile(r"\bيا أيها\b[^.!؟]*[.!؟]"),
        type="address",
        metadata_fn=lambda match: {
            "pattern_type": "address",
            "addressee": _addressee(match)
        }
    ),
    PatternMatcher(
        name="متكررة",
        regex=re.compile(r"\b(\w+)\b\s+\1\b(?:\s+\1\b)*"),
        type="repetition",
        metadata_fn=lambda match: {
            "pattern_type": "repetition",
            "repeated_word": match.group(1),
            "count": len(match.group(0).split())
        }
    )
]

SENTENCE_TERMINATOR_REGEX = re.compile(r"[.!؟?]")
QUESTION_MARKS = "?؟"
# the answer runs from the question mark to the next full stop, with no other terminator between
ANSWER_REGEX = re.compile(r"[^.!؟?]*\.")


class PatternDetector:
    """Detects structural and semantic patterns using a fixed matcher library."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.config = config
        self.min_confidence = config.get("min_confidence", 0.7)
        self.theme_terms = config.get("theme_terms", DEFAULT_THEME_TERMS)
        self.theme_max_distance = config.get("theme_max_distance", 100)
        self.theme_min_occurrences = config.get("theme_min_occurrences", 3)
        self.matchers: List[PatternMatcher] = list(LINGUISTIC_MATCHERS)

    async def detect_patterns(
        self,
        text: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Pattern]:
        """
        Detect patterns in the provided text.

        Args:
            text: The text to analyze
            parameters: Optional ``min_confidence`` and
                ``include_semantic_patterns`` settings

        Returns:
            Patterns whose confidence reaches the threshold, structural
            matches first
        """
        parameters = parameters or {}
        min_confidence = parameters.get("min_confidence", self.min_confidence)

        patterns = self._detect_linguistic_patterns(text, min_confidence)

        if parameters.get("include_semantic_patterns", False):
            patterns.extend(self._detect_semantic_patterns(text, min_confidence))

        logger.debug(f"Detected {len(patterns)} patterns (min_confidence={min_confidence})")
        return patterns

    def _detect_linguistic_patterns(self, text: str, min_confidence: float) -> List[Pattern]:
        patterns = []

        for matcher in self.matchers:
            for match in matcher.regex.finditer(text):
                confidence = self.calculate_pattern_confidence(match.group(0), matcher.type)
                if confidence < min_confidence:
                    continue

                metadata = {"pattern_name": matcher.name}
                metadata.update(matcher.metadata_fn(match))

                patterns.append(Pattern(
                    id=str(uuid.uuid4()),
                    type=matcher.type,
                    text=match.group(0),
                    start=match.start(),
                    end=match.end(),
                    confidence=confidence,
                    metadata=metadata
                ))

        return patterns

    def _detect_semantic_patterns(self, text: str, min_confidence: float) -> List[Pattern]:
        patterns = []

        if QUESTION_ANSWER_CONFIDENCE >= min_confidence:
            patterns.extend(self._detect_question_answers(text))

        for theme in self.theme_terms:
            positions = [m.start() for m in re.finditer(rf"\b{re.escape(theme)}\b", text)]
            if len(positions) < self.theme_min_occurrences:
                continue

            average_distance = self.calculate_average_distance(positions)
            if average_distance >= self.theme_max_distance:
                continue

            # uncapped: six or more occurrences score above 1.0
            confidence = THEME_BASE_CONFIDENCE + THEME_OCCURRENCE_BONUS * len(positions)
            if confidence < min_confidence:
                continue

            patterns.append(Pattern(
                id=str(uuid.uuid4()),
                type="theme_repetition",
                text=text[max(0, positions[0] - 20):min(len(text), positions[-1] + 20)],
                start=positions[0],
                end=positions[-1] + len(theme),
                confidence=confidence,
                metadata={
                    "pattern_name": "theme_repetition",
                    "pattern_type": "theme_repetition",
                    "theme": theme,
                    "occurrences": len(positions),
                    "average_distance": average_distance
                }
            ))

        return patterns

    def _detect_question_answers(self, text: str) -> List[Pattern]:
        """
        Find question sentences followed by a full-stop answer.

        A question starts after the previous sentence terminator and ends at
        its question mark. Each terminator is visited once.
        """
        patterns = []
        sentence_start = 0
        consumed = 0

        for terminator in SENTENCE_TERMINATOR_REGEX.finditer(text):
            mark_end = terminator.end()
            if terminator.group(0) in QUESTION_MARKS and terminator.start() >= consumed:
                answer_match = ANSWER_REGEX.match(text, mark_end)
                if answer_match is not None:
                    start = max(sentence_start, consumed)
                    end = answer_match.end()
                    patterns.append(Pattern(
                        id=str(uuid.uuid4()),
                        type="question_answer",
                        text=text[start:end],
                        start=start,
                        end=end,
                        confidence=QUESTION_ANSWER_CONFIDENCE,
                        metadata={
                            "pattern_name": "question_answer",
                            "pattern_type": "question_answer",
                            "question": text[start:mark_end].strip(),
                            "answer": text[mark_end:end].strip()
                        }
                    ))
                    consumed = end
            sentence_start = mark_end

        return patterns

    @staticmethod
    def calculate_pattern_confidence(text: str, pattern_type: str) -> float:
        """Score a structural match from its length and type."""
        confidence = BASE_CONFIDENCE

        if len(text) > LONG_MATCH_LENGTH:
            confidence += LONG_MATCH_BONUS

        confidence += TYPE_BONUSES.get(pattern_type, 0.0)

        return min(confidence, 1.0)

    @staticmethod
    def calculate_average_distance(positions: List[int]) -> float:
        """Average gap between consecutive positions."""
        if len(positions) <= 1:
            return 0.0

        total = sum(positions[i] - positions[i - 1] for i in range(1, len(positions)))
        return total / (len(positions) - 1)
