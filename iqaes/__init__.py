"""
Integrated Quranic Analysis and Exploration System

A concept-exploration and knowledge-graph verification engine combining
pattern discovery, entity extraction, rule-based reasoning and a verified
knowledge graph.
"""

__version__ = "0.1.0"
__author__ = "IQAES Team"
