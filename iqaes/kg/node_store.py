"""
Node Store for managing and persisting knowledge nodes.
"""

import json
import logging
from pathlib import Path
from typing import List, Dict, Any, Optional

from .models import KnowledgeNode

logger = logging.getLogger(__name__)


class NodeStore:
    """Persistent storage for knowledge nodes and the edges they carry."""

    def __init__(self, storage_path: Optional[Path] = None):
        self.storage_path = Path(storage_path) if storage_path is not None else None
        self.nodes_file: Optional[Path] = None

        self.nodes: List[KnowledgeNode] = []
        self.node_index: Dict[str, int] = {}  # id -> index mapping

        if self.storage_path is not None:
            self.storage_path.mkdir(parents=True, exist_ok=True)
            self.nodes_file = self.storage_path / "nodes.json"
            self._load_nodes()

    def _load_nodes(self):
        """Load nodes from persistent storage."""
        try:
            if self.nodes_file.exists():
                with open(self.nodes_file, 'r', encoding='utf-8') as f:
                    nodes_data = json.load(f)

                self.nodes = []
                for node_data in nodes_data:
                    node = KnowledgeNode.from_dict(node_data)
                    self.nodes.append(node)
                    self.node_index[node.id] = len(self.nodes) - 1

                logger.info(f"Loaded {len(self.nodes)} knowledge nodes from storage")
            else:
                logger.info("No existing knowledge nodes found")

        except Exception as e:
            logger.error(f"Failed to load knowledge nodes: {e}")
            self.nodes = []
            self.node_index = {}

    def save(self):
        """Save nodes to persistent storage."""
        if self.nodes_file is None:
            return

        try:
            nodes_data = [node.to_dict() for node in self.nodes]

            with open(self.nodes_file, 'w', encoding='utf-8') as f:
                json.dump(nodes_data, f, indent=2, ensure_ascii=False)

            logger.debug(f"Saved {len(self.nodes)} knowledge nodes to storage")

        except Exception as e:
            logger.error(f"Failed to save knowledge nodes: {e}")

    def add_node(self, node: KnowledgeNode):
        """Add a node, replacing any node with the same id."""
        if node.id in self.node_index:
            logger.warning(f"Node with id {node.id} already exists, updating")
            self.nodes[self.node_index[node.id]] = node
        else:
            self.nodes.append(node)
            self.node_index[node.id] = len(self.nodes) - 1

        self.save()

    def update_node(self, node: KnowledgeNode) -> bool:
        """Persist changes to a stored node."""
        if node.id not in self.node_index:
            return False

        self.nodes[self.node_index[node.id]] = node
        self.save()
        return True

    def get_node(self, node_id: str) -> Optional[KnowledgeNode]:
        """Get a node by ID."""
        if node_id in self.node_index:
            return self.nodes[self.node_index[node_id]]
        return None

    def get_all_nodes(self) -> List[KnowledgeNode]:
        """Get all nodes in insertion order."""
        return self.nodes.copy()

    def get_nodes_by_type(self, node_type: str) -> List[KnowledgeNode]:
        return [node for node in self.nodes if node.type == node_type]

    def get_nodes_by_source(self, source: str) -> List[KnowledgeNode]:
        return [node for node in self.nodes if node.source == source]

    def get_sources(self) -> List[str]:
        return sorted(set(node.source for node in self.nodes))

    def __len__(self) -> int:
        return len(self.nodes)

    def clear(self):
        """Remove every node from the store."""
        self.nodes = []
        self.node_index = {}
        self.save()
        logger.info("Cleared all knowledge nodes from store")

    def export_graph(self, filepath: str):
        """Export nodes, edges and verification history to a JSON file."""
        try:
            graph_data = {"nodes": [node.to_dict() for node in self.nodes]}
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(graph_data, f, indent=2, ensure_ascii=False)

            logger.info(f"Exported graph with {len(self.nodes)} nodes to {filepath}")

        except Exception as e:
            logger.error(f"Failed to export graph: {e}")
            raise

    def import_graph(self, filepath: str):
        """Import nodes from a JSON file written by ``export_graph``."""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                graph_data = json.load(f)

            nodes_data = graph_data.get("nodes", [])
            for node_data in nodes_data:
                self.add_node(KnowledgeNode.from_dict(node_data))

            logger.info(f"Imported {len(nodes_data)} nodes from {filepath}")

        except Exception as e:
            logger.error(f"Failed to import graph: {e}")
            raise
