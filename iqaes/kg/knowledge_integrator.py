"""
Knowledge Integrator for building a verified knowledge graph from
knowledge nodes gathered from several sources.
"""

import asyncio
import logging
from typing import Dict, Any, List, Optional, Callable, Awaitable

import networkx as nx

from ..errors import NotFoundError
from .models import KnowledgeNode, VerificationOutcome, VerificationResult
from .node_store import NodeStore
from .verification import VerificationMethod, build_default_methods

logger = logging.getLogger(__name__)

REVERSE_RELATIONSHIP_TYPES = {
    "contains": "contained_in",
    "contains_part": "part_of",
    "causes": "caused_by",
    "precedes": "follows",
    "parent_of": "child_of",
    "implies": "implied_by",
    "supports": "supported_by",
    "contradicts": "contradicted_by"
}

VERIFIED_SCORE_THRESHOLD = 0.7


def get_reverse_relationship_type(relationship_type: str) -> str:
    return REVERSE_RELATIONSHIP_TYPES.get(relationship_type, f"{relationship_type}_by")


class KnowledgeIntegrator:
    """Knowledge graph of verifiable nodes with rolling confidence scores."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        node_store: Optional[NodeStore] = None,
        verification_methods: Optional[List[VerificationMethod]] = None
    ):
        self.config = config or {}
        self.max_path_depth = self.config.get("max_path_depth", 3)
        self.max_paths = self.config.get("max_paths", 5)

        if node_store is None:
            node_store = NodeStore(self.config.get("storage_path"))
        self.node_store = node_store

        if verification_methods is None:
            verification_methods = build_default_methods(self.config)
        self.verification_methods = list(verification_methods)

        logger.info(
            f"Knowledge integrator ready with {len(self.node_store)} nodes and "
            f"{len(self.verification_methods)} verification methods"
        )

    async def add_node(self, node: KnowledgeNode, verify: bool = True) -> KnowledgeNode:
        """
        Add a knowledge node to the graph.

        Args:
            node: The node to add
            verify: Whether to verify the node immediately

        Returns:
            The added node
        """
        self.node_store.add_node(node)
        logger.info(f"Added {node.type} node '{node.name}' from {node.source} ({node.id})")

        if verify:
            await self.verify_node(node.id)

        return node

    async def create_node(
        self,
        type: str,
        name: str,
        source: str,
        attributes: Optional[Dict[str, Any]] = None,
        verify: bool = True
    ) -> KnowledgeNode:
        """Create a node and add it to the graph."""
        node = KnowledgeNode(type=type, name=name, source=source, attributes=attributes or {})
        return await self.add_node(node, verify)

    def create_relationship(
        self,
        source_id: str,
        target_id: str,
        type: str,
        confidence: float = 1.0,
        bidirectional: bool = False
    ) -> bool:
        """
        Create a directed relationship between two nodes.

        Args:
            source_id: ID of the source node
            target_id: ID of the target node
            type: Type of relationship
            confidence: Confidence score for the relationship
            bidirectional: Also add the reverse edge from target to source

        Returns:
            False, with nothing changed, when either node is unknown
        """
        source = self.node_store.get_node(source_id)
        target = self.node_store.get_node(target_id)

        if source is None or target is None:
            logger.warning(f"Cannot link {source_id} -> {target_id}: node not found")
            return False

        source.add_relationship(target_id, type, confidence)

        if bidirectional:
            reverse_type = get_reverse_relationship_type(type)
            target.add_relationship(source_id, reverse_type, confidence)
            logger.debug(f"Added reverse relationship {target_id} -[{reverse_type}]-> {source_id}")

        self.node_store.save()
        logger.debug(f"Added relationship {source_id} -[{type}]-> {target_id}")
        return True

    async def verify_node(self, node_id: str) -> List[VerificationOutcome]:
        """
        Run every verification method against a node.

        Methods run concurrently; their outcomes are applied to the node in
        registration order. A method that raises, or that returns something
        other than a VerificationOutcome, is logged and skipped.

        Returns:
            Outcomes of the methods that succeeded

        Raises:
            NotFoundError: If the node is unknown
        """
        node = self.node_store.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node with ID {node_id} not found", item_id=node_id)

        async def _run(method: VerificationMethod) -> Optional[VerificationOutcome]:
            try:
                outcome = await method.verify(node)
            except Exception as e:
                logger.error(f"Verification method {method.name} failed: {e}")
                return None

            if not isinstance(outcome, VerificationOutcome):
                logger.error(f"Verification method {method.name} returned {type(outcome).__name__}, expected VerificationOutcome")
                return None
            return outcome

        outcomes = await asyncio.gather(*(_run(method) for method in self.verification_methods))

        results = []
        for method, outcome in zip(self.verification_methods, outcomes):
            if outcome is None:
                continue

            node.add_verification_result(method.name, outcome.result, outcome.confidence, outcome.details)
            results.append(VerificationOutcome(
                method=method.name,
                result=outcome.result,
                confidence=outcome.confidence,
                details=outcome.details
            ))

        self.node_store.save()
        logger.info(f"Verified node {node_id}: {len(results)} results, confidence {node.confidence:.3f}")
        return results

    def register_verification_method(
        self,
        name: str,
        verify: Callable[[KnowledgeNode], Awaitable[VerificationOutcome]]
    ):
        """Append a verification method; it runs after the existing ones."""
        self.verification_methods.append(VerificationMethod(name=name, verify=verify))
        logger.info(f"Registered verification method {name}")

    def get_verification_methods(self) -> List[str]:
        return [method.name for method in self.verification_methods]

    def get_node(self, node_id: str) -> Optional[KnowledgeNode]:
        return self.node_store.get_node(node_id)

    def get_nodes_by_type(self, node_type: str) -> List[KnowledgeNode]:
        return self.node_store.get_nodes_by_type(node_type)

    def get_nodes_by_source(self, source: str) -> List[KnowledgeNode]:
        return self.node_store.get_nodes_by_source(source)

    def get_verification_history(self, node_id: str) -> List[VerificationResult]:
        node = self.node_store.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node with ID {node_id} not found", item_id=node_id)
        return list(node.verification_results)

    def search(self, query: str) -> List[KnowledgeNode]:
        """Nodes whose name, attribute keys or attribute values contain the query, ignoring case."""
        query_lower = query.lower()

        matches = []
        for node in self.node_store.get_all_nodes():
            if query_lower in node.name.lower():
                matches.append(node)
                continue

            for key, value in node.attributes.items():
                if query_lower in key.lower() or query_lower in str(value).lower():
                    matches.append(node)
                    break

        return matches

    def get_statistics(self) -> Dict[str, Any]:
        """Get statistics about nodes, sources and verification."""
        nodes = self.node_store.get_all_nodes()
        node_count = len(nodes)

        verified_count = 0
        for node in nodes:
            status = node.get_verification_status()
            if status.is_verified and status.score > VERIFIED_SCORE_THRESHOLD:
                verified_count += 1

        relationship_type_counts: Dict[str, int] = {}
        for node in nodes:
            for edge in node.relationships.values():
                relationship_type_counts[edge.type] = relationship_type_counts.get(edge.type, 0) + 1

        return {
            "node_count": node_count,
            "source_count": len(self.node_store.get_sources()),
            "verified_node_count": verified_count,
            "verification_rate": verified_count / node_count if node_count > 0 else 0.0,
            "relationship_type_counts": relationship_type_counts
        }

    def to_networkx(self) -> nx.DiGraph:
        """Build a directed graph of the current nodes and edges."""
        G = nx.DiGraph()

        for node in self.node_store.get_all_nodes():
            G.add_node(node.id, name=node.name, type=node.type, source=node.source)

        for node in self.node_store.get_all_nodes():
            for target_id, edge in node.relationships.items():
                G.add_edge(node.id, target_id, type=edge.type, confidence=edge.confidence)

        return G

    def find_paths(self, source_id: str, target_id: str, max_depth: Optional[int] = None) -> List[List[str]]:
        """Simple directed paths between two nodes, at most ``max_paths`` of them."""
        max_depth = max_depth if max_depth is not None else self.max_path_depth

        G = self.to_networkx()
        if source_id not in G or target_id not in G:
            return []

        paths = []
        for path in nx.all_simple_paths(G, source_id, target_id, cutoff=max_depth):
            paths.append(path)
            if len(paths) >= self.max_paths:
                break

        return paths

    def get_connected_nodes(self, node_id: str) -> List[KnowledgeNode]:
        """Nodes linked to ``node_id`` by an edge in either direction."""
        connected_ids = set()

        for node in self.node_store.get_all_nodes():
            if node.id == node_id:
                connected_ids.update(node.relationships.keys())
            elif node_id in node.relationships:
                connected_ids.add(node.id)

        connected_ids.discard(node_id)
        return [node for node in self.node_store.get_all_nodes() if node.id in connected_ids]

    def export_graph(self, filepath: str):
        self.node_store.export_graph(filepath)

    def import_graph(self, filepath: str):
        self.node_store.import_graph(filepath)
