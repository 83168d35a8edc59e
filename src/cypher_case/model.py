"""
Core Graph Model Objects

Defines the property graph that queries run against:
    - Nodes (labelled records with properties)
    - Relationships (typed, directed edges with properties)
    - Graph (root container)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about query text
        - Are plain data plus lookup helpers
        - Are fully serializable
        - Never store null-valued properties
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Node:
    """
    A graph node.

    Properties:
        id: Unique integer identifier within the graph
        labels: Node labels, e.g. ["Person"]
        properties: Property map; absent keys read as null

    Equality and hashing are by ``id`` so nodes can be used in DISTINCT
    and compared with ``=``.
    """

    id: int
    labels: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Node) and other.id == self.id

    def __hash__(self) -> int:
        return hash(("node", self.id))

    def has_label(self, label: str) -> bool:
        return label in self.labels

    def get(self, key: str) -> Any:
        return self.properties.get(key)

    def set(self, key: str, value: Any) -> None:
        """Assign a property; assigning null removes it."""
        if value is None:
            self.properties.pop(key, None)
        else:
            self.properties[key] = value


@dataclass
class Relationship:
    """
    A directed, typed relationship.

    Properties:
        id: Unique integer identifier within the graph
        type: Relationship type, e.g. "KNOWS"
        start: id of the start node
        end: id of the end node
        properties: Property map
    """

    id: int
    type: str
    start: int
    end: int
    properties: Dict[str, Any] = field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Relationship) and other.id == self.id

    def __hash__(self) -> int:
        return hash(("relationship", self.id))

    def get(self, key: str) -> Any:
        return self.properties.get(key)

    def set(self, key: str, value: Any) -> None:
        """Assign a property; assigning null removes it."""
        if value is None:
            self.properties.pop(key, None)
        else:
            self.properties[key] = value


@dataclass
class Graph:
    """
    Root container for nodes and relationships.

    INVARIANTS:
        - Node and relationship ids are unique
        - Relationship endpoints reference existing nodes
        - Iteration order is insertion order (MATCH row order depends on it)
    """

    name: str = "graph"
    nodes: List[Node] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)

    def add_node(self, labels: Optional[List[str]] = None, properties: Optional[Dict[str, Any]] = None) -> Node:
        """
        Create and append a node with the next free id.

        Null-valued entries in ``properties`` are dropped.
        """
        node_id = max((n.id for n in self.nodes), default=-1) + 1
        props = {k: v for k, v in (properties or {}).items() if v is not None}
        node = Node(id=node_id, labels=list(labels or []), properties=props)
        self.nodes.append(node)
        return node

    def add_relationship(self, start: Node, rel_type: str, end: Node,
                         properties: Optional[Dict[str, Any]] = None) -> Relationship:
        """
        Create and append a relationship ``(start)-[:rel_type]->(end)``.

        Raises:
            ValueError: If either endpoint is not part of this graph
        """
        for endpoint in (start, end):
            if self.get_node(endpoint.id) is None:
                raise ValueError(f"Node {endpoint.id} is not part of graph {self.name!r}")
        rel_id = max((r.id for r in self.relationships), default=-1) + 1
        props = {k: v for k, v in (properties or {}).items() if v is not None}
        rel = Relationship(id=rel_id, type=rel_type, start=start.id, end=end.id, properties=props)
        self.relationships.append(rel)
        return rel

    def get_node(self, node_id: int) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_with_label(self, label: Optional[str] = None) -> List[Node]:
        """Return nodes carrying ``label`` (all nodes when label is None)."""
        if label is None:
            return list(self.nodes)
        return [n for n in self.nodes if n.has_label(label)]

    def relationships_from(self, node: Node) -> List[Relationship]:
        return [r for r in self.relationships if r.start == node.id]

    def relationships_to(self, node: Node) -> List[Relationship]:
        return [r for r in self.relationships if r.end == node.id]
