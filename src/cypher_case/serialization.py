"""
Serialization helpers for cypher-case objects (Graph, Query, Expression).

Provides lossless JSON/YAML round-trip via intermediate dict representation.
This module intentionally keeps serialization structure stable and explicit.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List

import yaml

from cypher_case.expressions import (
    BinaryExpression,
    BinaryOperator,
    CaseAlternative,
    CaseExpression,
    Expression,
    FunctionCall,
    ListLiteral,
    Literal,
    Parameter,
    PropertyAccess,
    UnaryExpression,
    UnaryOperator,
    VariableReference,
)
from cypher_case.model import Graph, Node, Relationship
from cypher_case.query import (
    Clause,
    Direction,
    MatchClause,
    NodePattern,
    Pattern,
    Projection,
    ProjectionItem,
    Query,
    RelationshipPattern,
    ReturnClause,
    SetClause,
    SetItem,
    SortItem,
    WithClause,
)


# =============================================================================
# EXPRESSIONS
# =============================================================================

def expr_to_dict(expr: Expression | None) -> Any:
    if expr is None:
        return None
    if isinstance(expr, BinaryExpression):
        return {
            "type": "binary",
            "operator": expr.operator.value,
            "left": expr_to_dict(expr.left),
            "right": expr_to_dict(expr.right),
        }
    if isinstance(expr, UnaryExpression):
        return {
            "type": "unary",
            "operator": expr.operator.value,
            "operand": expr_to_dict(expr.operand),
        }
    if isinstance(expr, VariableReference):
        return {"type": "var", "name": expr.name}
    if isinstance(expr, Literal):
        return {"type": "lit", "value": expr.value}
    if isinstance(expr, Parameter):
        return {"type": "param", "name": expr.name}
    if isinstance(expr, PropertyAccess):
        return {"type": "prop", "subject": expr_to_dict(expr.subject), "key": expr.key}
    if isinstance(expr, ListLiteral):
        return {"type": "list", "items": [expr_to_dict(i) for i in expr.items]}
    if isinstance(expr, FunctionCall):
        return {"type": "call", "name": expr.name, "arguments": [expr_to_dict(a) for a in expr.arguments]}
    if isinstance(expr, CaseExpression):
        return {
            "type": "case",
            "test": expr_to_dict(expr.test),
            "alternatives": [
                {"when": expr_to_dict(alt.when), "then": expr_to_dict(alt.then)}
                for alt in expr.alternatives
            ],
            "has_else": expr.default is not None,
            "default": expr_to_dict(expr.default),
        }
    raise TypeError(f"Unsupported Expression type: {type(expr)}")


def expr_from_dict(d: Any) -> Expression | None:
    if d is None:
        return None
    t = d.get("type")
    if t == "binary":
        op = BinaryOperator(d["operator"])
        return BinaryExpression(operator=op, left=expr_from_dict(d["left"]), right=expr_from_dict(d["right"]))
    if t == "unary":
        op = UnaryOperator(d["operator"])
        return UnaryExpression(operator=op, operand=expr_from_dict(d["operand"]))
    if t == "var":
        return VariableReference(d["name"])
    if t == "lit":
        return Literal(d["value"])
    if t == "param":
        return Parameter(d["name"])
    if t == "prop":
        return PropertyAccess(subject=expr_from_dict(d["subject"]), key=d["key"])
    if t == "list":
        return ListLiteral(tuple(expr_from_dict(i) for i in d.get("items", [])))
    if t == "call":
        return FunctionCall(d["name"], tuple(expr_from_dict(a) for a in d.get("arguments", [])))
    if t == "case":
        alternatives = tuple(
            CaseAlternative(when=expr_from_dict(a["when"]), then=expr_from_dict(a["then"]))
            for a in d["alternatives"]
        )
        default = None
        if d.get("has_else"):
            default = expr_from_dict(d.get("default")) or Literal(None)
        return CaseExpression(alternatives=alternatives, test=expr_from_dict(d.get("test")), default=default)
    raise TypeError(f"Unsupported expression dict type: {t}")


# =============================================================================
# QUERIES
# =============================================================================

def _node_pattern_to_dict(n: NodePattern) -> Dict[str, Any]:
    return {
        "variable": n.variable,
        "labels": list(n.labels),
        "properties": [[k, expr_to_dict(v)] for k, v in n.properties],
    }


def _node_pattern_from_dict(d: Dict[str, Any]) -> NodePattern:
    return NodePattern(
        variable=d.get("variable"),
        labels=tuple(d.get("labels", [])),
        properties=tuple((k, expr_from_dict(v)) for k, v in d.get("properties", [])),
    )


def _rel_pattern_to_dict(r: RelationshipPattern) -> Dict[str, Any]:
    return {"variable": r.variable, "types": list(r.types), "direction": r.direction.value}


def _rel_pattern_from_dict(d: Dict[str, Any]) -> RelationshipPattern:
    return RelationshipPattern(
        variable=d.get("variable"),
        types=tuple(d.get("types", [])),
        direction=Direction(d.get("direction", Direction.OUTGOING.value)),
    )


def _projection_to_dict(p: Projection) -> Dict[str, Any]:
    return {
        "items": [
            {"expression": expr_to_dict(i.expression), "alias": i.alias, "column_name": i.column_name}
            for i in p.items
        ],
        "distinct": p.distinct,
        "order_by": [{"expression": expr_to_dict(s.expression), "descending": s.descending} for s in p.order_by],
        "skip": expr_to_dict(p.skip),
        "limit": expr_to_dict(p.limit),
    }


def _projection_from_dict(d: Dict[str, Any]) -> Projection:
    return Projection(
        items=tuple(
            ProjectionItem(
                expression=expr_from_dict(i["expression"]),
                alias=i.get("alias"),
                column_name=i.get("column_name") or i.get("alias") or "",
            )
            for i in d["items"]
        ),
        distinct=d.get("distinct", False),
        order_by=tuple(
            SortItem(expression=expr_from_dict(s["expression"]), descending=s.get("descending", False))
            for s in d.get("order_by", [])
        ),
        skip=expr_from_dict(d.get("skip")),
        limit=expr_from_dict(d.get("limit")),
    )


def clause_to_dict(c: Clause) -> Dict[str, Any]:
    if isinstance(c, MatchClause):
        return {
            "clause": "match",
            "nodes": [_node_pattern_to_dict(n) for n in c.pattern.nodes],
            "relationships": [_rel_pattern_to_dict(r) for r in c.pattern.relationships],
            "where": expr_to_dict(c.where),
        }
    if isinstance(c, WithClause):
        return {"clause": "with", "projection": _projection_to_dict(c.projection), "where": expr_to_dict(c.where)}
    if isinstance(c, SetClause):
        return {
            "clause": "set",
            "items": [{"variable": i.variable, "key": i.key, "value": expr_to_dict(i.value)} for i in c.items],
        }
    if isinstance(c, ReturnClause):
        return {"clause": "return", "projection": _projection_to_dict(c.projection)}
    raise TypeError(f"Unsupported clause type: {type(c)}")


def clause_from_dict(d: Dict[str, Any]) -> Clause:
    kind = d.get("clause")
    if kind == "match":
        pattern = Pattern(
            nodes=tuple(_node_pattern_from_dict(n) for n in d["nodes"]),
            relationships=tuple(_rel_pattern_from_dict(r) for r in d.get("relationships", [])),
        )
        return MatchClause(pattern=pattern, where=expr_from_dict(d.get("where")))
    if kind == "with":
        return WithClause(projection=_projection_from_dict(d["projection"]), where=expr_from_dict(d.get("where")))
    if kind == "set":
        return SetClause(items=tuple(
            SetItem(variable=i["variable"], key=i["key"], value=expr_from_dict(i["value"])) for i in d["items"]
        ))
    if kind == "return":
        return ReturnClause(projection=_projection_from_dict(d["projection"]))
    raise TypeError(f"Unsupported clause dict type: {kind}")


def query_to_dict(q: Query) -> Dict[str, Any]:
    return {"clauses": [clause_to_dict(c) for c in q.clauses]}


def query_from_dict(d: Dict[str, Any]) -> Query:
    return Query(clauses=[clause_from_dict(c) for c in d.get("clauses", [])])


# =============================================================================
# GRAPHS
# =============================================================================

def node_to_dict(n: Node) -> Dict[str, Any]:
    return {"id": n.id, "labels": list(n.labels), "properties": dict(n.properties)}


def _require(d: Any, key: str, what: str) -> Any:
    if not isinstance(d, dict) or key not in d:
        raise ValueError(f"{what} is missing required key {key!r}: {d!r}")
    return d[key]


def node_from_dict(d: Dict[str, Any]) -> Node:
    node_id = _require(d, "id", "Node")
    props = {k: v for k, v in (d.get("properties") or {}).items() if v is not None}
    return Node(id=node_id, labels=list(d.get("labels", [])), properties=props)


def relationship_to_dict(r: Relationship) -> Dict[str, Any]:
    return {"id": r.id, "type": r.type, "start": r.start, "end": r.end, "properties": dict(r.properties)}


def relationship_from_dict(d: Dict[str, Any]) -> Relationship:
    rel_id, rel_type, start, end = (_require(d, key, "Relationship") for key in ("id", "type", "start", "end"))
    props = {k: v for k, v in (d.get("properties") or {}).items() if v is not None}
    return Relationship(id=rel_id, type=rel_type, start=start, end=end, properties=props)


def graph_to_dict(g: Graph) -> Dict[str, Any]:
    return {
        "name": g.name,
        "nodes": [node_to_dict(n) for n in g.nodes],
        "relationships": [relationship_to_dict(r) for r in g.relationships],
    }


def graph_from_dict(d: Dict[str, Any]) -> Graph:
    """
    Build a Graph from its dict form.

    Raises:
        ValueError: On missing required keys, duplicate ids or dangling
            relationship endpoints
    """
    if not isinstance(d, dict):
        raise ValueError(f"Graph must be a mapping, got {type(d).__name__}")
    g = Graph(name=d.get("name", "graph"))
    g.nodes = [node_from_dict(n) for n in d.get("nodes", [])]
    g.relationships = [relationship_from_dict(r) for r in d.get("relationships", [])]

    node_ids: List[int] = [n.id for n in g.nodes]
    if len(node_ids) != len(set(node_ids)):
        raise ValueError(f"Duplicate node ids in graph {g.name!r}")
    rel_ids = [r.id for r in g.relationships]
    if len(rel_ids) != len(set(rel_ids)):
        raise ValueError(f"Duplicate relationship ids in graph {g.name!r}")
    known = set(node_ids)
    for r in g.relationships:
        if r.start not in known or r.end not in known:
            raise ValueError(f"Relationship {r.id} references a missing node")
    return g


def graph_to_json(g: Graph) -> str:
    return json.dumps(graph_to_dict(g), sort_keys=True)


def graph_from_json(s: str) -> Graph:
    return graph_from_dict(json.loads(s))


def graph_to_yaml(g: Graph) -> str:
    return yaml.safe_dump(graph_to_dict(g), sort_keys=False)


def graph_from_yaml(s: str) -> Graph:
    return graph_from_dict(yaml.safe_load(s) or {})


def load_graph_file(path: str) -> Graph:
    """
    Load a graph from a .json, .yaml or .yml file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the extension is not recognised
    """
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()
    lowered = path.lower()
    if lowered.endswith(".json"):
        return graph_from_json(content)
    if lowered.endswith((".yaml", ".yml")):
        return graph_from_yaml(content)
    raise ValueError(f"Unrecognised graph file extension: {path}")


def query_to_json(q: Query) -> str:
    return json.dumps(query_to_dict(q), sort_keys=True)


def query_from_json(s: str) -> Query:
    return query_from_dict(json.loads(s))


def query_to_yaml(q: Query) -> str:
    return yaml.safe_dump(query_to_dict(q))


def query_from_yaml(s: str) -> Query:
    return query_from_dict(yaml.safe_load(s))
