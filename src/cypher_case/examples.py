"""
Example graph and documented queries.

Builds the five-person fixture graph used by the CASE reference page and
lists the page's example queries together with their expected result
tables. The conformance tests and the demo script run every entry of
DOCUMENTED_QUERIES against a fresh fixture graph.
"""
from dataclasses import dataclass, field
from typing import Any, List, Tuple

from cypher_case.model import Graph


def build_person_graph() -> Graph:
    graph = Graph(name="CASE examples")

    alice = graph.add_node(["Person"], {"name": "Alice", "age": 38, "eyes": "brown"})
    bob = graph.add_node(["Person"], {"name": "Bob", "age": 25, "eyes": "blue"})
    charlie = graph.add_node(["Person"], {"name": "Charlie", "age": 53, "eyes": "green"})
    # Daniel has no age: reads of n.age yield null
    daniel = graph.add_node(["Person"], {"name": "Daniel", "eyes": "brown"})
    eskil = graph.add_node(["Person"], {"name": "Eskil", "age": 41, "eyes": "blue"})

    graph.add_relationship(alice, "KNOWS", bob)
    graph.add_relationship(alice, "KNOWS", charlie)
    graph.add_relationship(bob, "KNOWS", daniel)
    graph.add_relationship(charlie, "KNOWS", daniel)
    graph.add_relationship(bob, "MARRIED", eskil)

    return graph


@dataclass(frozen=True)
class DocumentedQuery:
    """
    One example from the reference page.

    Properties:
        anchor: Section identifier the example lives under
        title: Section heading
        query: Query text as printed on the page
        columns: Expected column names
        rows: Expected rows in order
        properties_set: Expected SET counter
    """

    anchor: str
    title: str
    query: str
    columns: Tuple[str, ...]
    rows: Tuple[Tuple[Any, ...], ...]
    properties_set: int = 0
    notes: List[str] = field(default_factory=list, compare=False)


DOCUMENTED_QUERIES: Tuple[DocumentedQuery, ...] = (
    DocumentedQuery(
        anchor="case-simple",
        title="Simple CASE form: comparing an expression against multiple values",
        query="""
MATCH (n:Person)
RETURN
CASE n.eyes
  WHEN 'blue'  THEN 1
  WHEN 'brown' THEN 2
  ELSE 3
END AS result, n.eyes
""",
        columns=("result", "n.eyes"),
        rows=(
            (2, "brown"),
            (1, "blue"),
            (3, "green"),
            (2, "brown"),
            (1, "blue"),
        ),
    ),
    DocumentedQuery(
        anchor="case-generic",
        title="Generic CASE form: allowing for multiple conditionals to be expressed",
        query="""
MATCH (n:Person)
RETURN
CASE
  WHEN n.eyes = 'blue' THEN 1
  WHEN n.age < 40      THEN 2
  ELSE 3
END AS result, n.eyes, n.age
""",
        columns=("result", "n.eyes", "n.age"),
        rows=(
            (2, "brown", 38),
            (1, "blue", 25),
            (3, "green", 53),
            (3, "brown", None),
            (1, "blue", 41),
        ),
        notes=["Daniel has no age, so n.age < 40 is null and falls through to ELSE."],
    ),
    DocumentedQuery(
        anchor="case-result-in-succeeding-clause",
        title="Using the result of CASE in the succeeding clause or statement",
        query="""
MATCH (n:Person)
WITH n,
CASE n.eyes
  WHEN 'blue'  THEN 1
  WHEN 'brown' THEN 2
  ELSE 3
END AS colorCode
SET n.colorCode = colorCode
RETURN n.name, n.colorCode
""",
        columns=("n.name", "n.colorCode"),
        rows=(
            ("Alice", 2),
            ("Bob", 1),
            ("Charlie", 3),
            ("Daniel", 2),
            ("Eskil", 1),
        ),
        properties_set=5,
    ),
    DocumentedQuery(
        anchor="case-null-simple",
        title="Using CASE with null values: the simple form never matches null",
        query="""
MATCH (n:Person)
RETURN n.name,
CASE n.age
  WHEN null THEN -1
  ELSE n.age - 10
END AS age_10_years_ago
""",
        columns=("n.name", "age_10_years_ago"),
        rows=(
            ("Alice", 28),
            ("Bob", 15),
            ("Charlie", 43),
            ("Daniel", None),
            ("Eskil", 31),
        ),
        notes=["null = null is null, so the WHEN null branch is never taken."],
    ),
    DocumentedQuery(
        anchor="case-null-generic",
        title="Using CASE with null values: the generic form with IS NULL",
        query="""
MATCH (n:Person)
RETURN n.name,
CASE
  WHEN n.age IS NULL THEN -1
  ELSE n.age - 10
END AS age_10_years_ago
""",
        columns=("n.name", "age_10_years_ago"),
        rows=(
            ("Alice", 28),
            ("Bob", 15),
            ("Charlie", 43),
            ("Daniel", -1),
            ("Eskil", 31),
        ),
    ),
    DocumentedQuery(
        anchor="case-no-else",
        title="Omitting ELSE: unmatched rows yield null",
        query="""
MATCH (n:Person)
RETURN n.name,
CASE n.eyes
  WHEN 'blue' THEN 'cool'
END AS mood
""",
        columns=("n.name", "mood"),
        rows=(
            ("Alice", None),
            ("Bob", "cool"),
            ("Charlie", None),
            ("Daniel", None),
            ("Eskil", "cool"),
        ),
    ),
)


def get_documented_query(anchor: str) -> DocumentedQuery:
    """
    Look up a documented example by anchor.

    Raises:
        KeyError: If no example has that anchor
    """
    for doc in DOCUMENTED_QUERIES:
        if doc.anchor == anchor:
            return doc
    raise KeyError(anchor)
