"""
cypher-case: CASE expressions for a Cypher-like graph query language

Parses, evaluates, renders and analyses the CASE conditional expression
in both its forms:

    simple:   CASE n.eyes WHEN 'blue' THEN 1 WHEN 'brown' THEN 2 ELSE 3 END
    generic:  CASE WHEN n.age IS NULL THEN -1 ELSE n.age - 10 END

together with the small MATCH / WHERE / WITH / SET / RETURN pipeline
needed to run them against an in-memory property graph.

Layers:
    expressions, query, model   structure only
    parser                      text -> AST
    evaluator, executor         semantics
    backends                    AST/results -> text
    analyzer                    read-only diagnostics
    serialization               dict / JSON / YAML
"""

__version__ = "0.1.0"
