#!/usr/bin/env python3
"""
Complete Pipeline Demo: Query text → AST → Analysis → Execution → Rendering

Shows the full workflow for every documented CASE example:
1. Parse the query text
2. Analyze its CASE expressions
3. Run it against the five-person example graph
4. Print the result table and the normalised query text
"""

from cypher_case.analyzer import analyze_query
from cypher_case.backends import RenderMode, render_query, render_table
from cypher_case.examples import DOCUMENTED_QUERIES, build_person_graph
from cypher_case.executor import execute
from cypher_case.parser import parse_query


def main():
    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: Query → AST → Analysis → Result")
    print("=" * 80)

    for doc in DOCUMENTED_QUERIES:
        print(f"\n## {doc.title}")
        print("-" * 80)

        # =====================================================================
        # STEP 1: Parse
        # =====================================================================
        query = parse_query(doc.query)
        print(render_query(query, RenderMode.PRETTY))

        # =====================================================================
        # STEP 2: Analyze
        # =====================================================================
        report = analyze_query(query)
        print(f"\n   CASE expressions: {report.total_case_expressions} "
              f"(simple {report.simple_forms}, generic {report.generic_forms})")
        for warning in report.warnings:
            print(f"   ⚠ {warning}")

        # =====================================================================
        # STEP 3: Execute on a fresh graph
        # =====================================================================
        result = execute(query, build_person_graph())
        print()
        print(render_table(result))

        matches = (
            tuple(result.columns) == doc.columns
            and tuple(result.rows) == doc.rows
            and result.stats["properties_set"] == doc.properties_set
        )
        print(f"\n   {'✓ matches' if matches else '✗ differs from'} the documented result")
        for note in doc.notes:
            print(f"   note: {note}")

    print("\n" + "=" * 80)


if __name__ == "__main__":
    main()
