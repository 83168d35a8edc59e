"""Backends for cypher-case output generation (query text, result tables)."""

from .cypher_renderer import RenderMode, render_expression, render_query, save_query_file
from .table_renderer import format_value, render_table

__all__ = [
    "RenderMode",
    "render_expression",
    "render_query",
    "save_query_file",
    "render_table",
    "format_value",
]
