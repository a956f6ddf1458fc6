"""
Query Building

sqlglot-based SQL generation and the lazy pipeline compiler.
"""

from dbbridge.query.builder import SQLBuilder, SQLBuilderError
from dbbridge.query.pipeline import Pipeline, table

__all__ = ["SQLBuilder", "SQLBuilderError", "Pipeline", "table"]
