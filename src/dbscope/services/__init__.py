"""Schema and query services."""

from dbscope.services.query import QueryService
from dbscope.services.schema import DEFAULT_SAMPLE_ROWS, SchemaService

__all__ = ["DEFAULT_SAMPLE_ROWS", "QueryService", "SchemaService"]
