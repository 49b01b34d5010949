"""Map driver column and row representations to the external result shape.

All scalar values leave this module as text or ``None``. ``None`` stays
distinct from the empty string all the way to the serialized JSON.
"""

import datetime
import json
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel

from dbscope.db.types import type_name
from dbscope.drivers import ColumnInfo
from dbscope.models import (
    ColumnDescriptor,
    QueryColumn,
    QueryResult,
    Row,
    TableListing,
    TableMetadata,
)


def render_value(value: Any) -> str | None:
    """Render one driver value as text."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, (datetime.date, datetime.time)):
        # Covers datetime.datetime too
        return value.isoformat()
    return str(value)


def render_rows(rows: Iterable[Sequence[Any]] | None) -> list[Row]:
    if not rows:
        return []
    return [[render_value(v) for v in row] for row in rows]


def describe_column(column: ColumnInfo) -> ColumnDescriptor:
    """Full descriptor. A zero ``null_flag`` means the column is nullable."""
    return ColumnDescriptor(
        name=column.name,
        display_name=column.display_name,
        type_code=column.type_code,
        type_name=type_name(column.type_code),
        unique=bool(column.unique),
        nullable=column.null_flag == 0,
        precision=column.precision,
        scale=column.scale,
    )


def describe_query_column(column: ColumnInfo) -> QueryColumn:
    return QueryColumn(
        name=column.name,
        display_name=column.display_name,
        type_code=column.type_code,
    )


def format_table_listing(database: str, tables: list[str], views: list[str]) -> TableListing:
    return TableListing(
        database=database,
        tables=list(tables),
        views=list(views),
        total_count=len(tables) + len(views),
    )


def format_table_metadata(
    table: str,
    schema: Sequence[ColumnInfo],
    samples: Iterable[Sequence[Any]] | None,
) -> TableMetadata:
    return TableMetadata(
        table=table,
        columns=[describe_column(c) for c in schema],
        sample_data=render_rows(samples),
    )


def format_query_result(
    description: Sequence[ColumnInfo] | None,
    rows: Iterable[Sequence[Any]] | None,
) -> QueryResult:
    rendered = render_rows(rows)
    return QueryResult(
        columns=[describe_query_column(c) for c in description or []],
        rows=rendered,
        row_count=len(rendered),
    )


def to_payload(model: BaseModel) -> dict[str, Any]:
    """Dump a result model with its external field names."""
    return model.model_dump(by_alias=True)


def to_json(model: BaseModel) -> str:
    """Serialize a result model.

    ``json.dumps`` escapes quotes, backslashes and control characters;
    non-ASCII text (e.g. Japanese table names) is kept readable.
    """
    return json.dumps(to_payload(model), indent=2, ensure_ascii=False)
