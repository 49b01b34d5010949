"""Result models returned by the schema and query services."""

from pydantic import BaseModel, ConfigDict, Field

# A row as exposed to clients: every value is text or null
Row = list[str | None]


class ColumnDescriptor(BaseModel):
    """Full column metadata for a table."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Column name")
    display_name: str = Field(..., description="Display name (comment or column name)")
    type_code: int = Field(..., alias="type", description="Driver type code")
    type_name: str = Field(..., description="Name derived from the type code")
    unique: bool = Field(default=False, description="Column values are unique")
    nullable: bool = Field(default=True, description="Column accepts NULL")
    precision: int = Field(default=0, description="Precision or length (0 if not applicable)")
    scale: int = Field(default=0, description="Scale (0 if not applicable)")


class QueryColumn(BaseModel):
    """Reduced column metadata for raw query results."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Column name")
    display_name: str = Field(..., description="Display name")
    type_code: int = Field(..., alias="type", description="Driver type code")


class TableListing(BaseModel):
    """Tables and views of a database."""

    database: str = Field(..., description="Database name")
    tables: list[str] = Field(default_factory=list, description="Table names, native order")
    views: list[str] = Field(default_factory=list, description="View names, native order")
    total_count: int = Field(default=0, description="Number of tables plus views")


class TableMetadata(BaseModel):
    """Column metadata and sample rows for one table."""

    table: str = Field(..., description="Table name")
    columns: list[ColumnDescriptor] = Field(default_factory=list)
    sample_data: list[Row] = Field(default_factory=list, description="Sample rows")


class QueryResult(BaseModel):
    """Result of a SQL statement."""

    columns: list[QueryColumn] = Field(default_factory=list)
    rows: list[Row] = Field(default_factory=list, description="Result rows")
    row_count: int = Field(default=0, description="Number of rows")
