"""Database package for the SQL destination."""

from .database import DatabaseManager

from .introspection import (
    list_tables,
    list_columns,
    map_column_type,
    split_object_name,
    table_exists
)

from .statements import (
    WriteStatement,
    build_statement,
    build_insert,
    build_update,
    build_upsert,
    quote_identifier,
    quote_object_name
)

__all__ = [
    # Connection management
    "DatabaseManager",

    # Introspection
    "list_tables",
    "list_columns",
    "map_column_type",
    "split_object_name",
    "table_exists",

    # Statements
    "WriteStatement",
    "build_statement",
    "build_insert",
    "build_update",
    "build_upsert",
    "quote_identifier",
    "quote_object_name"
]
