"""Parameterised write statements compiled from a resolved schema.

A statement is compiled once per batch and executed once per record, each
record supplying one parameter set.
"""

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.sql.elements import TextClause

from ..protocol.models import Operation, Record


def quote_identifier(name: str) -> str:
    """Quote a single SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def quote_object_name(object_api_name: str) -> str:
    """Quote a possibly schema-qualified name such as ``public.customers``."""
    return ".".join(quote_identifier(part) for part in object_api_name.split("."))


@dataclass(frozen=True)
class WriteStatement:
    """A compiled statement and the record columns that feed its parameters."""

    operation: Operation
    sql: str
    columns: Tuple[str, ...]

    @property
    def clause(self) -> TextClause:
        return text(self.sql)

    def params_for(self, record: Record) -> Dict[str, Any]:
        """Bind parameters for one record; absent fields bind as NULL."""
        return {f"p{index}": record.get(column) for index, column in enumerate(self.columns)}


def _placeholders(count: int) -> str:
    return ",".join(f":p{index}" for index in range(count))


def build_insert(object_api_name: str, identifier_column: str, other_columns: Sequence[str]) -> WriteStatement:
    columns = (identifier_column, *other_columns)
    sql = (
        f"insert into {quote_object_name(object_api_name)} "
        f"({','.join(quote_identifier(c) for c in columns)}) "
        f"values ({_placeholders(len(columns))})"
    )
    return WriteStatement(Operation.INSERT, sql, columns)


def build_upsert(object_api_name: str, identifier_column: str, other_columns: Sequence[str]) -> WriteStatement:
    """Insert that updates the other columns when the identifier already exists.

    The target table needs a uniqueness constraint on the identifier column.
    """
    insert = build_insert(object_api_name, identifier_column, other_columns)
    conflict_target = quote_identifier(identifier_column)

    if other_columns:
        assignments = ",".join(
            f"{quote_identifier(c)}=excluded.{quote_identifier(c)}" for c in other_columns
        )
        sql = f"{insert.sql} on conflict ({conflict_target}) do update set {assignments}"
    else:
        sql = f"{insert.sql} on conflict ({conflict_target}) do nothing"

    return WriteStatement(Operation.UPSERT, sql, insert.columns)


def build_update(object_api_name: str, identifier_column: str, other_columns: Sequence[str]) -> WriteStatement:
    """Update keyed by the identifier; zero affected rows means no such record."""
    columns = (identifier_column, *other_columns)
    if other_columns:
        assignments = ",".join(
            f"{quote_identifier(c)}=:p{index}" for index, c in enumerate(other_columns, start=1)
        )
    else:
        # Nothing to change; still touch the row so rowcount reports existence
        assignments = f"{quote_identifier(identifier_column)}=:p0"

    sql = (
        f"update {quote_object_name(object_api_name)} set {assignments} "
        f"where {quote_identifier(identifier_column)}=:p0"
    )
    return WriteStatement(Operation.UPDATE, sql, columns)


def build_statement(
    operation: Operation,
    object_api_name: str,
    identifier_column: str,
    other_columns: Sequence[str]
) -> WriteStatement:
    if operation == Operation.INSERT:
        return build_insert(object_api_name, identifier_column, other_columns)
    elif operation == Operation.UPDATE:
        return build_update(object_api_name, identifier_column, other_columns)
    elif operation == Operation.UPSERT:
        return build_upsert(object_api_name, identifier_column, other_columns)
    raise ValueError(f"Unsupported operation: {operation}")
