"""Catalog introspection for the SQL destination."""

from typing import Any, List, Optional, Set, Tuple

from sqlalchemy import inspect, types as sqltypes
from sqlalchemy.engine import Engine

from ..protocol.errors import UnknownObjectError
from ..protocol.models import FieldType, ObjectField, SyncObject


SYSTEM_SCHEMAS = {"pg_catalog", "information_schema", "pg_toast"}

# Checked in order: Float subclasses Numeric, Text/Enum subclass String
TYPE_MAP: List[Tuple[type, FieldType]] = [
    (sqltypes.Boolean, FieldType.BOOLEAN),
    (sqltypes.Integer, FieldType.INTEGER),
    (sqltypes.Float, FieldType.FLOAT),
    (sqltypes.Numeric, FieldType.DECIMAL),
    (sqltypes.DateTime, FieldType.DATE_TIME),
    (sqltypes.Date, FieldType.DATE),
    (sqltypes.String, FieldType.STRING),
]


def map_column_type(column_type: Any) -> Tuple[FieldType, bool]:
    """Map a reflected SQLAlchemy type to ``(field_type, is_array)``.

    Unmapped types are reported as strings.
    """
    is_array = isinstance(column_type, sqltypes.ARRAY)
    if is_array:
        column_type = column_type.item_type

    for sql_type, field_type in TYPE_MAP:
        if isinstance(column_type, sql_type):
            return field_type, is_array

    return FieldType.STRING, is_array


def split_object_name(object_api_name: str) -> Tuple[Optional[str], str]:
    """Split ``schema.table``; a bare table name uses the default schema."""
    if "." in object_api_name:
        schema, table = object_api_name.split(".", 1)
        return schema, table
    return None, object_api_name


def _is_system_schema(schema: str) -> bool:
    return schema in SYSTEM_SCHEMAS or schema.startswith("pg_temp") or schema.startswith("pg_toast")


def list_tables(engine: Engine) -> List[SyncObject]:
    """Every table outside the system schemas, named ``schema.table``."""
    inspector = inspect(engine)
    objects = []

    for schema in inspector.get_schema_names():
        if _is_system_schema(schema):
            continue
        for table in inspector.get_table_names(schema=schema):
            object_api_name = f"{schema}.{table}"
            objects.append(SyncObject(object_api_name=object_api_name, label=object_api_name))

    return objects


def table_exists(engine: Engine, object_api_name: str) -> bool:
    schema, table = split_object_name(object_api_name)
    return inspect(engine).has_table(table, schema=schema)


def list_columns(engine: Engine, object_api_name: str) -> List[ObjectField]:
    """Column metadata joined with primary key and unique constraints.

    Raises:
        UnknownObjectError: If the table does not exist
    """
    schema, table = split_object_name(object_api_name)
    inspector = inspect(engine)

    if not inspector.has_table(table, schema=schema):
        raise UnknownObjectError(object_api_name)

    primary_key = inspector.get_pk_constraint(table, schema=schema) or {}
    pk_columns: Set[str] = set(primary_key.get("constrained_columns") or [])

    unique_columns: Set[str] = set()
    for constraint in inspector.get_unique_constraints(table, schema=schema):
        unique_columns.update(constraint.get("column_names") or [])

    fields = []
    for column in inspector.get_columns(table, schema=schema):
        name = column["name"]
        field_type, is_array = map_column_type(column["type"])
        generated = bool(column.get("computed")) or bool(column.get("identity"))
        autoincrement = name in pk_columns and column.get("autoincrement") is True

        fields.append(ObjectField(
            field_api_name=name,
            label=name,
            identifier=name in pk_columns or name in unique_columns,
            required=not column.get("nullable", True),
            createable=not (generated or autoincrement),
            updateable=not generated,
            array=is_array,
            type=field_type
        ))

    return fields

