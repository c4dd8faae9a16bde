"""Configuration schema for object registry files."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, validator

from ..protocol.models import ObjectField


class ObjectConfig(BaseModel):
    """Configuration for a single destination object."""

    label: str = Field(..., description="Human-readable object name")
    can_create_fields: Optional[str] = Field(None, description="Set to 'on_write' to accept unknown fields")
    fields: List[ObjectField] = Field(..., description="Well-known fields of the object")
    lookup_fields: List[str] = Field(default_factory=list, description="Alternate keys used to find existing records")

    @validator('fields')
    def validate_fields(cls, v):
        if not v:
            raise ValueError("An object needs at least one field")

        names = [f.field_api_name for f in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate field names: {duplicates}")

        if not any(f.identifier for f in v):
            raise ValueError("An object needs at least one identifier field")

        return v

    @validator('lookup_fields')
    def validate_lookup_fields(cls, v, values):
        fields = values.get('fields')
        if fields is None:
            return v

        known = {f.field_api_name for f in fields}
        unknown = [name for name in v if name not in known]
        if unknown:
            raise ValueError(f"Lookup fields are not declared fields: {unknown}")
        return v

    @validator('can_create_fields')
    def validate_can_create_fields(cls, v):
        if v is not None and v != "on_write":
            raise ValueError("can_create_fields must be 'on_write' when set")
        return v


class RegistryConfig(BaseModel):
    """Top-level registry file."""

    version: str = Field(default="1.0.0")
    objects: Dict[str, ObjectConfig] = Field(..., description="Objects keyed by object_api_name")

    @validator('objects')
    def validate_objects(cls, v):
        if not v:
            raise ValueError("A registry needs at least one object")
        return v
