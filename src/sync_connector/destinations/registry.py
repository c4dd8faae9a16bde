"""Explicit registry of the objects and fields a destination exposes."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..config.loader import ConfigLoader
from ..config.schema import RegistryConfig
from ..protocol.errors import UnknownObjectError
from ..protocol.models import ObjectField, SyncObject


@dataclass
class ObjectDefinition:
    """Static description of one destination object."""

    object_api_name: str
    label: str
    fields: List[ObjectField]
    can_create_fields: Optional[str] = None
    # Fields that may identify an existing record besides the active identifier
    lookup_fields: List[str] = field(default_factory=list)

    @property
    def field_names(self) -> List[str]:
        return [f.field_api_name for f in self.fields]

    def is_custom_field(self, field_api_name: str) -> bool:
        """True if the field is not one of the object's well-known fields."""
        return field_api_name not in self.field_names

    def to_object(self) -> SyncObject:
        return SyncObject(
            object_api_name=self.object_api_name,
            label=self.label,
            can_create_fields=self.can_create_fields
        )


class ObjectRegistry:
    """Lookup of object definitions by ``object_api_name``."""

    def __init__(self, definitions: Iterable[ObjectDefinition] = ()):
        self._definitions: Dict[str, ObjectDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: ObjectDefinition):
        self._definitions[definition.object_api_name] = definition

    def get(self, object_api_name: str) -> ObjectDefinition:
        """Return a definition or raise UnknownObjectError."""
        try:
            return self._definitions[object_api_name]
        except KeyError:
            raise UnknownObjectError(object_api_name) from None

    def objects(self) -> List[SyncObject]:
        return [d.to_object() for d in self._definitions.values()]

    def __contains__(self, object_api_name: str) -> bool:
        return object_api_name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    @classmethod
    def from_config(cls, config: RegistryConfig) -> "ObjectRegistry":
        return cls(
            ObjectDefinition(
                object_api_name=name,
                label=obj.label,
                fields=list(obj.fields),
                can_create_fields=obj.can_create_fields,
                lookup_fields=list(obj.lookup_fields)
            )
            for name, obj in config.objects.items()
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Dict[str, Any]]) -> "ObjectRegistry":
        """Build a registry from a mapping of object_api_name to object config."""
        return cls.from_config(ConfigLoader().load_from_dict({"objects": data}))

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> "ObjectRegistry":
        """Load a registry from a JSON or YAML file."""
        return cls.from_config(ConfigLoader().load_from_file(file_path))


MINIMAL_REGISTRY_DATA: Dict[str, Dict[str, Any]] = {
    "customer": {
        "label": "Customers",
        "fields": [
            {
                "field_api_name": "email",
                "label": "Email",
                "identifier": True,
                "required": True,
                "type": "string",
            },
            {
                "field_api_name": "name",
                "label": "Name",
                "required": True,
                "type": "string",
            },
        ],
    },
    "event": {
        "label": "Events",
        "can_create_fields": "on_write",
        "fields": [
            {
                "field_api_name": "event_id",
                "label": "Event ID",
                "identifier": True,
                "required": True,
                "type": "string",
            },
            {
                "field_api_name": "name",
                "label": "Name",
                "type": "string",
            },
            {
                "field_api_name": "occurred_at",
                "label": "Occurred At",
                "type": "date_time",
            },
        ],
    },
}


CANNY_REGISTRY_DATA: Dict[str, Dict[str, Any]] = {
    "user": {
        "label": "Users",
        "can_create_fields": "on_write",
        "lookup_fields": ["email"],
        "fields": [
            {
                "field_api_name": "userID",
                "label": "User ID",
                "identifier": True,
                "updateable": False,
                "required": True,
                "type": "string",
            },
            {
                "field_api_name": "name",
                "label": "Name",
                "required": True,
                "type": "string",
            },
            {
                "field_api_name": "avatarURL",
                "label": "Avatar URL",
                "type": "string",
            },
            {
                "field_api_name": "created",
                "label": "Created Date",
                "type": "date_time",
            },
            {
                "field_api_name": "email",
                "label": "Email",
                "type": "string",
            },
        ],
    },
}
