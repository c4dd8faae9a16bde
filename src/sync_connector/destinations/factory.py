"""Destination factory for creating the configured backend."""

from enum import Enum
from typing import Dict, List, Optional, Type

from ..config.settings import AppSettings, get_settings
from .base import BaseDestination
from .canny import CannyDestination
from .memory import MemoryDestination
from .registry import ObjectRegistry
from .sql import SQLDestination


class DestinationKind(str, Enum):
    """Supported destination backends."""
    MEMORY = "memory"
    CANNY = "canny"
    SQL = "sql"


class DestinationFactory:
    """Factory for creating destination instances."""

    _destination_classes: Dict[DestinationKind, Type[BaseDestination]] = {
        DestinationKind.MEMORY: MemoryDestination,
        DestinationKind.CANNY: CannyDestination,
        DestinationKind.SQL: SQLDestination,
    }

    @classmethod
    def create_destination(
        cls,
        kind: Optional[str] = None,
        settings: Optional[AppSettings] = None,
        **kwargs
    ) -> BaseDestination:
        """Create a destination instance.

        Args:
            kind: Destination kind; defaults to the configured one
            settings: Settings to read credentials from
            **kwargs: Extra constructor arguments

        Returns:
            Configured destination instance

        Raises:
            ValueError: If the destination kind is not supported
        """
        settings = settings or get_settings()
        kind_value = kind or settings.destination.kind

        try:
            destination_kind = DestinationKind(kind_value)
        except ValueError:
            raise ValueError(f"Unsupported destination kind: {kind_value}") from None

        destination_class = cls._destination_classes[destination_kind]

        if destination_kind in (DestinationKind.MEMORY, DestinationKind.CANNY):
            if settings.destination.registry_path and "registry" not in kwargs:
                kwargs["registry"] = ObjectRegistry.from_file(settings.destination.registry_path)

        if destination_kind == DestinationKind.CANNY:
            kwargs.setdefault("base_url", settings.canny.base_url)
            kwargs.setdefault("request_timeout_seconds", settings.canny.request_timeout_seconds)
        elif destination_kind == DestinationKind.SQL:
            kwargs.setdefault("database_url", settings.database.url)

        return destination_class(**kwargs)

    @classmethod
    def get_supported_kinds(cls) -> List[DestinationKind]:
        """Get list of supported destination kinds."""
        return list(cls._destination_classes.keys())
