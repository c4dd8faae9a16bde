"""Destination backends the connector can write to."""

from .base import BaseDestination
from .registry import (
    ObjectDefinition,
    ObjectRegistry,
    MINIMAL_REGISTRY_DATA,
    CANNY_REGISTRY_DATA
)

from .memory import MemoryDestination, MemoryStore
from .canny import CannyDestination
from .sql import SQLDestination
from .factory import DestinationFactory, DestinationKind

__all__ = [
    # Base classes and registry
    "BaseDestination",
    "ObjectDefinition",
    "ObjectRegistry",
    "MINIMAL_REGISTRY_DATA",
    "CANNY_REGISTRY_DATA",

    # Destination implementations
    "MemoryDestination",
    "MemoryStore",
    "CannyDestination",
    "SQLDestination",

    # Factory
    "DestinationFactory",
    "DestinationKind"
]
