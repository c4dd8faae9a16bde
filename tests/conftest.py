"""Shared fixtures for connector tests."""

from typing import Any, Dict, Iterable, Optional

import pytest

from sync_connector.config import settings as settings_module
from sync_connector.destinations import MemoryDestination, MemoryStore
from sync_connector.protocol.models import SyncPlan


def field_definition(name: str, identifier: bool = False, field_type: str = "string") -> Dict[str, Any]:
    return {
        "field_api_name": name,
        "label": name.title(),
        "identifier": identifier,
        "required": identifier,
        "createable": True,
        "updateable": True,
        "array": False,
        "type": field_type,
    }


def make_plan_dict(
    object_api_name: str = "customer",
    operation: str = "upsert",
    identifier: Optional[str] = "email",
    other_fields: Iterable[str] = ("name",),
    extra_identifiers: Iterable[str] = ()
) -> Dict[str, Any]:
    """Build a sync plan in its wire form."""
    schema = {}
    if identifier is not None:
        schema[identifier] = {"active_identifier": True, "field": field_definition(identifier, identifier=True)}
    for name in extra_identifiers:
        schema[name] = {"active_identifier": True, "field": field_definition(name, identifier=True)}
    for name in other_fields:
        schema[name] = {"active_identifier": False, "field": field_definition(name)}

    return {
        "object": {"object_api_name": object_api_name, "label": object_api_name.title()},
        "operation": operation,
        "schema": schema,
    }


def make_plan(**kwargs) -> SyncPlan:
    return SyncPlan.model_validate(make_plan_dict(**kwargs))


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def memory_destination(memory_store):
    return MemoryDestination(store=memory_store)


@pytest.fixture
def fresh_settings():
    """Drop the cached settings before and after a test."""
    settings_module._settings = None
    yield
    settings_module._settings = None
