"""Resolve which columns a sync plan writes."""

from dataclasses import dataclass
from typing import Any, List, Tuple

from ..protocol.errors import NoActiveIdentifierError
from ..protocol.models import Record, SyncPlan


@dataclass(frozen=True)
class ResolvedSchema:
    """Identifier column plus the ordered non-identifier columns."""

    identifier_column: str
    other_columns: Tuple[str, ...]

    @property
    def all_columns(self) -> List[str]:
        """Identifier first, then the other columns in schema order."""
        return [self.identifier_column, *self.other_columns]

    def identifier_of(self, record: Record) -> Any:
        return record.get(self.identifier_column)


def resolve(sync_plan: SyncPlan) -> ResolvedSchema:
    """Split a sync plan's schema into identifier and other columns.

    Raises:
        NoActiveIdentifierError: If zero or more than one entry is marked
            as the active identifier.
    """
    active: List[str] = []
    others: List[str] = []

    for entry in sync_plan.schema_.values():
        if entry.active_identifier:
            active.append(entry.field.field_api_name)
        else:
            others.append(entry.field.field_api_name)

    if len(active) != 1:
        raise NoActiveIdentifierError(active)

    return ResolvedSchema(identifier_column=active[0], other_columns=tuple(others))
