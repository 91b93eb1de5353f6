"""Turns a drawn connection between two column handles into a foreign key.

Idle -> AwaitingRelationType on begin(); back to Idle on commit() or
cancel(). Nothing touches the schema until commit().
"""

import logging
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from . import builder
from .graph import Endpoint, Role, parse_handle_id
from .schema_model import (
    DatabaseSchema,
    ForeignKey,
    Reference,
    RelationType,
    DEFAULT_RELATION_TYPE,
)

logger = logging.getLogger(__name__)

EndpointLike = Union[Endpoint, str]


class ResolverState(str, Enum):
    IDLE = "idle"
    AWAITING_RELATION_TYPE = "awaiting_relation_type"


class PendingConnection(BaseModel):
    """A drawn connection waiting for the user to pick a relation type."""
    model_config = ConfigDict(frozen=True)

    source: Endpoint
    target: Endpoint
    relation_type: RelationType = DEFAULT_RELATION_TYPE

    def to_foreign_key(self) -> ForeignKey:
        return ForeignKey(
            column=self.source.column,
            references=Reference(table=self.target.table, column=self.target.column),
            relation_type=self.relation_type,
        )


def to_endpoint(value: EndpointLike, role: Role) -> Endpoint:
    """Accept a typed Endpoint, a (table, column) pair or a handle id."""
    if isinstance(value, str):
        return parse_handle_id(value)
    if isinstance(value, Endpoint):
        return value
    table, column = value[0], value[1]
    return Endpoint(table, column, role)


class ConnectionResolver:
    """Three-state resolver for connect gestures."""

    def __init__(self):
        self._pending: Optional[PendingConnection] = None

    @property
    def state(self) -> ResolverState:
        if self._pending is None:
            return ResolverState.IDLE
        return ResolverState.AWAITING_RELATION_TYPE

    @property
    def pending(self) -> Optional[PendingConnection]:
        return self._pending

    def begin(self, source: EndpointLike, target: EndpointLike) -> PendingConnection:
        """Record a drawn connection and wait for a relation type (default 1:n).

        A connection dragged from a target handle onto a source handle is
        flipped so the foreign key always lives on the source-role table.
        Self references are allowed. Starting a new connection replaces any
        pending one.
        """
        src = to_endpoint(source, Role.SOURCE)
        tgt = to_endpoint(target, Role.TARGET)
        if src.role == Role.TARGET and tgt.role == Role.SOURCE:
            src, tgt = tgt, src

        if self._pending is not None:
            logger.debug("Replacing pending connection %s", self._pending)
        self._pending = PendingConnection(source=src, target=tgt)
        logger.debug("Pending connection %s.%s -> %s.%s",
                     src.table, src.column, tgt.table, tgt.column)
        return self._pending

    def select_relation_type(self, relation_type: Union[RelationType, str]) -> PendingConnection:
        if self._pending is None:
            raise RuntimeError("No pending connection to choose a relation type for")
        self._pending = self._pending.model_copy(
            update={"relation_type": RelationType(relation_type)}
        )
        return self._pending

    def commit(self, schema: DatabaseSchema) -> DatabaseSchema:
        """Add the pending foreign key to its source table and return to Idle.

        An identical (column, target table, target column) key already on the
        source table makes this a no-op on data. A source table that no
        longer exists is also a no-op.
        """
        pending, self._pending = self._pending, None
        if pending is None:
            return schema

        try:
            index = schema.table_index(pending.source.table)
        except KeyError:
            logger.warning("Dropping connection from unknown table %r", pending.source.table)
            return schema

        return builder.add_foreign_key(schema, index, pending.to_foreign_key())

    def cancel(self) -> None:
        if self._pending is not None:
            logger.debug("Cancelled pending connection %s", self._pending)
        self._pending = None
