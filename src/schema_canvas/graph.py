"""Projection of a DatabaseSchema into diagram nodes and edges.

Node ids are table names. Column endpoints ("handles") and edges get text
ids that encode typed tuples: each name component is percent-encoded so the
':' separator can never occur inside a component, which makes
parse_handle_id / parse_edge_id exact inverses of handle_id / edge_id no
matter what characters table or column names contain.
"""

from enum import Enum
from typing import List, NamedTuple, Optional
from urllib.parse import quote, unquote

from .positions import Position, PositionCache, resolve
from .schema_model import (
    DatabaseSchema,
    Engine,
    ForeignKey,
    RelationType,
    SchemaBaseModel,
    DEFAULT_COLOR,
)

HANDLE_PREFIX = "h"
EDGE_PREFIX = "fk"
SEPARATOR = ":"


class Role(str, Enum):
    """Which end of a connection a column handle represents."""
    SOURCE = "source"
    TARGET = "target"


class Endpoint(NamedTuple):
    """A connectable column: (table, column, role)."""
    table: str
    column: str
    role: Role


class EdgeKey(NamedTuple):
    """Identity of one foreign-key edge."""
    source_table: str
    column: str
    target_table: str
    target_column: str


def _encode(component: str) -> str:
    return quote(component, safe="")


def _split(value: str, prefix: str, parts: int) -> List[str]:
    if not isinstance(value, str):
        raise ValueError(f"Expected a string id, got {type(value).__name__}")
    pieces = value.split(SEPARATOR)
    if len(pieces) != parts + 1 or pieces[0] != prefix:
        raise ValueError(f"Malformed id: {value!r}")
    return [unquote(piece) for piece in pieces[1:]]


def handle_id(endpoint: Endpoint) -> str:
    """Text id of a column handle."""
    role = Role(endpoint.role)
    return SEPARATOR.join((HANDLE_PREFIX, _encode(endpoint.table), _encode(endpoint.column), role.value))


def parse_handle_id(value: str) -> Endpoint:
    """Inverse of handle_id. Raises ValueError on anything it did not produce."""
    table, column, role = _split(value, HANDLE_PREFIX, 3)
    try:
        return Endpoint(table, column, Role(role))
    except ValueError:
        raise ValueError(f"Malformed handle id (role {role!r}): {value!r}")


def edge_id(source_table: str, column: str, target_table: str, target_column: str) -> str:
    """Deterministic edge id for one foreign key."""
    return SEPARATOR.join((
        EDGE_PREFIX,
        _encode(source_table),
        _encode(column),
        _encode(target_table),
        _encode(target_column),
    ))


def foreign_key_edge_id(table_name: str, fk: ForeignKey) -> str:
    return edge_id(table_name, fk.column, fk.references.table, fk.references.column)


def parse_edge_id(value: str) -> EdgeKey:
    """Inverse of edge_id. Raises ValueError on anything it did not produce."""
    return EdgeKey(*_split(value, EDGE_PREFIX, 4))


class NodeColumn(SchemaBaseModel):
    """Display-only copy of a column, with its two connection handles."""
    name: str
    type: str
    primary_key: bool = False
    source_handle: str
    target_handle: str


class GraphNode(SchemaBaseModel):
    id: str
    position: Position
    columns: List[NodeColumn]
    color: str = DEFAULT_COLOR
    engine: Engine
    draggable: bool = True


class GraphEdge(SchemaBaseModel):
    id: str
    source: str
    target: str
    source_handle: str
    target_handle: str
    label: str
    relation_type: RelationType
    color: str = DEFAULT_COLOR
    dangling: bool = False  # target table does not exist
    animated: bool = True


class GraphProjection(SchemaBaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]


def build_graph(schema: Optional[DatabaseSchema], positions: Optional[PositionCache] = None,
                draggable: bool = True) -> GraphProjection:
    """Project a schema into nodes (table order) and edges (one per foreign key).

    Pure and idempotent: the same schema and cache give an equal projection.
    A null or empty schema yields an empty projection. Foreign keys pointing
    at tables that do not exist still produce an edge, flagged dangling.
    """
    if schema is None:
        return GraphProjection(nodes=[], edges=[])

    table_names = set(schema.get_table_names())
    nodes: List[GraphNode] = []
    edges: List[GraphEdge] = []

    for index, table in enumerate(schema.tables):
        color = table.color or DEFAULT_COLOR
        nodes.append(GraphNode(
            id=table.name,
            position=resolve(table.name, index, positions),
            columns=[
                NodeColumn(
                    name=col.name,
                    type=col.type,
                    primary_key=col.primary_key,
                    source_handle=handle_id(Endpoint(table.name, col.name, Role.SOURCE)),
                    target_handle=handle_id(Endpoint(table.name, col.name, Role.TARGET)),
                )
                for col in table.columns
            ],
            color=color,
            engine=table.effective_engine,
            draggable=draggable,
        ))

        for fk in table.foreign_keys:
            target = fk.references
            edges.append(GraphEdge(
                id=foreign_key_edge_id(table.name, fk),
                source=table.name,
                target=target.table,
                source_handle=handle_id(Endpoint(table.name, fk.column, Role.SOURCE)),
                target_handle=handle_id(Endpoint(target.table, target.column, Role.TARGET)),
                label=f"{fk.column} → {target.column}",
                relation_type=fk.effective_relation_type,
                color=color,
                dangling=target.table not in table_names,
            ))

    return GraphProjection(nodes=nodes, edges=edges)
