"""Maps diagram edge gestures back onto the schema."""

import logging
from typing import Optional, Tuple

from .graph import foreign_key_edge_id, parse_edge_id
from .schema_model import DatabaseSchema, ForeignKey

logger = logging.getLogger(__name__)


def find_foreign_key(schema: DatabaseSchema, edge_id: str) -> Optional[Tuple[int, int, ForeignKey]]:
    """Locate (table index, fk index, fk) for an edge id, or None.

    Each candidate foreign key on the source table has its id recomputed
    the same way build_graph computes it; the first match wins.
    """
    try:
        key = parse_edge_id(edge_id)
    except ValueError:
        logger.debug("Ignoring unparseable edge id %r", edge_id)
        return None

    for table_index, table in enumerate(schema.tables):
        if table.name != key.source_table:
            continue
        for fk_index, fk in enumerate(table.foreign_keys):
            if foreign_key_edge_id(table.name, fk) == edge_id:
                return table_index, fk_index, fk
    return None


def remove_edge(schema: DatabaseSchema, edge_id: str) -> DatabaseSchema:
    """Remove the one foreign key an edge represents.

    Zero or one foreign key is removed. Every other table is shared with the
    input schema.
    """
    found = find_foreign_key(schema, edge_id)
    if found is None:
        return schema

    table_index, fk_index, fk = found
    table = schema.tables[table_index]
    fks = [f for i, f in enumerate(table.foreign_keys) if i != fk_index]
    tables = list(schema.tables)
    tables[table_index] = table.model_copy(update={"foreign_keys": fks})
    logger.debug("Removed foreign key %s from %r", fk.key(), table.name)
    return DatabaseSchema(tables=tables)


def recolor(schema: DatabaseSchema, table_name: str, color: Optional[str]) -> DatabaseSchema:
    """Set the color of exactly one table. Unknown names leave the schema as is."""
    try:
        index = schema.table_index(table_name)
    except KeyError:
        return schema
    table = schema.tables[index]
    if table.color == color:
        return schema
    tables = list(schema.tables)
    tables[index] = table.model_copy(update={"color": color})
    return DatabaseSchema(tables=tables)
