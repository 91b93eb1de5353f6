"""Form-builder edits over a DatabaseSchema.

Every function returns a new schema and leaves its input untouched. Tables
that an edit does not touch are carried over by identity, so observers can
diff successive snapshots by reference.
"""

import logging
from typing import Any, Dict, List, Optional

from .schema_model import (
    Column,
    DatabaseSchema,
    Engine,
    ForeignKey,
    Reference,
    Table,
    DEFAULT_ENGINE,
    default_column_type,
)

logger = logging.getLogger(__name__)


TEMPLATES: Dict[str, Dict[str, Any]] = {
    "empty": {
        "name": "Empty Table",
        "columns": [],
    },
    "basic": {
        "name": "Basic Table",
        "columns": [
            {"name": "id", "type": "INTEGER", "primaryKey": True, "notNull": True, "autoIncrement": True},
            {"name": "created_at", "type": "TIMESTAMP", "notNull": True, "default": "CURRENT_TIMESTAMP"},
            {"name": "updated_at", "type": "TIMESTAMP", "notNull": True, "default": "CURRENT_TIMESTAMP"},
        ],
    },
    "users": {
        "name": "users",
        "columns": [
            {"name": "id", "type": "INTEGER", "primaryKey": True, "notNull": True, "autoIncrement": True},
            {"name": "email", "type": "VARCHAR", "notNull": True, "unique": True},
            {"name": "password", "type": "VARCHAR", "notNull": True},
            {"name": "name", "type": "VARCHAR", "notNull": True},
            {"name": "created_at", "type": "TIMESTAMP", "notNull": True, "default": "CURRENT_TIMESTAMP"},
        ],
    },
    "posts": {
        "name": "posts",
        "columns": [
            {"name": "id", "type": "INTEGER", "primaryKey": True, "notNull": True, "autoIncrement": True},
            {"name": "user_id", "type": "INTEGER", "notNull": True},
            {"name": "title", "type": "VARCHAR", "notNull": True},
            {"name": "content", "type": "TEXT"},
            {"name": "published", "type": "BOOLEAN", "default": "false"},
            {"name": "created_at", "type": "TIMESTAMP", "notNull": True, "default": "CURRENT_TIMESTAMP"},
        ],
    },
}


def _schema(schema: Optional[DatabaseSchema]) -> DatabaseSchema:
    return schema if schema is not None else DatabaseSchema()


def _with_tables(tables: List[Table]) -> DatabaseSchema:
    return DatabaseSchema(tables=tables)


def _revalidate(model, changes: Dict[str, Any]):
    """Copy a frozen model with changes, re-running field validators."""
    data = {name: getattr(model, name) for name in type(model).model_fields}
    data.update(changes)
    return type(model).model_validate(data)


def _replace_table(schema: DatabaseSchema, index: int, table: Table) -> DatabaseSchema:
    tables = list(schema.tables)
    tables[index] = table
    return _with_tables(tables)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def new_table(name: Optional[str] = None, template: str = "basic",
              engine: Engine = DEFAULT_ENGINE) -> Table:
    """Build a table from one of TEMPLATES."""
    try:
        preset = TEMPLATES[template]
    except KeyError:
        raise KeyError(f"Unknown table template: {template}")
    return Table(
        name=name or preset["name"],
        columns=[Column.model_validate(col) for col in preset["columns"]],
        foreign_keys=[],
        engine=engine,
    )


def add_table(schema: Optional[DatabaseSchema], name: Optional[str] = None,
              template: str = "basic", engine: Engine = DEFAULT_ENGINE) -> DatabaseSchema:
    """Append a table built from a template. A null schema starts empty."""
    current = _schema(schema)
    table = new_table(name, template, engine)
    logger.debug("Adding table %r from template %r", table.name, template)
    return _with_tables(list(current.tables) + [table])


def update_table(schema: DatabaseSchema, index: int, **changes: Any) -> DatabaseSchema:
    """Replace fields of the table at `index`.

    Renaming through here does not touch foreign keys elsewhere; use
    rename_table for that.
    """
    table = schema.tables[index]
    return _replace_table(schema, index, _revalidate(table, changes))


def delete_table(schema: DatabaseSchema, index: int) -> DatabaseSchema:
    tables = list(schema.tables)
    del tables[index]
    return _with_tables(tables)


def rename_table(schema: DatabaseSchema, old_name: str, new_name: str,
                 cascade: bool = True) -> DatabaseSchema:
    """Rename a table.

    With cascade, foreign keys anywhere in the schema that reference the old
    name are rewritten. Without it those references are left dangling.

    Raises KeyError for an unknown table and ValueError when `new_name` is
    already taken by another table.
    """
    index = schema.table_index(old_name)
    if old_name == new_name:
        return schema
    if schema.find_table(new_name) is not None:
        raise ValueError(f"Table {new_name!r} already exists")

    tables = []
    for i, table in enumerate(schema.tables):
        if i == index:
            table = table.model_copy(update={"name": new_name})
        if cascade and any(fk.references.table == old_name for fk in table.foreign_keys):
            table = table.model_copy(update={"foreign_keys": [
                fk.model_copy(update={"references": Reference(table=new_name, column=fk.references.column)})
                if fk.references.table == old_name else fk
                for fk in table.foreign_keys
            ]})
        tables.append(table)

    logger.debug("Renamed table %r -> %r (cascade=%s)", old_name, new_name, cascade)
    return _with_tables(tables)


def set_engine(schema: DatabaseSchema, index: int, engine: Engine) -> DatabaseSchema:
    return update_table(schema, index, engine=engine)


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------

def add_column(schema: DatabaseSchema, table_index: int,
               column: Optional[Column] = None) -> DatabaseSchema:
    """Append a column; by default a blank one typed for the table's engine."""
    table = schema.tables[table_index]
    if column is None:
        column = Column(name="", type=default_column_type(table.engine))
    return _replace_table(schema, table_index, table.model_copy(
        update={"columns": list(table.columns) + [column]}
    ))


def update_column(schema: DatabaseSchema, table_index: int, column_index: int,
                  **changes: Any) -> DatabaseSchema:
    """Replace fields of one column. Defaults are re-coerced to text."""
    table = schema.tables[table_index]
    columns = list(table.columns)
    columns[column_index] = _revalidate(columns[column_index], changes)
    return _replace_table(schema, table_index, table.model_copy(update={"columns": columns}))


def delete_column(schema: DatabaseSchema, table_index: int, column_index: int) -> DatabaseSchema:
    table = schema.tables[table_index]
    columns = list(table.columns)
    del columns[column_index]
    return _replace_table(schema, table_index, table.model_copy(update={"columns": columns}))


# ---------------------------------------------------------------------------
# Foreign keys
# ---------------------------------------------------------------------------

def with_foreign_key(table: Table, fk: ForeignKey) -> Table:
    """Return `table` with `fk` appended, or `table` itself if an identical
    (column, target table, target column) key already exists."""
    if table.has_foreign_key(fk.key()):
        return table
    return table.model_copy(update={"foreign_keys": list(table.foreign_keys) + [fk]})


def add_foreign_key(schema: DatabaseSchema, table_index: int, fk: ForeignKey) -> DatabaseSchema:
    table = schema.tables[table_index]
    updated = with_foreign_key(table, fk)
    if updated is table:
        logger.debug("Skipping duplicate foreign key %s on %r", fk.key(), table.name)
        return schema
    return _replace_table(schema, table_index, updated)


def update_foreign_key(schema: DatabaseSchema, table_index: int, fk_index: int,
                       **changes: Any) -> DatabaseSchema:
    table = schema.tables[table_index]
    fks = list(table.foreign_keys)
    fks[fk_index] = _revalidate(fks[fk_index], changes)
    return _replace_table(schema, table_index, table.model_copy(update={"foreign_keys": fks}))


def delete_foreign_key(schema: DatabaseSchema, table_index: int, fk_index: int) -> DatabaseSchema:
    table = schema.tables[table_index]
    fks = list(table.foreign_keys)
    del fks[fk_index]
    return _replace_table(schema, table_index, table.model_copy(update={"foreign_keys": fks}))
