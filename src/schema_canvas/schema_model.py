"""Data models for database schema specifications."""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import ParseError


class Engine(str, Enum):
    """Database engine, selects the column-type vocabulary."""
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"


class RelationType(str, Enum):
    """Cardinality tag attached to a foreign key."""
    ONE_TO_ONE = "1:1"
    ONE_TO_MANY = "1:n"
    MANY_TO_ONE = "n:1"
    MANY_TO_MANY = "n:m"


class ReferentialAction(str, Enum):
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"


DEFAULT_ENGINE = Engine.POSTGRESQL
DEFAULT_RELATION_TYPE = RelationType.ONE_TO_MANY

MYSQL_TYPES: Tuple[str, ...] = (
    "INT", "SMALLINT", "MEDIUMINT", "BIGINT", "FLOAT", "DOUBLE", "DECIMAL",
    "DATE", "DATETIME", "TIMESTAMP", "TIME", "YEAR",
    "CHAR", "VARCHAR", "BINARY", "VARBINARY",
    "TINYBLOB", "BLOB", "MEDIUMBLOB", "LONGBLOB",
    "TINYTEXT", "TEXT", "MEDIUMTEXT", "LONGTEXT",
    "ENUM", "SET",
)

POSTGRESQL_TYPES: Tuple[str, ...] = (
    "SMALLINT", "INTEGER", "BIGINT", "SERIAL", "BIGSERIAL",
    "DECIMAL", "NUMERIC", "REAL", "DOUBLE PRECISION",
    "DATE", "TIMESTAMP", "TIMESTAMPTZ", "TIME", "INTERVAL",
    "CHAR", "VARCHAR", "TEXT",
    "BOOLEAN", "JSON", "JSONB", "UUID",
)

# Types whose columns carry enumValues
ENUMERATED_TYPES = ("ENUM", "SET")

TABLE_COLORS: Tuple[Tuple[str, str], ...] = (
    ("Default", "#6366f1"),
    ("Blue", "#3b82f6"),
    ("Green", "#22c55e"),
    ("Yellow", "#eab308"),
    ("Orange", "#f97316"),
    ("Red", "#ef4444"),
    ("Pink", "#ec4899"),
    ("Purple", "#a855f7"),
    ("Cyan", "#06b6d4"),
    ("Gray", "#6b7280"),
)

DEFAULT_COLOR = TABLE_COLORS[0][1]


def column_types(engine: Optional[Engine]) -> Tuple[str, ...]:
    """Get the column-type vocabulary for an engine (postgresql when unset)."""
    if (engine or DEFAULT_ENGINE) == Engine.MYSQL:
        return MYSQL_TYPES
    return POSTGRESQL_TYPES


def default_column_type(engine: Optional[Engine]) -> str:
    """Type given to a freshly added column."""
    return "INT" if (engine or DEFAULT_ENGINE) == Engine.MYSQL else "INTEGER"


def coerce_default(value: Any) -> Optional[str]:
    """Normalize a column default to text.

    Booleans become "true"/"false" and integral numbers lose their
    fractional part, mirroring how the browser editor stringifies them.
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


class SchemaBaseModel(BaseModel):
    """Frozen, camelCase-on-the-wire base for every schema model."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Column(SchemaBaseModel):
    """Database column specification."""
    name: str
    type: str
    primary_key: bool = False
    not_null: bool = False
    unique: bool = False
    auto_increment: bool = False
    default: Optional[str] = None
    enum_values: Optional[List[str]] = None  # Only for ENUM / SET

    @field_validator("default", mode="before")
    @classmethod
    def _stringify_default(cls, value: Any) -> Any:
        return coerce_default(value)

    @property
    def is_enumerated(self) -> bool:
        return self.type.upper() in ENUMERATED_TYPES


class Reference(SchemaBaseModel):
    """Target of a foreign key."""
    table: str
    column: str


class ForeignKey(SchemaBaseModel):
    """Foreign key specification. Targets are not validated for existence."""
    column: str
    references: Reference
    relation_type: Optional[RelationType] = None
    on_delete: Optional[ReferentialAction] = None
    on_update: Optional[ReferentialAction] = None

    @property
    def effective_relation_type(self) -> RelationType:
        return self.relation_type or DEFAULT_RELATION_TYPE

    def key(self) -> Tuple[str, str, str]:
        """Identity used for deduplication: (column, target table, target column)."""
        return (self.column, self.references.table, self.references.column)


class Table(SchemaBaseModel):
    """Database table specification."""
    name: str
    columns: List[Column] = Field(default_factory=list)
    foreign_keys: List[ForeignKey] = Field(default_factory=list)
    engine: Optional[Engine] = None
    color: Optional[str] = None

    @property
    def effective_engine(self) -> Engine:
        return self.engine or DEFAULT_ENGINE

    def find_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def has_foreign_key(self, key: Tuple[str, str, str]) -> bool:
        return any(fk.key() == key for fk in self.foreign_keys)


class DatabaseSchema(SchemaBaseModel):
    """Complete database schema. Replaced wholesale on every edit, never mutated."""
    tables: List[Table] = Field(default_factory=list)

    def get_table_names(self) -> List[str]:
        """Get list of all table names."""
        return [table.name for table in self.tables]

    def find_table(self, name: str) -> Optional[Table]:
        """Find a table by name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def table_index(self, name: str) -> int:
        """Index of the first table called `name`, KeyError if absent."""
        for index, table in enumerate(self.tables):
            if table.name == name:
                return index
        raise KeyError(name)

    @property
    def is_empty(self) -> bool:
        return not self.tables

    def to_wire(self) -> Dict[str, Any]:
        """Nested dict keyed exactly as the transport document."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def canonical(self) -> str:
        """Stable compact serialization used for change detection."""
        return json.dumps(self.to_wire(), sort_keys=True, separators=(",", ":"))

    def to_json_text(self, indent: int = 2) -> str:
        return json.dumps(self.to_wire(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_wire(cls, data: Any) -> "DatabaseSchema":
        """Validate a decoded transport document. Raises ParseError."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ParseError("Schema must be a JSON object with a 'tables' array")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"Invalid schema: {e.error_count()} validation error(s)\n{e}") from e

    @classmethod
    def from_json_text(cls, text: str) -> "DatabaseSchema":
        """Parse the raw JSON view. Raises ParseError on malformed input."""
        if not text or not text.strip():
            raise ParseError("Schema text is empty")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}") from e
        if data is None:
            raise ParseError("Schema must be a JSON object with a 'tables' array")
        return cls.from_wire(data)


class SchemaIssue(SchemaBaseModel):
    """Advisory consistency finding. Never blocks editing or rendering."""
    kind: str
    table: str
    message: str


def find_issues(schema: Optional[DatabaseSchema]) -> List[SchemaIssue]:
    """Report referential and vocabulary problems without rejecting anything."""
    if schema is None:
        return []

    issues: List[SchemaIssue] = []
    seen_tables = set()
    for table in schema.tables:
        if table.name in seen_tables:
            issues.append(SchemaIssue(
                kind="duplicate_table", table=table.name,
                message=f"Table name '{table.name}' is used more than once",
            ))
        seen_tables.add(table.name)

        seen_columns = set()
        vocabulary = column_types(table.engine)
        for column in table.columns:
            if column.name in seen_columns:
                issues.append(SchemaIssue(
                    kind="duplicate_column", table=table.name,
                    message=f"Column '{column.name}' is defined more than once",
                ))
            seen_columns.add(column.name)
            if column.type not in vocabulary:
                issues.append(SchemaIssue(
                    kind="unknown_type", table=table.name,
                    message=f"Column '{column.name}' has type '{column.type}' "
                            f"not available for {table.effective_engine.value}",
                ))

        for fk in table.foreign_keys:
            if table.find_column(fk.column) is None:
                issues.append(SchemaIssue(
                    kind="missing_fk_column", table=table.name,
                    message=f"Foreign key column '{fk.column}' does not exist",
                ))
            target = schema.find_table(fk.references.table)
            if target is None:
                issues.append(SchemaIssue(
                    kind="missing_target_table", table=table.name,
                    message=f"Foreign key '{fk.column}' references missing table "
                            f"'{fk.references.table}'",
                ))
            elif target.find_column(fk.references.column) is None:
                issues.append(SchemaIssue(
                    kind="missing_target_column", table=table.name,
                    message=f"Foreign key '{fk.column}' references missing column "
                            f"'{fk.references.table}.{fk.references.column}'",
                ))

    return issues
