"""Editing session: one schema, three views, one write path.

The form builder, the raw JSON view and the diagram all funnel their
edits through EditorSession.apply(), which swaps in the new schema
snapshot and hands it to the autosave controller. The diagram is rebuilt
from the latest snapshot on demand.
"""

import logging
from typing import Optional, Union

from . import builder, edges, positions
from .access import GraphHandlers
from .auth import SessionContext
from .autosave import AutosaveController, SaveStatus, Scheduler
from .connections import ConnectionResolver, EndpointLike, PendingConnection
from .errors import ParseError
from .graph import GraphProjection, build_graph
from .positions import PositionCache
from .schema_model import DatabaseSchema, RelationType
from .store import DEFAULT_SCHEMA_NAME, ExportFormat, ImportFormat, SchemaRecord, SchemaStore

logger = logging.getLogger(__name__)


class EditorSession:
    """Holds the schema being edited and wires every editor surface to it."""

    def __init__(
        self,
        store: SchemaStore,
        context: SessionContext,
        *,
        debounce: Optional[float] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.store = store
        self.context = context
        self.schema = DatabaseSchema()
        self.name = DEFAULT_SCHEMA_NAME
        self.positions: PositionCache = {}
        self.nodes_draggable = True
        self.json_error: Optional[str] = None
        self.resolver = ConnectionResolver()
        self.autosave = AutosaveController(
            store, context, debounce=debounce, scheduler=scheduler, name=self.name,
        )

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    @property
    def identity(self) -> Optional[int]:
        return self.autosave.identity

    @property
    def status(self) -> SaveStatus:
        return self.autosave.status

    @property
    def can_edit(self) -> bool:
        return self.context.gate.can_mutate()

    async def load(self, schema_id: Optional[int] = None,
                   share_token: Optional[str] = None) -> SchemaRecord:
        """Replace the current schema with a persisted one.

        Raises NotFound / AccessDenied from the store; the current schema is
        kept on failure.
        """
        record = await self.store.load_schema(schema_id=schema_id, share_token=share_token)
        self.context.grant(record.access_level, share_token)
        self.resolver.cancel()
        self.schema = record.data
        self.name = record.name
        self.json_error = None
        self.autosave.reset(record.data, identity=record.identity, name=record.name)
        logger.info("Loaded schema %s (%r) with %s access",
                    record.identity, record.name, record.access_level.value)
        return record

    def new_schema(self, name: str = DEFAULT_SCHEMA_NAME) -> None:
        """Start an empty, not yet persisted schema owned by the current user."""
        self.context.grant(None)
        self.resolver.cancel()
        self.schema = DatabaseSchema()
        self.name = name
        self.json_error = None
        self.autosave.reset(self.schema, identity=None, name=name)

    async def close(self) -> None:
        """Let an in-flight save finish, then tear down timers and the session."""
        self.autosave.close()
        await self.autosave.wait_until_idle()
        self.context.teardown()

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def apply(self, schema: DatabaseSchema) -> bool:
        """Adopt a new schema snapshot. No-op (False) without edit access."""
        if not self.can_edit:
            logger.debug("Ignoring edit under %s access", self.context.effective_access_level)
            return False
        if schema is self.schema:
            return True
        self.schema = schema
        self.autosave.track(schema)
        return True

    def rename_table(self, old_name: str, new_name: str, cascade: bool = True) -> bool:
        """Rename a table, carrying its diagram position along.

        A name already used by another table raises ValueError before the
        schema or the position cache is touched.
        """
        if not self.can_edit:
            return False
        updated = builder.rename_table(self.schema, old_name, new_name, cascade=cascade)
        self.positions = positions.rename(self.positions, old_name, new_name)
        return self.apply(updated)

    async def save(self) -> SaveStatus:
        """Manual save trigger."""
        return await self.autosave.flush()

    # ------------------------------------------------------------------
    # Raw JSON view
    # ------------------------------------------------------------------

    @property
    def json_text(self) -> str:
        return self.schema.to_json_text()

    def set_json_text(self, text: str) -> bool:
        """Replace the schema from edited JSON.

        Bad input sets a sticky json_error and leaves the schema alone; the
        error clears on the next successful parse.
        """
        try:
            parsed = DatabaseSchema.from_json_text(text)
        except ParseError as e:
            self.json_error = str(e)
            return False
        if not self.apply(parsed):
            return False
        self.json_error = None
        return True

    async def import_sql(self, text: str, fmt: Union[ImportFormat, str]) -> bool:
        """Replace the schema with one parsed from SQL by the import service."""
        if not self.can_edit:
            return False
        try:
            imported = await self.store.import_schema(text, fmt)
        except ParseError as e:
            self.json_error = str(e)
            return False
        self.json_error = None
        return self.apply(imported)

    async def export(self, fmt: Union[ExportFormat, str]) -> str:
        """DDL / script for the current schema. Store errors propagate."""
        return await self.store.export_schema(self.schema, fmt)

    # ------------------------------------------------------------------
    # Diagram
    # ------------------------------------------------------------------

    def graph(self) -> GraphProjection:
        return build_graph(self.schema, self.positions, draggable=self.nodes_draggable)

    def handlers(self) -> GraphHandlers:
        """Diagram callbacks for the current grant; mutators are absent under view."""
        return self.context.gate.wire(
            on_node_drag=self._drag_node,
            on_connect=self._connect,
            on_relation_type_selected=self._select_relation_type,
            on_connect_confirm=self._confirm_connection,
            on_connect_cancel=self._cancel_connection,
            on_edge_activate=self._activate_edge,
            on_recolor=self._recolor,
        )

    def _drag_node(self, table_name: str, x: float, y: float) -> None:
        self.positions = positions.move(self.positions, table_name, x, y)

    def _connect(self, source: EndpointLike, target: EndpointLike) -> PendingConnection:
        return self.resolver.begin(source, target)

    def _select_relation_type(self, relation_type: Union[RelationType, str]) -> PendingConnection:
        return self.resolver.select_relation_type(relation_type)

    def _confirm_connection(self) -> DatabaseSchema:
        self.apply(self.resolver.commit(self.schema))
        return self.schema

    def _cancel_connection(self) -> None:
        self.resolver.cancel()

    def _activate_edge(self, edge_id: str) -> DatabaseSchema:
        self.apply(edges.remove_edge(self.schema, edge_id))
        return self.schema

    def _recolor(self, table_name: str, color: Optional[str]) -> DatabaseSchema:
        self.apply(edges.recolor(self.schema, table_name, color))
        return self.schema
