"""End-to-end tests for the editing session."""
import pytest

from schema_canvas import builder
from schema_canvas.auth import SessionContext
from schema_canvas.autosave import SaveStatus
from schema_canvas.editor import EditorSession
from schema_canvas.errors import NotFound
from schema_canvas.graph import Endpoint, Role, handle_id
from schema_canvas.positions import Position
from schema_canvas.store import SchemaRecord

from conftest import run


@pytest.fixture
def editor(store, owner_session, scheduler):
    return EditorSession(store, owner_session, debounce=3, scheduler=scheduler)


def test_drag_survives_unrelated_edit(editor, sample_schema):
    editor.apply(sample_schema)
    editor.handlers().on_node_drag("posts", 420, 69)

    editor.rename_table("users", "accounts")

    graph = editor.graph()
    posts = next(node for node in graph.nodes if node.id == "posts")
    assert posts.position == Position(x=420, y=69)


def test_rename_carries_position_and_cascades(editor, sample_schema):
    editor.apply(sample_schema)
    editor.handlers().on_node_drag("users", 10, 20)

    editor.rename_table("users", "accounts")

    accounts = editor.graph().nodes[0]
    assert accounts.id == "accounts"
    assert accounts.position == Position(x=10, y=20)
    assert editor.graph().edges[0].target == "accounts"


def test_rename_onto_existing_table_changes_nothing(editor, sample_schema):
    editor.apply(sample_schema)
    handlers = editor.handlers()
    handlers.on_node_drag("users", 10, 20)
    handlers.on_node_drag("posts", 400, 500)

    with pytest.raises(ValueError):
        editor.rename_table("users", "posts")

    assert editor.schema is sample_schema
    assert [node.position for node in editor.graph().nodes] == [
        Position(x=10, y=20), Position(x=400, y=500),
    ]


def test_connect_gesture_round_trip(editor, sample_schema):
    editor.apply(sample_schema)
    handlers = editor.handlers()

    handlers.on_connect(
        handle_id(Endpoint("users", "id", Role.SOURCE)),
        handle_id(Endpoint("posts", "user_id", Role.TARGET)),
    )
    handlers.on_relation_type_selected("1:1")
    handlers.on_connect_confirm()

    assert [e.source for e in editor.graph().edges] == ["users", "posts"]
    assert editor.status == SaveStatus.UNSAVED


def test_edge_click_and_recolor(editor, sample_schema):
    editor.apply(sample_schema)
    handlers = editor.handlers()
    edge = editor.graph().edges[0]

    handlers.on_edge_activate(edge.id)
    handlers.on_recolor("users", "#22c55e")

    assert editor.graph().edges == []
    assert editor.schema.tables[0].color == "#22c55e"


def test_view_access_blocks_every_gesture(store, scheduler, sample_schema):
    async def scenario():
        store.records["tok"] = SchemaRecord(identity=9, name="Shared", data=sample_schema,
                                            access_level="view")
        editor = EditorSession(store, SessionContext(), debounce=3, scheduler=scheduler)
        await editor.load(share_token="tok")
        before = editor.schema

        handlers = editor.handlers()
        assert handlers.on_connect is None
        assert handlers.on_edge_activate is None
        assert handlers.on_recolor is None
        handlers.on_node_drag("users", 5, 5)

        assert editor.apply(builder.delete_table(before, 0)) is False
        assert editor.set_json_text('{"tables": []}') is False
        assert editor.rename_table("users", "people") is False
        assert await editor.import_sql("CREATE TABLE x ();", "postgres") is False

        assert editor.schema is before
        assert editor.status == SaveStatus.SAVED
        assert editor.graph().nodes[0].position == Position(x=5, y=5)
        scheduler.advance(10)
        assert store.saves == []

    run(scenario())


def test_json_view_errors_are_sticky_and_harmless(editor, sample_schema):
    editor.apply(sample_schema)

    assert editor.set_json_text("{oops") is False
    assert editor.json_error
    assert editor.schema is sample_schema

    assert editor.set_json_text(editor.json_text.replace('"posts"', '"articles"')) is True
    assert editor.json_error is None
    assert editor.schema.get_table_names() == ["users", "articles"]


def test_load_replaces_schema_and_keeps_positions(editor, store, sample_schema):
    async def scenario():
        store.records[3] = SchemaRecord(identity=3, name="Blog", data=sample_schema)
        editor.handlers().on_node_drag("users", 1, 1)

        record = await editor.load(schema_id=3)

        assert record.name == "Blog"
        assert editor.identity == 3
        assert editor.schema is sample_schema
        assert editor.status == SaveStatus.SAVED
        assert editor.graph().nodes[0].position == Position(x=1, y=1)

        with pytest.raises(NotFound):
            await editor.load(schema_id=404)
        assert editor.schema is sample_schema

    run(scenario())


def test_new_schema_autosaves_after_first_table(editor, store, scheduler):
    async def scenario():
        editor.new_schema("Shop")
        editor.apply(builder.add_table(editor.schema, template="users"))
        scheduler.advance(3)
        await editor.autosave.wait_until_idle()

        assert editor.identity == 100
        assert store.saves[0][2] == "Shop"
        assert editor.status == SaveStatus.SAVED

    run(scenario())


def test_import_and_export(editor, sample_schema):
    async def scenario():
        editor.apply(sample_schema)

        assert await editor.import_sql("select 1", "postgres") is False
        assert "CREATE TABLE" in editor.json_error
        assert editor.schema is sample_schema

        assert await editor.import_sql("CREATE TABLE imported ();", "postgres") is True
        assert editor.json_error is None
        assert editor.schema.get_table_names() == ["imported"]

        sql = await editor.export("mysql")
        assert sql.startswith("-- mysql")

    run(scenario())


def test_close_tears_down_session(editor, sample_schema, scheduler):
    async def scenario():
        editor.apply(sample_schema)
        await editor.close()
        assert not editor.context.is_authenticated
        assert scheduler.active == []

    run(scenario())
