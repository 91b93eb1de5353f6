"""Tests for the connection resolver state machine."""
import pytest

from schema_canvas.connections import ConnectionResolver, ResolverState
from schema_canvas.graph import Endpoint, Role, handle_id
from schema_canvas.schema_model import RelationType


def source(table, column):
    return Endpoint(table, column, Role.SOURCE)


def target(table, column):
    return Endpoint(table, column, Role.TARGET)


def test_begin_waits_for_relation_type_with_one_to_many_default():
    resolver = ConnectionResolver()
    assert resolver.state == ResolverState.IDLE

    pending = resolver.begin(source("posts", "author_id"), target("users", "id"))
    assert resolver.state == ResolverState.AWAITING_RELATION_TYPE
    assert pending.relation_type == RelationType.ONE_TO_MANY
    assert pending.source.table == "posts"
    assert pending.target.column == "id"


def test_commit_adds_foreign_key_and_returns_to_idle(sample_schema):
    resolver = ConnectionResolver()
    resolver.begin(source("users", "id"), target("posts", "user_id"))
    resolver.select_relation_type("1:1")

    schema = resolver.commit(sample_schema)

    assert resolver.state == ResolverState.IDLE
    fk = schema.tables[0].foreign_keys[0]
    assert fk.key() == ("id", "posts", "user_id")
    assert fk.relation_type == RelationType.ONE_TO_ONE
    assert schema.tables[1] is sample_schema.tables[1]
    assert sample_schema.tables[0].foreign_keys == []


def test_duplicate_commit_is_a_data_no_op(sample_schema):
    resolver = ConnectionResolver()
    resolver.begin(source("posts", "user_id"), target("users", "id"))
    resolver.select_relation_type(RelationType.MANY_TO_MANY)

    schema = resolver.commit(sample_schema)

    assert schema is sample_schema
    assert len(schema.tables[1].foreign_keys) == 1
    assert resolver.state == ResolverState.IDLE


def test_cancel_discards_pending(sample_schema):
    resolver = ConnectionResolver()
    resolver.begin(source("users", "id"), target("posts", "user_id"))
    resolver.cancel()

    assert resolver.state == ResolverState.IDLE
    assert resolver.pending is None
    assert resolver.commit(sample_schema) is sample_schema


def test_self_reference_is_allowed():
    from schema_canvas import builder
    schema = builder.add_table(None, name="employees", template="basic")
    resolver = ConnectionResolver()
    resolver.begin(source("employees", "id"), target("employees", "id"))
    schema = resolver.commit(schema)
    assert schema.tables[0].foreign_keys[0].key() == ("id", "employees", "id")


def test_handle_ids_with_hyphens_resolve_exactly(sample_schema):
    from schema_canvas import builder
    schema = builder.add_table(sample_schema, name="user-profiles", template="empty")
    resolver = ConnectionResolver()
    resolver.begin(
        handle_id(source("user-profiles", "user-id-source")),
        handle_id(target("users", "id")),
    )
    schema = resolver.commit(schema)
    assert schema.find_table("user-profiles").foreign_keys[0].key() == ("user-id-source", "users", "id")


def test_connection_drawn_backwards_is_flipped():
    resolver = ConnectionResolver()
    pending = resolver.begin(target("users", "id"), source("posts", "user_id"))
    assert pending.source == source("posts", "user_id")
    assert pending.target == target("users", "id")


def test_plain_pairs_are_accepted():
    resolver = ConnectionResolver()
    pending = resolver.begin(("posts", "user_id"), ("users", "id"))
    assert pending.source == source("posts", "user_id")
    assert pending.target == target("users", "id")


def test_relation_type_requires_pending_connection():
    with pytest.raises(RuntimeError):
        ConnectionResolver().select_relation_type("1:1")


def test_unknown_relation_type_is_rejected():
    resolver = ConnectionResolver()
    resolver.begin(source("a", "b"), target("c", "d"))
    with pytest.raises(ValueError):
        resolver.select_relation_type("many")
    assert resolver.state == ResolverState.AWAITING_RELATION_TYPE


def test_commit_from_missing_table_is_no_op(sample_schema):
    resolver = ConnectionResolver()
    resolver.begin(source("ghost", "id"), target("users", "id"))
    assert resolver.commit(sample_schema) is sample_schema
    assert resolver.state == ResolverState.IDLE
