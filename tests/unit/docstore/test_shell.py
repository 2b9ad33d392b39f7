"""Unit tests — Shell invocation parsing (db.<collection>.<method>(...))."""

from __future__ import annotations

import pytest

from dbbridge.docstore.shell import parse_shell


@pytest.mark.unit
class TestShellForms:
    def test_direct_collection_form(self) -> None:
        inv = parse_shell("db.users.find({age: {$gt: 21}})")
        assert inv is not None
        assert inv.collection_name == "users"
        assert inv.method == "find"
        assert inv.primary_args == [{"age": {"$gt": 21}}, {}]

    def test_get_collection_form(self) -> None:
        inv = parse_shell("db.getCollection('order-items').findOne({sku: 'A1'})")
        assert inv is not None
        assert inv.collection_name == "order-items"
        assert inv.method == "findOne"
        assert inv.primary_args == [{"sku": "A1"}]

    def test_database_level_run_command(self) -> None:
        inv = parse_shell("db.runCommand({ping: 1})")
        assert inv is not None
        assert inv.collection_name is None
        assert inv.method == "runCommand"
        assert inv.primary_args == [{"ping": 1}]

    def test_trailing_semicolon_ignored(self) -> None:
        inv = parse_shell("db.users.countDocuments({});  ")
        assert inv is not None
        assert inv.method == "countDocuments"
        assert inv.primary_args == [{}]

    def test_not_shell_syntax(self) -> None:
        assert parse_shell('{"collection": "users"}') is None
        assert parse_shell("SELECT * FROM users") is None

    def test_unclosed_call_is_not_shell(self) -> None:
        assert parse_shell("db.users.find({a: 1}") is None

    def test_parenthesis_inside_string(self) -> None:
        inv = parse_shell("db.users.find({name: 'a)b'})")
        assert inv is not None
        assert inv.primary_args[0] == {"name": "a)b"}

    def test_aggregate_pipeline_argument(self) -> None:
        inv = parse_shell("db.orders.aggregate([{$match: {status: 'A'}}, {$limit: 2}])")
        assert inv is not None
        assert inv.primary_args == [[{"$match": {"status": "A"}}, {"$limit": 2}]]


@pytest.mark.unit
class TestFindFolding:
    def test_no_arguments(self) -> None:
        inv = parse_shell("db.users.find()")
        assert inv is not None
        assert inv.primary_args == [{}, {}]

    def test_cursor_modifiers_fold_into_options(self) -> None:
        inv = parse_shell(
            "db.getCollection('orders').find({status: 'A'}).sort({ts: -1}).skip(10).limit(5)"
        )
        assert inv is not None
        assert inv.method == "find"
        assert inv.primary_args == [
            {"status": "A"},
            {"sort": {"ts": -1}, "skip": 10, "limit": 5},
        ]
        assert [name for name, _ in inv.cursor_modifiers] == ["sort", "skip", "limit"]

    def test_project_modifier(self) -> None:
        inv = parse_shell("db.users.find({}).project({name: 1, _id: 0})")
        assert inv is not None
        assert inv.primary_args == [{}, {"projection": {"name": 1, "_id": 0}}]

    def test_count_modifier_keeps_two_argument_find(self) -> None:
        inv = parse_shell("db.users.find({active: true}).limit(3).count()")
        assert inv is not None
        assert inv.method == "find"
        assert inv.primary_args == [{"active": True}, {"limit": 3}]
        assert [name for name, _ in inv.cursor_modifiers] == ["limit", "count"]

    def test_sort_without_braces(self) -> None:
        inv = parse_shell("db.users.find({}).sort(a: 1)")
        assert inv is not None
        assert inv.primary_args == [{}, {"sort": {"a": 1}}]

    def test_malformed_sort_leaves_only_that_option_unset(self) -> None:
        inv = parse_shell("db.users.find({}).sort(a: 1).sort({b:}).limit(4)")
        assert inv is not None
        assert inv.primary_args == [{}, {"sort": {"a": 1}, "limit": 4}]

    def test_malformed_project_leaves_only_that_option_unset(self) -> None:
        inv = parse_shell("db.users.find({x: 1}).project({name:}).skip(2)")
        assert inv is not None
        assert inv.method == "find"
        assert inv.primary_args == [{"x": 1}, {"skip": 2}]

    def test_bare_second_argument_is_projection(self) -> None:
        inv = parse_shell("db.users.find({}, {name: 1})")
        assert inv is not None
        assert inv.primary_args == [{}, {"projection": {"name": 1}}]

    def test_options_second_argument_kept(self) -> None:
        inv = parse_shell("db.users.find({}, {limit: 2, projection: {name: 1}})")
        assert inv is not None
        assert inv.primary_args == [{}, {"limit": 2, "projection": {"name": 1}}]

    def test_find_one_projection(self) -> None:
        inv = parse_shell("db.users.findOne({a: 1}, {name: 1})")
        assert inv is not None
        assert inv.primary_args == [{"a": 1}, {"projection": {"name": 1}}]

    def test_non_numeric_limit_ignored(self) -> None:
        inv = parse_shell("db.users.find({}).limit(n)")
        assert inv is not None
        assert inv.primary_args == [{}, {}]
