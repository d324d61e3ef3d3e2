import re
import sqlite3

import pytest

from ormkit.dialect import (
    CommonDialect,
    Dialect,
    FieldKind,
    StructField,
    current_database_and_table,
    get_dialect,
    new_dialect,
    parse_field_struct_for_dialect,
    register_dialect,
)


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, sql, params=()):
        self.conn.calls.append((sql, tuple(params)))
        if self.conn.fail:
            raise RuntimeError("query failed")

    def fetchone(self):
        return self.conn.row

    def close(self):
        pass


class FakeConnection:
    def __init__(self, row=None, fail=False):
        self.calls = []
        self.row = row
        self.fail = fail

    def cursor(self):
        return FakeCursor(self)


def test_quote_and_bind_var():
    dialect = CommonDialect()
    assert dialect.quote("users") == '"users"'
    assert dialect.bind_var(3) == "$$$"


def test_fixed_strings():
    dialect = CommonDialect()
    assert dialect.default_value_str() == "DEFAULT VALUES"
    assert dialect.select_from_dummy_table() == ""
    assert dialect.last_insert_id_returning_suffix("users", "id") == ""
    assert dialect.normalize_index_and_column("idx", "col") == ("idx", "col")


def test_data_type_primary_key_auto_increment():
    field = StructField(name="ID", kind=FieldKind.UINT, is_primary_key=True)
    assert CommonDialect().data_type_of(field) == "INTEGER AUTO_INCREMENT"
    big = StructField(name="ID", kind=FieldKind.INT64, is_primary_key=True)
    assert CommonDialect().data_type_of(big) == "BIGINT AUTO_INCREMENT"


def test_data_type_auto_increment_disabled_by_tag():
    field = StructField(
        name="ID", kind=FieldKind.INT, is_primary_key=True, tag_settings={"auto_increment": "FALSE"}
    )
    assert CommonDialect().data_type_of(field) == "INTEGER"


def test_data_type_plain_kinds():
    dialect = CommonDialect()
    assert dialect.data_type_of(StructField(name="A", kind=FieldKind.BOOL)) == "BOOLEAN"
    assert dialect.data_type_of(StructField(name="A", kind=FieldKind.FLOAT64)) == "FLOAT"
    assert dialect.data_type_of(StructField(name="A", kind=FieldKind.TIME)) == "TIMESTAMP"
    assert dialect.data_type_of(StructField(name="A", kind=FieldKind.INT64)) == "BIGINT"


def test_data_type_string_sizes():
    dialect = CommonDialect()
    sized = StructField(name="Name", kind=FieldKind.STRING, tag_settings={"SIZE": "100"})
    assert dialect.data_type_of(sized) == "VARCHAR(100)"
    huge = StructField(name="Name", kind=FieldKind.STRING, tag_settings={"SIZE": "70000"})
    assert dialect.data_type_of(huge) == "VARCHAR(65532)"
    blob = StructField(name="Data", kind=FieldKind.BYTES, tag_settings={"SIZE": "70000"})
    assert dialect.data_type_of(blob) == "BINARY(65532)"


def test_data_type_uses_type_tag_and_additional():
    field = StructField(
        name="Name",
        kind=FieldKind.STRING,
        tag_settings={"TYPE": "citext", "NOT NULL": "NOT NULL"},
    )
    assert CommonDialect().data_type_of(field) == "citext NOT NULL"


def test_data_type_invalid_kind_raises():
    field = StructField(name="Thing", kind=FieldKind.MAP, type_name="Things")
    with pytest.raises(ValueError, match="invalid sql type Things"):
        CommonDialect().data_type_of(field)


def test_parse_field_defaults_and_additional():
    parsed = parse_field_struct_for_dialect(StructField(name="A", kind=FieldKind.STRING))
    assert parsed.size == 255
    assert parsed.sql_type == ""
    assert parsed.additional_type == ""
    full = StructField(
        name="A",
        kind=FieldKind.STRING,
        tag_settings={
            "NOT NULL": "NOT NULL",
            "UNIQUE": "UNIQUE",
            "DEFAULT": "'x'",
            "COMMENT": "'c'",
        },
    )
    assert parse_field_struct_for_dialect(full).additional_type == "NOT NULL UNIQUE DEFAULT 'x' COMMENT 'c'"


def test_parse_field_only_unique_is_trimmed():
    field = StructField(name="A", kind=FieldKind.STRING, tag_settings={"UNIQUE": "UNIQUE"})
    assert parse_field_struct_for_dialect(field).additional_type == "UNIQUE"


def test_parse_field_bad_size_is_zero_and_data_type_wins():
    field = StructField(
        name="A", kind=FieldKind.STRING, tag_settings={"SIZE": "abc", "TYPE": "text"}, data_type="json"
    )
    parsed = parse_field_struct_for_dialect(field)
    assert parsed.size == 0
    assert parsed.sql_type == "json"
    assert parsed.kind is FieldKind.STRING


def test_limit_and_offset():
    dialect = CommonDialect()
    assert dialect.limit_and_offset_sql(10, 5) == " LIMIT 10 OFFSET 5"
    assert dialect.limit_and_offset_sql(None, None) == ""
    assert dialect.limit_and_offset_sql(-1, 3) == " OFFSET 3"
    assert dialect.limit_and_offset_sql("abc", "7") == " OFFSET 7"
    assert dialect.limit_and_offset_sql("0x10", None) == " LIMIT 16"


def test_build_key_name():
    name = CommonDialect().build_key_name("idx", "users", "first name", "age")
    assert name == "idx_users_first_name_age"
    assert re.fullmatch(r"[A-Za-z0-9_]+", CommonDialect().build_key_name("fk", "a.b", "c-d", "e f"))


def test_current_database_and_table_split():
    dialect = CommonDialect(FakeConnection(row=("shop",)))
    assert current_database_and_table(dialect, "other.users") == ("other", "users")
    assert current_database_and_table(dialect, "users") == ("shop", "users")


def test_has_table_passes_database_and_table():
    conn = FakeConnection(row=(1,))
    assert CommonDialect(conn).has_table("store.users") is True
    sql, params = conn.calls[-1]
    assert "INFORMATION_SCHEMA.TABLES" in sql
    assert params == ("store", "users")


def test_has_column_and_index_counts():
    conn = FakeConnection(row=(0,))
    dialect = CommonDialect(conn)
    assert dialect.has_column("store.users", "name") is False
    assert conn.calls[-1][1] == ("store", "users", "name")
    conn.row = (2,)
    assert dialect.has_index("store.users", "idx") is True
    assert conn.calls[-1][1] == ("store", "users", "idx")


def test_query_failure_is_treated_as_absent():
    dialect = CommonDialect(FakeConnection(fail=True))
    assert dialect.has_table("store.users") is False
    assert dialect.current_database() == ""


def test_has_foreign_key_is_false():
    assert CommonDialect(FakeConnection(row=(5,))).has_foreign_key("users", "fk") is False


def test_remove_index_on_sqlite():
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE users (id integer, name text)")
    conn.execute("CREATE INDEX idx_users_name ON users(name)")
    CommonDialect(conn).remove_index("users", "idx_users_name")
    remaining = conn.execute("SELECT count(*) FROM sqlite_master WHERE type='index'").fetchone()[0]
    assert remaining == 0


def test_modify_column_error_propagates():
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE users (id integer, name text)")
    with pytest.raises(sqlite3.OperationalError):
        CommonDialect(conn).modify_column("users", "name", "integer")


def test_modify_column_sql():
    conn = FakeConnection()
    CommonDialect(conn).modify_column("users", "age", "bigint")
    assert conn.calls[-1][0] == "ALTER TABLE users ALTER COLUMN age TYPE bigint"


def test_registry():
    assert get_dialect("common") is CommonDialect
    assert get_dialect("no-such-dialect") is None

    class CustomDialect(Dialect):
        name = "custom"

    register_dialect("custom-test", CustomDialect)
    conn = FakeConnection()
    dialect = new_dialect("custom-test", conn)
    assert isinstance(dialect, CustomDialect)
    assert dialect.db is conn


def test_new_dialect_unknown_falls_back(capsys):
    conn = FakeConnection()
    dialect = new_dialect("unknown-db", conn)
    assert type(dialect) is CommonDialect
    assert dialect.db is conn
    assert "is not officially supported, running under compatibility mode." in capsys.readouterr().out