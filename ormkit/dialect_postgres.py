"""The PostgreSQL dialect."""

from __future__ import annotations

from ormkit.dialect import (
    FLOAT_KINDS,
    CommonDialect,
    FieldKind,
    StructField,
    _is_byte_array_or_slice,
    parse_field_struct_for_dialect,
    register_dialect,
)

_SERIAL_KINDS = frozenset(
    {
        FieldKind.INT,
        FieldKind.INT8,
        FieldKind.INT16,
        FieldKind.INT32,
        FieldKind.UINT,
        FieldKind.UINT8,
        FieldKind.UINT16,
        FieldKind.UINTPTR,
    }
)
_BIGSERIAL_KINDS = frozenset({FieldKind.INT64, FieldKind.UINT32, FieldKind.UINT64})


def is_uuid(field: StructField) -> bool:
    """Tell whether the field is a 16-byte array whose type is named UUID or GUID."""
    if field.kind not in (FieldKind.ARRAY, FieldKind.BYTE_ARRAY) or field.array_length != 16:
        return False
    return field.type_name.lower() in ("uuid", "guid")


def is_json(field: StructField) -> bool:
    """Tell whether the field holds raw JSON bytes."""
    return field.kind is FieldKind.BYTES and field.type_name == "RawMessage"


class PostgresDialect(CommonDialect):
    """Column types, placeholders and schema checks for PostgreSQL."""

    name = "postgres"
    _label = "postgres"

    def bind_var(self, i: int) -> str:
        """Return the numbered placeholder ``$i``."""
        return f"${i}"

    def data_type_of(self, field: StructField) -> str:
        """Return the PostgreSQL column type for ``field``."""
        kind, sql_type, size, additional = parse_field_struct_for_dialect(field)
        if not sql_type:
            if kind is FieldKind.BOOL:
                sql_type = "boolean"
            elif kind in _SERIAL_KINDS:
                if self._field_can_auto_increment(field):
                    field.tag_settings["AUTO_INCREMENT"] = "AUTO_INCREMENT"
                    sql_type = "serial"
                else:
                    sql_type = "integer"
            elif kind in _BIGSERIAL_KINDS:
                if self._field_can_auto_increment(field):
                    field.tag_settings["AUTO_INCREMENT"] = "AUTO_INCREMENT"
                    sql_type = "bigserial"
                else:
                    sql_type = "bigint"
            elif kind in FLOAT_KINDS:
                sql_type = "numeric"
            elif kind is FieldKind.STRING:
                if "SIZE" not in field.tag_settings:
                    size = 0  # text performs the same, so it is the default
                sql_type = f"varchar({size})" if 0 < size < 65532 else "text"
            elif kind is FieldKind.TIME:
                sql_type = "timestamp with time zone"
            elif kind is FieldKind.MAP:
                if field.type_name == "Hstore":
                    sql_type = "hstore"
            elif _is_byte_array_or_slice(kind) or is_uuid(field):
                sql_type = "bytea"
                if is_uuid(field):
                    sql_type = "uuid"
                if is_json(field):
                    sql_type = "jsonb"
        if not sql_type:
            raise self._invalid_type(field, kind)
        return self._with_additional(sql_type, additional)

    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the table in the current schema has the named index."""
        return self._query_count(
            "SELECT count(*) FROM pg_indexes WHERE tablename = $1 AND indexname = $2 "
            "AND schemaname = CURRENT_SCHEMA()",
            table_name,
            index_name,
        ) > 0

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        """Tell whether the table has the named foreign key constraint."""
        return self._query_count(
            "SELECT count(con.conname) FROM pg_constraint con WHERE $1::regclass::oid = con.conrelid "
            "AND con.conname = $2 AND con.contype='f'",
            table_name,
            foreign_key_name,
        ) > 0

    def has_table(self, table_name: str) -> bool:
        """Tell whether the base table exists in the current schema."""
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.tables WHERE table_name = $1 "
            "AND table_type = 'BASE TABLE' AND table_schema = CURRENT_SCHEMA()",
            table_name,
        ) > 0

    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the table in the current schema has the named column."""
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.columns WHERE table_name = $1 "
            "AND column_name = $2 AND table_schema = CURRENT_SCHEMA()",
            table_name,
            column_name,
        ) > 0

    def current_database(self) -> str:
        """Return the name of the connected database, or an empty string."""
        row = self._query_row("SELECT CURRENT_DATABASE()")
        if not row or row[0] is None:
            return ""
        return str(row[0])

    def last_insert_id_returning_suffix(self, table_name: str, key: str) -> str:
        """Return the RETURNING clause that yields the new key."""
        return f"RETURNING {table_name}.{key}"

    def support_last_insert_id(self) -> bool:
        """PostgreSQL drivers do not report the last inserted id."""
        return False


register_dialect("postgres", PostgresDialect)
register_dialect("cloudsqlpostgres", PostgresDialect)