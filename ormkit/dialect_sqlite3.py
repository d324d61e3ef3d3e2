"""The SQLite dialect."""

from __future__ import annotations

from ormkit.dialect import (
    BIG_INT_KINDS,
    FLOAT_KINDS,
    SMALL_INT_KINDS,
    CommonDialect,
    FieldKind,
    StructField,
    _is_byte_array_or_slice,
    parse_field_struct_for_dialect,
    register_dialect,
)


class Sqlite3Dialect(CommonDialect):
    """Column types and schema checks for SQLite."""

    name = "sqlite3"
    _label = "sqlite3"

    def data_type_of(self, field: StructField) -> str:
        """Return the SQLite column type for ``field``."""
        kind, sql_type, size, additional = parse_field_struct_for_dialect(field)
        if not sql_type:
            if kind is FieldKind.BOOL:
                sql_type = "bool"
            elif kind in SMALL_INT_KINDS or kind in BIG_INT_KINDS:
                if self._field_can_auto_increment(field):
                    field.tag_settings["AUTO_INCREMENT"] = "AUTO_INCREMENT"
                    sql_type = "integer primary key autoincrement"
                else:
                    sql_type = "integer" if kind in SMALL_INT_KINDS else "bigint"
            elif kind in FLOAT_KINDS:
                sql_type = "real"
            elif kind is FieldKind.STRING:
                sql_type = f"varchar({size})" if 0 < size < 65532 else "text"
            elif kind is FieldKind.TIME:
                sql_type = "datetime"
            elif _is_byte_array_or_slice(kind):
                sql_type = "blob"
        if not sql_type:
            raise self._invalid_type(field, kind)
        return self._with_additional(sql_type, additional)

    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the table has the named index."""
        return self._query_count(
            f"SELECT count(*) FROM sqlite_master WHERE tbl_name = ? AND sql LIKE '%INDEX {index_name} ON%'",
            table_name,
        ) > 0

    def has_table(self, table_name: str) -> bool:
        """Tell whether the table exists."""
        return self._query_count(
            "SELECT count(*) FROM sqlite_master WHERE type='table' AND name=?", table_name
        ) > 0

    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the table's definition mentions the column."""
        return self._query_count(
            "SELECT count(*) FROM sqlite_master WHERE tbl_name = ? AND "
            f"(sql LIKE '%\"{column_name}\" %' OR sql LIKE '%{column_name} %');\n",
            table_name,
        ) > 0

    def current_database(self) -> str:
        """Return the name of the first attached database, or an empty string."""
        row = self._query_row("PRAGMA database_list")
        if not row or len(row) < 3 or row[1] is None:
            return ""
        return str(row[1])


register_dialect("sqlite3", Sqlite3Dialect)