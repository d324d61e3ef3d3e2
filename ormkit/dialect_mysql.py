"""The MySQL dialect."""

from __future__ import annotations

import hashlib
import re
from typing import Any, Tuple

from ormkit.dialect import (
    FLOAT_KINDS,
    CommonDialect,
    FieldKind,
    StructField,
    _is_byte_array_or_slice,
    _KEY_NAME_RE,
    _parse_go_int,
    current_database_and_table,
    parse_field_struct_for_dialect,
    register_dialect,
)

_INDEX_PREFIX_RE = re.compile(r"(.+)\((\d+)\)")
_MAX_KEY_NAME_LENGTH = 64
_KEY_PREFIX_LENGTH = 24

# kind -> (plain type, auto-increment type)
_INTEGER_TYPES = {
    FieldKind.INT8: ("tinyint", "tinyint AUTO_INCREMENT"),
    FieldKind.INT: ("int", "int AUTO_INCREMENT"),
    FieldKind.INT16: ("int", "int AUTO_INCREMENT"),
    FieldKind.INT32: ("int", "int AUTO_INCREMENT"),
    FieldKind.UINT8: ("tinyint unsigned", "tinyint unsigned AUTO_INCREMENT"),
    FieldKind.UINT: ("int unsigned", "int unsigned AUTO_INCREMENT"),
    FieldKind.UINT16: ("int unsigned", "int unsigned AUTO_INCREMENT"),
    FieldKind.UINT32: ("int unsigned", "int unsigned AUTO_INCREMENT"),
    FieldKind.UINTPTR: ("int unsigned", "int unsigned AUTO_INCREMENT"),
    FieldKind.INT64: ("bigint", "bigint AUTO_INCREMENT"),
    FieldKind.UINT64: ("bigint unsigned", "bigint unsigned AUTO_INCREMENT"),
}


class MySQLDialect(CommonDialect):
    """Column types, quoting and schema checks for MySQL."""

    name = "mysql"
    _label = "mysql"

    def quote(self, key: str) -> str:
        """Quote an identifier with backticks."""
        return f"`{key}`"

    def data_type_of(self, field: StructField) -> str:
        """Return the MySQL column type for ``field``."""
        kind, sql_type, size, additional = parse_field_struct_for_dialect(field)

        # MySQL allows only one auto increment column per table, and it must be a key.
        if "AUTO_INCREMENT" in field.tag_settings:
            if "INDEX" not in field.tag_settings and not field.is_primary_key:
                del field.tag_settings["AUTO_INCREMENT"]

        if not sql_type:
            if kind is FieldKind.BOOL:
                sql_type = "boolean"
            elif kind in _INTEGER_TYPES:
                plain, auto = _INTEGER_TYPES[kind]
                if self._field_can_auto_increment(field):
                    field.tag_settings["AUTO_INCREMENT"] = "AUTO_INCREMENT"
                    sql_type = auto
                else:
                    sql_type = plain
            elif kind in FLOAT_KINDS:
                sql_type = "double"
            elif kind is FieldKind.STRING:
                sql_type = f"varchar({size})" if 0 < size < 65532 else "longtext"
            elif kind is FieldKind.TIME:
                precision = ""
                if "PRECISION" in field.tag_settings:
                    precision = f"({field.tag_settings['PRECISION']})"
                if "NOT NULL" in field.tag_settings or field.is_primary_key:
                    sql_type = f"timestamp{precision}"
                else:
                    sql_type = f"timestamp{precision} NULL"
            elif _is_byte_array_or_slice(kind):
                sql_type = f"varbinary({size})" if 0 < size < 65532 else "longblob"

        if not sql_type:
            raise self._invalid_type(field, kind)
        return self._with_additional(sql_type, additional)

    def remove_index(self, table_name: str, index_name: str) -> None:
        """Drop the named index from the table."""
        self._exec(f"DROP INDEX {index_name} ON {self.quote(table_name)}")

    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        """Change a column's type."""
        self._exec(f"ALTER TABLE {table_name} MODIFY COLUMN {column_name} {typ}")

    def limit_and_offset_sql(self, limit: Any, offset: Any) -> str:
        """Return the LIMIT/OFFSET clause; an offset is only used with a limit."""
        sql = ""
        if limit is not None:
            parsed_limit = _parse_go_int(limit)
            if parsed_limit is not None and parsed_limit >= 0:
                sql += f" LIMIT {parsed_limit}"
                if offset is not None:
                    parsed_offset = _parse_go_int(offset)
                    if parsed_offset is not None and parsed_offset >= 0:
                        sql += f" OFFSET {parsed_offset}"
        return sql

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        """Tell whether the table has the named foreign key constraint."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS WHERE CONSTRAINT_SCHEMA=? "
            "AND TABLE_NAME=? AND CONSTRAINT_NAME=? AND CONSTRAINT_TYPE='FOREIGN KEY'",
            database,
            table,
            foreign_key_name,
        ) > 0

    def current_database(self) -> str:
        """Return the name of the connected database, or an empty string."""
        row = self._query_row("SELECT DATABASE()")
        if not row or row[0] is None:
            return ""
        return str(row[0])

    def select_from_dummy_table(self) -> str:
        """Return the dummy table clause MySQL needs for a table-less SELECT."""
        return "FROM DUAL"

    def build_key_name(self, kind: str, table_name: str, *args: str) -> str:
        """Build a key name of at most 64 characters, hashing longer ones."""
        key_name = super().build_key_name(kind, table_name, *args)
        if len(key_name) <= _MAX_KEY_NAME_LENGTH:
            return key_name
        digest = hashlib.sha1(key_name.encode("utf-8")).hexdigest()
        destination = _KEY_NAME_RE.sub("_", args[0])[:_KEY_PREFIX_LENGTH]
        return f"{destination}{digest}"

    def normalize_index_and_column(self, index_name: str, column_name: str) -> Tuple[str, str]:
        """Move an index prefix length such as ``idx(10)`` onto the column."""
        match = _INDEX_PREFIX_RE.fullmatch(index_name)
        if match is None:
            return index_name, column_name
        return match.group(1), f"{column_name}({match.group(2)})"

    def default_value_str(self) -> str:
        """Return what an INSERT without columns uses for its values."""
        return "VALUES()"


register_dialect("mysql", MySQLDialect)