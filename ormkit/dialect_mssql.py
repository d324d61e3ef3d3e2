"""The Microsoft SQL Server dialect and its JSON column type."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ormkit.dialect import (
    BIG_INT_KINDS,
    FLOAT_KINDS,
    SMALL_INT_KINDS,
    Dialect,
    FieldKind,
    StructField,
    _is_byte_array_or_slice,
    _parse_go_int,
    current_database_and_table,
    parse_field_struct_for_dialect,
    register_dialect,
)

_MAX_SIZED_LENGTH = 8000


class MSSQLDialect(Dialect):
    """Column types, quoting, paging and schema checks for SQL Server."""

    name = "mssql"
    _label = "mssql"
    _bind_var_template = "$$$"
    _returning_suffix_template = "SELECT SCOPE_IDENTITY()"

    def _field_can_auto_increment(self, field: StructField) -> bool:
        if "AUTO_INCREMENT" in field.tag_settings:
            return field.tag_settings["AUTO_INCREMENT"] != "FALSE"
        return field.is_primary_key

    def bind_var(self, i: int) -> str:
        """Return the placeholder for the ``i``-th bound value."""
        return self._bind_var_template.format(index=i)

    def quote(self, key: str) -> str:
        """Quote an identifier with square brackets."""
        return f"[{key}]"

    def data_type_of(self, field: StructField) -> str:
        """Return the SQL Server column type for ``field``."""
        kind, sql_type, size, additional = parse_field_struct_for_dialect(field)
        if not sql_type:
            if kind is FieldKind.BOOL:
                sql_type = "bit"
            elif kind in SMALL_INT_KINDS:
                if self._field_can_auto_increment(field):
                    field.tag_settings["AUTO_INCREMENT"] = "AUTO_INCREMENT"
                    sql_type = "int IDENTITY(1,1)"
                else:
                    sql_type = "int"
            elif kind in BIG_INT_KINDS:
                if self._field_can_auto_increment(field):
                    field.tag_settings["AUTO_INCREMENT"] = "AUTO_INCREMENT"
                    sql_type = "bigint IDENTITY(1,1)"
                else:
                    sql_type = "bigint"
            elif kind in FLOAT_KINDS:
                sql_type = "float"
            elif kind is FieldKind.STRING:
                sql_type = f"nvarchar({size})" if 0 < size < _MAX_SIZED_LENGTH else "nvarchar(max)"
            elif kind is FieldKind.TIME:
                sql_type = "datetimeoffset"
            elif _is_byte_array_or_slice(kind):
                sql_type = f"varbinary({size})" if 0 < size < _MAX_SIZED_LENGTH else "varbinary(max)"
        if not sql_type:
            raise self._invalid_type(field, kind)
        return self._with_additional(sql_type, additional)

    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the table has the named index."""
        return self._query_count(
            "SELECT count(*) FROM sys.indexes WHERE name=? AND object_id=OBJECT_ID(?)",
            index_name,
            table_name,
        ) > 0

    def remove_index(self, table_name: str, index_name: str) -> None:
        """Drop the named index from the table."""
        self._exec(f"DROP INDEX {index_name} ON {self.quote(table_name)}")

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        """Tell whether the table has the named foreign key."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) "
            "FROM sys.foreign_keys as F inner join sys.tables as T on F.parent_object_id=T.object_id "
            "inner join information_schema.tables as I on I.TABLE_NAME = T.name "
            "WHERE F.name = ? AND T.Name = ? AND I.TABLE_CATALOG = ?;",
            foreign_key_name,
            table,
            database,
        ) > 0

    def has_table(self, table_name: str) -> bool:
        """Tell whether the table exists in the database."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.tables WHERE table_name = ? AND table_catalog = ?",
            table,
            database,
        ) > 0

    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the table has the named column."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM information_schema.columns WHERE table_catalog = ? "
            "AND table_name = ? AND column_name = ?",
            database,
            table,
            column_name,
        ) > 0

    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        """Change a column's type."""
        self._exec(f"ALTER TABLE {table_name} ALTER COLUMN {column_name} {typ}")

    def current_database(self) -> str:
        """Return the name of the connected database, or an empty string."""
        row = self._query_row("SELECT DB_NAME() AS [Current Database]")
        if not row or row[0] is None:
            return ""
        return str(row[0])

    def limit_and_offset_sql(self, limit: Any, offset: Any) -> str:
        """Return the OFFSET/FETCH clause; a limit alone gets a zero offset."""
        sql = ""
        if offset is not None:
            parsed_offset = _parse_go_int(offset)
            if parsed_offset is not None and parsed_offset >= 0:
                sql += f" OFFSET {parsed_offset} ROWS"
        if limit is not None:
            parsed_limit = _parse_go_int(limit)
            if parsed_limit is not None and parsed_limit >= 0:
                if not sql:
                    sql += " OFFSET 0 ROWS"
                sql += f" FETCH NEXT {parsed_limit} ROWS ONLY"
        return sql

    def select_from_dummy_table(self) -> str:
        """Return what follows ``SELECT values`` when no table is involved."""
        return ""

    def last_insert_id_returning_suffix(self, table_name: str, column_name: str) -> str:
        """Return the statement that yields the new identity value."""
        return self._returning_suffix_template.format(table=table_name, column=column_name)

    def default_value_str(self) -> str:
        """Return what an INSERT without columns uses for its values."""
        return "DEFAULT VALUES"

    def normalize_index_and_column(self, index_name: str, column_name: str) -> Tuple[str, str]:
        """Return the index and column names unchanged."""
        return index_name, column_name


@dataclass
class JSON:
    """JSON text kept raw in a character column."""

    raw: bytes = b""

    def value(self) -> Optional[bytes]:
        """Encode for the database; an empty document is stored as NULL."""
        if not self.raw:
            return None
        return bytes(self.raw)

    def scan(self, value: Any) -> None:
        """Take JSON text read from the database, checking it is valid JSON."""
        if not isinstance(value, str):
            raise TypeError(f"Failed to unmarshal JSONB value (strcast):{value}")
        json.loads(value)
        self.raw = value.encode("utf-8")


register_dialect("mssql", MSSQLDialect)