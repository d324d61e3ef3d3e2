"""SQL dialects: column types, quoting, paging and schema checks per database."""

from __future__ import annotations

import enum
import re
from contextlib import closing
from dataclasses import dataclass
from dataclasses import field as dc_field
from typing import Any, Dict, NamedTuple, Optional, Tuple, Type

_KEY_NAME_RE = re.compile(r"[^a-zA-Z0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class FieldKind(enum.Enum):
    """The kind of value a model field holds."""

    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    UINTPTR = "uintptr"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    STRING = "string"
    TIME = "time"
    BYTES = "bytes"
    BYTE_ARRAY = "byte_array"
    SLICE = "slice"
    ARRAY = "array"
    MAP = "map"
    STRUCT = "struct"
    INTERFACE = "interface"


SMALL_INT_KINDS = frozenset(
    {
        FieldKind.INT,
        FieldKind.INT8,
        FieldKind.INT16,
        FieldKind.INT32,
        FieldKind.UINT,
        FieldKind.UINT8,
        FieldKind.UINT16,
        FieldKind.UINT32,
        FieldKind.UINTPTR,
    }
)
BIG_INT_KINDS = frozenset({FieldKind.INT64, FieldKind.UINT64})
FLOAT_KINDS = frozenset({FieldKind.FLOAT32, FieldKind.FLOAT64})


@dataclass
class StructField:
    """Description of one model field as the dialects need it.

    ``tag_settings`` keys are upper-cased; a flag without a value maps to
    itself (``{"NOT NULL": "NOT NULL"}``). ``type_name`` is the name of the
    field's declared type (for example ``"UUID"``, ``"Hstore"`` or
    ``"RawMessage"``), ``array_length`` the length of a fixed-size array and
    ``data_type`` an SQL type the field's own type insists on.
    """

    name: str
    kind: FieldKind
    db_name: str = ""
    is_primary_key: bool = False
    tag_settings: Dict[str, str] = dc_field(default_factory=dict)
    type_name: str = ""
    array_length: Optional[int] = None
    data_type: str = ""

    def __post_init__(self) -> None:
        self.tag_settings = {key.upper(): value for key, value in self.tag_settings.items()}


class ParsedField(NamedTuple):
    """What every dialect derives from a field before choosing its SQL type."""

    kind: FieldKind
    sql_type: str
    size: int
    additional_type: str


def _is_byte_array_or_slice(kind: FieldKind) -> bool:
    return kind in (FieldKind.BYTES, FieldKind.BYTE_ARRAY)


def _parse_go_int(value: Any) -> Optional[int]:
    """Parse ``value``'s text as an integer with a base prefix, or return None."""
    text = str(value)
    if not text or text != text.strip():
        return None
    try:
        number = int(text, 0)
    except ValueError:
        sign = text[0] if text[0] in "+-" else ""
        body = text[len(sign):]
        if len(body) > 1 and body[0] == "0" and body[1:].isdigit():
            try:
                number = int(sign + body[1:], 8)
            except ValueError:
                return None
        else:
            return None
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


def parse_field_struct_for_dialect(field: StructField) -> ParsedField:
    """Work out a field's kind, explicit SQL type, size and extra column options."""
    sql_type = field.tag_settings.get("TYPE", "")
    if field.data_type:
        sql_type = field.data_type

    if "SIZE" in field.tag_settings:
        parsed = _parse_go_int(field.tag_settings["SIZE"])
        size = parsed if parsed is not None and field.tag_settings["SIZE"].lstrip("+-").isdigit() else 0
    else:
        size = 255

    not_null = field.tag_settings.get("NOT NULL", "")
    unique = field.tag_settings.get("UNIQUE", "")
    additional = f"{not_null} {unique}"
    if "DEFAULT" in field.tag_settings:
        additional += " DEFAULT " + field.tag_settings["DEFAULT"]
    if "COMMENT" in field.tag_settings:
        additional += " COMMENT " + field.tag_settings["COMMENT"]

    return ParsedField(field.kind, sql_type, size, additional.strip())


def current_database_and_table(dialect: "Dialect", table_name: str) -> Tuple[str, str]:
    """Split ``db.table`` in two, or pair the table with the current database."""
    if "." in table_name:
        database, table = table_name.split(".", 1)
        return database, table
    return dialect.current_database(), table_name


class Dialect:
    """Behaviour shared by SQL databases, over a DB-API connection.

    The connection needs ``cursor()``; each cursor ``execute(sql, params)``
    and ``fetchone()``.
    """

    name = ""
    _label = "commonDialect"
    # Placeholder text for a bound value; ``{index}`` is the 1-based position.
    _bind_var_template = "$$$"
    # Suffix an INSERT needs to return the new key; ``{table}`` and ``{column}`` are filled in.
    _returning_suffix_template = ""

    def __init__(self, db: Any = None) -> None:
        self.db = db

    def _exec(self, sql: str, *args: Any) -> None:
        with closing(self.db.cursor()) as cursor:
            cursor.execute(sql, args)

    def _query_row(self, sql: str, *args: Any) -> Optional[tuple]:
        try:
            with closing(self.db.cursor()) as cursor:
                cursor.execute(sql, args)
                return cursor.fetchone()
        except Exception:
            return None

    def _query_count(self, sql: str, *args: Any) -> int:
        row = self._query_row(sql, *args)
        if not row or row[0] is None:
            return 0
        return int(row[0])

    def _field_can_auto_increment(self, field: StructField) -> bool:
        if "AUTO_INCREMENT" in field.tag_settings:
            return field.tag_settings["AUTO_INCREMENT"].lower() != "false"
        return field.is_primary_key

    def _invalid_type(self, field: StructField, kind: FieldKind) -> ValueError:
        return ValueError(f"invalid sql type {field.type_name} ({kind.value}) for {self._label}")

    @staticmethod
    def _with_additional(sql_type: str, additional_type: str) -> str:
        if not additional_type.strip():
            return sql_type
        return f"{sql_type} {additional_type}"

    def bind_var(self, i: int) -> str:
        """Return the placeholder for the ``i``-th bound value."""
        return self._bind_var_template.format(index=i)

    def quote(self, key: str) -> str:
        """Quote an identifier."""
        return f'"{key}"'

    def data_type_of(self, field: StructField) -> str:
        """Return the column definition type for ``field``."""
        kind, sql_type, size, additional = parse_field_struct_for_dialect(field)
        if not sql_type:
            if kind is FieldKind.BOOL:
                sql_type = "BOOLEAN"
            elif kind in SMALL_INT_KINDS:
                sql_type = "INTEGER AUTO_INCREMENT" if self._field_can_auto_increment(field) else "INTEGER"
            elif kind in BIG_INT_KINDS:
                sql_type = "BIGINT AUTO_INCREMENT" if self._field_can_auto_increment(field) else "BIGINT"
            elif kind in FLOAT_KINDS:
                sql_type = "FLOAT"
            elif kind is FieldKind.STRING:
                sql_type = f"VARCHAR({size})" if 0 < size < 65532 else "VARCHAR(65532)"
            elif kind is FieldKind.TIME:
                sql_type = "TIMESTAMP"
            elif kind is FieldKind.BYTES:
                sql_type = f"BINARY({size})" if 0 < size < 65532 else "BINARY(65532)"
        if not sql_type:
            raise self._invalid_type(field, kind)
        return self._with_additional(sql_type, additional)

    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the table has the named index."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.STATISTICS WHERE table_schema = ? "
            "AND table_name = ? AND index_name = ?",
            database,
            table,
            index_name,
        ) > 0

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        """Tell whether the table has the named foreign key."""
        return False

    def remove_index(self, table_name: str, index_name: str) -> None:
        """Drop the named index."""
        self._exec(f"DROP INDEX {index_name}")

    def has_table(self, table_name: str) -> bool:
        """Tell whether the table exists."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.TABLES WHERE table_schema = ? AND table_name = ?",
            database,
            table,
        ) > 0

    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the table has the named column."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.COLUMNS WHERE table_schema = ? "
            "AND table_name = ? AND column_name = ?",
            database,
            table,
            column_name,
        ) > 0

    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        """Change a column's type."""
        self._exec(f"ALTER TABLE {table_name} ALTER COLUMN {column_name} TYPE {typ}")

    def current_database(self) -> str:
        """Return the name of the connected database, or an empty string."""
        row = self._query_row("SELECT DATABASE()")
        if not row or row[0] is None:
            return ""
        return str(row[0])

    def limit_and_offset_sql(self, limit: Any, offset: Any) -> str:
        """Return the LIMIT/OFFSET clause for the given values."""
        sql = ""
        if limit is not None:
            parsed = _parse_go_int(limit)
            if parsed is not None and parsed >= 0:
                sql += f" LIMIT {parsed}"
        if offset is not None:
            parsed = _parse_go_int(offset)
            if parsed is not None and parsed >= 0:
                sql += f" OFFSET {parsed}"
        return sql

    def select_from_dummy_table(self) -> str:
        """Return what follows ``SELECT values`` when no table is involved."""
        return ""

    def last_insert_id_returning_suffix(self, table_name: str, column_name: str) -> str:
        """Return the suffix an INSERT needs to return the new key."""
        return self._returning_suffix_template.format(table=table_name, column=column_name)

    def default_value_str(self) -> str:
        """Return what an INSERT without columns uses for its values."""
        return "DEFAULT VALUES"

    def build_key_name(self, kind: str, table_name: str, *args: str) -> str:
        """Build a valid foreign key or index name."""
        key_name = f"{kind}_{table_name}_{'_'.join(args)}"
        return _KEY_NAME_RE.sub("_", key_name)

    def normalize_index_and_column(self, index_name: str, column_name: str) -> Tuple[str, str]:
        """Return the index and column names as the database wants them."""
        return index_name, column_name


class CommonDialect(Dialect):
    """The dialect used for databases without a dedicated one."""

    name = "common"


_DIALECTS: Dict[str, Type[Dialect]] = {}


def register_dialect(name: str, dialect_class: Type[Dialect]) -> None:
    """Make ``dialect_class`` available under ``name``."""
    _DIALECTS[name] = dialect_class


def get_dialect(name: str) -> Optional[Type[Dialect]]:
    """Return the dialect class registered under ``name``, if any."""
    return _DIALECTS.get(name)


def new_dialect(name: str, db: Any) -> Dialect:
    """Create the dialect registered under ``name`` bound to ``db``."""
    dialect_class = _DIALECTS.get(name)
    if dialect_class is not None:
        return dialect_class(db)
    print(f"`{name}` is not officially supported, running under compatibility mode.")
    return CommonDialect(db)


register_dialect("common", CommonDialect)