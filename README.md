# ormkit

ormkit provides building blocks for an object-relational mapper. It has no runtime dependencies.

- `ormkit.callback` keeps ordered chains of named create, update, delete, query and row-query callbacks.
- The SQL dialects cover column types, identifier quoting, bind variables, paging clauses and schema lookups. There is one module per database:
  - common: `ormkit.dialect`
  - SQLite: `ormkit.dialect_sqlite3`
  - MySQL: `ormkit.dialect_mysql`
  - PostgreSQL: `ormkit.dialect_postgres`
  - SQL Server: `ormkit.dialect_mssql`
- There are column value types for PostgreSQL `hstore` and `jsonb` (`ormkit.postgres_types`) and for SQL Server JSON text (`ormkit.dialect_mssql.JSON`).
- `ormkit.errors` holds the error classes and an error collection that can be raised.
- `ormkit.logger` is a log formatter that prints SQL with its bound values filled in.

## Install

```
pip install .
```

## Callbacks

```python
from ormkit.callback import Callback

callbacks = Callback()
callbacks.create().register("audit:before", lambda scope: ...)
callbacks.create().register("db:create", lambda scope: ...)
callbacks.create().before("db:create").register("audit:validate", lambda scope: ...)
callbacks.create().after("db:create").register("audit:after", lambda scope: ...)
callbacks.create().replace("db:create", lambda scope: ...)
callbacks.create().remove("audit:before")

handler = callbacks.create().get("db:create")   # None once removed
callbacks.creates                                # the callables, in order
```

Each `register`, `replace` or `remove` re-sorts the chain. The sorted callables are kept in the following lists:

- `creates`
- `updates`
- `deletes`
- `queries`
- `row_queries`

The order follows the `before`/`after` hints. A replaced name keeps its position and takes the new callable. A removed name leaves the chain.

A row-query callback that is registered without a hint is placed before `gorm:row_query`.

Registering a name twice logs a warning through the `Logger`. `Callback.clone(logger)` returns an independent copy that uses another logger.

`sort_processors(processors)` is the ordering function itself.

## Dialects

A dialect class is registered by name when its module is imported. These are the names:

- `common` (in `ormkit.dialect`)
- `sqlite3`
- `mysql`
- `postgres` and `cloudsqlpostgres`
- `mssql`

```python
import sqlite3

import ormkit.dialect_sqlite3  # registers "sqlite3"
from ormkit.dialect import FieldKind, StructField, new_dialect

connection = sqlite3.connect(":memory:")
dialect = new_dialect("sqlite3", connection)

dialect.quote("users")                      # '"users"'
dialect.limit_and_offset_sql(10, 20)        # ' LIMIT 10 OFFSET 20'
dialect.data_type_of(StructField(name="Name", kind=FieldKind.STRING))  # 'varchar(255)'
dialect.has_table("users")                  # False
```

`new_dialect` handles a name that is not registered by printing a notice and returning a `CommonDialect`.

`get_dialect(name)` returns the registered class, or `None`.

To add a dialect, subclass `Dialect` or `CommonDialect` and pass it to `register_dialect(name, dialect_class)`.

### Describing a field

A `StructField` describes a field. It has these attributes:

- `name`
- `kind`, a `FieldKind`
- `db_name`
- `is_primary_key`
- `tag_settings`, whose keys are upper-cased, for example `SIZE`, `TYPE`, `NOT NULL`, `UNIQUE`, `DEFAULT`, `COMMENT`, `AUTO_INCREMENT`, `PRECISION` and `INDEX`
- `type_name`
- `array_length`
- `data_type`

`parse_field_struct_for_dialect(field)` extracts four values from a field:

- the kind
- the explicit SQL type
- the size, which defaults to 255
- the extra column options

`data_type_of` raises `ValueError` for a kind that the dialect has no type for.

### Schema lookups and changes

The schema methods run their SQL on the DB-API connection that the dialect was created with:

- `has_table`
- `has_column`
- `has_index`
- `has_foreign_key`
- `current_database`
- `remove_index`
- `modify_column`

`current_database_and_table(dialect, "db.table")` splits a qualified table name.

### Per-dialect differences

- **MySQL** quotes with backticks. It hashes key names longer than 64 characters in `build_key_name`. `normalize_index_and_column` moves an index prefix length such as `idx(10)` onto the column. It uses `FROM DUAL` and `VALUES()`.
- **PostgreSQL** uses `$n` bind variables and a `RETURNING table.key` suffix. `is_uuid(field)` and `is_json(field)` decide the `uuid` and `jsonb` types.
- **SQL Server** quotes with brackets and pages with `OFFSET … ROWS FETCH NEXT … ROWS ONLY`. It returns the new key with `SELECT SCOPE_IDENTITY()`.

## Column value types

```python
from ormkit.postgres_types import Hstore, Jsonb
from ormkit.dialect_mssql import JSON

h = Hstore({"a": "1", "b": None})
h.value()            # b'"a"=>"1","b"=>NULL'
h.scan('"x"=>"y"')   # contents become {"x": "y"}

Jsonb(b'{"k": 1}').value()   # b'{"k": 1}'
JSON().scan('{"k": 1}')      # raw becomes b'{"k": 1}'
```

An empty value encodes as `None`.

`Jsonb.scan` accepts bytes only and `JSON.scan` accepts `str` only. Both raise `TypeError` for any other type, and the JSON parser raises its error for invalid JSON.

## Errors

```python
from ormkit.errors import Errors, RecordNotFoundError, is_record_not_found_error

errs = Errors([ValueError("First"), ValueError("Second")])
errs = errs.add(ValueError("Third"))
errs = errs.add(errs)                 # nested collections flatten; duplicates are skipped
str(errs)                             # "First; Second; Third"
is_record_not_found_error(RecordNotFoundError())  # True
```

Every error class derives from `OrmError`:

- `RecordNotFoundError`
- `InvalidSQLError`
- `InvalidTransactionError`
- `CantStartTransactionError`
- `UnaddressableError`
- `Errors`

## Logger

```python
from datetime import timedelta
from ormkit.logger import Logger

Logger().print("sql", "app.py:12", timedelta(milliseconds=3),
               "SELECT * FROM users WHERE id = ?", [7], 1)
```

`Logger.print` writes one line to its stream, which is standard output by default. For the `"sql"` level the line holds four parts:

- the source
- the time
- the duration
- the SQL with its `?` or `$n` placeholders filled in, followed by the rows affected

`log_formatter(*args, now=...)` returns the pieces without writing them. `is_printable(text)` is the check that decides whether bytes are shown as text or as `'<binary>'`.

## What the package does not do

ormkit does not map model classes to tables, build or run queries, or manage sessions or transactions.

The callback chains only hold and order callables. Nothing in the package invokes them against a record.

The dialects only issue the schema lookup and change statements listed above.

## Tests

```
pip install .[test]
pytest
```