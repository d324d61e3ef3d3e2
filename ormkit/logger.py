"""Formatting and printing of SQL and diagnostic log lines."""

from __future__ import annotations

import datetime as dt
import math
import re
import sys
from decimal import Decimal
from typing import Any, Callable, List, Optional, TextIO

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
_NUMERIC_PLACEHOLDER = re.compile(r"\$\d+")


def is_printable(text: str) -> bool:
    """Tell whether every character of ``text`` is printable."""
    return all(ch.isprintable() for ch in text)


def _go_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    decimal_exp = len(digits) + exponent - 1
    prefix = "-" if sign else ""
    if decimal_exp < -4 or decimal_exp >= 6:
        text = "".join(str(d) for d in digits)
        mantissa = text[0] + ("." + text[1:] if len(text) > 1 else "")
        exp_sign = "-" if decimal_exp < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(decimal_exp):02d}"
    return format(Decimal(repr(value)).normalize(), "f")


def _format_value(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, dt.datetime):
        if value.replace(tzinfo=None) == dt.datetime.min:
            return "'0000-00-00 00:00:00'"
        return f"'{value.strftime(_TIME_FORMAT)}'"
    if isinstance(value, (bytes, bytearray, memoryview)):
        text = bytes(value).decode("utf-8", "replace")
        return f"'{text}'" if is_printable(text) else "'<binary>'"
    valuer = getattr(value, "value", None)
    if callable(valuer) and not isinstance(value, str):
        try:
            result = valuer()
        except Exception:
            return "NULL"
        return "NULL" if result is None else f"'{result}'"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _go_float(value)
    return f"'{value}'"


def _milliseconds(duration: Any) -> float:
    if not isinstance(duration, dt.timedelta):
        duration = dt.timedelta(seconds=duration)
    microseconds = duration // dt.timedelta(microseconds=1)
    return (microseconds // 10) / 100.0


def _fill_placeholders(sql: str, formatted: List[str]) -> str:
    if _NUMERIC_PLACEHOLDER.search(sql):
        for index, text in enumerate(formatted, start=1):
            sql = re.sub(
                rf"\${index}([^\d]|$)", lambda m, t=text: t + m.group(1), sql
            )
        return sql
    pieces = []
    for index, part in enumerate(sql.split("?")):
        pieces.append(part)
        if index < len(formatted):
            pieces.append(formatted[index])
    return "".join(pieces)


def log_formatter(*args: Any, now: Optional[dt.datetime] = None) -> List[Any]:
    """Turn a log record into the list of pieces to print.

    For level ``"sql"`` the record is (level, source, duration, sql, vars,
    rows affected); for other levels it is (level, source, *messages).
    """
    if len(args) <= 1:
        return []
    if now is None:
        now = dt.datetime.now()
    level = args[0]
    messages: List[Any] = [
        f"\033[35m({args[1]})\033[0m",
        "\n\033[33m[" + now.strftime(_TIME_FORMAT) + "]\033[0m",
    ]
    if level == "sql":
        duration, sql, sql_vars, rows = args[2], args[3], args[4], args[5]
        messages.append(f" \033[36;1m[{_milliseconds(duration):.2f}ms]\033[0m ")
        formatted = [_format_value(value) for value in sql_vars]
        messages.append(_fill_placeholders(sql, formatted))
        messages.append(f" \n\033[36;31m[{int(rows)} rows affected or returned ]\033[0m ")
    else:
        messages.append("\033[31;1m")
        messages.extend(args[2:])
        messages.append("\033[0m")
    return messages


class Logger:
    """Writes formatted log records to a text stream."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        prefix: str = "\r\n",
        now_func: Optional[Callable[[], dt.datetime]] = None,
    ) -> None:
        self.stream = stream
        self.prefix = prefix
        self.now_func = now_func or dt.datetime.now

    def print(self, *args: Any) -> None:
        """Format a log record and write it as one line."""
        messages = log_formatter(*args, now=self.now_func())
        stream = self.stream if self.stream is not None else sys.stdout
        stream.write(self.prefix + " ".join(str(m) for m in messages) + "\n")