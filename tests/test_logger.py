import datetime as dt
import io

from ormkit.logger import Logger, is_printable, log_formatter

NOW = dt.datetime(2021, 3, 4, 5, 6, 7)


def sql_record(sql, values, rows=3, duration=dt.timedelta(milliseconds=2)):
    return log_formatter("sql", "src", duration, sql, values, rows, now=NOW)


def test_is_printable():
    assert is_printable("hello world") is True
    assert is_printable("a\x00b") is False
    assert is_printable("") is True


def test_single_value_gives_nothing():
    assert log_formatter("sql", now=NOW) == []
    assert log_formatter(now=NOW) == []


def test_header_pieces():
    messages = log_formatter("log", "src", "hello", now=NOW)
    assert messages[0] == "\033[35m(src)\033[0m"
    assert messages[1] == "\n\033[33m[2021-03-04 05:06:07]\033[0m"


def test_non_sql_level_wraps_messages():
    messages = log_formatter("log", "src", "x", "y", now=NOW)
    assert messages[2:] == ["\033[31;1m", "x", "y", "\033[0m"]


def test_question_mark_placeholders():
    messages = sql_record("SELECT ? ? ? ?", [1, "a", None, b"\x00"])
    assert messages[3] == "SELECT 1 'a' NULL '<binary>'"


def test_more_placeholders_than_values():
    messages = sql_record("a = ? AND b = ?", ["x"])
    assert messages[3] == "a = 'x' AND b = "


def test_numeric_placeholders():
    messages = sql_record("a = $1 AND b = $2", ["x", 2])
    assert messages[3] == "a = 'x' AND b = 2"


def test_rows_affected_piece():
    messages = sql_record("SELECT 1", [], rows=3)
    assert messages[4] == " \n\033[36;31m[3 rows affected or returned ]\033[0m "


def test_duration_piece():
    messages = sql_record("SELECT 1", [], duration=dt.timedelta(microseconds=1500))
    assert messages[2] == " \033[36;1m[1.50ms]\033[0m "


def test_zero_time_value():
    messages = sql_record("?", [dt.datetime.min])
    assert messages[3] == "'0000-00-00 00:00:00'"


def test_time_value():
    messages = sql_record("?", [dt.datetime(2020, 1, 2, 3, 4, 5)])
    assert messages[3] == "'2020-01-02 03:04:05'"


def test_printable_bytes_are_quoted():
    messages = sql_record("?", [b"abc"])
    assert messages[3] == "'abc'"


class _Valuer:
    def __init__(self, result=None, fail=False):
        self.result = result
        self.fail = fail

    def value(self):
        if self.fail:
            raise ValueError("bad")
        return self.result


def test_valuer_values():
    messages = sql_record("? ? ?", [_Valuer("v"), _Valuer(None), _Valuer(fail=True)])
    assert messages[3] == "'v' NULL NULL"


def test_float_value():
    messages = sql_record("?", [2.5])
    assert messages[3] == "2.5"


def test_logger_writes_line_with_prefix():
    stream = io.StringIO()
    logger = Logger(stream=stream, now_func=lambda: NOW)
    logger.print("sql", "src", dt.timedelta(0), "SELECT ?", [1], 1)
    output = stream.getvalue()
    assert output.startswith("\r\n")
    assert output.endswith("\n")
    assert "SELECT 1" in output
    assert "rows affected or returned" in output


def test_logger_with_single_value_writes_prefix_only():
    stream = io.StringIO()
    Logger(stream=stream).print("only")
    assert stream.getvalue() == "\r\n\n"