"""PostgreSQL column value types: hstore maps and jsonb documents."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

_WHITESPACE = re.compile(r"\s*")
_BARE_WORD = re.compile(r'[^\s,=>"]+')


def _quote(text: Optional[str]) -> str:
    if text is None:
        return "NULL"
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _skip_whitespace(text: str, pos: int) -> int:
    return _WHITESPACE.match(text, pos).end()


def _read_item(text: str, pos: int) -> Tuple[str, bool, int]:
    """Read a quoted or bare item; return (item, was_quoted, next position)."""
    if pos < len(text) and text[pos] == '"':
        chars = []
        pos += 1
        while pos < len(text):
            ch = text[pos]
            if ch == "\\" and pos + 1 < len(text):
                chars.append(text[pos + 1])
                pos += 2
            elif ch == '"':
                return "".join(chars), True, pos + 1
            else:
                chars.append(ch)
                pos += 1
        raise ValueError("unterminated quoted string in hstore value")
    match = _BARE_WORD.match(text, pos)
    if match is None:
        raise ValueError(f"malformed hstore value at position {pos}")
    return match.group(0), False, match.end()


def _parse_hstore(text: str) -> Dict[str, Optional[str]]:
    result: Dict[str, Optional[str]] = {}
    pos = _skip_whitespace(text, 0)
    while pos < len(text):
        key, _, pos = _read_item(text, pos)
        pos = _skip_whitespace(text, pos)
        if not text.startswith("=>", pos):
            raise ValueError(f"expected '=>' in hstore value at position {pos}")
        pos = _skip_whitespace(text, pos + 2)
        value, quoted, pos = _read_item(text, pos)
        result[key] = None if not quoted and value.upper() == "NULL" else value
        pos = _skip_whitespace(text, pos)
        if pos < len(text):
            if text[pos] != ",":
                raise ValueError(f"expected ',' in hstore value at position {pos}")
            pos = _skip_whitespace(text, pos + 1)
    return result


class Hstore(Dict[str, Optional[str]]):
    """A PostgreSQL hstore: string keys mapped to strings or NULL."""

    def value(self) -> Optional[bytes]:
        """Encode for the database; an empty map is stored as NULL."""
        if not self:
            return None
        return ",".join(f"{_quote(key)}=>{_quote(val)}" for key, val in self.items()).encode("utf-8")

    def scan(self, value: Any) -> None:
        """Replace the contents with a value read from the database.

        NULL and an empty hstore leave the map unchanged.
        """
        if value is None:
            return
        if isinstance(value, (bytes, bytearray, memoryview)):
            text = bytes(value).decode("utf-8")
        elif isinstance(value, str):
            text = value
        else:
            raise TypeError(f"cannot scan {type(value).__name__} into Hstore")
        parsed = _parse_hstore(text)
        if not parsed:
            return
        self.clear()
        self.update(parsed)


@dataclass
class Jsonb:
    """A PostgreSQL jsonb document kept as raw JSON bytes."""

    raw: bytes = b""

    def value(self) -> Optional[bytes]:
        """Encode for the database; an empty document is stored as NULL."""
        if not self.raw:
            return None
        return bytes(self.raw)

    def scan(self, value: Any) -> None:
        """Take raw JSON bytes read from the database, checking they are valid JSON."""
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"Failed to unmarshal JSONB value:{value}")
        json.loads(bytes(value).decode("utf-8"))
        self.raw = bytes(value)