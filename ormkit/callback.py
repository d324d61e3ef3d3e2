"""Ordered registries of create, update, delete and query callbacks."""

from __future__ import annotations

import os
import traceback
from typing import Any, Callable, List, Optional

ScopeCallback = Callable[[Any], Any]

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


def _caller_location() -> str:
    """Return ``file:line`` of the nearest caller outside this package."""
    for frame in reversed(traceback.extract_stack()):
        filename = os.path.abspath(frame.filename)
        if not filename.startswith(_PACKAGE_DIR + os.sep):
            return f"{filename}:{frame.lineno}"
    return ""


def _default_logger() -> Any:
    from ormkit.logger import Logger

    return Logger()


class Callback:
    """Holds every registered callback processor and the sorted callback lists."""

    def __init__(self, logger: Any = None) -> None:
        self.logger = logger if logger is not None else _default_logger()
        self.creates: List[ScopeCallback] = []
        self.updates: List[ScopeCallback] = []
        self.deletes: List[ScopeCallback] = []
        self.queries: List[ScopeCallback] = []
        self.row_queries: List[ScopeCallback] = []
        self.processors: List[CallbackProcessor] = []

    def clone(self, logger: Any) -> "Callback":
        """Return a copy using ``logger`` that can be changed independently."""
        copy = Callback(logger)
        copy.creates = list(self.creates)
        copy.updates = list(self.updates)
        copy.deletes = list(self.deletes)
        copy.queries = list(self.queries)
        copy.row_queries = list(self.row_queries)
        copy.processors = list(self.processors)
        return copy

    def _processor(self, kind: str) -> "CallbackProcessor":
        return CallbackProcessor(parent=self, kind=kind, logger=self.logger)

    def create(self) -> "CallbackProcessor":
        """Start registering a callback run when creating records."""
        return self._processor("create")

    def update(self) -> "CallbackProcessor":
        """Start registering a callback run when updating records."""
        return self._processor("update")

    def delete(self) -> "CallbackProcessor":
        """Start registering a callback run when deleting records."""
        return self._processor("delete")

    def query(self) -> "CallbackProcessor":
        """Start registering a callback run when querying records."""
        return self._processor("query")

    def row_query(self) -> "CallbackProcessor":
        """Start registering a callback run for raw row queries."""
        return self._processor("row_query")

    def _reorder(self) -> None:
        groups = {kind: [] for kind in ("create", "update", "delete", "query", "row_query")}
        for processor in self.processors:
            if processor.name and processor.kind in groups:
                groups[processor.kind].append(processor)
        self.creates = sort_processors(groups["create"])
        self.updates = sort_processors(groups["update"])
        self.deletes = sort_processors(groups["delete"])
        self.queries = sort_processors(groups["query"])
        self.row_queries = sort_processors(groups["row_query"])


class CallbackProcessor:
    """One registration request: a named callback with its ordering hints."""

    def __init__(self, parent: Callback, kind: str, logger: Any) -> None:
        self.parent = parent
        self.kind = kind
        self.logger = logger
        self.name = ""
        self.before_name = ""
        self.after_name = ""
        self.replacing = False
        self.removing = False
        self.processor: Optional[ScopeCallback] = None

    def after(self, callback_name: str) -> "CallbackProcessor":
        """Place the new callback after ``callback_name``."""
        self.after_name = callback_name
        return self

    def before(self, callback_name: str) -> "CallbackProcessor":
        """Place the new callback before ``callback_name``."""
        self.before_name = callback_name
        return self

    def _commit(self) -> None:
        self.parent.processors.append(self)
        self.parent._reorder()

    def register(self, callback_name: str, callback: ScopeCallback) -> None:
        """Register ``callback`` under ``callback_name``."""
        if self.kind == "row_query":
            if not self.before_name and not self.after_name and callback_name != "gorm:row_query":
                self.logger.print(
                    f"Registering RowQuery callback {callback_name} without specify order "
                    "with Before(), After(), applying Before('gorm:row_query') by default "
                    "for compatibility...\n"
                )
                self.before_name = "gorm:row_query"
        self.name = callback_name
        self.processor = callback
        self._commit()

    def remove(self, callback_name: str) -> None:
        """Remove the callback registered under ``callback_name``."""
        self.logger.print(
            f"[info] removing callback `{callback_name}` from {_caller_location()}\n"
        )
        self.name = callback_name
        self.removing = True
        self._commit()

    def replace(self, callback_name: str, callback: ScopeCallback) -> None:
        """Replace the callback registered under ``callback_name``."""
        self.logger.print(
            f"[info] replacing callback `{callback_name}` from {_caller_location()}\n"
        )
        self.name = callback_name
        self.processor = callback
        self.replacing = True
        self._commit()

    def get(self, callback_name: str) -> Optional[ScopeCallback]:
        """Return the callback currently registered under ``callback_name``, if any."""
        callback: Optional[ScopeCallback] = None
        for processor in self.parent.processors:
            if processor.name == callback_name and processor.kind == self.kind:
                callback = None if processor.removing else processor.processor
        return callback


def _rindex(names: List[str], name: str) -> int:
    for index in range(len(names) - 1, -1, -1):
        if names[index] == name:
            return index
    return -1


def sort_processors(processors: List[CallbackProcessor]) -> List[ScopeCallback]:
    """Order processors by their before/after hints, honouring replace and remove."""
    all_names: List[str] = []
    sorted_names: List[str] = []

    for processor in processors:
        if _rindex(all_names, processor.name) > -1 and not processor.replacing and not processor.removing:
            processor.logger.print(
                f"[warning] duplicated callback `{processor.name}` from {_caller_location()}\n"
            )
        all_names.append(processor.name)

    def place(current: CallbackProcessor) -> None:
        if _rindex(sorted_names, current.name) != -1:
            return
        if current.before_name:
            index = _rindex(sorted_names, current.before_name)
            if index != -1:
                sorted_names.insert(index, current.name)
            else:
                index = _rindex(all_names, current.before_name)
                if index != -1:
                    sorted_names.append(current.name)
                    place(processors[index])
        if current.after_name:
            index = _rindex(sorted_names, current.after_name)
            if index != -1:
                sorted_names.insert(index + 1, current.name)
            else:
                index = _rindex(all_names, current.after_name)
                if index != -1:
                    other = processors[index]
                    if not other.before_name:
                        other.before_name = current.name
                    place(other)
        if _rindex(sorted_names, current.name) == -1:
            sorted_names.append(current.name)

    for processor in processors:
        place(processor)

    result: List[ScopeCallback] = []
    for name in sorted_names:
        chosen = processors[_rindex(all_names, name)]
        if not chosen.removing:
            result.append(chosen.processor)
    return result