"""Error types raised by the ORM and a container for collecting several of them."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional


class OrmError(Exception):
    """Base class of every error the ORM raises."""


class RecordNotFoundError(OrmError):
    """Raised when a query for a single record finds nothing."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


class InvalidSQLError(OrmError):
    """Raised when a query is built from invalid SQL."""

    def __init__(self, message: str = "invalid SQL") -> None:
        super().__init__(message)


class InvalidTransactionError(OrmError):
    """Raised when committing or rolling back without a valid transaction."""

    def __init__(self, message: str = "no valid transaction") -> None:
        super().__init__(message)


class CantStartTransactionError(OrmError):
    """Raised when a transaction cannot be started."""

    def __init__(self, message: str = "can't start transaction") -> None:
        super().__init__(message)


class UnaddressableError(OrmError):
    """Raised when a value cannot be written back to its owner."""

    def __init__(self, message: str = "using unaddressable value") -> None:
        super().__init__(message)


class Errors(OrmError):
    """An ordered, duplicate-free collection of errors that is itself raisable."""

    def __init__(self, errors: Iterable[BaseException] = ()) -> None:
        self._errors: List[BaseException] = list(errors)
        super().__init__()

    def add(self, *args: Optional[BaseException]) -> "Errors":
        """Return a new collection with the given errors appended.

        ``None`` is skipped, nested collections are flattened and an error
        already present (the same object) is not added twice.
        """
        collected = list(self._errors)
        self._merge_into(collected, args)
        return Errors(collected)

    @classmethod
    def _merge_into(
        cls, collected: List[BaseException], new_errors: Iterable[Optional[BaseException]]
    ) -> None:
        for err in new_errors:
            if err is None:
                continue
            if isinstance(err, Errors):
                cls._merge_into(collected, list(err._errors))
            elif not any(err is existing for existing in collected):
                collected.append(err)

    def get_errors(self) -> List[BaseException]:
        """Return the collected errors as a list."""
        return list(self._errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __str__(self) -> str:
        return "; ".join(str(err) for err in self._errors)

    def __repr__(self) -> str:
        return f"Errors({self._errors!r})"


def is_record_not_found_error(err: Optional[BaseException]) -> bool:
    """Tell whether ``err`` is, or contains, a record-not-found error."""
    if isinstance(err, Errors):
        if any(isinstance(e, RecordNotFoundError) for e in err):
            return True
    return isinstance(err, RecordNotFoundError)