"""
CaptureErrors
=============

Runs a callable, capturing every warning issued during the call, and keeps
them for later inspection.

Many libraries (and Python itself) report recoverable problems through
``warnings`` rather than exceptions. Frameworks usually offer a global way
to turn those into errors, but that is not always available, and some code
deliberately silences them. Wrapping a callable in CaptureErrors collects
those signals regardless of the surrounding filter configuration:

    >>> helper = CaptureErrors(shutil.copy)
    >>> helper('foo', 'bar')
    >>> if helper.get_captured_errors():
    ...     raise RuntimeError(helper.get_captured_errors().pop().message)

Each captured warning is pushed onto a stack as a CapturedError with the
warning category, message, file and line where it was issued, and a
snapshot of the variables in scope at that point.
"""

import logging
from typing import Any, Callable, Iterator, List

from .handler import CapturedError, WarningHandlerScope, WarningTypes, validate_categories

logger = logging.getLogger(__name__)


class CapturedErrors:
    """Stack of captured warnings, oldest first."""

    def __init__(self):
        self._records: List[CapturedError] = []

    def push(self, record: CapturedError) -> None:
        self._records.append(record)

    def pop(self) -> CapturedError:
        """Remove and return the most recent record."""
        if not self._records:
            raise IndexError("pop from empty CapturedErrors")
        return self._records.pop()

    def get(self, index: int) -> CapturedError:
        return self._records[index]

    def pluck(self, field_name: str) -> List[Any]:
        """Collect one field from every record, e.g. ``pluck('message')``."""
        return [getattr(record, field_name) for record in self._records]

    def clear(self) -> None:
        self._records.clear()

    def to_list(self) -> List[CapturedError]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CapturedError]:
        return iter(list(self._records))

    def __getitem__(self, index):
        return self._records[index]

    def __repr__(self):
        return f"CapturedErrors({self._records!r})"


class CaptureErrors:
    """
    Callable wrapper that captures warnings issued while ``code`` runs.

    By default all warnings are captured; narrow this with
    ``set_captured_error_types``. Records accumulate across calls.
    Exceptions raised by ``code`` propagate after the previous warning
    handler has been restored.
    """

    def __init__(self, code: Callable[..., Any]):
        self.code = code
        self.__wrapped__ = code
        self._captured_error_types: WarningTypes = Warning
        self._errors = CapturedErrors()

    def set_captured_error_types(self, captured_error_types: WarningTypes) -> None:
        """
        Only capture warnings whose category is a subclass of
        ``captured_error_types`` (a Warning subclass or a tuple of them).

        Raises:
            ConfigurationError: if given anything else.
        """
        self._captured_error_types = validate_categories(captured_error_types)

    def get_captured_error_types(self) -> WarningTypes:
        return self._captured_error_types

    def __call__(self, *args, **kwargs) -> Any:
        with WarningHandlerScope(self._record, self._captured_error_types):
            return self.code(*args, **kwargs)

    def get_captured_errors(self) -> CapturedErrors:
        return self._errors

    def _record(self, record: CapturedError) -> None:
        logger.debug(f"Captured {record}")
        self._errors.push(record)
