"""
Scoped Warning Handler
======================

Python's process-wide failure channel for non-fatal problems is the
``warnings`` machinery. This module installs a temporary observer on it for
the duration of a ``with`` block and restores the previous filters and
``warnings.showwarning`` on every exit path, including exceptions.

While the scope is active:
  - warnings of the observed categories are always delivered (no
    once-per-location deduplication) to the handler as CapturedError records
  - other warnings keep the caller's filters and go to the previously
    installed ``showwarning``

Like ``warnings.catch_warnings``, this mutates interpreter-global state and
is not thread-safe.
"""

import sys
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Type, Union

from ..errors import ConfigurationError

WarningTypes = Union[Type[Warning], Tuple[Type[Warning], ...]]

# How far up the stack to look for the frame that issued a warning
MAX_FRAME_SEARCH = 32


@dataclass
class CapturedError:
    """A single observed warning."""
    code: Type[Warning]
    message: str
    file: str
    line: int
    context: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    def __str__(self):
        return f"{self.file}:{self.line}: {self.code.__name__}: {self.message}"


def validate_categories(categories: Any) -> WarningTypes:
    """Accept a Warning subclass or a non-empty tuple of them."""
    if isinstance(categories, type) and issubclass(categories, Warning):
        return categories
    if (
        isinstance(categories, tuple)
        and categories
        and all(isinstance(c, type) and issubclass(c, Warning) for c in categories)
    ):
        return categories
    raise ConfigurationError(
        f"captured error types must be a Warning subclass or a tuple of "
        f"them, got {categories!r}"
    )


def _issuing_locals(filename: str, lineno: int) -> Dict[str, Any]:
    """Snapshot the locals of the frame that issued a warning, if found."""
    frame = sys._getframe(1)
    try:
        for _ in range(MAX_FRAME_SEARCH):
            if frame is None:
                break
            if frame.f_code.co_filename == filename and frame.f_lineno == lineno:
                return dict(frame.f_locals)
            frame = frame.f_back
        return {}
    finally:
        del frame


class WarningHandlerScope:
    """
    Context manager routing warnings of ``categories`` to ``handler``.

    Usage:
        >>> records = []
        >>> with WarningHandlerScope(records.append):
        ...     warnings.warn("disk almost full")
        >>> records[0].message
        'disk almost full'
    """

    def __init__(
        self,
        handler: Callable[[CapturedError], Any],
        categories: WarningTypes = Warning,
    ):
        self.handler = handler
        self.categories = validate_categories(categories)
        self._saved: Optional[warnings.catch_warnings] = None

    def __enter__(self):
        self._saved = warnings.catch_warnings()
        self._saved.__enter__()

        previous = warnings.showwarning
        categories = self.categories
        handler = self.handler

        def showwarning(message, category, filename, lineno, file=None, line=None):
            if not issubclass(category, categories):
                previous(message, category, filename, lineno, file, line)
                return
            context = getattr(message, 'context', None)
            if context is None:
                context = _issuing_locals(filename, lineno)
            handler(CapturedError(
                code=category,
                message=str(message),
                file=filename,
                line=lineno,
                context=dict(context),
            ))

        for category in (categories if isinstance(categories, tuple) else (categories,)):
            warnings.simplefilter('always', category)
        warnings.showwarning = showwarning
        return self

    def __exit__(self, *exc):
        saved, self._saved = self._saved, None
        if saved is not None:
            saved.__exit__(*exc)
        return False
