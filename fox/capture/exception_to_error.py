"""
ExceptionToError
================

Runs a callable, catching any exception and reflecting it into a warning.

Combined with CaptureErrors this turns exception-raising code into code
whose failures can be traced over a retry or refinement cycle:

    >>> capture = CaptureErrors(ExceptionToError(fetch_page))
    >>> engine = Improve(lambda page: page is not False, lambda _: capture(url))
    >>> engine.set_maximum_iterations(5)
    >>> engine(False)
    >>> capture.get_captured_errors().pluck('message')

The warning is issued at the file and line where the exception was raised,
and carries the exception and a snapshot of that frame's local variables
as ``exception`` and ``context`` attributes of the warning instance.
"""

import logging
import traceback
import warnings
from typing import Any, Callable, Dict, Tuple, Type

from ..errors import ConfigurationError, ExceptionWarning

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_FORMAT = "{message} ({code}) thrown at {file}:{line} as {type} exception."


def _origin(exc: BaseException) -> Tuple[str, int, Dict[str, Any]]:
    """File, line and local variables of the frame that raised ``exc``."""
    tb = exc.__traceback__
    if tb is None:
        return '<unknown>', 0, {}
    while tb.tb_next is not None:
        tb = tb.tb_next
    summary = traceback.extract_tb(tb, limit=1)[0]
    return summary.filename, summary.lineno, dict(tb.tb_frame.f_locals)


def _exception_code(exc: BaseException) -> Any:
    code = getattr(exc, 'code', None)
    if code is None:
        code = getattr(exc, 'errno', None)
    return 0 if code is None else code


class ExceptionToError:
    """
    Callable wrapper that converts exceptions raised by ``code`` into
    warnings.

    Returns whatever ``code`` returns, unless it raises an ``Exception``, in
    which case a warning is issued and ``False`` is returned.
    ``BaseException`` subclasses outside ``Exception`` (KeyboardInterrupt,
    SystemExit) are not intercepted.
    """

    def __init__(self, code: Callable[..., Any]):
        self.code = code
        self.__wrapped__ = code
        self._error_message_format = DEFAULT_MESSAGE_FORMAT
        self._error_code: Type[Warning] = ExceptionWarning

    def set_error_message_format(self, error_message_format: str) -> None:
        """
        Change the format of the generated warning messages. Accepts a
        ``str.format`` template with these fields:

        - ``{message}`` the exception message
        - ``{code}``    the exception's ``code`` or ``errno``, else 0
        - ``{file}``    the file where the exception was raised
        - ``{line}``    the line where the exception was raised
        - ``{type}``    the class name of the exception

        The default format is:
        ``{message} ({code}) thrown at {file}:{line} as {type} exception.``
        """
        if not isinstance(error_message_format, str):
            raise ConfigurationError(
                f"error message format must be a string, got {error_message_format!r}"
            )
        self._error_message_format = error_message_format

    def get_error_message_format(self) -> str:
        return self._error_message_format

    def set_error_code(self, error_code: Type[Warning]) -> None:
        """
        Change the warning category used to deliver exceptions. Defaults
        to ExceptionWarning.
        """
        if not (isinstance(error_code, type) and issubclass(error_code, Warning)):
            raise ConfigurationError(
                f"error code must be a Warning subclass, got {error_code!r}"
            )
        self._error_code = error_code

    def get_error_code(self) -> Type[Warning]:
        return self._error_code

    def format_exception(self, exc: BaseException) -> str:
        """Pass the given exception through the message format."""
        filename, lineno, _ = _origin(exc)
        return self._error_message_format.format(
            message=str(exc),
            code=_exception_code(exc),
            file=filename,
            line=lineno,
            type=type(exc).__name__,
        )

    def __call__(self, *args, **kwargs) -> Any:
        try:
            return self.code(*args, **kwargs)
        except Exception as exc:
            filename, lineno, context = _origin(exc)
            warning = self._error_code(self.format_exception(exc))
            warning.exception = exc
            warning.context = context
            logger.debug(f"Reflecting {type(exc).__name__} as {self._error_code.__name__}")
            warnings.warn_explicit(warning, self._error_code, filename, lineno)
            return False
