"""
Failure capture: turn warnings and exceptions raised inside a callable into
inspectable records.
"""

from fox.capture.handler import (
    CapturedError,
    WarningHandlerScope,
)
from fox.capture.capture_errors import (
    CaptureErrors,
    CapturedErrors,
)
from fox.capture.exception_to_error import (
    ExceptionToError,
    DEFAULT_MESSAGE_FORMAT,
)

__all__ = [
    'CapturedError',
    'WarningHandlerScope',
    'CaptureErrors',
    'CapturedErrors',
    'ExceptionToError',
    'DEFAULT_MESSAGE_FORMAT',
]
