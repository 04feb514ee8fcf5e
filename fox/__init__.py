"""
Fox: Composable Callables for Iterative Refinement and Failure Capture
======================================================================

Small wrappers that compose around ordinary callables:

Core Components:
    - iteration: bounded fixed-point iteration (Improve) recording every guess
    - capture: collect warnings (CaptureErrors) and reflect exceptions into
      warnings (ExceptionToError) without a global error framework
    - expression: build callables from short source strings (Expression)

Usage:
    >>> import fox
    >>> engine = fox.Improve(fox.Expression('4 <= _0'), fox.Expression('_0 + 1'))
    >>> engine(1)
    4
    >>> engine.get_trajectory()
    (1, 2, 3, 4)

    >>> capture = fox.CaptureErrors(fox.ExceptionToError(lambda: 1 / 0))
    >>> capture()
    False
    >>> capture.get_captured_errors().pop().message
    'division by zero (0) thrown at ...'
"""

__version__ = "1.0.0"
__author__ = "Fox Developers"

from fox.errors import (
    FoxError,
    ConfigurationError,
    IterationLimitExceeded,
    ExpressionError,
    ExceptionWarning,
)
from fox.iteration import Improve, ImproveRun, ImproveStatus, close_to, refine
from fox.capture import (
    CapturedError,
    CapturedErrors,
    CaptureErrors,
    ExceptionToError,
    WarningHandlerScope,
)
from fox.expression import Expression, ExpressionCacheInfo
