"""
Error taxonomy for fox.

Configuration mistakes are reported eagerly by setters, iteration exhaustion
lazily by the engine. Anything raised by caller-supplied callables is left
alone and surfaces exactly as raised.
"""

from typing import Any, Sequence, Tuple


class FoxError(Exception):
    """Base class for errors originated by fox itself."""


class ConfigurationError(FoxError, ValueError):
    """A setter or constructor was given an unusable value."""


class IterationLimitExceeded(FoxError, RuntimeError):
    """
    The iteration ceiling was reached before the decision function accepted
    a guess.

    Attributes:
        ceiling: the configured maximum number of updates
        trajectory: snapshot of every guess produced so far, including the
            one that tripped the limit
    """

    def __init__(self, ceiling: int, trajectory: Sequence[Any] = ()):
        super().__init__(f"Reached the iteration limit of {ceiling}")
        self.ceiling = ceiling
        self.trajectory: Tuple[Any, ...] = tuple(trajectory)

    def __reduce__(self):
        return (type(self), (self.ceiling, self.trajectory))


class ExpressionError(FoxError, ValueError):
    """Source text does not form a valid Python expression."""


class ExceptionWarning(UserWarning):
    """Default category for exceptions reflected into warnings."""
