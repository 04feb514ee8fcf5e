"""
Iterative Improvement Engine
============================

Start with a guess, then repeatedly update the guess until a decision
function says it is close enough.

    guess₀ → decide? ──yes──→ accepted
               │ no
               ▼
    guess₁ = update(guess₀, 0) → decide? → ...

The engine only orchestrates the call/record/check loop. It makes no
assumption about convergence rate or numeric stability, and it never
inspects the guesses themselves; a guess may be a float, an ndarray, a
tuple of parameters or any other value the two functions understand.

Termination policy:
    - Accepted:  the decision function returned a truthy value
    - Exhausted: the optional iteration ceiling was reached, which raises
      IterationLimitExceeded

Anything raised by the decision or update function escapes the loop
unmodified. A failing update is never mistaken for a rejected guess.

History:
    Every guess is appended to the engine's trajectory, oldest first. The
    trajectory lives as long as the engine: invoking the same engine twice
    appends the second run after the first. Construct a new engine when a
    clean history per run is needed.

Usage:
    >>> golden = Improve(
    ...     lambda g: abs(g * g - (g + 1)) < 1e-5,
    ...     lambda g: 1 / g + 1,
    ... )
    >>> phi = golden(1)
    >>> golden.get_trajectory()[:3]
    (1, 2.0, 1.5)
"""

import inspect
import logging
import numbers
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from ..errors import ConfigurationError, IterationLimitExceeded

logger = logging.getLogger(__name__)


class ImproveStatus(Enum):
    """Terminal state of a single invocation."""
    ACCEPTED = auto()     # Decision function accepted a guess
    EXHAUSTED = auto()    # Iteration ceiling reached first


@dataclass
class ImproveRun:
    """Record of the most recent invocation of an engine."""
    status: ImproveStatus
    iterations: int                 # Update calls performed
    guesses: Tuple[Any, ...]        # This run's slice of the trajectory
    wall_time_seconds: float

    @property
    def result(self) -> Any:
        return self.guesses[-1]


def _takes_iteration_count(func: Callable) -> bool:
    """
    Whether ``func`` must be called as ``func(guess, iterations)``: it takes
    ``*args`` or a second positional parameter without a default. Optional
    positional slots (``out`` on numpy ufuncs, ``ndigits`` on ``round``) are
    left alone.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures get the guess only
        return False

    required = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if (
            param.kind in (
                inspect.Parameter.POSITIONAL_ONLY,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
            )
            and param.default is inspect.Parameter.empty
        ):
            required += 1
    return required >= 2


def _coerce_ceiling(value: Any) -> Optional[int]:
    """Validate an iteration ceiling, truncating numeric input to an int."""
    if value is None:
        return None

    if isinstance(value, bool):
        number = None
    elif isinstance(value, str):
        text = value.strip()
        number = None
        # int() and float() accept digit separators; a numeric string does not
        if '_' not in text:
            try:
                number = int(text)
            except ValueError:
                try:
                    number = float(text)
                except ValueError:
                    pass
    elif isinstance(value, numbers.Number):
        number = value
    else:
        number = None

    try:
        ceiling = 0 if number is None else int(number)
    except (TypeError, ValueError, OverflowError):
        # complex, NaN and infinity
        ceiling = 0

    if ceiling <= 0:
        raise ConfigurationError(
            f"max_iterations must be None or an integer number of "
            f"iterations greater than 0, got {value!r}"
        )
    return ceiling


class Improve:
    """
    Bounded fixed-point iteration over caller-defined guesses.

    Args:
        decide: Decides if the guess is good enough. Receives one argument,
            the current guess.
        update: Produces the next guess. Receives the current guess and,
            when its signature requires a second positional argument (or
            takes ``*args``), the number of updates already performed in
            this invocation.
            Wrappers exposing ``__wrapped__`` (CaptureErrors,
            ExceptionToError, functools.wraps) are judged by the callable
            they wrap.
        max_iterations: Optional ceiling on update calls per invocation.
        enable_logging: Configure DEBUG logging for the loop.
        pass_iteration: Force (True) or suppress (False) passing the
            count to ``update``. None detects it from the signature.

    Neither function is checked here; a non-callable fails on first use.
    """

    def __init__(
        self,
        decide: Callable[[Any], bool],
        update: Callable[..., Any],
        max_iterations: Optional[int] = None,
        enable_logging: bool = False,
        pass_iteration: Optional[bool] = None,
    ):
        self._decide = decide
        self._update = update
        if pass_iteration is None:
            self._update_takes_count = _takes_iteration_count(update)
        else:
            self._update_takes_count = bool(pass_iteration)
        self._guesses: List[Any] = []
        self._max_iterations: Optional[int] = _coerce_ceiling(max_iterations)
        self._last_run: Optional[ImproveRun] = None

        if enable_logging:
            logging.basicConfig(level=logging.DEBUG)

    def set_maximum_iterations(self, max_iterations: Optional[int]) -> None:
        """
        Set the maximum number of updates one invocation may perform.
        Useful when the improvement is subject to failure cases, like
        Newton's method started near a stationary point.

        ``None`` removes the limit, which is the default. Numeric input is
        truncated to an int; strings holding a number are accepted.

        Raises:
            ConfigurationError: for booleans, non-numeric values, NaN or
                infinity, and anything that truncates to zero or less. The
                previous ceiling is kept.
        """
        self._max_iterations = _coerce_ceiling(max_iterations)

    def get_maximum_iterations(self) -> Optional[int]:
        return self._max_iterations

    @property
    def max_iterations(self) -> Optional[int]:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: Optional[int]) -> None:
        self.set_maximum_iterations(value)

    def __call__(self, guess: Any) -> Any:
        """
        Given an initial guess, decide if it is good enough. If not, update
        it and repeat until accepted or until the ceiling is reached.

        Returns:
            The accepted guess.

        Raises:
            IterationLimitExceeded: when the ceiling is reached. The
                trajectory keeps every guess produced up to that point.
        """
        ceiling = self._max_iterations
        first = len(self._guesses)
        start_time = time.perf_counter()
        looped = 0
        self._last_run = None

        self._guesses.append(guess)
        while not self._decide(guess):
            guess = self._next_guess(guess, looped)
            self._guesses.append(guess)
            looped += 1
            logger.debug(f"Update {looped}: {guess!r}")

            if ceiling is not None and looped >= ceiling:
                self._last_run = self._finish(
                    ImproveStatus.EXHAUSTED, looped, first, start_time
                )
                logger.warning(
                    f"Iteration limit of {ceiling} reached; last guess {guess!r}"
                )
                raise IterationLimitExceeded(ceiling, self._guesses)

        self._last_run = self._finish(
            ImproveStatus.ACCEPTED, looped, first, start_time
        )
        logger.debug(f"Accepted {guess!r} after {looped} update(s)")
        return guess

    def get_trajectory(self) -> Tuple[Any, ...]:
        """
        Get every guess made by this engine, from oldest to youngest.

        The returned tuple is a snapshot; later invocations do not change it.
        """
        return tuple(self._guesses)

    @property
    def trajectory(self) -> Tuple[Any, ...]:
        return self.get_trajectory()

    def trajectory_array(self, dtype=None) -> np.ndarray:
        """The trajectory as an ndarray, one row per guess."""
        return np.array(self._guesses, dtype=dtype)

    @property
    def last_run(self) -> Optional[ImproveRun]:
        """
        Summary of the latest invocation, or None if it has not reached a
        terminal state (never invoked, or the last run raised from inside
        decide/update).
        """
        return self._last_run

    def __len__(self) -> int:
        return len(self._guesses)

    def __repr__(self):
        return (
            f"Improve(decide={self._decide!r}, update={self._update!r}, "
            f"max_iterations={self._max_iterations}, "
            f"guesses={len(self._guesses)})"
        )

    def _next_guess(self, guess: Any, looped: int) -> Any:
        if self._update_takes_count:
            return self._update(guess, looped)
        return self._update(guess)

    def _finish(
        self, status: ImproveStatus, looped: int, first: int, start_time: float
    ) -> ImproveRun:
        return ImproveRun(
            status=status,
            iterations=looped,
            guesses=tuple(self._guesses[first:]),
            wall_time_seconds=time.perf_counter() - start_time,
        )


def close_to(target: Any, rtol: float = 1e-05, atol: float = 1e-08) -> Callable[[Any], bool]:
    """
    Build a decision function accepting guesses within tolerance of
    ``target``. Scalars and arrays are compared element-wise, as with
    ``numpy.allclose``.

    Usage:
        >>> sqrt2 = Improve(
        ...     lambda g: close_to(2.0, atol=1e-9)(g * g),
        ...     lambda g: (g + 2 / g) / 2,
        ... )
    """
    def decide(guess: Any) -> bool:
        return bool(np.allclose(guess, target, rtol=rtol, atol=atol))
    return decide


def refine(
    decide: Callable[[Any], bool],
    update: Callable[..., Any],
    guess: Any,
    max_iterations: Optional[int] = None,
) -> Any:
    """One-shot shortcut: build an engine, run it once, return the result."""
    return Improve(decide, update, max_iterations=max_iterations)(guess)
