"""
Expression
==========

Manufactures a callable from a string.

Small callables passed to higher-order functions are often mostly syntax:

    sorted(pairs, key=lambda p: p[1])
    # vs. an ideal expression
    sorted(pairs, key=Expression('_0[1]'))

Expression wraps a function around a source expression. The first ten
positional arguments are available inside it as ``_0``, ``_1``, ..., ``_9``
(each defaulting to None). Libraries that want to accept concise string
expressions as arguments can pass them through Expression:

    >>> def keep(items, expression):
    ...     return list(filter(Expression(expression), items))
    >>> keep(['bee', 'bear', 'goose'], '4 <= len(_0)')
    ['bear', 'goose']

Compiled callables are cached by source text, so building the same
Expression repeatedly costs one dictionary lookup after the first time.
"""

import ast
import builtins
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Union

from ..errors import ExpressionError

MAX_ARGUMENTS = 10

# Formal signature shared by every manufactured callable
SIGNATURE = ', '.join(f'_{i}=None' for i in range(MAX_ARGUMENTS))


@dataclass
class ExpressionCacheInfo:
    """Statistics for the compiled-expression cache."""
    hits: int = 0
    misses: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class Expression:
    """
    Callable built from either a callable or a source expression string.

    A callable is used untouched. A string becomes a function returning the
    value of the expression:

        >>> lt = Expression('_0 < _1')
        >>> lt(0, 1)
        True
        >>> lt(1, 0)
        False

    Do not include a ``return`` in the expression. Names resolve against
    the builtins and the ``math`` module.

    Raises:
        TypeError: if ``expression`` is neither callable nor a string
        ExpressionError: if the string is not a valid Python expression
    """

    _cache: Dict[str, Callable[..., Any]] = {}
    _stats = ExpressionCacheInfo()

    def __init__(self, expression: Union[Callable[..., Any], str]):
        if callable(expression):
            self._callable = expression
            self.__wrapped__ = expression
        elif isinstance(expression, str):
            self._callable = self._make_callable(expression)
        else:
            raise TypeError(
                f"expression (of type {type(expression).__name__}) must be "
                f"callable or string"
            )
        self.source = expression if isinstance(expression, str) else None

    def __call__(self, *args, **kwargs) -> Any:
        """Execute the manufactured callable with up to 10 arguments."""
        return self._callable(*args, **kwargs)

    def get_callable(self) -> Callable[..., Any]:
        return self._callable

    def __repr__(self):
        if self.source is not None:
            return f"Expression({self.source!r})"
        return f"Expression({self._callable!r})"

    @classmethod
    def cache_info(cls) -> ExpressionCacheInfo:
        return ExpressionCacheInfo(
            hits=cls._stats.hits,
            misses=cls._stats.misses,
            size=len(cls._cache),
        )

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()
        cls._stats = ExpressionCacheInfo()

    @classmethod
    def _make_callable(cls, expression: str) -> Callable[..., Any]:
        """Turn a string expression into a function, caching the result."""
        cached = cls._cache.get(expression)
        if cached is not None:
            cls._stats.hits += 1
            return cached

        cls._stats.misses += 1
        source = f"lambda {SIGNATURE}: ({expression})"
        try:
            # Parsing alone first rejects input that would escape the parentheses
            ast.parse(expression.strip(), mode='eval')
            code = compile(source, f"<expression {expression!r}>", 'eval')
        except (SyntaxError, ValueError) as e:
            raise ExpressionError(
                f"Expression does not result in valid Python code. "
                f"You gave=[{expression}], becomes=[{source}]"
            ) from e

        namespace = {'__builtins__': builtins, 'math': math}
        function = eval(code, namespace)
        cls._cache[expression] = function
        return function
