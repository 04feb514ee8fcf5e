"""
Callables manufactured from source expression strings.
"""

from fox.expression.expression import (
    Expression,
    ExpressionCacheInfo,
    MAX_ARGUMENTS,
)

__all__ = [
    'Expression',
    'ExpressionCacheInfo',
    'MAX_ARGUMENTS',
]
