"""
Iterative improvement: refine a guess until a decision function accepts it.
"""

from fox.iteration.improve import (
    Improve,
    ImproveRun,
    ImproveStatus,
    close_to,
    refine,
)

__all__ = [
    'Improve',
    'ImproveRun',
    'ImproveStatus',
    'close_to',
    'refine',
]
