"""Git operation dispatchers.

Each dispatcher turns one validated request into a sequence of git
invocations and a structured OperationResult.
"""

from .base import GitStep, OperationContext, OperationDispatcher, OperationRun
from .reword import RewordDispatcher
from .stash import StashDispatcher

__all__ = [
    "GitStep",
    "OperationContext",
    "OperationDispatcher",
    "OperationRun",
    "RewordDispatcher",
    "StashDispatcher",
]
