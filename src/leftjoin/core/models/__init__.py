"""Shared models and enums."""

from leftjoin.core.models.base import (
    JoinKind,
    NullsPlacement,
    Operator,
    Result,
    SortDirection,
)

__all__ = [
    "JoinKind",
    "NullsPlacement",
    "Operator",
    "Result",
    "SortDirection",
]
