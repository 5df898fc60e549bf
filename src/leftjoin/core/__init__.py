"""Core module - configuration, logging, connections, and shared models."""

from leftjoin.core.config import Settings, get_settings
from leftjoin.core.models.base import (
    JoinKind,
    NullsPlacement,
    Operator,
    Result,
    SortDirection,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Models - enums
    "JoinKind",
    "NullsPlacement",
    "Operator",
    "SortDirection",
    # Models - base data structures
    "Result",
]
