"""
Core engine layer: view state and its registry, row snapshot, filter, sort,
pagination and query engines, selection tracking and subscription sets
"""

from .filters import Connector, FilterCondition, FilterOperator
from .registry import StateRegistry
from .rows import Row, RowSnapshot
from .selection import BulkAction, SelectionTracker
from .state import CursorPosition, Mode, OffsetPosition, SortDirection, TableView

__all__ = [
    "Connector",
    "CursorPosition",
    "FilterCondition",
    "FilterOperator",
    "Mode",
    "OffsetPosition",
    "Row",
    "RowSnapshot",
    "BulkAction",
    "SelectionTracker",
    "SortDirection",
    "StateRegistry",
    "TableView",
]
