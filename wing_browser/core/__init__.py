"""
Core domain layer: records and their store, size filtering, selection
coordination, viewport projection, the view base class and the view registry
"""

from .filter_state import FilterState
from .record_store import RecordStore
from .selection import BrushRect, SelectionCoordinator
from .viewport import ViewportController, ViewportTransform
from .base_view import BaseView, RenderContext
from .view_registry import ViewRegistry

__all__ = [
    "FilterState",
    "RecordStore",
    "BrushRect",
    "SelectionCoordinator",
    "ViewportController",
    "ViewportTransform",
    "BaseView",
    "RenderContext",
    "ViewRegistry",
]
