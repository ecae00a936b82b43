from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

import plotly.graph_objs as go

from .filter_state import FilterState
from .record_store import RecordStore
from .viewport import ViewportController

logger = logging.getLogger(__name__)


@dataclass
class RenderContext:
    """
    Shared, read-only inputs a view needs besides its own data.

    - selection: highlighted specimen ids (empty = no highlighting)
    - viewport: pan/zoom controller, only used by views that project through it
    - animate: the viewport just started a transition, let plotly animate to it
    """

    selection: frozenset = field(default_factory=frozenset)
    viewport: Optional[ViewportController] = None
    animate: bool = False


class BaseView(ABC):
    """
    Abstract base class for all plot views.

    Defines the contract that every view in the app must follow
    - expose an 'id' - used internally (also the dcc.Graph id suffix)
    - expose a 'label' - used for UI/human-readable applications
    - implement 'compute_data' - the visible data given the current FilterState
    - implement 'render_figure' - the Plotly figure for that data, the selection and the viewport
    """

    id: str = None
    label: str = None
    # Views that can be brushed report the (x, y) columns the brush is compared against
    brushable: bool = False
    # Axis keys of the brushable subplot in plotly selectedData ranges
    brush_axes: Tuple[str, str] = ("x", "y")

    def __init__(self, store: RecordStore):
        self.store = store

    @abstractmethod
    def compute_data(self, state: FilterState) -> Any:
        """
        Compute the data given the current FilterState
        :param state: the current filter configuration
        :return: data: visible records in the shape render_figure expects
        """
        raise NotImplementedError()

    @abstractmethod
    def render_figure(self, data: Any, state: FilterState, context: RenderContext) -> go.Figure:
        """
        Render the figure given the computed data
        :param data: the data provided by {@link compute_data()}
        :param state: the current filter configuration
        :param context: selection + viewport shared across views
        :return: the Plotly figure for these parameters
        """
        raise NotImplementedError()

    # ------------------------------------------------------------------
    # Common helpers for all views
    # ------------------------------------------------------------------
    def timed_compute(self, state: FilterState) -> Any:
        start = time.perf_counter()
        data = self.compute_data(state)
        logger.debug(
            "compute_data finished",
            extra={"view_id": self.id, "elapsed_ms": round((time.perf_counter() - start) * 1000, 2)},
        )
        return data

    def brush_points(self, state: FilterState):
        """
        Visible records as a DataFrame with specimen_id / x / y columns in this
        view's data space. Only meaningful for brushable views.
        """
        raise NotImplementedError(f"View '{self.id}' does not support brushing")

    @staticmethod
    def empty_figure(message: str) -> go.Figure:
        """
        Standardised 'no data' figure used by all views.
        """
        fig = go.Figure()
        fig.update_layout(
            title=message,
            xaxis={"visible": False},
            yaxis={"visible": False},
        )
        return fig
