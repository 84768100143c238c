"""
Core module for Event Viewer application.
Contains data models, record sources, pagination, column and filter state,
and the view coordinator.
"""

from .errors import (
    EventViewerError,
    FileLoadError,
    PageFetchError,
    UnknownColumnError,
)
from .models import (
    Column,
    PageResult,
    PageState,
    Record,
    ResultStatus,
    Snapshot,
    ViewResult,
    compute_last_page,
)
from .column_registry import ColumnRegistry
from .filter_manager import FilterEvaluator, render_value
from .io_handler import (
    DEFAULT_PAGE_SIZE,
    EventFileReader,
    EventLogSource,
    InMemoryRecordSource,
    PagedRecordSource,
    RecordSource,
    flatten_event,
    records_to_dataframe,
)
from .pagination import PaginationController
from .config import ViewerConfig, load_config, save_config
from .coordinator import ViewCoordinator

__all__ = [
    # Errors
    "EventViewerError",
    "FileLoadError",
    "PageFetchError",
    "UnknownColumnError",
    # Models
    "Column",
    "PageResult",
    "PageState",
    "Record",
    "ResultStatus",
    "Snapshot",
    "ViewResult",
    "compute_last_page",
    # Columns and filters
    "ColumnRegistry",
    "FilterEvaluator",
    "render_value",
    # IO
    "DEFAULT_PAGE_SIZE",
    "EventFileReader",
    "EventLogSource",
    "InMemoryRecordSource",
    "PagedRecordSource",
    "RecordSource",
    "flatten_event",
    "records_to_dataframe",
    # Pagination
    "PaginationController",
    # Config
    "ViewerConfig",
    "load_config",
    "save_config",
    # Coordination
    "ViewCoordinator",
]
