"""Read-only selectors for the restoration kernel."""

from restoration_kernel.selectors.dashboard_selector import DashboardSelector
from restoration_kernel.selectors.project_selector import (
    PROGRESS_BY_STATUS,
    ProjectSelector,
    progress_for_status,
)

__all__ = [
    "DashboardSelector",
    "PROGRESS_BY_STATUS",
    "ProjectSelector",
    "progress_for_status",
]
