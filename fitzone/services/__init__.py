"""Service layer package.

Exports the workflow consumed by ingestion and presentation layers.
"""

from .activity_service import (
    ActivityOutcome,
    ActivityService,
    ActivityServiceConfig,
    CellCapture,
)

__all__ = ["ActivityOutcome", "ActivityService", "ActivityServiceConfig", "CellCapture"]
