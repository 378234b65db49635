"""Application services."""

from mediakeeper.application.services.acquisition_coordinator import (
    AcquisitionCoordinator,
    DownloadMonitorHandler,
    IndexSyncHandler,
    MaintenanceHandler,
    RequestedSearchHandler,
)

__all__ = [
    "AcquisitionCoordinator",
    "DownloadMonitorHandler",
    "IndexSyncHandler",
    "MaintenanceHandler",
    "RequestedSearchHandler",
]
