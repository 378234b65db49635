"""Application lifecycle management for startup and shutdown tasks.

Startup order:
1. logging
2. database (+ tables)
3. repositories, event reporter
4. integrations (Prowlarr, SABnzbd) - only when configured
5. task handlers → scheduler.register() → scheduler.load() (restart recovery)
6. scheduler.start() - polling loop

Shutdown runs in reverse: scheduler (abandons in-flight runs), HTTP clients, database.

Hey future me - the library catalog and maintenance jobs are EXTERNAL collaborators. They're
passed into create_app() and land on app.state before the lifespan runs. No catalog → no
search/monitor handlers, no maintenance → no scan/cleanup/backup handlers. Those task types
just aren't registered (their persisted rows stay untouched).
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from mediakeeper.application.services import (
    AcquisitionCoordinator,
    DownloadMonitorHandler,
    IndexSyncHandler,
    MaintenanceHandler,
    RequestedSearchHandler,
)
from mediakeeper.application.workers import TaskScheduler
from mediakeeper.config import Settings, get_settings
from mediakeeper.domain.entities import TaskType, default_definition
from mediakeeper.domain.ports import ILibraryCatalog, ILibraryMaintenance
from mediakeeper.domain.value_objects import MediaType
from mediakeeper.infrastructure.integrations import ProwlarrClient, SabnzbdClient
from mediakeeper.infrastructure.observability import (
    LoggingEventReporter,
    configure_logging,
)
from mediakeeper.infrastructure.persistence import (
    Database,
    QualityProfileRepository,
    ScheduledTaskRepository,
)

logger = logging.getLogger(__name__)

_MAINTENANCE_TASKS = (
    TaskType.LIBRARY_SCAN,
    TaskType.COMPLETED_SCAN,
    TaskType.CLEANUP,
    TaskType.BACKUP,
    TaskType.METADATA_REFRESH,
)


def build_scheduler(
    settings: Settings,
    task_repository: ScheduledTaskRepository | None,
    reporter: LoggingEventReporter,
    coordinator: AcquisitionCoordinator | None,
    maintenance: ILibraryMaintenance | None,
) -> TaskScheduler:
    """Create the scheduler and register a handler for every task we can serve."""
    scheduler = TaskScheduler(
        task_repository=task_repository,
        event_reporter=reporter,
        poll_interval_seconds=settings.scheduler.poll_interval_seconds,
        stuck_threshold=timedelta(minutes=settings.scheduler.stuck_threshold_minutes),
    )

    if coordinator is not None:
        scheduler.register(
            default_definition(TaskType.PERIODIC_INDEX_SYNC), IndexSyncHandler(coordinator)
        )
        scheduler.register(
            default_definition(TaskType.REQUESTED_SEARCH), RequestedSearchHandler(coordinator)
        )
        scheduler.register(
            default_definition(TaskType.DOWNLOAD_MONITOR), DownloadMonitorHandler(coordinator)
        )
    else:
        logger.warning("⚠️  Acquisition tasks disabled (no catalog or indexer/download client)")

    if maintenance is not None:
        for task_type in _MAINTENANCE_TASKS:
            scheduler.register(
                default_definition(task_type), MaintenanceHandler(maintenance, task_type)
            )
    else:
        logger.warning("⚠️  Maintenance tasks disabled (no library maintenance collaborator)")

    return scheduler


def _categories(settings: Settings) -> dict[MediaType, list[int]]:
    return {
        MediaType.MOVIES: settings.prowlarr.movie_categories,
        MediaType.TV: settings.prowlarr.tv_categories,
        MediaType.MUSIC: settings.prowlarr.music_categories,
        MediaType.BOOKS: settings.prowlarr.book_categories,
    }


# Listen future me, everything before `yield` is STARTUP, after it SHUTDOWN. The finally
# makes sure clients and the DB get closed even if startup blew up halfway.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    catalog: ILibraryCatalog | None = getattr(app.state, "catalog", None)
    maintenance: ILibraryMaintenance | None = getattr(app.state, "maintenance", None)

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    db: Database | None = None
    prowlarr: ProwlarrClient | None = None
    sabnzbd: SabnzbdClient | None = None
    scheduler: TaskScheduler | None = None
    try:
        db = Database(settings)
        if settings.database.auto_create_tables:
            await db.create_tables()
        app.state.db = db
        logger.info("Database initialized: %s", settings.database.url)

        task_repository = ScheduledTaskRepository(db.session_scope)
        profile_repository = QualityProfileRepository(db.session_scope)
        reporter = LoggingEventReporter(settings.observability.event_history_size)
        app.state.profile_repository = profile_repository
        app.state.event_reporter = reporter

        coordinator: AcquisitionCoordinator | None = None
        if catalog is not None and settings.prowlarr.is_configured and settings.sabnzbd.is_configured:
            prowlarr = ProwlarrClient(settings.prowlarr)
            sabnzbd = SabnzbdClient(settings.sabnzbd)
            coordinator = AcquisitionCoordinator(
                indexer=prowlarr,
                download_client=sabnzbd,
                catalog=catalog,
                profiles=profile_repository,
                event_reporter=reporter,
                categories=_categories(settings),
            )

        scheduler = build_scheduler(settings, task_repository, reporter, coordinator, maintenance)
        await scheduler.load()
        app.state.task_scheduler = scheduler

        if settings.scheduler.enabled:
            await scheduler.start()
        else:
            logger.info("Task scheduler loop disabled (SCHEDULER__ENABLED=false)")

        yield

    finally:
        logger.info("Shutting down application")
        if scheduler is not None:
            try:
                await asyncio.wait_for(
                    scheduler.stop(), timeout=settings.observability.shutdown_timeout
                )
            except TimeoutError:
                logger.warning("Task scheduler did not stop in time")
        for client in (prowlarr, sabnzbd):
            if client is not None:
                await client.close()
        if db is not None:
            await db.close()
        logger.info("Application shutdown complete")
