"""Acquisition Coordinator - search, grab and import through the quality decision engine.

Hey future me - this is where the scheduler's search/sync/monitor tasks meet the outside
world. Flow per wanted item (items whose earlier grab is still downloading are skipped):

    indexer.search(query, categories)
      → keep only titles that really are this item (release_matching)
      → drop blacklisted releases (catalog) and sizes outside the profile limits
      → fill unknown quality from the title (quality_parser)
      → best candidate first (rank desc, unknown last, bigger first on equal rank)
      → decide() each one; FIRST AcceptNew/Upgrade wins → download_client.fetch + catalog.record_grab

Best-first matters: evaluating in indexer order could queue a 720p and then ALSO find the
1080p in the same pass. With best-first the first acceptable candidate is the best one.

The download monitor re-runs decide() on every completed download against the item's
CURRENT file before importing. A download that took six hours can be obsolete by the time
it finishes (a better file was imported meanwhile) → rejected instead of imported.
Failed downloads whose error points at the release (CRC, missing articles, ...) get the
release blacklisted so the next search picks a different one.

Error policy: indexer/download-client/catalog failures (CollaboratorError) propagate, the
scheduler records a failed run. A broken profile only fails its own item; the run keeps
going and ends as FAILED with the count in the summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from mediakeeper.application.services.release_matching import filter_matching
from mediakeeper.application.workers.task_registry import TaskContext
from mediakeeper.domain.entities import (
    CANDIDATE_INDEPENDENT_REASONS,
    CandidateRelease,
    Decision,
    KeepCurrent,
    QualityProfile,
    TaskOutcome,
    TaskType,
    decide,
    is_cutoff_unmet,
)
from mediakeeper.domain.exceptions import ConfigurationError
from mediakeeper.domain.ports import (
    DownloadState,
    DownloadStatus,
    IDownloadClient,
    IEventReporter,
    IIndexerClient,
    ILibraryCatalog,
    ILibraryMaintenance,
    IQualityProfileRepository,
    WantedItem,
)
from mediakeeper.domain.value_objects import MediaType, parse_quality

logger = logging.getLogger(__name__)


# Failure messages that mean "this release is broken" vs. "our setup is broken". Only
# the former get the release blacklisted, a full disk shouldn't burn a good release.
_BLACKLISTABLE_FAILURES = (
    "failed",
    "crc error",
    "par2",
    "verification",
    "repair",
    "missing articles",
    "incomplete",
    "aborted",
    "out of retention",
    "password protected",
    "encrypted",
    "damaged",
    "corrupt",
)
_SETUP_FAILURES = (
    "path not accessible",
    "not mounted",
    "remote path mapping",
    "permission denied",
    "disk full",
    "no space",
    "network storage",
    "file not found",
)


def is_blacklistable_failure(error: str | None) -> bool:
    """Check whether a download failure message points at the release itself."""
    if not error:
        return False
    lowered = error.lower()
    if any(pattern in lowered for pattern in _SETUP_FAILURES):
        return False
    return any(pattern in lowered for pattern in _BLACKLISTABLE_FAILURES)


def best_first(
    candidates: list[CandidateRelease], profile: QualityProfile | None = None
) -> list[CandidateRelease]:
    """Order candidates for evaluation: highest rank first, unknown quality last.

    With a profile, ranks come from the profile's level snapshots and levels it doesn't
    include sort with the unknowns (decide() rejects both anyway).
    """

    def rank(candidate: CandidateRelease) -> int | None:
        if candidate.quality is None:
            return None
        if profile is None:
            return candidate.quality.rank
        return profile.rank_of(candidate.quality)

    def key(candidate: CandidateRelease) -> tuple[bool, int, int]:
        value = rank(candidate)
        return (value is not None, value if value is not None else 0, candidate.size)

    return sorted(candidates, key=key, reverse=True)


@dataclass
class PassStats:
    """Counters of one handler execution (ends up in the task summary)."""

    items: int = 0
    searched: int = 0
    grabbed: int = 0
    skipped: int = 0
    imported: int = 0
    rejected: int = 0
    failed_downloads: int = 0
    blacklisted: int = 0
    errors: int = 0


class AcquisitionCoordinator:
    """Searches indexers for wanted items and processes finished downloads."""

    def __init__(
        self,
        indexer: IIndexerClient,
        download_client: IDownloadClient,
        catalog: ILibraryCatalog,
        profiles: IQualityProfileRepository,
        event_reporter: IEventReporter,
        categories: dict[MediaType, list[int]],
    ) -> None:
        self._indexer = indexer
        self._download_client = download_client
        self._catalog = catalog
        self._profiles = profiles
        self._reporter = event_reporter
        self._categories = categories

    # =========================================================================
    # Search
    # =========================================================================

    async def sync_wanted(self) -> PassStats:
        """Search every item that is missing a file or below its cutoff."""
        return await self._search_items(await self._catalog.list_wanted(), "wanted")

    async def search_requested(self) -> PassStats:
        """Search every explicitly requested item without a file."""
        items = [i for i in await self._catalog.list_requested() if i.current_file is None]
        return await self._search_items(items, "requested")

    async def _search_items(self, items: list[WantedItem], label: str) -> PassStats:
        stats = PassStats(items=len(items))
        profiles: dict[str, QualityProfile] = {}
        logger.info(f"🔍 Searching {len(items)} {label} item(s)")

        for item in items:
            if item.has_active_download:
                # the earlier grab is still in flight, the download monitor decides on it
                stats.skipped += 1
                logger.debug(f"Skipping {item.title}: download already in progress")
                continue
            try:
                profile = await self._profile_for(item, profiles)
                if not is_cutoff_unmet(profile, item.current_file):
                    stats.skipped += 1
                    continue
                stats.searched += 1
                decision = await self.search_item(item, profile)
            except ConfigurationError as e:
                stats.errors += 1
                logger.error(f"Skipping {item.id} ({item.title}): {e.message}")
                continue
            if decision is not None and decision.is_accepted:
                stats.grabbed += 1
        return stats

    async def search_item(self, item: WantedItem, profile: QualityProfile) -> Decision | None:
        """Search one item and grab the best acceptable candidate.

        Returns:
            The deciding decision (grab or candidate-independent KeepCurrent), or
            None when no candidate was acceptable

        Raises:
            ConfigurationError: Invalid profile
            CollaboratorError: Indexer or download client failed
        """
        results = await self._indexer.search(
            item.search_query, self._categories.get(item.media_type, [])
        )
        matching = filter_matching(results, item)
        available = await self._catalog.filter_blacklisted(matching) if matching else []
        candidates = [
            self._with_quality(candidate, item.media_type)
            for candidate in available
            if profile.size_acceptable(candidate.size)
        ]
        logger.debug(
            f"{item.title}: {len(results)} result(s), {len(matching)} matching title, "
            f"{len(matching) - len(available)} blacklisted, {len(candidates)} within size limits"
        )

        for candidate in best_first(candidates, profile):
            decision = decide(profile, candidate, item.current_file)
            if decision.is_accepted:
                job = await self._download_client.fetch(
                    candidate.source_reference, candidate.title
                )
                await self._catalog.record_grab(item.id, decision, job)
                self._reporter.report_decision(item.id, decision)
                logger.info(
                    f"⬇️  Grabbed '{candidate.title}' ({candidate.quality}) for {item.title}"
                )
                return decision
            if (
                isinstance(decision, KeepCurrent)
                and decision.reason in CANDIDATE_INDEPENDENT_REASONS
            ):
                # no other candidate can change this answer
                self._reporter.report_decision(item.id, decision)
                return decision
        return None

    @staticmethod
    def _with_quality(candidate: CandidateRelease, media_type: MediaType) -> CandidateRelease:
        if candidate.quality is not None:
            return candidate
        return replace(candidate, quality=parse_quality(candidate.title, media_type))

    async def _profile_for(
        self, item: WantedItem, cache: dict[str, QualityProfile]
    ) -> QualityProfile:
        profile = cache.get(item.profile_id)
        if profile is None:
            profile = await self._profiles.load_profile(item.profile_id)
            if profile is None:
                raise ConfigurationError(f"Quality profile {item.profile_id} not found")
            cache[item.profile_id] = profile
        return profile

    # =========================================================================
    # Download monitor
    # =========================================================================

    async def monitor_downloads(self) -> PassStats:
        """Evaluate finished downloads before import, report failed ones."""
        stats = PassStats()
        profiles: dict[str, QualityProfile] = {}

        for download in await self._download_client.list_active():
            if download.state == DownloadState.FAILED:
                item = await self._catalog.find_item_by_download(download.job_id)
                if item is None:
                    continue
                await self._catalog.mark_download_failed(item.id, download)
                stats.failed_downloads += 1
                logger.warning(
                    f"Download '{download.title}' failed: {download.error or 'unknown error'}"
                )
                if is_blacklistable_failure(download.error):
                    await self._catalog.blacklist_download(
                        item.id, download, download.error or "download failed"
                    )
                    stats.blacklisted += 1
                    logger.info(f"⛔ Blacklisted '{download.title}'")
                continue
            if download.state != DownloadState.COMPLETED:
                continue

            item = await self._catalog.find_item_by_download(download.job_id)
            if item is None:
                # already handled or not ours
                continue
            stats.items += 1
            try:
                profile = await self._profile_for(item, profiles)
                await self._process_completed(item, profile, download, stats)
            except ConfigurationError as e:
                stats.errors += 1
                logger.error(f"Can't evaluate download for {item.id}: {e.message}")
        return stats

    async def _process_completed(
        self,
        item: WantedItem,
        profile: QualityProfile,
        download: DownloadStatus,
        stats: PassStats,
    ) -> None:
        # Re-read right before deciding: an earlier download of this same pass may have
        # just been imported for the item.
        current = await self._catalog.get_item(item.id)
        if current is None:
            logger.warning(f"Item {item.id} is gone, leaving '{download.title}' alone")
            return

        candidate = CandidateRelease(
            title=download.title,
            quality=parse_quality(download.title, item.media_type),
            size=download.size,
            source_reference=download.output_path or download.job_id,
        )
        decision = decide(profile, candidate, current.current_file)
        self._reporter.report_decision(item.id, decision)

        if decision.is_accepted:
            await self._catalog.import_download(item.id, download, decision)
            stats.imported += 1
            logger.info(f"📥 Importing '{download.title}' for {item.title}")
        else:
            await self._catalog.reject_download(item.id, download, decision)
            stats.rejected += 1
            logger.info(
                f"🚫 Not importing '{download.title}' for {item.title}: "
                f"{decision.to_dict().get('reason')}"
            )


# =============================================================================
# Task handlers
# =============================================================================


def _outcome(stats: PassStats, summary: str) -> TaskOutcome:
    if stats.errors:
        return TaskOutcome.failed(f"{summary}, {stats.errors} error(s)")
    return TaskOutcome.success(summary)


class IndexSyncHandler:
    """periodic-index-sync: search everything that is wanted."""

    def __init__(self, coordinator: AcquisitionCoordinator) -> None:
        self._coordinator = coordinator

    async def execute(self, context: TaskContext) -> TaskOutcome:
        stats = await self._coordinator.sync_wanted()
        return _outcome(
            stats,
            f"{stats.searched}/{stats.items} searched, {stats.grabbed} grabbed",
        )


class RequestedSearchHandler:
    """requested-search: search explicitly requested items."""

    def __init__(self, coordinator: AcquisitionCoordinator) -> None:
        self._coordinator = coordinator

    async def execute(self, context: TaskContext) -> TaskOutcome:
        stats = await self._coordinator.search_requested()
        return _outcome(
            stats,
            f"{stats.searched}/{stats.items} searched, {stats.grabbed} grabbed",
        )


class DownloadMonitorHandler:
    """download-monitor: import or reject completed downloads."""

    def __init__(self, coordinator: AcquisitionCoordinator) -> None:
        self._coordinator = coordinator

    async def execute(self, context: TaskContext) -> TaskOutcome:
        stats = await self._coordinator.monitor_downloads()
        return _outcome(
            stats,
            f"{stats.imported} imported, {stats.rejected} rejected, "
            f"{stats.failed_downloads} failed",
        )


class MaintenanceHandler:
    """Thin handlers for library-scan, completed-scan, cleanup, backup, metadata-refresh."""

    def __init__(self, maintenance: ILibraryMaintenance, task_type: TaskType) -> None:
        operations = {
            TaskType.LIBRARY_SCAN: maintenance.scan_library,
            TaskType.COMPLETED_SCAN: maintenance.scan_completed_downloads,
            TaskType.CLEANUP: maintenance.cleanup,
            TaskType.BACKUP: maintenance.backup,
            TaskType.METADATA_REFRESH: maintenance.refresh_metadata,
        }
        if task_type not in operations:
            raise ConfigurationError(f"{task_type} is not a maintenance task")
        self._operation = operations[task_type]

    async def execute(self, context: TaskContext) -> TaskOutcome:
        return TaskOutcome.success(await self._operation())
