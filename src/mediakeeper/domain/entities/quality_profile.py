"""Quality Profile Entity - what quality a library item should have.

Hey future me - a profile is a POLICY, not a filter list!

KONZEPT:
- levels: the subset of the media type's ranking the user wants at all
- cutoff: "good enough, stop upgrading" - one of the included levels
- upgrade_allowed: may we replace a file that is below the cutoff?
- min_size / max_size: optional byte limits for releases (None = no limit)

Including only a subset of levels never changes their order. Comparisons use the rank
stored in the PROFILE's own level snapshots (rank_of), never the rank a candidate or a
file happens to carry - those come from whatever ranking parsed them, which may be newer
than the saved profile.

USAGE:
```python
profile = QualityProfile(
    id="hd",
    name="HD",
    media_type=MediaType.MOVIES,
    levels=(web_720p, web_1080p, bluray_1080p),
    cutoff=web_1080p,
    upgrade_allowed=True,
)
decision = decide(profile, candidate, current_file)
```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from mediakeeper.domain.exceptions import ConfigurationError
from mediakeeper.domain.value_objects.quality import (
    MediaType,
    QualityLevel,
    QualityRanking,
)


@dataclass(frozen=True)
class QualityProfile:
    """Quality policy for one media type."""

    id: str
    name: str
    media_type: MediaType
    levels: tuple[QualityLevel, ...]
    cutoff: QualityLevel
    upgrade_allowed: bool = True
    min_size: int | None = None
    max_size: int | None = None

    def validate(self) -> None:
        """Check the profile can be used for decisions.

        Raises:
            ConfigurationError: No included levels, or cutoff outside them
        """
        if not self.levels:
            raise ConfigurationError(
                f"Quality profile '{self.name}' has no included quality levels"
            )
        if self.cutoff not in self.levels:
            raise ConfigurationError(
                f"Quality profile '{self.name}': cutoff '{self.cutoff.name}' "
                "is not one of the included levels"
            )

    def includes(self, level: QualityLevel) -> bool:
        """Check if a level is wanted by this profile (by identity)."""
        return level in self.levels

    def rank_of(self, level: QualityLevel) -> int | None:
        """Rank of a level as this profile saved it, None if the profile doesn't include it."""
        for included in self.levels:
            if included.id == level.id:
                return included.rank
        return None

    @property
    def cutoff_rank(self) -> int:
        """Rank of the cutoff (validate() first - a cutoff outside the levels has none)."""
        rank = self.rank_of(self.cutoff)
        if rank is None:
            raise ConfigurationError(
                f"Quality profile '{self.name}': cutoff '{self.cutoff.name}' "
                "is not one of the included levels"
            )
        return rank

    def size_acceptable(self, size: int) -> bool:
        """Check a release size (bytes) against min_size/max_size."""
        if self.min_size is not None and size < self.min_size:
            return False
        if self.max_size is not None and size > self.max_size:
            return False
        return True

    @classmethod
    def from_ranking(
        cls,
        *,
        id: str,
        name: str,
        ranking: QualityRanking,
        level_ids: list[int],
        cutoff_id: int,
        upgrade_allowed: bool = True,
        min_size: int | None = None,
        max_size: int | None = None,
    ) -> QualityProfile:
        """Build a profile by picking level snapshots out of a ranking.

        Raises:
            ConfigurationError: Unknown level or cutoff id
        """
        levels: list[QualityLevel] = []
        for level_id in level_ids:
            level = ranking.get(level_id)
            if level is None:
                raise ConfigurationError(
                    f"Quality level {level_id} does not exist for {ranking.media_type}"
                )
            levels.append(level)

        cutoff = ranking.get(cutoff_id)
        if cutoff is None:
            raise ConfigurationError(
                f"Cutoff level {cutoff_id} does not exist for {ranking.media_type}"
            )

        return cls(
            id=id,
            name=name,
            media_type=ranking.media_type,
            levels=tuple(levels),
            cutoff=cutoff,
            upgrade_allowed=upgrade_allowed,
            min_size=min_size,
            max_size=max_size,
        )


@dataclass(frozen=True)
class MediaFile:
    """A file already associated with a library item.

    quality=None means UNKNOWN quality - a distinct state from "lowest quality"!
    """

    id: str
    relative_path: str
    size: int
    quality: QualityLevel | None = None
    added_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class CandidateRelease:
    """A search result (or finished download) under evaluation.

    Ephemeral - never persisted by the core, consumed once per decision.
    source_reference is opaque: whatever the download client needs to fetch it.
    """

    title: str
    quality: QualityLevel | None
    size: int
    source_reference: str
    indexer: str | None = None
    guid: str | None = None
