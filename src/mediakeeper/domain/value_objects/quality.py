"""Quality levels and rankings per media type.

Hey future me - this is THE SINGLE SOURCE OF TRUTH for "which quality is better"!

A ranking is a total order over named levels for one media type. Higher rank = better.
Profiles don't reference positions, they keep snapshots of the levels they include
(id + name + rank), so re-ranking a media type later does not silently change what a
saved profile means. Re-save the profile to pick up the new order.

Default rankings follow the default profile order the library shipped with: the first
item is the best one, so rank = len(levels) + 1 - id.
"""

from dataclasses import dataclass
from enum import Enum

from mediakeeper.domain.exceptions import ConfigurationError


class MediaType(str, Enum):
    """Media types the library manages."""

    MOVIES = "movies"
    TV = "tv"
    MUSIC = "music"
    BOOKS = "books"

    @classmethod
    def from_string(cls, value: str) -> "MediaType":
        """Parse media type from string (case-insensitive).

        Raises:
            ValueError: If value is not a valid media type
        """
        normalized = value.lower().strip()
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Invalid media type: '{value}'. Valid options: {valid}"
            ) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class QualityLevel:
    """A named quality level with its rank.

    Identity is the id - two snapshots of the same level with different ranks are
    still the same level (that's what makes profile snapshots work).
    """

    id: int
    name: str
    rank: int

    def __eq__(self, other: object) -> bool:
        if isinstance(other, QualityLevel):
            return self.id == other.id
        return False

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class QualityRanking:
    """Total order over the quality levels of one media type."""

    media_type: MediaType
    levels: tuple[QualityLevel, ...]

    def __post_init__(self) -> None:
        ids = [level.id for level in self.levels]
        if len(set(ids)) != len(ids):
            raise ConfigurationError(
                f"Quality ranking for {self.media_type} has duplicate level ids"
            )
        ranks = [level.rank for level in self.levels]
        if len(set(ranks)) != len(ranks):
            raise ConfigurationError(
                f"Quality ranking for {self.media_type} has duplicate ranks"
            )

    def get(self, level_id: int) -> QualityLevel | None:
        """Get a level by id."""
        for level in self.levels:
            if level.id == level_id:
                return level
        return None

    def by_name(self, name: str) -> QualityLevel | None:
        """Get a level by name (case-insensitive)."""
        wanted = name.strip().lower()
        for level in self.levels:
            if level.name.lower() == wanted:
                return level
        return None

    def ordered(self) -> list[QualityLevel]:
        """Levels sorted best first."""
        return sorted(self.levels, key=lambda level: level.rank, reverse=True)

    def __len__(self) -> int:
        return len(self.levels)


def _ranking(media_type: MediaType, names: list[str]) -> QualityRanking:
    size = len(names)
    return QualityRanking(
        media_type=media_type,
        levels=tuple(
            QualityLevel(id=index, name=name, rank=size + 1 - index)
            for index, name in enumerate(names, start=1)
        ),
    )


_VIDEO_LEVELS = [
    "Bluray 2160p",
    "Bluray 1080p",
    "Bluray 720p",
    "Web 2160p",
    "Web 1080p",
    "Web 720p",
    "HDTV 1080p",
    "HDTV 720p",
    "DVD",
]

_MUSIC_LEVELS = [
    "FLAC",
    "ALAC",
    "WAV",
    "MP3 320",
    "MP3 V0",
    "MP3 256",
    "MP3 192",
    "AAC 256",
    "OGG Vorbis",
]

_BOOK_LEVELS = ["EPUB", "PDF", "MOBI", "AZW3", "CBZ", "CBR"]


DEFAULT_RANKINGS: dict[MediaType, QualityRanking] = {
    MediaType.MOVIES: _ranking(MediaType.MOVIES, _VIDEO_LEVELS),
    MediaType.TV: _ranking(MediaType.TV, _VIDEO_LEVELS),
    MediaType.MUSIC: _ranking(MediaType.MUSIC, _MUSIC_LEVELS),
    MediaType.BOOKS: _ranking(MediaType.BOOKS, _BOOK_LEVELS),
}


def default_ranking(media_type: MediaType) -> QualityRanking:
    """Get the built-in ranking for a media type."""
    return DEFAULT_RANKINGS[media_type]


def quality_from_name(name: str | None, media_type: MediaType) -> QualityLevel | None:
    """Resolve a stored quality name (e.g. "Web 1080p", "FLAC") to its level.

    Returns None for missing or unrecognised names - unknown quality, NOT lowest.
    """
    if not name:
        return None
    return default_ranking(media_type).by_name(name)
