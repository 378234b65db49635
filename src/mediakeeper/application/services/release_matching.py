"""Release title matching - does this search result belong to the wanted item?

Hey future me - indexers return FUZZY results. Searching "Friends" happily returns
"Friends with Benefits 2011 1080p" and "My Friends S01E01". The quality engine can't
catch that (it only knows quality), so results are filtered HERE first:

- TV: title prefix + season pattern right after it ("s01", "s01e01", "season 1").
  Daily shows may also carry an air date ("2024 01 15") anywhere after the title.
- Movies: title prefix + empty / year / resolution / source token after it.
- Music, books: normalized title contained in the release title.
"""

import re

from mediakeeper.domain.entities import CandidateRelease
from mediakeeper.domain.ports import WantedItem
from mediakeeper.domain.value_objects import MediaType

_SEASON_PATTERN = re.compile(r"^s\d+|^season\s*\d+", re.IGNORECASE)
_DATE_PATTERN = re.compile(r"\d{4}\s+\d{1,2}\s+\d{1,2}")
_MOVIE_SUFFIX_PATTERN = re.compile(
    r"^\d{4}|^\d{3,4}p|^bluray|^webrip|^web dl|^hdtv|^dvdrip|^brrip|^remux|^uhd",
    re.IGNORECASE,
)
_MOVIE_NEXT_WORD_PATTERN = re.compile(
    r"^(\d{4}|\d{3,4}p|bluray|webrip|web|hdtv|dvdrip|brrip|remux|uhd)$",
    re.IGNORECASE,
)


def normalize_title(title: str) -> str:
    """Lowercase, dots/underscores/hyphens → spaces, collapse whitespace."""
    return re.sub(r"\s+", " ", re.sub(r"[._-]", " ", title.lower())).strip()


def _words_after_prefix(release: str, expected: str) -> str | None:
    # None when the release doesn't start with the expected title words
    release_words = release.split(" ")
    expected_words = expected.split(" ")
    if len(release_words) < len(expected_words):
        return None
    if " ".join(release_words[: len(expected_words)]) != expected:
        return None
    return " ".join(release_words[len(expected_words) :])


def tv_title_matches(release_title: str, expected_title: str, series_type: str = "standard") -> bool:
    after = _words_after_prefix(normalize_title(release_title), normalize_title(expected_title))
    if after is None:
        return False
    if _SEASON_PATTERN.search(after):
        return True
    return series_type == "daily" and _DATE_PATTERN.search(after) is not None


def movie_title_matches(release_title: str, expected_title: str) -> bool:
    release = normalize_title(release_title)
    expected = normalize_title(expected_title)

    if release.startswith(expected):
        after = release[len(expected) :].strip()
        if after == "" or _MOVIE_SUFFIX_PATTERN.search(after):
            return True

    after_words = _words_after_prefix(release, expected)
    if after_words is None:
        return False
    next_word = after_words.split(" ")[0] if after_words else ""
    return _MOVIE_NEXT_WORD_PATTERN.match(next_word) is not None


def release_matches_item(candidate: CandidateRelease, item: WantedItem) -> bool:
    """Check that a candidate release is actually for the wanted item."""
    if item.media_type == MediaType.TV:
        return tv_title_matches(candidate.title, item.title, item.series_type or "standard")
    if item.media_type == MediaType.MOVIES:
        return movie_title_matches(candidate.title, item.title)
    return normalize_title(item.title) in normalize_title(candidate.title)


def filter_matching(candidates: list[CandidateRelease], item: WantedItem) -> list[CandidateRelease]:
    return [c for c in candidates if release_matches_item(c, item)]
