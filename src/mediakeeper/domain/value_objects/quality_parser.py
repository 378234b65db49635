"""Release title quality parser.

Hey future me - indexers don't tell us the quality, the release TITLE does!
"Movie.2020.1080p.BluRay.x264-GROUP" → Bluray 1080p. This module guesses the quality
level of the default ranking from a title. If we can't tell, we return None (unknown
quality) - the decision engine rejects unknown quality, so guessing "lowest" here would
be a bug, not a safe default.

Video: resolution + source → level. DVD is DVD whatever the resolution says, CAM is
never a level (→ None). Resolution without source → WEB for 2160p/1080p, HDTV below.
Source without resolution → 1080p for BluRay/WEB, 720p for HDTV.
"""

import re
from dataclasses import dataclass

from mediakeeper.domain.value_objects.quality import (
    MediaType,
    QualityLevel,
    default_ranking,
)


@dataclass(frozen=True)
class ParsedVideoQuality:
    """Raw video attributes found in a title."""

    resolution: str | None = None  # '2160p', '1080p', '720p', '480p'
    source: str | None = None  # 'BluRay', 'WEB', 'HDTV', 'DVD', 'CAM'
    is_remux: bool = False


@dataclass(frozen=True)
class ParsedMusicQuality:
    """Raw music attributes found in a title."""

    format: str | None = None  # 'FLAC', 'ALAC', 'WAV', 'MP3', 'AAC', 'OGG'
    bitrate: str | None = None  # 'lossless', '320', 'V0', 'V2', '256', '192'
    is_hi_res: bool = False


def _has(pattern: str, title: str) -> bool:
    return re.search(pattern, title, re.IGNORECASE) is not None


def parse_video_quality(title: str) -> ParsedVideoQuality:
    """Parse resolution and source from a movie/TV release title."""
    resolution: str | None = None
    if _has(r"2160p|4k|uhd", title):
        resolution = "2160p"
    elif _has(r"1080p", title):
        resolution = "1080p"
    elif _has(r"720p", title):
        resolution = "720p"
    elif _has(r"480p|\bsd\b", title):
        resolution = "480p"

    is_remux = _has(r"\bremux\b", title)

    source: str | None = None
    if is_remux or _has(r"\bblu[\s._-]?ray\b|\bbd[\s._-]?rip\b|\bbrrip\b", title):
        source = "BluRay"
    elif _has(r"\bweb[\s._-]?dl\b|\bwebrip\b", title):
        source = "WEB"
    elif _has(r"\bweb\b", title) and "webm" not in title.lower():
        source = "WEB"
    elif _has(r"\bhdtv\b|\bpdtv\b", title):
        source = "HDTV"
    elif _has(r"\bdvd\b|\bdvdrip\b", title):
        source = "DVD"
    elif _has(r"\bcam\b|\bts\b|\btelesync\b|\bhd[\s._-]?cam\b", title):
        source = "CAM"

    return ParsedVideoQuality(resolution=resolution, source=source, is_remux=is_remux)


def parse_music_quality(title: str) -> ParsedMusicQuality:
    """Parse format and bitrate from a music release title."""
    is_hi_res = _has(r"24[\s._-]?bit|hi[\s._-]?res", title)

    fmt: str | None = None
    bitrate: str | None = None
    if _has(r"\bflac\b|\blossless\b", title):
        fmt, bitrate = "FLAC", "lossless"
    elif _has(r"\balac\b", title):
        fmt, bitrate = "ALAC", "lossless"
    elif _has(r"\bwav\b", title) and "wave" not in title.lower():
        fmt, bitrate = "WAV", "lossless"
    elif _has(r"\bogg\b|\bvorbis\b", title):
        fmt = "OGG"
    elif _has(r"\baac\b", title):
        fmt = "AAC"
        if _has(r"256", title):
            bitrate = "256"
    elif _has(r"\bmp3\b|\b320\b|\bv0\b|\b256\b|\b192\b|\b128\b", title):
        fmt = "MP3"

    if fmt == "MP3":
        if _has(r"\b320\b", title):
            bitrate = "320"
        elif _has(r"\bv0\b|vbr[\s._-]?0", title):
            bitrate = "V0"
        elif _has(r"\bv2\b|vbr[\s._-]?2", title):
            bitrate = "V2"
        elif _has(r"\b256\b", title):
            bitrate = "256"
        elif _has(r"\b192\b", title):
            bitrate = "192"

    return ParsedMusicQuality(format=fmt, bitrate=bitrate, is_hi_res=is_hi_res)


def parse_book_format(title: str) -> str | None:
    """Parse the ebook/comic format from a book release title."""
    # PDF last: scene book releases often mention "pdf" next to the real format
    for fmt in ("EPUB", "MOBI", "AZW3", "CBZ", "CBR", "PDF"):
        if _has(rf"\b{fmt.lower()}\b", title):
            return fmt
    return None


def _video_level_name(parsed: ParsedVideoQuality) -> str | None:
    if parsed.source == "DVD":
        return "DVD"
    if parsed.source == "CAM":
        return None

    source_names = {"BluRay": "Bluray", "WEB": "Web", "HDTV": "HDTV"}
    source = source_names.get(parsed.source) if parsed.source else None
    resolution = parsed.resolution

    if source is None and resolution is not None:
        source = "Web" if resolution in ("2160p", "1080p") else "HDTV"
    elif source is not None and resolution is None:
        resolution = "720p" if source == "HDTV" else "1080p"

    if source is None or resolution is None:
        return None
    return f"{source} {resolution}"


def _music_level_name(parsed: ParsedMusicQuality) -> str | None:
    if parsed.format is None:
        return None
    if parsed.format in ("FLAC", "ALAC", "WAV"):
        return parsed.format
    if parsed.format == "OGG":
        return "OGG Vorbis"
    if parsed.format == "AAC":
        return "AAC 256"
    if parsed.format == "MP3" and parsed.bitrate in ("320", "V0", "256", "192"):
        return f"MP3 {parsed.bitrate}"
    # MP3 without a known bitrate defaults to MP3 320
    return "MP3 320"


def parse_quality(title: str, media_type: MediaType) -> QualityLevel | None:
    """Guess the quality level of a release title.

    Args:
        title: Release title as returned by the indexer / download client
        media_type: Which ranking to map into

    Returns:
        Level of the default ranking, or None when the quality can't be determined
    """
    if media_type in (MediaType.MOVIES, MediaType.TV):
        name = _video_level_name(parse_video_quality(title))
    elif media_type == MediaType.MUSIC:
        name = _music_level_name(parse_music_quality(title))
    else:
        name = parse_book_format(title)

    if name is None:
        return None
    # Hey future me - "Web 1080p" may exist but e.g. "HDTV 2160p" does not → unknown
    return default_ranking(media_type).by_name(name)
