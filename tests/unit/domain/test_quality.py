"""Tests for quality rankings, profiles and the release title parser."""

import pytest

from mediakeeper.domain.entities import QualityProfile
from mediakeeper.domain.exceptions import ConfigurationError
from mediakeeper.domain.value_objects import (
    MediaType,
    QualityLevel,
    QualityRanking,
    default_ranking,
    parse_quality,
    quality_from_name,
)
from mediakeeper.domain.value_objects.quality_parser import (
    parse_book_format,
    parse_music_quality,
    parse_video_quality,
)


class TestMediaType:
    def test_from_string_is_case_insensitive(self) -> None:
        assert MediaType.from_string(" Movies ") == MediaType.MOVIES

    def test_from_string_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid media type"):
            MediaType.from_string("podcasts")


class TestQualityRanking:
    """Default rankings and ranking invariants."""

    def test_first_default_level_is_best(self) -> None:
        ranking = default_ranking(MediaType.MOVIES)
        ordered = ranking.ordered()
        assert ordered[0].name == "Bluray 2160p"
        assert ordered[-1].name == "DVD"

    def test_ranks_are_unique_per_media_type(self) -> None:
        for media_type in MediaType:
            ranks = [level.rank for level in default_ranking(media_type).levels]
            assert len(ranks) == len(set(ranks))

    def test_music_lossless_beats_lossy(self) -> None:
        ranking = default_ranking(MediaType.MUSIC)
        assert ranking.by_name("FLAC").rank > ranking.by_name("MP3 320").rank
        assert ranking.by_name("MP3 320").rank > ranking.by_name("OGG Vorbis").rank

    def test_by_name_is_case_insensitive(self) -> None:
        ranking = default_ranking(MediaType.BOOKS)
        assert ranking.by_name("epub") == ranking.by_name("EPUB")

    def test_duplicate_ranks_are_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            QualityRanking(
                media_type=MediaType.MOVIES,
                levels=(QualityLevel(1, "A", 1), QualityLevel(2, "B", 1)),
            )

    def test_duplicate_ids_are_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            QualityRanking(
                media_type=MediaType.MOVIES,
                levels=(QualityLevel(1, "A", 1), QualityLevel(1, "B", 2)),
            )

    def test_level_identity_is_the_id(self) -> None:
        # a re-ranked snapshot is still the same level
        assert QualityLevel(5, "Web 1080p", 5) == QualityLevel(5, "Web 1080p", 9)

    def test_quality_from_name_unknown_is_none(self) -> None:
        assert quality_from_name(None, MediaType.TV) is None
        assert quality_from_name("Betamax", MediaType.TV) is None
        assert quality_from_name("HDTV 720p", MediaType.TV) is not None


class TestQualityProfile:
    def test_from_ranking_picks_snapshots(self) -> None:
        ranking = default_ranking(MediaType.MOVIES)
        profile = QualityProfile.from_ranking(
            id="hd", name="HD", ranking=ranking, level_ids=[2, 5, 6], cutoff_id=5
        )
        assert [level.name for level in profile.levels] == [
            "Bluray 1080p",
            "Web 1080p",
            "Web 720p",
        ]
        assert profile.cutoff.name == "Web 1080p"
        profile.validate()

    def test_from_ranking_unknown_level(self) -> None:
        with pytest.raises(ConfigurationError):
            QualityProfile.from_ranking(
                id="x",
                name="X",
                ranking=default_ranking(MediaType.MOVIES),
                level_ids=[99],
                cutoff_id=99,
            )

    def test_includes_uses_identity(self) -> None:
        ranking = default_ranking(MediaType.MUSIC)
        profile = QualityProfile.from_ranking(
            id="lossless", name="Lossless", ranking=ranking, level_ids=[1, 2], cutoff_id=1
        )
        assert profile.includes(ranking.by_name("FLAC"))
        assert not profile.includes(ranking.by_name("MP3 320"))


class TestVideoParser:
    """Titles → video quality levels."""

    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("The.Matrix.1999.2160p.UHD.BluRay.x265-GROUP", "Bluray 2160p"),
            ("The.Matrix.1999.1080p.BluRay.x264-GROUP", "Bluray 1080p"),
            ("The.Matrix.1999.1080p.REMUX.AVC-GROUP", "Bluray 1080p"),
            ("Show.S01E01.1080p.WEB-DL.DDP5.1-GROUP", "Web 1080p"),
            ("Show.S01E01.720p.WEBRip.x264-GROUP", "Web 720p"),
            ("Show.S01E01.720p.HDTV.x264-GROUP", "HDTV 720p"),
            ("Show.S01E01.HDTV.x264-GROUP", "HDTV 720p"),
            ("Movie.2001.DVDRip.XviD-GROUP", "DVD"),
            ("Movie.2020.1080p-GROUP", "Web 1080p"),
        ],
    )
    def test_parse(self, title: str, expected: str) -> None:
        level = parse_quality(title, MediaType.MOVIES)
        assert level is not None
        assert level.name == expected

    def test_cam_is_unknown(self) -> None:
        assert parse_quality("Movie.2024.HDCAM.x264-GROUP", MediaType.MOVIES) is None

    def test_no_quality_info_is_unknown(self) -> None:
        assert parse_quality("Some Movie 2020", MediaType.MOVIES) is None

    def test_raw_attributes(self) -> None:
        parsed = parse_video_quality("Movie.2020.2160p.WEB-DL-GROUP")
        assert parsed.resolution == "2160p"
        assert parsed.source == "WEB"
        assert parsed.is_remux is False


class TestMusicAndBookParser:
    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Artist - Album (2020) [FLAC 24bit]", "FLAC"),
            ("Artist - Album (2020) [MP3 320]", "MP3 320"),
            ("Artist - Album (2020) [MP3 V0]", "MP3 V0"),
            ("Artist - Album (2020) MP3", "MP3 320"),
            ("Artist - Album (2020) [AAC]", "AAC 256"),
        ],
    )
    def test_music(self, title: str, expected: str) -> None:
        level = parse_quality(title, MediaType.MUSIC)
        assert level is not None
        assert level.name == expected

    def test_music_hi_res_flag(self) -> None:
        assert parse_music_quality("Album [FLAC 24bit 96kHz]").is_hi_res is True

    def test_music_unknown(self) -> None:
        assert parse_quality("Artist - Album (2020)", MediaType.MUSIC) is None

    def test_book_formats(self) -> None:
        assert parse_book_format("Author - Title (2019) (retail) (epub)") == "EPUB"
        assert parse_book_format("Author - Title.pdf.epub") == "EPUB"
        assert parse_book_format("Comic 001 (2020) (digital) (cbz)") == "CBZ"
        level = parse_quality("Author - Title (azw3)", MediaType.BOOKS)
        assert level is not None
        assert level.name == "AZW3"
        assert parse_book_format("Author - Title") is None
