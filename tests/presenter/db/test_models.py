"""Tests for hymn library models.

Tests lyrics parsing and row conversion.
"""

from church_hymn.presenter.db.models import Hymn, LyricBlock, WorshipService, parse_lyrics


class TestParseLyrics:
    """Tests for parse_lyrics."""

    def test_blank_lines_separate_blocks(self):
        """Verify blocks are split on blank lines."""
        blocks = parse_lyrics("one\ntwo\n\nthree\nfour")

        assert blocks == [LyricBlock(lines=("one", "two")), LyricBlock(lines=("three", "four"))]

    def test_chorus_heading_labels_block(self):
        """Verify a Chorus heading labels the block and is dropped."""
        blocks = parse_lyrics("verse line\n\nChorus\nsing it\nagain")

        assert blocks[1].label == "Chorus"
        assert blocks[1].lines == ("sing it", "again")
        assert blocks[0].is_verse

    def test_heading_is_case_insensitive(self):
        """Verify refrain headings in any case are recognized."""
        blocks = parse_lyrics("REFRAIN\nla la")

        assert blocks[0].label == "REFRAIN"
        assert not blocks[0].is_verse

    def test_extra_blank_lines_ignored(self):
        """Verify runs of blank lines do not create empty blocks."""
        blocks = parse_lyrics("\n\none\n\n\n\ntwo\n\n")

        assert len(blocks) == 2

    def test_windows_line_endings(self):
        """Verify CRLF lyrics parse the same as LF."""
        assert parse_lyrics("a\r\nb\r\n\r\nc") == parse_lyrics("a\nb\n\nc")

    def test_heading_without_lines_is_dropped(self):
        """Verify a lone heading does not produce a block."""
        assert parse_lyrics("Chorus\n\nverse") == [LyricBlock(lines=("verse",))]

    def test_empty_lyrics(self):
        """Verify None and empty text yield no blocks."""
        assert parse_lyrics(None) == []
        assert parse_lyrics("") == []


class TestHymn:
    """Tests for Hymn model."""

    def test_blocks_parsed_from_lyrics(self, amazing_grace):
        """Verify blocks are derived from lyrics on construction."""
        assert len(amazing_grace.blocks) == 4
        assert amazing_grace.has_chorus

    def test_from_row(self):
        """Verify Hymn.from_row maps columns."""
        row = ("hymn_1", "Be Thou My Vision", "line one\nline two", 3, "Eb", "Dallan Forgaill", None)

        hymn = Hymn.from_row(row)

        assert hymn.id == "hymn_1"
        assert hymn.number == 3
        assert hymn.musical_key == "Eb"
        assert hymn.copyright is None
        assert hymn.blocks == [LyricBlock(lines=("line one", "line two"))]

    def test_to_dict(self, holy_holy):
        """Verify to_dict carries the stored columns."""
        data = holy_holy.to_dict()

        assert data["id"] == "hymn_holy"
        assert data["title"] == "Holy, Holy, Holy"
        assert "blocks" not in data

    def test_display_title(self, holy_holy, empty_hymn):
        """Verify the hymnal number prefixes the title when known."""
        assert holy_holy.display_title == "2. Holy, Holy, Holy"
        assert empty_hymn.display_title == "Untitled"

    def test_no_chorus(self, holy_holy):
        assert not holy_holy.has_chorus


class TestWorshipService:
    """Tests for WorshipService model."""

    def test_from_row(self):
        """Verify WorshipService.from_row converts the active flag."""
        service = WorshipService.from_row(("svc_1", "Sunday", "2026-10-18", 1, None))

        assert service.is_active is True
        assert service.date == "2026-10-18"

    def test_from_row_null_active(self):
        service = WorshipService.from_row(("svc_1", "Sunday", None, None, "notes"))

        assert service.is_active is False
        assert service.notes == "notes"
