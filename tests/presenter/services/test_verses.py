"""Tests for verse navigation.

Tests the interleaved sequence, verse labels and cursor movement.
"""

import pytest

from church_hymn.presenter.db.models import Hymn, LyricBlock
from church_hymn.presenter.errors import OutOfRangeError
from church_hymn.presenter.services.verses import (
    PresentationCursor,
    VerseNavigator,
    build_sequence,
    verse_label,
)

V1 = LyricBlock(lines=("first",))
V2 = LyricBlock(lines=("second",))
V3 = LyricBlock(lines=("third",))
CHORUS = LyricBlock(lines=("chorus",), label="Chorus")
REFRAIN = LyricBlock(lines=("refrain",), label="Refrain")


class TestBuildSequence:
    """Tests for build_sequence."""

    def test_chorus_after_every_verse(self):
        """Verify the chorus follows each verse wherever it was authored."""
        assert build_sequence([V1, CHORUS, V2, V3]) == [V1, CHORUS, V2, CHORUS, V3, CHORUS]

    def test_first_labeled_block_is_the_chorus(self):
        """Verify only the first labeled block is repeated."""
        assert build_sequence([V1, CHORUS, V2, REFRAIN]) == [V1, CHORUS, V2, CHORUS]

    def test_verses_only(self):
        assert build_sequence([V1, V2]) == [V1, V2]

    def test_labeled_blocks_only(self):
        """Verify a hymn of only labeled blocks shows them in order."""
        assert build_sequence([CHORUS, REFRAIN]) == [CHORUS, REFRAIN]

    def test_empty(self):
        assert build_sequence([]) == []


class TestVerseLabel:
    """Tests for verse_label."""

    def test_verse_numbers_skip_choruses(self):
        """Verify verse numbers count only plain verses."""
        sequence = build_sequence([V1, CHORUS, V2, V3])

        labels = [verse_label(sequence, i) for i in range(len(sequence))]

        assert labels == ["Verse 1", "Chorus", "Verse 2", "Chorus", "Verse 3", "Chorus"]


class TestVerseNavigator:
    """Tests for VerseNavigator."""

    def test_three_verses_and_chorus(self, amazing_grace):
        """Verify the sequence and labels of a 3 verse hymn with chorus."""
        navigator = VerseNavigator(amazing_grace)

        assert len(navigator) == 6
        assert navigator.labels() == ["Verse 1", "Chorus", "Verse 2", "Chorus", "Verse 3", "Chorus"]
        assert navigator.label_for(4) == "Verse 3"
        assert all(navigator.label_for(i) == "Chorus" for i in (1, 3, 5))

    def test_next_and_previous(self, amazing_grace):
        """Verify the cursor moves one slide at a time."""
        navigator = VerseNavigator(amazing_grace)
        cursor = navigator.cursor_at(0)

        cursor = navigator.next(cursor)
        assert cursor == PresentationCursor("hymn_grace", 1)
        assert navigator.previous(cursor) == PresentationCursor("hymn_grace", 0)

    def test_no_wraparound(self, amazing_grace):
        """Verify next at the last slide and previous at the first return None."""
        navigator = VerseNavigator(amazing_grace)

        assert navigator.previous(navigator.cursor_at(0)) is None
        assert navigator.next(navigator.cursor_at(5)) is None

    def test_cursor_is_clamped(self, amazing_grace):
        """Verify cursor_at clamps out of range indices."""
        navigator = VerseNavigator(amazing_grace)

        assert navigator.cursor_at(99).verse_index == 5
        assert navigator.cursor_at(-3).verse_index == 0

    def test_jump(self, amazing_grace):
        navigator = VerseNavigator(amazing_grace)

        assert navigator.jump(navigator.cursor_at(0), 4).verse_index == 4

    def test_jump_out_of_range(self, amazing_grace):
        """Verify jump rejects an index outside the sequence."""
        navigator = VerseNavigator(amazing_grace)

        with pytest.raises(OutOfRangeError) as exc_info:
            navigator.jump(navigator.cursor_at(0), 6)

        assert exc_info.value.index == 6
        assert exc_info.value.length == 6

    def test_slide_for(self, amazing_grace):
        """Verify the slide carries the block lines and position."""
        navigator = VerseNavigator(amazing_grace)

        slide = navigator.slide_for(navigator.cursor_at(1))

        assert slide.label == "Chorus"
        assert slide.lines == ("My chains are gone", "I've been set free")
        assert slide.total == 6
        assert slide.copyright == "Public Domain"
        assert not slide.is_last
        assert navigator.slide_for(navigator.cursor_at(5)).is_last

    def test_empty_hymn(self, empty_hymn):
        """Verify a hymn without lyrics yields a placeholder slide."""
        navigator = VerseNavigator(empty_hymn)

        assert navigator.is_empty
        assert navigator.cursor_at(3).verse_index == 0
        assert navigator.next(navigator.cursor_at(0)) is None
        slide = navigator.slide_for(navigator.cursor_at(0))
        assert slide.label == "No lyrics"
        assert slide.lines == ()

    def test_single_block_hymn(self):
        navigator = VerseNavigator(Hymn(id="h", title="Doxology", lyrics="Praise God"))

        assert navigator.labels() == ["Verse 1"]
