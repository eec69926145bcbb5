"""Verse navigation for hymn presentation.

Builds the presentation sequence of a hymn (verse, chorus, verse,
chorus, ...) and moves a cursor through it. Everything here is pure:
no rendering and no state beyond the cursor value passed in.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from church_hymn.presenter.db.models import Hymn, LyricBlock
from church_hymn.presenter.errors import OutOfRangeError


@dataclass(frozen=True)
class PresentationCursor:
    """Position within a hymn's presentation sequence.

    Attributes:
        hymn_id: ID of the hymn being presented
        verse_index: Offset into the interleaved sequence
    """

    hymn_id: str
    verse_index: int = 0


@dataclass(frozen=True)
class Slide:
    """Everything the output surface needs to show one verse.

    Attributes:
        hymn_id: ID of the hymn
        hymn_title: Title of the hymn
        index: Offset into the interleaved sequence
        total: Length of the interleaved sequence
        label: Verse/chorus label ("Verse 2", "Chorus")
        lines: Lyric lines to show
        copyright: Copyright line
    """

    hymn_id: str
    hymn_title: str
    index: int
    total: int
    label: str
    lines: tuple[str, ...]
    copyright: Optional[str] = None

    @property
    def is_last(self) -> bool:
        """Check if this is the last slide of the hymn."""
        return self.index >= self.total - 1

    @property
    def text(self) -> str:
        """Get the lyric lines joined by newlines."""
        return "\n".join(self.lines)


def build_sequence(blocks: Sequence[LyricBlock]) -> list[LyricBlock]:
    """Build the interleaved presentation sequence.

    When the hymn has a labeled block, the first one is the chorus and is
    repeated after every plain verse. Without a chorus the verses are shown
    in order. A hymn made only of labeled blocks shows them in order.

    Args:
        blocks: Lyric blocks in authored order

    Returns:
        Blocks in presentation order
    """
    verses = [block for block in blocks if block.is_verse]
    choruses = [block for block in blocks if not block.is_verse]

    if not verses:
        return list(choruses)
    if not choruses:
        return verses

    chorus = choruses[0]
    sequence: list[LyricBlock] = []
    for verse in verses:
        sequence.append(verse)
        sequence.append(chorus)
    return sequence


def verse_label(sequence: Sequence[LyricBlock], index: int) -> str:
    """Label for a slide of the sequence.

    Labeled blocks keep their label. Plain verses are numbered by counting
    only plain verses up to and including the index, so a repeated chorus
    never shifts the verse numbers.

    Args:
        sequence: Interleaved sequence
        index: Offset into the sequence

    Returns:
        Label such as "Verse 3" or "Chorus"
    """
    block = sequence[index]
    if block.label is not None:
        return block.label
    number = sum(1 for item in sequence[: index + 1] if item.is_verse)
    return f"Verse {number}"


class VerseNavigator:
    """Cursor arithmetic over one hymn's presentation sequence.

    Attributes:
        hymn: The hymn being navigated
        sequence: Interleaved presentation sequence
    """

    def __init__(self, hymn: Hymn):
        """Initialize the navigator.

        Args:
            hymn: Hymn to navigate
        """
        self.hymn = hymn
        self.sequence = build_sequence(hymn.blocks)

    def __len__(self) -> int:
        return len(self.sequence)

    @property
    def is_empty(self) -> bool:
        """Check if the hymn has nothing to show."""
        return not self.sequence

    def clamp(self, index: int) -> int:
        """Clamp an index into the sequence bounds (0 for an empty hymn)."""
        if not self.sequence:
            return 0
        return max(0, min(index, len(self.sequence) - 1))

    def cursor_at(self, index: int) -> PresentationCursor:
        """Create a cursor for this hymn, clamping the index."""
        return PresentationCursor(hymn_id=self.hymn.id, verse_index=self.clamp(index))

    def in_range(self, index: int) -> bool:
        return 0 <= index < len(self.sequence)

    def next(self, cursor: PresentationCursor) -> Optional[PresentationCursor]:
        """Cursor for the following slide, None at the last slide."""
        index = cursor.verse_index + 1
        if not self.in_range(index):
            return None
        return PresentationCursor(hymn_id=cursor.hymn_id, verse_index=index)

    def previous(self, cursor: PresentationCursor) -> Optional[PresentationCursor]:
        """Cursor for the preceding slide, None at the first slide."""
        index = cursor.verse_index - 1
        if not self.in_range(index):
            return None
        return PresentationCursor(hymn_id=cursor.hymn_id, verse_index=index)

    def jump(self, cursor: PresentationCursor, index: int) -> PresentationCursor:
        """Cursor for an arbitrary slide.

        Args:
            cursor: Current cursor
            index: Target offset

        Returns:
            New cursor

        Raises:
            OutOfRangeError: If the index is outside the sequence
        """
        if not self.in_range(index):
            raise OutOfRangeError(index, len(self.sequence))
        return PresentationCursor(hymn_id=cursor.hymn_id, verse_index=index)

    def label_for(self, index: int) -> str:
        """Label for a slide ("Verse N" or the section label)."""
        return verse_label(self.sequence, index)

    def labels(self) -> list[str]:
        """Labels for every slide, in order."""
        return [self.label_for(i) for i in range(len(self.sequence))]

    def slide_for(self, cursor: PresentationCursor) -> Slide:
        """Build the slide descriptor for a cursor.

        An empty hymn yields a slide with no lines labeled "No lyrics".
        """
        if not self.sequence:
            return Slide(
                hymn_id=self.hymn.id,
                hymn_title=self.hymn.title,
                index=0,
                total=0,
                label="No lyrics",
                lines=(),
                copyright=self.hymn.copyright,
            )

        index = self.clamp(cursor.verse_index)
        return Slide(
            hymn_id=self.hymn.id,
            hymn_title=self.hymn.title,
            index=index,
            total=len(self.sequence),
            label=self.label_for(index),
            lines=self.sequence[index].lines,
            copyright=self.hymn.copyright,
        )
