"""Data models for hymn library entities.

Provides dataclasses for Hymn and WorshipService entities with
construction from database rows. The presenter never writes these.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# Block headings that mark a repeating section rather than a verse
SECTION_LABELS = ("chorus", "refrain")


@dataclass(frozen=True)
class LyricBlock:
    """One block of a hymn's lyrics.

    Attributes:
        lines: Lyric lines of the block
        label: Section label (e.g. "Chorus"), None for a plain verse
    """

    lines: tuple[str, ...]
    label: Optional[str] = None

    @property
    def is_verse(self) -> bool:
        """Check if this is a plain (unlabeled) verse."""
        return self.label is None

    @property
    def text(self) -> str:
        """Get the block lyrics joined by newlines."""
        return "\n".join(self.lines)


def parse_lyrics(lyrics: Optional[str]) -> list[LyricBlock]:
    """Split raw lyrics into blocks.

    Blocks are separated by blank lines. A block whose first line is a
    section heading ("Chorus", "Refrain") is labeled with that heading and
    the heading line is dropped.

    Args:
        lyrics: Raw lyrics text

    Returns:
        Ordered list of lyric blocks
    """
    if not lyrics:
        return []

    blocks: list[LyricBlock] = []
    current: list[str] = []

    def flush() -> None:
        if not current:
            return
        heading = current[0].strip()
        if heading.lower() in SECTION_LABELS:
            lines = tuple(current[1:])
            if lines:
                blocks.append(LyricBlock(lines=lines, label=heading))
        else:
            blocks.append(LyricBlock(lines=tuple(current)))
        current.clear()

    for raw_line in lyrics.replace("\r\n", "\n").split("\n"):
        line = raw_line.rstrip()
        if line.strip():
            current.append(line)
        else:
            flush()
    flush()

    return blocks


@dataclass
class Hymn:
    """A hymn from the library.

    Attributes:
        id: Opaque hymn ID
        title: Hymn title
        lyrics: Raw lyrics text
        number: Hymnal number
        musical_key: Musical key
        author: Author or composer
        copyright: Copyright line shown on the projector
        blocks: Parsed lyric blocks (derived from lyrics when omitted)
    """

    id: str
    title: str
    lyrics: Optional[str] = None
    number: Optional[int] = None
    musical_key: Optional[str] = None
    author: Optional[str] = None
    copyright: Optional[str] = None
    blocks: list[LyricBlock] = field(default_factory=list)

    def __post_init__(self):
        if not self.blocks and self.lyrics:
            self.blocks = parse_lyrics(self.lyrics)

    @classmethod
    def from_row(cls, row: tuple) -> "Hymn":
        """Create a Hymn from a database row tuple.

        Args:
            row: Row with columns (id, title, lyrics, number, musical_key,
                author, copyright)

        Returns:
            Hymn instance
        """
        return cls(
            id=row[0],
            title=row[1],
            lyrics=row[2],
            number=row[3],
            musical_key=row[4],
            author=row[5],
            copyright=row[6],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert Hymn to dictionary.

        Returns:
            Dictionary representation of the hymn
        """
        return {
            "id": self.id,
            "title": self.title,
            "lyrics": self.lyrics,
            "number": self.number,
            "musical_key": self.musical_key,
            "author": self.author,
            "copyright": self.copyright,
        }

    @property
    def has_chorus(self) -> bool:
        """Check if any block is a labeled section."""
        return any(not block.is_verse for block in self.blocks)

    @property
    def display_title(self) -> str:
        """Get the title prefixed with the hymnal number when known."""
        if self.number is not None:
            return f"{self.number}. {self.title}"
        return self.title


@dataclass
class WorshipService:
    """A planned worship service (ordered list of hymns).

    Attributes:
        id: Unique service ID
        title: Display name
        date: ISO date of the service
        is_active: Whether this is the service being led now
        notes: Optional notes
    """

    id: str
    title: str
    date: Optional[str] = None
    is_active: bool = False
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: tuple) -> "WorshipService":
        """Create a WorshipService from a database row tuple.

        Args:
            row: Row with columns (id, title, date, is_active, notes)

        Returns:
            WorshipService instance
        """
        return cls(
            id=row[0],
            title=row[1],
            date=row[2],
            is_active=bool(row[3]) if row[3] is not None else False,
            notes=row[4],
        )
