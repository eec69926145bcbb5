"""Read-only access to the hymn library database."""

from church_hymn.presenter.db.models import Hymn, LyricBlock, WorshipService, parse_lyrics
from church_hymn.presenter.db.read_client import HymnReadClient

__all__ = ["Hymn", "HymnReadClient", "LyricBlock", "WorshipService", "parse_lyrics"]
