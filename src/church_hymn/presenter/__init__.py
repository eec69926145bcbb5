"""Church Hymn Presenter (TUI).

Interactive Textual console for worship leaders to present the hymns
of the active service on a projector, run worship sessions with a
background image between hymns, and queue hymns for auto-advance.
"""

__version__ = "0.3.0"
