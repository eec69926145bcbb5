"""Church Hymn - Hymn presentation for worship services.

This package provides tools for:
- Browsing the hymns of the active worship service
- Mirroring hymn lyrics verse-by-verse on a secondary display
- Keeping a worship session alive across hymn changes and app suspension
"""

__version__ = "0.3.0"
