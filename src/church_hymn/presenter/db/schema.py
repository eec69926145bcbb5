"""SQL schema definitions for the hymn library.

The library is owned by the hymn editor; the presenter only reads it.
These statements are used to create fixture databases.
"""

# SQL to create the hymns table
CREATE_HYMNS_TABLE = """
CREATE TABLE IF NOT EXISTS hymns (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    lyrics TEXT,
    number INTEGER,
    musical_key TEXT,
    author TEXT,
    copyright TEXT,
    created_at TEXT DEFAULT (datetime('now'))
);
"""

# SQL to create the services table (planned worship services)
CREATE_SERVICES_TABLE = """
CREATE TABLE IF NOT EXISTS services (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    date TEXT,
    is_active INTEGER DEFAULT 0,
    notes TEXT,
    created_at TEXT DEFAULT (datetime('now'))
);
"""

# SQL to create the service_hymns table (hymns in a service)
CREATE_SERVICE_HYMNS_TABLE = """
CREATE TABLE IF NOT EXISTS service_hymns (
    id TEXT PRIMARY KEY,
    service_id TEXT NOT NULL REFERENCES services(id) ON DELETE CASCADE,
    hymn_id TEXT NOT NULL REFERENCES hymns(id),
    position INTEGER NOT NULL,
    notes TEXT
);
"""

CREATE_INDEXES = [
    """
    CREATE INDEX IF NOT EXISTS idx_service_hymns_position
    ON service_hymns(service_id, position);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_services_active
    ON services(is_active);
    """,
]

ALL_SCHEMA_STATEMENTS = [
    CREATE_HYMNS_TABLE,
    CREATE_SERVICES_TABLE,
    CREATE_SERVICE_HYMNS_TABLE,
    *CREATE_INDEXES,
]

HYMN_COLUMNS = "id, title, lyrics, number, musical_key, author, copyright"

SERVICE_COLUMNS = "id, title, date, is_active, notes"

# Active service (most recent if several are flagged)
ACTIVE_SERVICE_QUERY = f"""
SELECT {SERVICE_COLUMNS} FROM services
WHERE is_active = 1
ORDER BY date DESC, created_at DESC
LIMIT 1;
"""

SERVICE_HYMN_COUNT_QUERY = """
SELECT COUNT(*) FROM service_hymns WHERE service_id = ?;
"""

# Hymns of a service in presentation order
SERVICE_HYMNS_QUERY = """
SELECT h.id, h.title, h.lyrics, h.number, h.musical_key, h.author, h.copyright
FROM service_hymns sh
JOIN hymns h ON sh.hymn_id = h.id
WHERE sh.service_id = ?
ORDER BY sh.position;
"""
