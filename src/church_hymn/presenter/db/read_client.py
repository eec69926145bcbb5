"""Read-only database client for the hymn library.

Provides read-only access to the hymns and services tables managed by
the hymn editor. This client never modifies library data.
"""

import sqlite3
from pathlib import Path
from typing import Iterable, Optional

from church_hymn.presenter.db.models import Hymn, WorshipService
from church_hymn.presenter.db.schema import (
    ACTIVE_SERVICE_QUERY,
    HYMN_COLUMNS,
    SERVICE_HYMN_COUNT_QUERY,
    SERVICE_HYMNS_QUERY,
)


class HymnReadClient:
    """Read-only client for the hymn library.

    Attributes:
        db_path: Path to the SQLite database file
        connection: Active database connection (opened read-only)
    """

    def __init__(self, db_path: Path):
        """Initialize the read-only client.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create the database connection.

        Returns:
            Active SQLite connection
        """
        if self._connection is None:
            self._connection = sqlite3.connect(
                f"{Path(self.db_path).resolve().as_uri()}?mode=ro",
                uri=True,
            )
            self._connection.row_factory = sqlite3.Row

        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "HymnReadClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    # Hymn operations

    def get_hymn(self, hymn_id: str) -> Optional[Hymn]:
        """Get a hymn by ID.

        Args:
            hymn_id: The hymn ID

        Returns:
            Hymn or None if not found
        """
        cursor = self.connection.cursor()
        cursor.execute(f"SELECT {HYMN_COLUMNS} FROM hymns WHERE id = ?", (hymn_id,))
        row = cursor.fetchone()

        if row:
            return Hymn.from_row(tuple(row))
        return None

    def get_hymns(self, hymn_ids: Iterable[str]) -> list[Hymn]:
        """Get several hymns, preserving the order of the requested IDs.

        Unknown IDs are skipped.

        Args:
            hymn_ids: Hymn IDs to fetch

        Returns:
            Hymns found, in request order
        """
        ids = list(hymn_ids)
        if not ids:
            return []

        placeholders = ", ".join("?" for _ in ids)
        cursor = self.connection.cursor()
        cursor.execute(f"SELECT {HYMN_COLUMNS} FROM hymns WHERE id IN ({placeholders})", ids)

        by_id = {row[0]: Hymn.from_row(tuple(row)) for row in cursor.fetchall()}
        return [by_id[hymn_id] for hymn_id in ids if hymn_id in by_id]

    def list_hymns(self, limit: Optional[int] = None) -> list[Hymn]:
        """List library hymns ordered by number then title.

        Args:
            limit: Maximum number of results

        Returns:
            List of hymns
        """
        query = f"SELECT {HYMN_COLUMNS} FROM hymns ORDER BY number IS NULL, number, title"
        params: list = []
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        cursor = self.connection.cursor()
        cursor.execute(query, params)
        return [Hymn.from_row(tuple(row)) for row in cursor.fetchall()]

    # Service operations

    def get_active_service(self) -> Optional[WorshipService]:
        """Get the service currently flagged active.

        Returns:
            WorshipService or None if no service is active
        """
        cursor = self.connection.cursor()
        cursor.execute(ACTIVE_SERVICE_QUERY)
        row = cursor.fetchone()

        if row:
            return WorshipService.from_row(tuple(row))
        return None

    def get_active_service_hymn_count(self) -> Optional[int]:
        """Count the hymns of the active service.

        Returns:
            Number of hymns, or None when no service is active
        """
        service = self.get_active_service()
        if service is None:
            return None

        cursor = self.connection.cursor()
        cursor.execute(SERVICE_HYMN_COUNT_QUERY, (service.id,))
        return cursor.fetchone()[0]

    def list_active_service_hymns(self) -> list[Hymn]:
        """List the hymns of the active service in order.

        Returns:
            Ordered hymns (empty when no service is active)
        """
        service = self.get_active_service()
        if service is None:
            return []

        cursor = self.connection.cursor()
        cursor.execute(SERVICE_HYMNS_QUERY, (service.id,))
        return [Hymn.from_row(tuple(row)) for row in cursor.fetchall()]
