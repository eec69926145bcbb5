"""Shared fixtures for presenter tests."""

import sqlite3
from typing import Optional, Sequence

import pytest

from church_hymn.presenter.db.models import Hymn, WorshipService
from church_hymn.presenter.db.schema import ALL_SCHEMA_STATEMENTS
from church_hymn.presenter.services.display_watcher import DisplayInfo, DisplayWatcher, StaticProbe
from church_hymn.presenter.services.session import WorshipSessionCoordinator
from church_hymn.presenter.services.snapshot import SnapshotStore
from church_hymn.presenter.services.state_machine import PresentationStateMachine
from church_hymn.presenter.services.surface import MemorySurface
from church_hymn.presenter.state import PresentationState

AMAZING_GRACE_LYRICS = """Amazing grace how sweet the sound
That saved a wretch like me

Chorus
My chains are gone
I've been set free

'Twas grace that taught my heart to fear
And grace my fears relieved

Through many dangers toils and snares
I have already come
"""

HOLY_HOLY_LYRICS = """Holy holy holy
Lord God Almighty

Holy holy holy
All the saints adore thee
"""


class FakeHymnSource:
    """In-memory hymn library with a configurable active service."""

    def __init__(self, hymns: list[Hymn], service_hymn_count: Optional[int] = None):
        self.hymns = {hymn.id: hymn for hymn in hymns}
        self.service_hymn_count = len(hymns) if service_hymn_count is None else service_hymn_count
        self.has_active_service = True

    def get_hymn(self, hymn_id: str) -> Optional[Hymn]:
        return self.hymns.get(hymn_id)

    def get_hymns(self, hymn_ids: Sequence[str]) -> list[Hymn]:
        return [self.hymns[i] for i in hymn_ids if i in self.hymns]

    def get_active_service(self) -> Optional[WorshipService]:
        if not self.has_active_service:
            return None
        return WorshipService(id="svc_1", title="Sunday Morning", date="2026-10-18", is_active=True)

    def get_active_service_hymn_count(self) -> Optional[int]:
        if not self.has_active_service:
            return None
        return self.service_hymn_count

    def list_active_service_hymns(self) -> list[Hymn]:
        if not self.has_active_service:
            return []
        return list(self.hymns.values())[: self.service_hymn_count]


@pytest.fixture
def amazing_grace():
    """Hymn with 3 verses and a chorus."""
    return Hymn(
        id="hymn_grace",
        title="Amazing Grace",
        lyrics=AMAZING_GRACE_LYRICS,
        number=1,
        musical_key="G",
        author="John Newton",
        copyright="Public Domain",
    )


@pytest.fixture
def holy_holy():
    """Hymn with 2 verses and no chorus."""
    return Hymn(id="hymn_holy", title="Holy, Holy, Holy", lyrics=HOLY_HOLY_LYRICS, number=2, musical_key="D")


@pytest.fixture
def empty_hymn():
    """Hymn with no lyrics."""
    return Hymn(id="hymn_empty", title="Untitled")


@pytest.fixture
def hymn_source(amazing_grace, holy_holy):
    """Fake library whose active service holds both hymns."""
    return FakeHymnSource([amazing_grace, holy_holy])


@pytest.fixture
def display():
    """Secondary display descriptor."""
    return DisplayInfo(name="HDMI-1", width=1920, height=1080)


@pytest.fixture
def probe(display):
    """Static probe with a display attached."""
    return StaticProbe([display])


@pytest.fixture
def surface():
    """Headless output surface."""
    return MemorySurface()


@pytest.fixture
def watcher(probe):
    """Display watcher over the static probe."""
    return DisplayWatcher(probe, poll_interval=0.01)


@pytest.fixture
def machine(surface, watcher):
    """Presentation state machine in DISCONNECTED."""
    return PresentationStateMachine(surface, watcher, background_image="serene")


@pytest.fixture
async def connected_machine(machine, watcher):
    """Presentation state machine in CONNECTED."""
    await watcher.refresh()
    machine.connect()
    return machine


@pytest.fixture
def state():
    """Observable presentation state."""
    return PresentationState()


@pytest.fixture
def snapshot_path(tmp_path):
    """Session snapshot file path."""
    return tmp_path / "session_snapshot.json"


@pytest.fixture
def store(snapshot_path):
    """Snapshot store with the default 30 minute age limit."""
    return SnapshotStore(snapshot_path)


@pytest.fixture
def coordinator(machine, watcher, hymn_source, store, state):
    """Worship session coordinator (display attached but not yet connected)."""
    return WorshipSessionCoordinator(machine, watcher, hymn_source, store, state)


@pytest.fixture
def library_db(tmp_path):
    """SQLite hymn library with one active service of two hymns."""
    db_path = tmp_path / "hymns.db"
    conn = sqlite3.connect(db_path)
    for statement in ALL_SCHEMA_STATEMENTS:
        conn.execute(statement)

    conn.executemany(
        "INSERT INTO hymns (id, title, lyrics, number, musical_key, author, copyright) VALUES (?, ?, ?, ?, ?, ?, ?)",
        [
            ("hymn_grace", "Amazing Grace", AMAZING_GRACE_LYRICS, 1, "G", "John Newton", "Public Domain"),
            ("hymn_holy", "Holy, Holy, Holy", HOLY_HOLY_LYRICS, 2, "D", "Reginald Heber", None),
            ("hymn_other", "Be Thou My Vision", "Be thou my vision\nO Lord of my heart", 3, "Eb", None, None),
        ],
    )
    conn.executemany(
        "INSERT INTO services (id, title, date, is_active) VALUES (?, ?, ?, ?)",
        [
            ("svc_old", "Last Week", "2026-10-11", 0),
            ("svc_now", "Sunday Morning", "2026-10-18", 1),
            ("svc_empty", "Evening Prayer", "2026-10-18", 0),
        ],
    )
    conn.executemany(
        "INSERT INTO service_hymns (id, service_id, hymn_id, position) VALUES (?, ?, ?, ?)",
        [
            ("sh_1", "svc_now", "hymn_holy", 0),
            ("sh_2", "svc_now", "hymn_grace", 1),
            ("sh_3", "svc_old", "hymn_other", 0),
        ],
    )
    conn.commit()
    conn.close()
    return db_path
