"""Pytest configuration and fixtures for skirmish tests."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["MODERATOR_ROLE_IDS"] = "999"
os.environ["MODERATOR_ROLE_NAMES"] = "Judge"
os.environ["LEGACY_DATA_PATH"] = os.devnull
os.environ["REQUIRE_REGISTRATION"] = "true"

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from skirmish.checks import Actor, Gate
from skirmish.models.base import init_db, make_session_factory
from skirmish.services.lifecycle import LifecycleEngine
from skirmish.services.store import RegistryStore, StoreUnavailable

SUBMISSIONS_CHANNEL = "100"

MOD = Actor(identity="mod1", roles=frozenset({"999"}))
OTHER_MOD = Actor(identity="mod2", roles=frozenset({"judge"}))
ADMIN = Actor(identity="admin", elevated=True)
PLAYER = Actor(identity="u1")
STRANGER = Actor(identity="u2", roles=frozenset({"123"}))


class FakeNotifier:
    """Records what would have been sent. Set ``fail`` to make every delivery raise."""

    def __init__(self, available=(SUBMISSIONS_CHANNEL,)):
        self.available = set(available)
        self.announcements = []
        self.direct = []
        self.fail = False

    async def channel_available(self, channel_id):
        return channel_id in self.available

    async def announce(self, channel_id, notice):
        if self.fail:
            raise RuntimeError("Missing Access")
        self.announcements.append((channel_id, notice))

    async def notify_player(self, identity, notice):
        if self.fail:
            raise RuntimeError("Cannot send messages to this user")
        self.direct.append((identity, notice))


class BrokenStore(RegistryStore):
    """Store whose writes always fail."""

    def __init__(self):
        super().__init__(session_factory=None, key="broken", legacy_path=None)
        self.attempts = 0

    async def save(self, registry):
        self.attempts += 1
        raise StoreUnavailable("disk I/O error")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_engine(tmp_path):
    """File-backed SQLite database, one per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'skirmish-test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def legacy_path(tmp_path):
    return tmp_path / "skirmish-data.json"


@pytest.fixture
def store(session_factory, legacy_path):
    return RegistryStore(session_factory=session_factory, key="test", legacy_path=legacy_path)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def gate():
    return Gate({"999", "Judge"})


@pytest.fixture
async def lifecycle(store, gate, notifier):
    registry = await store.load()
    return LifecycleEngine(registry, store, gate, notifier, require_registration=True)


@pytest.fixture
async def open_lifecycle(store, gate, notifier):
    """Engine for events that don't require mods to admit players before they submit."""
    registry = await store.load()
    return LifecycleEngine(registry, store, gate, notifier, require_registration=False)
