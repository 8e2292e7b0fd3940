import os
import tempfile

# Settings are read once at import, so the test database must be chosen first
_db_dir = tempfile.mkdtemp(prefix="arcade-queue-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_db_dir, "test.db")
os.environ["ENVIRONMENT"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["OWNER_IDS"] = '["qq:owner"]'
os.environ.pop("DIRECTORY_URL", None)

from datetime import datetime, timedelta

import pytest

from arcade_queue.config import get_settings
from arcade_queue.core.directory import ActorContext
from arcade_queue.core.exceptions import UpstreamUnavailableError
from arcade_queue.core.locking import TenantLocks
from arcade_queue.core.queue import ArcadeService
from arcade_queue.core.store import RecordStore
from arcade_queue.database import Base, SessionLocal, engine
import arcade_queue.models  # noqa: F401

GROUP = "qq:100"
OTHER_GROUP = "qq:200"


class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime(2024, 5, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeTimer:
    def __init__(self, delay, function, args=()):
        self.delay = delay
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, function, args=()):
        timer = FakeTimer(delay, function, args)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]


class FakeDirectory:
    """In-memory platform directory; set fail to simulate an outage."""

    def __init__(self, members=None, groups=None, fail=False):
        self.members = members or {}
        self.groups = groups or {}
        self.fail = fail
        self.calls = []

    def get_member(self, platform_id, group_id, user_id):
        self.calls.append(("member", platform_id, group_id, user_id))
        if self.fail:
            raise UpstreamUnavailableError("Platform directory unavailable")
        return self.members.get((platform_id, group_id, user_id))

    def get_container(self, platform_id, group_id):
        self.calls.append(("group", platform_id, group_id))
        if self.fail:
            raise UpstreamUnavailableError("Platform directory unavailable")
        return self.groups.get((platform_id, group_id))


def make_actor(user_id="member", group_id="100", platform_id="qq", name=None, directory=None):
    return ActorContext(
        platform_id=platform_id,
        group_id=group_id,
        user_id=user_id,
        display_name=name or user_id,
        directory=directory,
    )


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def make_settings():
    def _make(**overrides):
        return get_settings().model_copy(update=overrides)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def locks():
    return TenantLocks()


@pytest.fixture
def service(store, settings, locks, clock):
    return ArcadeService(store, settings, locks, clock=clock)


@pytest.fixture
def owner():
    return make_actor("owner", name="Owner")


@pytest.fixture
def member():
    return make_actor("member", name="Member")
