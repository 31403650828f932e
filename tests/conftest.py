import os
import sys
from datetime import timedelta
from pathlib import Path

os.environ.setdefault("APP_ENV", "testing")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import create_app  # noqa: E402
from models.db_storage import DBStorage  # noqa: E402
from models.memory_store import MemoryStore  # noqa: E402
from models.session_store import SQLSessionStore, SQLUserStore  # noqa: E402
from services.auth_service import AuthService  # noqa: E402
from services.tokens import TokenIssuer  # noqa: E402
from utils.clock import utcnow  # noqa: E402
from utils.security import hash_password  # noqa: E402

PASSWORD = "secret123"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now=None):
        self.now = now or utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def issuer():
    # Real clock: PyJWT validates exp/iat against wall time
    return TokenIssuer("test-access-secret-0123456789abcdef", "test-refresh-secret-0123456789abcdef")


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def auth_service(memory_store, issuer, clock):
    return AuthService(memory_store, memory_store, issuer, clock=clock)


@pytest.fixture
def user(memory_store):
    return memory_store.create_user("a@x.com", hash_password(PASSWORD), name="Ada", role="donor")


@pytest.fixture
def sql_storage():
    storage = DBStorage("sqlite://")
    storage.reload()
    yield storage
    storage.close()
    storage.drop_all()


@pytest.fixture
def sql_sessions(sql_storage):
    return SQLSessionStore(sql_storage)


@pytest.fixture
def sql_users(sql_storage):
    return SQLUserStore(sql_storage)


@pytest.fixture
def app():
    return create_app("testing")


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def registered_user(app):
    service = app.extensions["auth_service"]
    return service.users.create_user("a@x.com", hash_password(PASSWORD), name="Ada", role="donor")
