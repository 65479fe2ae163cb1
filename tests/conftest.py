import os

os.environ["OUTLOOK_HELPER_ENV"] = "test"

import pytest  # noqa: E402

from app.database import db_manager  # noqa: E402
from app.db import bind_sessions  # noqa: E402
from settings import settings  # noqa: E402
from tests.fakes import FakeGateway  # noqa: E402


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    url = f"sqlite+aiosqlite:///{tmp_path / 'outlook_helper.db'}"
    monkeypatch.setattr(settings.database, "url", url)
    return url


@pytest.fixture
async def database(database_url):
    """A fresh SQLite file with all tables; tests open their own session with ``async with db():``."""
    await db_manager.close()
    engine = db_manager.init_db(database_url)
    await db_manager.create_tables()
    bind_sessions(engine)
    yield engine
    await db_manager.close()


@pytest.fixture
def fake_gateway():
    return FakeGateway()
