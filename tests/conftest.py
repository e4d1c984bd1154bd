import os
import tempfile
from pathlib import Path

# Point the settings at a throwaway SQLite file before any backend module imports them
_DB_DIR = tempfile.mkdtemp(prefix="ai-manager-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ.setdefault("GRAPHQL_URL", "http://graphql.test/graphql/v1")
os.environ.setdefault("CHAT_API_URL", "http://chat.test")

import pytest

from database import create_tables, drop_tables


@pytest.fixture
async def db_tables():
    await create_tables()
    yield
    await drop_tables()


@pytest.fixture
def conversation_id():
    return "7b1d3c52-3f5a-4c1e-9a7e-2f4b8d6e1a90"
