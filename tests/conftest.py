import os
import tempfile

# Configure the app before anything imports butaca.core.settings
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper")
os.environ.setdefault("PASSWORD_HASH_TIME_COST", "1")
os.environ.setdefault("PASSWORD_HASH_MEMORY_COST", "8192")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("BUTACA_HOME", tempfile.mkdtemp(prefix="butaca_cli_test_"))

import pytest  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from butaca.core.database import engine  # noqa: E402
from butaca.models.Activity import ActivityLog  # noqa: E402,F401
from butaca.models.SessionToken import SessionToken  # noqa: E402,F401
from butaca.models.User import User  # noqa: E402,F401


@pytest.fixture(autouse=True)
def fresh_database():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)
