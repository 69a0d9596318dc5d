import os

# Settings are read on import, so the environment has to be in place first
os.environ.setdefault("INSTANCE_ID", "test-instance")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SIGND_API_KEY", "test-api-key")

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import Base, get_db
from app.core.jwt import create_access_token
from app.files import models as file_models  # noqa: F401
from app.files.storage import RootFolder, get_root_folder
from app.main import signd_app as fast_api_app
from app.signd.client import SigndClient, get_signd_client
from app.signd.config import SigndConfig
from app.signd.models import SigndProcess
from app.signd.repository import ProcessRepository

TEST_USER = "alice"


@pytest.fixture
def db_session():
    """
    Fresh in-memory database for every test.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def root(db_session, tmp_path):
    return RootFolder(db_session, tmp_path / "data")


@pytest.fixture
def user_folder(root):
    return root.get_user_folder(TEST_USER)


@pytest.fixture
def repo(db_session):
    return ProcessRepository(db_session)


@pytest.fixture
def signd_config():
    return SigndConfig(instance_id="inst-1", api_key="key")


@pytest.fixture
def signd_client():
    """signd.it client double; tests set the return values they need."""
    return MagicMock(spec=SigndClient)


@pytest.fixture
def make_process(repo):
    def _make(process_id="p-1", file_id=1, target_dir=None, finished_pdf_path=None, user_id=TEST_USER):
        return repo.insert(SigndProcess(
            process_id=process_id,
            file_id=file_id,
            user_id=user_id,
            target_dir=target_dir,
            finished_pdf_path=finished_pdf_path,
        ))
    return _make


@pytest.fixture
def client(db_session, root, signd_client):
    """Fixture for setting up TestClient with overridden dependencies."""
    def override_get_db():
        yield db_session

    fast_api_app.dependency_overrides[get_db] = override_get_db
    fast_api_app.dependency_overrides[get_root_folder] = lambda: root
    fast_api_app.dependency_overrides[get_signd_client] = lambda: signd_client
    client = TestClient(fast_api_app)
    yield client
    fast_api_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token({"sub": TEST_USER, "name": "Alice"})
    return {"Authorization": f"Bearer {token}"}
