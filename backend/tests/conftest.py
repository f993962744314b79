import sys
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure backend package is importable
backend_root = Path(__file__).resolve().parents[1]
if str(backend_root) not in sys.path:
    sys.path.insert(0, str(backend_root))

from doctailor.db import Base, make_engine, make_session_factory  # noqa: E402
from doctailor.storage import MemStorage, SqlStorage  # noqa: E402

TAILORED_TEXT = "Jane Smith\nSUMMARY:\nPython engineer focused on data platforms\nSKILLS:\nPython, SQL, Airflow"


class FakeRewriter:
    """Stands in for the generative model; records every prompt it gets."""

    def __init__(self, output=TAILORED_TEXT, error=None):
        self.output = output
        self.error = error
        self.prompts = []

    async def rewrite(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture
def fake_rewriter():
    return FakeRewriter()


@pytest.fixture
def files_dir(tmp_path):
    d = tmp_path / "files"
    d.mkdir(parents=True, exist_ok=True)
    return d


@pytest.fixture
def client(files_dir, monkeypatch, fake_rewriter):
    """FastAPI TestClient with fresh in-memory storage and a fake rewriter.

    Entered as a context manager so runs launched by a request keep going on
    the portal's event loop after the response is returned.
    """
    monkeypatch.setenv("FILES_DIR", str(files_dir))
    monkeypatch.setenv("CORS_ORIGINS", "*")
    monkeypatch.setenv("STORAGE_BACKEND", "memory")

    # Avoid accidental usage of real API keys during tests
    monkeypatch.setenv("DEEPSEEK_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")

    from doctailor.api import deps
    from doctailor.main import app

    app.state.storage = MemStorage()
    app.dependency_overrides[deps.get_rewriter] = lambda: fake_rewriter
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.storage = None


@pytest.fixture
def storage(client):
    from doctailor.main import app

    return app.state.storage


@pytest.fixture
def wait_for_terminal(client):
    """Poll the status route until the run is completed or failed."""

    def wait(document_id, timeout=5.0):
        deadline = time.monotonic() + timeout
        while True:
            r = client.get(f"/api/documents/{document_id}/status")
            if r.status_code == 200 and r.json()["status"] in ("completed", "failed"):
                return r.json()
            if time.monotonic() > deadline:
                raise AssertionError(f"document {document_id} did not finish: {r.status_code} {r.text}")
            time.sleep(0.02)

    return wait


@pytest.fixture
def sql_storage(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    return SqlStorage(make_session_factory(engine))
