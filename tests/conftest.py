from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="jobcopilot-tests-"))
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'copilot.db'}"
os.environ["DATA_DIR"] = str(_TEST_ROOT / "data")
os.environ["BROWSER_USER_DATA_DIR"] = str(_TEST_ROOT / "browser_profile")
os.environ["NOTIFICATIONS_ENABLED"] = "false"

import pytest  # noqa: E402

from jobcopilot.db.base import Base  # noqa: E402
from jobcopilot.db.repositories import Repository  # noqa: E402
from jobcopilot.db.session import SessionLocal, engine  # noqa: E402
from jobcopilot.errors import PageQueryError  # noqa: E402
from jobcopilot.types import ApplicationContext  # noqa: E402


class ScriptedPage:
    """Fake page session whose DOM changes over virtual time.

    ``frames`` is a list of ``(start_ms, {selector: count})``; the DOM at any
    moment is the last frame that has started. ``wait_ms`` advances the
    virtual clock instead of sleeping.
    """

    def __init__(self, frames, *, failing=(), broken=()):
        self.frames = sorted(frames, key=lambda frame: frame[0])
        self.failing = set(failing)
        self.broken = set(broken)
        self.now_ms = 0
        self.navigated: list[str] = []
        self.queries: list[str] = []
        self.waits: list[int] = []

    def clock(self) -> float:
        return self.now_ms / 1000

    def navigate(self, url: str) -> None:
        self.navigated.append(url)

    def query_count(self, selector: str) -> int:
        self.queries.append(selector)
        if selector in self.failing:
            raise PageQueryError(selector, "Timeout 30000ms exceeded")
        if selector in self.broken:
            raise RuntimeError("Target page, context or browser has been closed")
        return self._dom().get(selector, 0)

    def wait_ms(self, duration_ms: int) -> None:
        self.waits.append(duration_ms)
        self.now_ms += duration_ms

    def _dom(self) -> dict[str, int]:
        current: dict[str, int] = {}
        for start_ms, dom in self.frames:
            if start_ms <= self.now_ms:
                current = dom
        return current


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def scripted_page():
    return ScriptedPage


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def queued_application(db):
    repo = Repository(db)
    job = repo.create_job(
        "https://boards.greenhouse.io/acme/jobs/42",
        title="Backend Engineer",
        company="Acme",
    )
    application = repo.create_application(job.id)
    return ApplicationContext(
        application_id=application.id,
        job_id=job.id,
        job_url=job.url,
        job_title=job.title,
        job_company=job.company,
    )
