from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="projectproof-tests-"))
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'projectproof.db'}"
os.environ["DATA_DIR"] = str(_TEST_ROOT)
os.environ["UPLOAD_DIR"] = str(_TEST_ROOT / "uploads")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["ANALYSIS_PROVIDER"] = "gemini"
os.environ["GEMINI_API_KEY"] = ""

import pytest  # noqa: E402

from projectproof.core.auth import issue_session  # noqa: E402
from projectproof.db.base import Base  # noqa: E402
from projectproof.db.init import ensure_data_directories  # noqa: E402
from projectproof.db.session import SessionLocal, engine  # noqa: E402
from projectproof.llm.providers import ProviderConfig  # noqa: E402

LED_BLINKER = {
    "title": "LED Blinker",
    "summary": "An Arduino Uno toggles a red LED every 500 ms.",
    "description": "Built a timed blink circuit on a breadboard with a 220 ohm resistor.",
    "skills": ["Arduino", "C++", "Circuit Design"],
    "technical_specs": {"Voltage": "5V", "Resistor": "220 ohm", "Interval_ms": 500},
    "category": "Embedded Systems",
    "recruiter_insight": "Shows clean fundamentals in embedded prototyping.",
}


class ScriptedProvider:
    """Analysis provider that replays fixed fragments and records each call."""

    def __init__(self, fragments=(), *, error: Exception | None = None):
        self.config = ProviderConfig(name="scripted", model="fake", api_key="", timeout_sec=1, temperature=0.7)
        self.fragments = list(fragments)
        self.error = error
        self.calls: list[dict] = []

    def stream_analysis(self, *, media, media_type, prompt, system_instruction):
        self.calls.append({"media": media, "media_type": media_type, "prompt": prompt})
        yield from self.fragments
        if self.error is not None:
            raise self.error


@pytest.fixture(autouse=True)
def reset_db() -> None:
    ensure_data_directories()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def signed_in(db_session):
    return issue_session(db_session, email="ada@example.com", ttl_min=60)


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def led_blinker() -> dict:
    return dict(LED_BLINKER)
