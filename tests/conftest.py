"""Shared test fixtures for CareNexa Health tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("STORAGE_PATH", ":memory:")
    monkeypatch.setenv("FALLBACK_TOKEN_DELAY_S", "0")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from carenexa.core.llm.providers.mock import MockProvider  # noqa: E402
from carenexa.core.storage.kv import MemoryStorage  # noqa: E402
from carenexa.domains.health.store.health_store import HealthStore  # noqa: E402

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeRuntime:
    """Deterministic clock, instant sleep and sequential ids."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.current = now
        self.sleeps: list[float] = []
        self._counter = 0

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def new_id(self) -> str:
        self._counter += 1
        return f"id-{self._counter}"

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def health_store(memory_storage: MemoryStorage, runtime: FakeRuntime) -> HealthStore:
    """An initialized store over empty in-memory storage."""
    return HealthStore(memory_storage, runtime).init()


@pytest.fixture
def mock_provider() -> MockProvider:
    """A provider that streams 'Drink water and rest.' word by word."""
    return MockProvider("Drink water and rest.", model="gemini-2.0-flash")


@pytest.fixture
def failing_provider() -> MockProvider:
    """A provider whose stream fails before producing anything."""
    return MockProvider(fail_after=0, model="gemini-2.0-flash")


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def storage_db():
    """Create an in-memory StorageDatabase for testing."""
    from carenexa.core.storage.database import StorageDatabase

    db = StorageDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def value_encryptor():
    """ValueEncryptor with a single fresh key."""
    from carenexa.core.storage.encryption import ValueEncryptor

    return ValueEncryptor(ValueEncryptor.generate_key())
