from __future__ import annotations

from pathlib import Path

import pytest

from tidings.config import get_settings


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    db_path = tmp_path / "tidings_test.db"
    env_path = tmp_path / ".env"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TIDINGS_DB_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("TIDINGS_ENV_FILE", str(env_path))
    monkeypatch.delenv("INPUT_TIMEOUT_MILLIS", raising=False)
    monkeypatch.delenv("ABORT_KEY", raising=False)
    monkeypatch.delenv("SCROLL_AMOUNT", raising=False)
    monkeypatch.delenv("DEFAULT_SORT_ORDER", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
