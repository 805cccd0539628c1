from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from inkroll.config import settings as settings_module


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Point every test at its own database and reset the settings cache."""
    for key in (
        "INKROLL_DEFAULT_FORMULA",
        "INKROLL_MAX_DICE",
        "INKROLL_MAX_SIDES",
        "INKROLL_RECENT_LIMIT",
        "INKROLL_HISTORY_LIMIT",
        "INKROLL_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("INKROLL_DB_PATH", str(tmp_path / "inkroll.sqlite3"))
    settings_module.get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    settings_module.get_settings.cache_clear()  # type: ignore[attr-defined]
