from __future__ import annotations

from pathlib import Path

import pytest

from po_analytics.db.store import Store


@pytest.fixture
def store(tmp_path: Path):
    db = Store(f"sqlite:///{tmp_path / 'po_analytics.db'}")
    yield db
    db.dispose()