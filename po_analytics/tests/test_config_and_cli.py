from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from sqlalchemy import func, select

from po_analytics.db import migrate
from po_analytics.db.models import LaborStatistic, PurchaseOrder
from po_analytics.db.store import Store, resolve_database_url
from po_analytics.ingest import load_files
from po_analytics.ingest.columns import PURCHASE_ORDER_FIELDS
from po_analytics.labor import run_simulation
from po_analytics.utils.config import ROOT_DIR, load_config


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.delenv("PO_ANALYTICS_DB_URI", raising=False)
    monkeypatch.delenv("PO_ANALYTICS_CONFIG", raising=False)
    path = tmp_path / "CONFIG.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "app": {"log_level": "WARNING"},
                "db": {"uri": f"sqlite:///{tmp_path / 'cli.db'}"},
                "ingest": {"batch_size": 2},
                "labor": {"overrides": {"leadership_staff": 4}},
            }
        ),
        encoding="utf-8",
    )
    load_config.cache_clear()
    yield path
    load_config.cache_clear()


def test_load_config_sections(config_file: Path, tmp_path: Path) -> None:
    config = load_config(config_file)
    assert config.app.log_level == "WARNING"
    assert config.db.journal_mode == "WAL"
    assert config.ingest.batch_size == 2
    assert config.ingest.large_batch_size == 5000
    assert config.labor.overrides == {"leadership_staff": 4}


def test_env_overrides_db_uri(config_file: Path, monkeypatch) -> None:
    monkeypatch.setenv("PO_ANALYTICS_DB_URI", "sqlite:///:memory:")
    assert load_config(config_file).db.uri == "sqlite:///:memory:"


def test_missing_config_file(tmp_path: Path) -> None:
    load_config.cache_clear()
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_relative_sqlite_paths_resolve_against_repo() -> None:
    url = resolve_database_url("sqlite:///db/po_analytics.db")
    assert Path(url.database) == ROOT_DIR / "db" / "po_analytics.db"
    assert resolve_database_url("sqlite:///:memory:").database == ":memory:"


def _write_extract(path: Path, rows) -> None:
    lines = [",".join(PURCHASE_ORDER_FIELDS)]
    for values in rows:
        record = dict.fromkeys(PURCHASE_ORDER_FIELDS, "x")
        record.update(values)
        lines.append(",".join(str(record[name]) for name in PURCHASE_ORDER_FIELDS))
    path.write_text("\n".join(lines), encoding="utf-8")


def test_cli_round_trip(config_file: Path, tmp_path: Path, capsys) -> None:
    orders = tmp_path / "orders.csv"
    _write_extract(
        orders,
        [
            {"PO_Date": "2024-01-02", "PO_Quantity_Ordered": 5},
            {"PO_Date": "2024-01-02", "PO_Quantity_Ordered": 7},
            {"PO_Date": "2024-01-06", "PO_Quantity_Ordered": 1},
        ],
    )
    unrelated = tmp_path / "unrelated.csv"
    unrelated.write_text("foo,bar\n1,2\n", encoding="utf-8")

    assert migrate.main(["--config", str(config_file)]) == 0
    assert load_files.main([str(unrelated), "--config", str(config_file)]) == 1
    assert load_files.main([str(orders), "--config", str(config_file)]) == 0
    assert run_simulation.main(["--config", str(config_file), "--set", "bulk_ratio=30"]) == 0

    store = Store(load_config(config_file).db.uri)
    try:
        with store.session() as session:
            assert session.execute(select(func.count()).select_from(PurchaseOrder)).scalar_one() == 3
            leaders = session.scalars(select(LaborStatistic.leader_fte).order_by(LaborStatistic.date)).all()
    finally:
        store.dispose()
    assert leaders == [4, 1]

    output = capsys.readouterr().out
    assert "Migration complete" in output
    assert "Validation failed for 1 of 1 file(s)" in output
    assert "Imported 3 records from 1 file(s)" in output
    assert "Process simulation completed successfully" in output


def test_cli_imports_narrow_extract(config_file: Path, tmp_path: Path, capsys) -> None:
    orders = tmp_path / "orders.csv"
    orders.write_text(
        "Entity,Supplier_Name,Oracle_Item_Number,PO_Number,PO_Date,PO_Quantity_Ordered\n"
        "E1,Acme,I1,P1,2024-01-02,10\n"
        "E1,Acme,I2,P1,2024-01-02,5\n",
        encoding="utf-8",
    )

    assert load_files.main([str(orders), "--config", str(config_file)]) == 0

    store = Store(load_config(config_file).db.uri)
    try:
        with store.session() as session:
            assert session.execute(select(func.count()).select_from(PurchaseOrder)).scalar_one() == 2
    finally:
        store.dispose()
    assert "Imported 2 records from 1 file(s)" in capsys.readouterr().out


def test_simulation_cli_rejects_bad_override(config_file: Path) -> None:
    assert run_simulation.main(["--config", str(config_file), "--set", "bulk_ratio"]) == 2
