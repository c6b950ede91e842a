"""
Configuration loader for the po_analytics package.

Reads `config/CONFIG.yaml`, normalises environment variables, and exposes
typed accessors for downstream modules (store factory, loaders, labor engine).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

import os

import yaml
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = ROOT_DIR / "config/CONFIG.yaml"
CONFIG_ENV_VAR = "PO_ANALYTICS_CONFIG"
DB_URI_ENV_VAR = "PO_ANALYTICS_DB_URI"


def _expand_env(value: Any) -> Any:
    """Recursively expand environment variables inside CONFIG values."""
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: _expand_env(val) for key, val in value.items()}
    return value


@dataclass(frozen=True)
class AppSettings:
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclass(frozen=True)
class DBSettings:
    driver: str = "sqlite"
    uri: str = "sqlite:///db/po_analytics.db"
    journal_mode: str = "WAL"


@dataclass(frozen=True)
class IngestSettings:
    batch_size: int = 1000
    large_batch_size: int = 5000
    large_row_threshold: int = 100_000
    large_file_mb: int = 150
    validation_sample_rows: int = 1000
    expected_columns: int = 37


@dataclass(frozen=True)
class LaborSettings:
    overrides: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings = field(default_factory=AppSettings)
    db: DBSettings = field(default_factory=DBSettings)
    ingest: IngestSettings = field(default_factory=IngestSettings)
    labor: LaborSettings = field(default_factory=LaborSettings)


@lru_cache(maxsize=1)
def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load the configuration file and convert it into typed objects.

    Parameters
    ----------
    path: Optional path override; defaults to $PO_ANALYTICS_CONFIG or
        config/CONFIG.yaml.
    """
    load_dotenv(ROOT_DIR / ".env")
    cfg_path = Path(path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {cfg_path}")

    with cfg_path.open("r", encoding="utf-8") as fh:
        raw_data: Dict[str, Any] = yaml.safe_load(fh) or {}

    expanded = _expand_env(raw_data)

    db_section = dict(expanded.get("db") or {})
    if os.getenv(DB_URI_ENV_VAR):
        db_section["uri"] = os.environ[DB_URI_ENV_VAR]

    labor_section = expanded.get("labor") or {}
    return AppConfig(
        app=AppSettings(**(expanded.get("app") or {})),
        db=DBSettings(**db_section),
        ingest=IngestSettings(**(expanded.get("ingest") or {})),
        labor=LaborSettings(overrides=dict(labor_section.get("overrides") or {})),
    )


__all__ = [
    "AppConfig",
    "AppSettings",
    "DBSettings",
    "IngestSettings",
    "LaborSettings",
    "ROOT_DIR",
    "load_config",
]
