"""
Productivity parameter set for the labor simulation and its saved preference.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from po_analytics.db.models import AnalysisVariables

logger = logging.getLogger(__name__)


class ProductivityParameters(BaseModel):
    """Rates are lines (or picks) per hour; ratios and utilization are percentages."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    target_productivity: float = Field(600, ge=0, description="points per hour")
    lum_rate: float = Field(80, ge=0, description="each (LUM) picks per hour")
    bulk_rate: float = Field(40, ge=0, description="bulk picks per hour")
    receipt_rate: float = Field(15, ge=0, description="receipt lines per hour")
    put_rate: float = Field(20, ge=0, description="put-away lines per hour")
    letdown_rate: float = Field(20, ge=0, description="replenishment lines per hour")
    rfid_rate: float = Field(60, ge=0, description="RFID lines per hour")
    rfid_lines_per_day: float = Field(7400, ge=0)
    bulk_ratio: float = Field(25, ge=0, le=100)
    receipt_ratio: float = Field(5, ge=0)
    put_ratio: float = Field(5, ge=0)
    replenish_ratio: float = Field(2, ge=0)
    lines_per_support: float = Field(1500, ge=0)
    utilization_pct: float = Field(80, ge=0)
    leadership_staff: float = Field(6, ge=0)
    staff_to_supervisor_ratio: float = Field(10, ge=0)
    labor_hours_per_day: float = Field(8, ge=0)


def merge_parameters(overrides: Optional[Mapping[str, Any]] = None) -> ProductivityParameters:
    """Apply user overrides onto the defaults; unknown keys and None values are ignored."""
    known = ProductivityParameters.model_fields
    clean = {key: value for key, value in (overrides or {}).items() if key in known and value is not None}
    ignored = sorted(set(overrides or {}) - set(known))
    if ignored:
        logger.warning("Ignoring unknown productivity parameters: %s", ignored)
    return ProductivityParameters(**clean)


def load_saved_parameters(session: Session) -> Optional[Dict[str, Any]]:
    row = session.get(AnalysisVariables, 1)
    return dict(row.variables) if row is not None else None


def save_parameters(session: Session, params: ProductivityParameters) -> None:
    session.merge(AnalysisVariables(id=1, variables=params.model_dump()))


def resolve_parameters(
    session: Session,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ProductivityParameters:
    """Defaults, then the saved preference, then explicit overrides."""
    merged: Dict[str, Any] = {}
    saved = load_saved_parameters(session)
    if saved:
        merged.update(saved)
    if overrides:
        merged.update(overrides)
    return merge_parameters(merged)


__all__ = [
    "ProductivityParameters",
    "load_saved_parameters",
    "merge_parameters",
    "resolve_parameters",
    "save_parameters",
]
