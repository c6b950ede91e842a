"""
Structured-outcome entry points for the labor simulation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from po_analytics.db.maintenance import clear_labor
from po_analytics.db.store import Store
from po_analytics.labor.engine import simulate
from po_analytics.labor.parameters import (
    ProductivityParameters,
    load_saved_parameters,
    merge_parameters,
    resolve_parameters,
    save_parameters,
)

logger = logging.getLogger(__name__)


@dataclass
class SimulationOutcome:
    success: bool
    message: str
    processed_days: int = 0
    total_records: int = 0
    skipped_dates: List[str] = field(default_factory=list)
    failed_dates: List[str] = field(default_factory=list)
    parameters: Optional[Dict[str, Any]] = None


@dataclass
class OperationOutcome:
    success: bool
    message: str
    count: int = 0
    data: Optional[Dict[str, Any]] = None


def run_simulation(
    store: Store,
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    use_saved: bool = True,
    save_preference: bool = False,
) -> SimulationOutcome:
    """Regenerate labor statistics with defaults, the saved preference and `overrides`."""
    try:
        with store.session() as session:
            if use_saved:
                params = resolve_parameters(session, overrides)
            else:
                params = merge_parameters(overrides)
            if save_preference:
                save_parameters(session, params)
    except ValidationError as exc:
        logger.warning("Rejected productivity parameters: %s", exc)
        return SimulationOutcome(success=False, message=f"Invalid productivity parameters: {exc}")
    except Exception as exc:  # noqa: BLE001 - reported to the caller
        logger.exception("Failed to prepare simulation parameters")
        return SimulationOutcome(success=False, message=f"Process simulation failed: {exc}")

    try:
        result = simulate(store, params)
    except Exception as exc:  # noqa: BLE001 - reported to the caller
        logger.exception("Process simulation failed")
        return SimulationOutcome(success=False, message=f"Process simulation failed: {exc}")

    message = (
        f"Process simulation completed successfully. Processed {result.processed_days} days "
        f"with {result.total_records} total records."
    )
    if result.skipped_dates or result.failed_dates:
        message += f" Skipped {len(result.skipped_dates) + len(result.failed_dates)} days."
    return SimulationOutcome(
        success=True,
        message=message,
        processed_days=result.processed_days,
        total_records=result.total_records,
        skipped_dates=result.skipped_dates,
        failed_dates=result.failed_dates,
        parameters=params.model_dump(),
    )


def clear_labor_statistics(store: Store) -> OperationOutcome:
    try:
        deleted = clear_labor(store)
    except Exception as exc:  # noqa: BLE001 - reported to the caller
        logger.exception("Failed to clear labor statistics")
        return OperationOutcome(success=False, message=f"Failed to clear labor statistics: {exc}")
    return OperationOutcome(success=True, message=f"Cleared {deleted} labor statistics records", count=deleted)


def get_variables(store: Store) -> OperationOutcome:
    try:
        with store.session() as session:
            saved = load_saved_parameters(session)
        params = merge_parameters(saved)
    except Exception as exc:  # noqa: BLE001 - reported to the caller
        logger.exception("Failed to load analysis variables")
        return OperationOutcome(success=False, message=f"Failed to load analysis variables: {exc}")
    return OperationOutcome(
        success=True,
        message="Saved analysis variables" if saved else "Default analysis variables",
        data=params.model_dump(),
    )


def save_variables(store: Store, variables: Mapping[str, Any]) -> OperationOutcome:
    if not isinstance(variables, Mapping):
        return OperationOutcome(success=False, message="Invalid variables data")
    try:
        params = merge_parameters(variables)
        with store.session() as session:
            save_parameters(session, params)
    except ValidationError as exc:
        return OperationOutcome(success=False, message=f"Invalid variables data: {exc}")
    except Exception as exc:  # noqa: BLE001 - reported to the caller
        logger.exception("Failed to save analysis variables")
        return OperationOutcome(success=False, message=f"Failed to save analysis variables: {exc}")
    return OperationOutcome(success=True, message="Analysis variables saved", data=params.model_dump())


__all__ = [
    "OperationOutcome",
    "ProductivityParameters",
    "SimulationOutcome",
    "clear_labor_statistics",
    "get_variables",
    "run_simulation",
    "save_variables",
]
