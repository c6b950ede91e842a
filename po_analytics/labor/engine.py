"""
Labor simulation: convert daily transaction volumes into staffing (FTE) needs.

Every run fully replaces `labor_statistics` and then rebuilds the cohort
summary in the same transaction. Each day's row is written inside its own
SAVEPOINT so one bad day is logged and skipped without losing the others.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from po_analytics.db.models import LaborStatistic
from po_analytics.db.store import Store
from po_analytics.labor.aggregate import DailyAggregate, aggregate_daily
from po_analytics.labor.calendar import day_of_week, is_weekend, resolve_date
from po_analytics.labor.numeric import clean, safe_div
from po_analytics.labor.parameters import ProductivityParameters
from po_analytics.labor.summary import rebuild_summary

logger = logging.getLogger(__name__)

WEEKEND_LEADER_FTE = 1.0


@dataclass(frozen=True)
class DailyLabor:
    date: str
    day_of_week: str
    transaction_lines: int
    quantity_picked: int
    bulk_points: float
    lum_points: float
    replen_points: float
    receive_points: float
    put_points: float
    bulk_fte: float
    lum_fte: float
    receive_fte: float
    inventory_fte: float
    support_fte: float
    rfid_fte: float
    supervisor_fte: float
    leader_fte: float

    @property
    def total_fte(self) -> float:
        return (
            self.bulk_fte
            + self.lum_fte
            + self.receive_fte
            + self.inventory_fte
            + self.support_fte
            + self.rfid_fte
            + self.supervisor_fte
            + self.leader_fte
        )

    def to_row(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class SimulationResult:
    processed_days: int = 0
    total_records: int = 0
    skipped_dates: List[str] = field(default_factory=list)
    failed_dates: List[str] = field(default_factory=list)

    @property
    def input_days(self) -> int:
        return self.processed_days + len(self.skipped_dates) + len(self.failed_dates)


def fte_denominator(params: ProductivityParameters) -> float:
    """Points one FTE delivers per day at the configured utilization."""
    return params.target_productivity * params.labor_hours_per_day * (params.utilization_pct / 100)


def compute_day(
    aggregate: DailyAggregate,
    params: ProductivityParameters,
    day: Optional[date] = None,
) -> DailyLabor:
    """Staffing for one day. Pure; raises ValueError if the date cannot be resolved."""
    day = day or resolve_date(aggregate.date)
    if day is None:
        raise ValueError(f"Unrecognised date value: {aggregate.date!r}")
    weekend = is_weekend(day)
    lines = aggregate.transaction_lines
    target = params.target_productivity

    bulk_ppt = safe_div(target, params.bulk_rate)
    lum_ppt = safe_div(target, params.lum_rate)
    replen_ppt = safe_div(target, params.letdown_rate)
    receive_ppt = safe_div(target, params.receipt_rate)
    put_ppt = safe_div(target, params.put_rate)

    bulk_points = lines * params.bulk_ratio / 100 * bulk_ppt
    lum_points = lines * (100 - params.bulk_ratio) / 100 * lum_ppt
    replen_points = lines * params.replenish_ratio / 100 * replen_ppt
    if weekend:
        receive_points = 0.0
        put_points = 0.0
    else:
        receive_points = lines * params.receipt_ratio / 100 * receive_ppt
        put_points = lines * params.put_ratio / 100 * put_ppt

    denominator = fte_denominator(params)
    bulk_fte = safe_div(bulk_points, denominator)
    lum_fte = safe_div(lum_points, denominator)
    receive_fte = safe_div(receive_points, denominator)
    inventory_fte = safe_div(replen_points + put_points, denominator)
    support_fte = safe_div(lines, params.lines_per_support)

    if weekend:
        rfid_fte = 0.0
    else:
        rfid_ppt = safe_div(target, params.rfid_rate)
        rfid_fte = safe_div(params.rfid_lines_per_day * rfid_ppt, denominator)

    staff_fte = bulk_fte + lum_fte + receive_fte + inventory_fte + support_fte + rfid_fte
    supervisor_fte = safe_div(staff_fte, params.staff_to_supervisor_ratio)
    leader_fte = WEEKEND_LEADER_FTE if weekend else params.leadership_staff

    return DailyLabor(
        date=aggregate.date,
        day_of_week=day_of_week(day),
        transaction_lines=aggregate.transaction_lines,
        quantity_picked=aggregate.quantity_picked,
        bulk_points=clean(bulk_points),
        lum_points=clean(lum_points),
        replen_points=clean(replen_points),
        receive_points=clean(receive_points),
        put_points=clean(put_points),
        bulk_fte=clean(bulk_fte),
        lum_fte=clean(lum_fte),
        receive_fte=clean(receive_fte),
        inventory_fte=clean(inventory_fte),
        support_fte=clean(support_fte),
        rfid_fte=clean(rfid_fte),
        supervisor_fte=clean(supervisor_fte),
        leader_fte=clean(leader_fte),
    )


def _write_day(session: Session, labor: DailyLabor) -> None:
    with session.begin_nested():
        session.add(LaborStatistic(**labor.to_row()))


def simulate_in_session(
    session: Session,
    aggregates: Iterable[DailyAggregate],
    params: ProductivityParameters,
) -> SimulationResult:
    """Replace labor_statistics from `aggregates` inside the caller's transaction."""
    result = SimulationResult()
    deleted = session.execute(delete(LaborStatistic)).rowcount
    logger.info("Cleared %s existing labor statistics rows", deleted)

    for aggregate in aggregates:
        day = resolve_date(aggregate.date)
        if day is None:
            logger.warning("Skipping %r: not a recognisable date", aggregate.date)
            result.skipped_dates.append(aggregate.date)
            continue
        labor = compute_day(aggregate, params, day)
        try:
            _write_day(session, labor)
        except SQLAlchemyError as exc:
            logger.error("Failed to store labor statistics for %s: %s", aggregate.date, exc)
            result.failed_dates.append(aggregate.date)
            continue
        result.processed_days += 1
        result.total_records += aggregate.transaction_lines
        logger.debug("Processed %s (%s): %d lines", labor.date, labor.day_of_week, labor.transaction_lines)

    rebuild_summary(session)
    logger.info(
        "Simulation processed %d days (%d skipped, %d failed), %d transaction lines",
        result.processed_days,
        len(result.skipped_dates),
        len(result.failed_dates),
        result.total_records,
    )
    return result


def simulate(
    store: Store,
    params: ProductivityParameters,
    aggregates: Optional[Iterable[DailyAggregate]] = None,
) -> SimulationResult:
    """Aggregate (unless given aggregates) and regenerate labor statistics and summary."""
    with store.session() as session:
        days = list(aggregates) if aggregates is not None else aggregate_daily(session)
        return simulate_in_session(session, days, params)


__all__ = [
    "DailyLabor",
    "SimulationResult",
    "compute_day",
    "fte_denominator",
    "simulate",
    "simulate_in_session",
]
