"""
Cohort summary statistics and read models over labor_statistics.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import pandas as pd
from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from po_analytics.db.models import LaborAnalysisSummary, LaborStatistic
from po_analytics.labor.calendar import DAY_NAMES, WEEKDAY, WEEKEND, day_type
from po_analytics.labor.numeric import clean

logger = logging.getLogger(__name__)

FTE_COLUMNS = (
    "bulk_fte",
    "lum_fte",
    "receive_fte",
    "inventory_fte",
    "support_fte",
    "rfid_fte",
    "supervisor_fte",
    "leader_fte",
)
POINT_COLUMNS = ("bulk_points", "lum_points", "replen_points", "receive_points", "put_points")
COHORTS = (WEEKDAY, WEEKEND)


def _labor_frame(session: Session) -> pd.DataFrame:
    columns = ["date", "day_of_week", "transaction_lines", "quantity_picked", *POINT_COLUMNS, *FTE_COLUMNS]
    stmt = select(*(getattr(LaborStatistic, name) for name in columns)).order_by(LaborStatistic.id)
    rows = session.execute(stmt).all()
    frame = pd.DataFrame(rows, columns=columns)
    frame["day_type"] = frame["day_of_week"].map(day_type)
    frame["total_fte"] = frame[list(FTE_COLUMNS)].sum(axis=1)
    frame["total_points"] = frame[list(POINT_COLUMNS)].sum(axis=1)
    return frame


def cohort_statistics(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """Per-cohort means and the sample standard deviation of total FTE."""
    stats: List[Dict[str, Any]] = []
    for cohort in COHORTS:
        subset = frame[frame["day_type"] == cohort]
        count = len(subset)
        if count == 0:
            continue
        row: Dict[str, Any] = {"day_type": cohort, "day_count": count}
        for column in FTE_COLUMNS:
            row[f"avg_{column}"] = clean(subset[column].mean())
        row["avg_total_fte"] = clean(subset["total_fte"].mean())
        row["stddev_total_fte"] = clean(subset["total_fte"].std(ddof=1)) if count > 1 else 0.0
        stats.append(row)
    return stats


def rebuild_summary(session: Session) -> List[Dict[str, Any]]:
    """Clear and repopulate labor_analysis_summary from the current daily rows."""
    rows = cohort_statistics(_labor_frame(session))
    session.execute(delete(LaborAnalysisSummary))
    if rows:
        session.execute(insert(LaborAnalysisSummary), rows)
    logger.info("Labor analysis summary rebuilt: %s", {row["day_type"]: row["day_count"] for row in rows})
    return rows


def get_summary(session: Session) -> List[Dict[str, Any]]:
    records = session.scalars(select(LaborAnalysisSummary).order_by(LaborAnalysisSummary.day_type)).all()
    return [
        {column.name: getattr(record, column.name) for column in LaborAnalysisSummary.__table__.columns}
        for record in records
    ]


def get_daily_statistics(session: Session) -> List[Dict[str, Any]]:
    frame = _labor_frame(session)
    return frame.drop(columns=["day_type"]).to_dict(orient="records")


def _mean(series: pd.Series) -> float:
    return clean(series.mean()) if len(series) else 0.0


def labor_overview(session: Session) -> Dict[str, Any]:
    """Transaction-volume overview: totals and averages by cohort and day of week."""
    frame = _labor_frame(session)
    if frame.empty:
        return {
            "total_days": 0,
            "total_transaction_lines": 0,
            "total_quantity_picked": 0,
            "start_date": None,
            "end_date": None,
            "average_lines_per_day": 0.0,
            "average_lines_per_weekday": 0.0,
            "average_lines_per_weekend": 0.0,
            "average_points_per_weekday": 0.0,
            "average_points_per_weekend": 0.0,
            "day_of_week_averages": {},
            "overall_fte_averages": {},
        }

    weekday = frame[frame["day_type"] == WEEKDAY]
    weekend = frame[frame["day_type"] == WEEKEND]
    by_day = frame.groupby("day_of_week")["transaction_lines"].mean()
    day_of_week_averages = {name: clean(by_day[name]) for name in DAY_NAMES if name in by_day.index}
    overall = {f"avg_{column}": _mean(frame[column]) for column in FTE_COLUMNS}
    overall["avg_total_fte"] = _mean(frame["total_fte"])

    return {
        "total_days": int(len(frame)),
        "total_transaction_lines": int(frame["transaction_lines"].sum()),
        "total_quantity_picked": int(frame["quantity_picked"].sum()),
        "start_date": frame["date"].iloc[0],
        "end_date": frame["date"].iloc[-1],
        "average_lines_per_day": _mean(frame["transaction_lines"]),
        "average_lines_per_weekday": _mean(weekday["transaction_lines"]),
        "average_lines_per_weekend": _mean(weekend["transaction_lines"]),
        "average_points_per_weekday": _mean(weekday["total_points"]),
        "average_points_per_weekend": _mean(weekend["total_points"]),
        "day_of_week_averages": day_of_week_averages,
        "overall_fte_averages": overall,
    }


__all__ = [
    "FTE_COLUMNS",
    "cohort_statistics",
    "get_daily_statistics",
    "get_summary",
    "labor_overview",
    "rebuild_summary",
]
