from __future__ import annotations

import pytest
from sqlalchemy import func, select

from po_analytics.db.models import LaborAnalysisSummary, LaborStatistic, PurchaseOrder
from po_analytics.ingest.columns import DestinationTable
from po_analytics.ingest.loader import LoadMode, load_csv_text
from po_analytics.labor.aggregate import DailyAggregate, aggregate_daily
from po_analytics.labor.engine import simulate
from po_analytics.labor.parameters import ProductivityParameters
from po_analytics.labor.service import clear_labor_statistics, get_variables, run_simulation, save_variables
from po_analytics.labor.summary import cohort_statistics, get_summary, labor_overview, rebuild_summary

HEADER = "Entity,Supplier_Name,Oracle_Item_Number,PO_Number,PO_Date,PO_Quantity_Ordered"


def _load(store, *rows: str) -> None:
    load_csv_text(
        store, DestinationTable.PURCHASE_ORDERS, "\n".join([HEADER, *rows]), LoadMode.REPLACE
    )


def _labor_rows(store):
    with store.session() as session:
        return session.scalars(select(LaborStatistic).order_by(LaborStatistic.date)).all()


def test_daily_aggregation_example(store):
    _load(store, "E1,Acme,I1,PO1,2024-01-02,5", "E1,Acme,I2,PO2,2024-01-02,7")
    with store.session() as session:
        assert aggregate_daily(session) == [
            DailyAggregate(date="2024-01-02", transaction_lines=2, quantity_picked=12)
        ]


def test_aggregation_skips_empty_dates_and_bad_quantities(store):
    _load(
        store,
        "E1,Acme,I1,PO1,2024-01-03,4",
        "E1,Acme,I1,PO2,2024-01-02,abc",
        "E1,Acme,I1,PO3,,9",
        "E1,Acme,I1,PO4,45293,3",
    )
    with store.session() as session:
        aggregates = aggregate_daily(session)
    assert aggregates == [
        DailyAggregate("2024-01-02", 1, 0),
        DailyAggregate("45293", 1, 3),
        DailyAggregate("2024-01-03", 1, 4),
    ]


def test_one_labor_row_per_distinct_date(store):
    _load(
        store,
        *[f"E{i},Acme,I{i},PO{i},2024-01-0{i % 7 + 1},{i}" for i in range(30)],
    )
    result = simulate(store, ProductivityParameters())

    with store.session() as session:
        distinct_dates = session.execute(
            select(func.count(func.distinct(PurchaseOrder.PO_Date))).where(PurchaseOrder.PO_Date.is_not(None))
        ).scalar_one()
    rows = _labor_rows(store)
    assert result.processed_days == len(rows) == distinct_dates == 7
    assert result.total_records == 30
    assert len({row.date for row in rows}) == len(rows)


def test_simulation_replaces_previous_output(store):
    _load(store, "E1,Acme,I1,PO1,2024-01-02,5", "E1,Acme,I1,PO2,2024-01-06,5")
    simulate(store, ProductivityParameters())
    _load(store, "E1,Acme,I1,PO1,2024-01-09,5")
    simulate(store, ProductivityParameters())

    assert [row.date for row in _labor_rows(store)] == ["2024-01-09"]
    with store.session() as session:
        assert [row["day_type"] for row in get_summary(session)] == ["Weekday"]


def test_unresolvable_dates_are_skipped(store):
    _load(store, "E1,Acme,I1,PO1,2024-01-02,5", "E1,Acme,I1,PO2,someday,5")
    result = simulate(store, ProductivityParameters())
    assert result.processed_days == 1
    assert result.skipped_dates == ["someday"]


def test_failed_day_does_not_abort_run(store):
    with store.engine.begin() as conn:
        conn.exec_driver_sql(
            "CREATE TRIGGER reject_day BEFORE INSERT ON labor_statistics "
            "WHEN NEW.date = '2024-01-03' BEGIN SELECT RAISE(ABORT, 'no'); END"
        )
    aggregates = [
        DailyAggregate("2024-01-02", 10, 10),
        DailyAggregate("2024-01-03", 10, 10),
        DailyAggregate("2024-01-04", 10, 10),
    ]
    result = simulate(store, ProductivityParameters(), aggregates)

    assert result.processed_days == 2
    assert result.failed_dates == ["2024-01-03"]
    assert [row.date for row in _labor_rows(store)] == ["2024-01-02", "2024-01-04"]


def _stat(date: str, day: str, leader: float) -> LaborStatistic:
    return LaborStatistic(date=date, day_of_week=day, leader_fte=leader)


def test_summary_worked_example(store):
    with store.session() as session:
        session.add_all(
            [
                _stat("2024-01-01", "Monday", 10),
                _stat("2024-01-02", "Tuesday", 20),
                _stat("2024-01-03", "Wednesday", 30),
                _stat("2024-01-06", "Saturday", 1),
            ]
        )
    with store.session() as session:
        rebuild_summary(session)
    with store.session() as session:
        rows = {row.day_type: row for row in session.scalars(select(LaborAnalysisSummary))}

    weekday = rows["Weekday"]
    assert weekday.day_count == 3
    assert weekday.avg_total_fte == pytest.approx(20)
    assert weekday.avg_leader_fte == pytest.approx(20)
    assert weekday.stddev_total_fte == pytest.approx(10)
    assert rows["Weekend"].day_count == 1
    assert rows["Weekend"].stddev_total_fte == 0


def test_empty_cohort_has_no_summary_row(store):
    with store.session() as session:
        session.add(_stat("2024-01-01", "Monday", 5))
        session.flush()
        stats = rebuild_summary(session)
    assert [row["day_type"] for row in stats] == ["Weekday"]


def test_cohort_statistics_on_empty_frame():
    import pandas as pd

    assert cohort_statistics(pd.DataFrame({"day_type": [], "total_fte": []})) == []


def test_labor_overview(store):
    _load(
        store,
        "E1,Acme,I1,PO1,2024-01-02,5",
        "E1,Acme,I1,PO2,2024-01-02,5",
        "E1,Acme,I1,PO3,2024-01-06,5",
    )
    simulate(store, ProductivityParameters())
    with store.session() as session:
        overview = labor_overview(session)

    assert overview["total_days"] == 2
    assert overview["total_transaction_lines"] == 3
    assert overview["total_quantity_picked"] == 15
    assert overview["start_date"] == "2024-01-02"
    assert overview["end_date"] == "2024-01-06"
    assert overview["average_lines_per_weekday"] == 2
    assert overview["average_lines_per_weekend"] == 1
    assert overview["day_of_week_averages"] == {"Tuesday": 2.0, "Saturday": 1.0}


def test_labor_overview_empty(store):
    with store.session() as session:
        assert labor_overview(session)["total_days"] == 0


def test_service_outcomes(store):
    _load(store, "E1,Acme,I1,PO1,2024-01-02,5")

    outcome = run_simulation(store, {"bulk_ratio": 40}, save_preference=True)
    assert outcome.success
    assert outcome.processed_days == 1
    assert "Processed 1 days with 1 total records" in outcome.message

    saved = get_variables(store)
    assert saved.data["bulk_ratio"] == 40
    assert saved.data["lum_rate"] == 80

    rejected = run_simulation(store, {"labor_hours_per_day": -2})
    assert not rejected.success
    assert "Invalid productivity parameters" in rejected.message

    cleared = clear_labor_statistics(store)
    assert cleared.success
    assert cleared.count == 1
    assert _labor_rows(store) == []


def test_save_variables_validates(store):
    assert not save_variables(store, {"utilization_pct": -5}).success
    assert save_variables(store, {"utilization_pct": 90}).success
    assert get_variables(store).data["utilization_pct"] == 90
