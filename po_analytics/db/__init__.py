"""
Database package exports.
"""
from .models import AnalysisVariables, Base, LaborAnalysisSummary, LaborStatistic, PurchaseOrder  # noqa: F401
from .store import Store, open_store  # noqa: F401

__all__ = [
    "AnalysisVariables",
    "Base",
    "LaborAnalysisSummary",
    "LaborStatistic",
    "PurchaseOrder",
    "Store",
    "open_store",
]
