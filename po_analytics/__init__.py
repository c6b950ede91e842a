"""
Purchase-order ingestion and warehouse labor simulation.
"""

__version__ = "0.1.0"
