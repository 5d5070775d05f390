"""
Track Your Stack

Valuation and aggregation engine for a multi-currency investment
portfolio tracker.
"""

__version__ = "0.1.0"
