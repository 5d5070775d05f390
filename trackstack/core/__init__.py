"""
Track Your Stack - Core

Pure valuation logic (position merge, metrics, portfolio summary) and
the per-key concurrency guard.
"""
