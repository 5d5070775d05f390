"""
Track Your Stack - Services

Business logic layer: purchases, portfolios, prices and exchange rates.
"""
