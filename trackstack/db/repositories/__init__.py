"""
Track Your Stack - Data Repositories

Repository pattern implementations for database operations.
"""
from trackstack.db.repositories.portfolio import PortfolioRepository
from trackstack.db.repositories.investment import InvestmentRepository
from trackstack.db.repositories.currency_rate import CurrencyRateRepository

__all__ = [
    "PortfolioRepository",
    "InvestmentRepository",
    "CurrencyRateRepository",
]
