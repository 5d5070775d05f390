"""
Track Your Stack - Database Models
"""
from trackstack.db.models.portfolio import Portfolio
from trackstack.db.models.investment import Investment, AssetType
from trackstack.db.models.purchase_transaction import PurchaseTransaction
from trackstack.db.models.currency_rate import CurrencyRate

__all__ = [
    "Portfolio",
    "Investment",
    "AssetType",
    "PurchaseTransaction",
    "CurrencyRate",
]
