"""
Track Your Stack - Currency Rate Model

Cached exchange rates keyed by the ORDERED pair: USD->EUR and EUR->USD
are separate rows. Rows are upserted whenever a fresh rate is fetched
and never deleted; freshness is judged from fetched_at.

Example data:
- USD/EUR: 0.92 (1 USD = 0.92 EUR)
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, UniqueConstraint, Index

from trackstack.db.database import Base
from trackstack.utils.time import utcnow


class CurrencyRate(Base):
    """Foreign exchange rate cache entry.

    Attributes:
        from_currency: The source currency code (e.g., 'USD')
        to_currency: The target currency code (e.g., 'EUR')
        rate: The exchange rate (1 from = rate to)
        fetched_at: Timestamp when rate was fetched from the provider
    """

    __tablename__ = "currency_rates"

    id = Column(Integer, primary_key=True, index=True)

    # Currency pair
    from_currency = Column(String(3), nullable=False)
    to_currency = Column(String(3), nullable=False)

    rate = Column(Numeric(20, 10), nullable=False)
    fetched_at = Column(DateTime, nullable=False, default=utcnow)

    created_at = Column(DateTime, default=utcnow)

    # Constraints
    __table_args__ = (
        UniqueConstraint("from_currency", "to_currency", name="uq_currency_rates_pair"),
        Index("ix_currency_rates_fetched_at", "fetched_at"),
    )

    def __repr__(self):
        return f"<CurrencyRate {self.from_currency}/{self.to_currency}={self.rate}>"

    @property
    def pair(self) -> str:
        """Return the currency pair as a string (e.g., 'USD/EUR')."""
        return f"{self.from_currency}/{self.to_currency}"
