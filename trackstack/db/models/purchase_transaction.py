"""
Track Your Stack - Purchase Transaction Model

Append-only purchase history. Each row is written in the same commit as
the position update it belongs to.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from trackstack.db.database import Base
from trackstack.utils.time import utcnow


class PurchaseTransaction(Base):
    """Single purchase of an investment."""

    __tablename__ = "purchase_transactions"

    id = Column(Integer, primary_key=True, index=True)
    investment_id = Column(Integer, ForeignKey("investments.id", ondelete="CASCADE"), nullable=False, index=True)

    quantity = Column(Numeric(20, 8), nullable=False)
    price_per_unit = Column(Numeric(20, 8), nullable=False)
    currency = Column(String(3), nullable=False)
    purchase_date = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Notes
    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=utcnow)

    # Relationships
    investment = relationship("Investment", back_populates="transactions")

    def __repr__(self):
        return f"<PurchaseTransaction investment={self.investment_id} qty={self.quantity} @ {self.price_per_unit}>"
