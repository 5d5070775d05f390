"""
Track Your Stack - Investment Model

One row per (portfolio, ticker): the aggregated position.

- total_quantity / average_cost_basis: in the PURCHASE currency, only ever
  written together by the purchase merge
- current_price: last known quote, NULL until a quote has been fetched
"""
import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey,
    Enum as SQLEnum, UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from trackstack.db.database import Base
from trackstack.utils.time import utcnow


class AssetType(str, enum.Enum):
    """Asset classes a position can belong to."""
    STOCK = "stock"
    ETF = "etf"
    MUTUAL_FUND = "mutual_fund"
    CRYPTO = "crypto"


class Investment(Base):
    """Aggregated position model."""

    __tablename__ = "investments"
    __table_args__ = (
        UniqueConstraint("portfolio_id", "ticker", name="uq_investments_portfolio_ticker"),
        CheckConstraint("total_quantity > 0", name="ck_investments_quantity_positive"),
        CheckConstraint("average_cost_basis > 0", name="ck_investments_cost_positive"),
        Index("ix_investments_price_updated_at", "price_updated_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    portfolio_id = Column(Integer, ForeignKey("portfolios.id", ondelete="CASCADE"), nullable=False, index=True)

    # Asset info
    ticker = Column(String(20), nullable=False, index=True)
    asset_name = Column(String(200), nullable=False)
    asset_type = Column(SQLEnum(AssetType), nullable=False, index=True)

    # Position - PURCHASE CURRENCY values
    total_quantity = Column(Numeric(20, 8), nullable=False)
    average_cost_basis = Column(Numeric(30, 12), nullable=False)
    purchase_currency = Column(String(3), nullable=False)

    # Last known quote
    current_price = Column(Numeric(20, 8), nullable=True)
    current_price_currency = Column(String(3), nullable=True)
    price_updated_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    portfolio = relationship("Portfolio", back_populates="investments")
    transactions = relationship(
        "PurchaseTransaction",
        back_populates="investment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PurchaseTransaction.purchase_date",
    )

    def __repr__(self):
        return f"<Investment {self.ticker} qty={self.total_quantity}>"
