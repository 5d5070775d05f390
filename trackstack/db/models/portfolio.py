"""
Track Your Stack - Portfolio Model

All aggregates reported for a portfolio are expressed in its base currency.
"""
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from trackstack.db.database import Base
from trackstack.utils.time import utcnow


class Portfolio(Base):
    """Portfolio model."""

    __tablename__ = "portfolios"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_portfolios_user_name"),
        Index("ix_portfolios_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    base_currency = Column(String(3), nullable=False, default="USD")

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    investments = relationship(
        "Investment",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Portfolio {self.name} ({self.base_currency})>"
