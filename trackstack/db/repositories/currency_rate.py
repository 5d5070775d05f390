"""
Currency Rate Repository

Database operations for the exchange rate cache.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select
from loguru import logger

from trackstack.db.models.currency_rate import CurrencyRate
from trackstack.utils.exceptions import PersistenceError
from trackstack.utils.time import utcnow


class CurrencyRateRepository:
    """
    Repository for CurrencyRate database operations.

    Pairs are ordered: (USD, EUR) and (EUR, USD) are distinct rows.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_rate(
        self,
        from_currency: str,
        to_currency: str,
    ) -> Optional[CurrencyRate]:
        """
        Get the cached exchange rate for a currency pair.

        Args:
            from_currency: Source currency code (e.g., 'USD')
            to_currency: Target currency code (e.g., 'EUR')

        Returns:
            CurrencyRate or None if never fetched
        """
        result = await self.db.execute(
            select(CurrencyRate).where(
                CurrencyRate.from_currency == from_currency.upper(),
                CurrencyRate.to_currency == to_currency.upper(),
            )
        )
        return result.scalar_one_or_none()

    async def upsert_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
        fetched_at: Optional[datetime] = None,
    ) -> None:
        """
        Insert or overwrite the rate for a pair in a single statement.

        Two writers racing on the same pair both succeed; the later
        write wins.
        """
        if fetched_at is None:
            fetched_at = utcnow()

        source = from_currency.upper()
        target = to_currency.upper()

        statement = insert(CurrencyRate).values(
            from_currency=source,
            to_currency=target,
            rate=rate,
            fetched_at=fetched_at,
        )
        statement = statement.on_conflict_do_update(
            constraint="uq_currency_rates_pair",
            set_={"rate": statement.excluded.rate, "fetched_at": statement.excluded.fetched_at},
        )

        try:
            await self.db.execute(statement)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to cache rate {source}/{target}: {e}")
            raise PersistenceError("Failed to cache exchange rate") from e

        logger.debug(f"Cached rate: {source}/{target} = {rate}")
