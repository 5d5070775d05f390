"""
Unit Tests - Investment Repository
Tests for atomic position writes.
"""
import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock
from sqlalchemy.exc import IntegrityError, OperationalError

from trackstack.core.aggregation import MergeResult
from trackstack.db.models.investment import AssetType, Investment
from trackstack.db.models.purchase_transaction import PurchaseTransaction
from trackstack.db.repositories.investment import InvestmentRepository
from trackstack.utils.exceptions import DuplicatePositionError, PersistenceError


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO investments ...", {}, Exception(message))


class TestInvestmentRepository:
    """Tests for InvestmentRepository."""

    @pytest.fixture
    def repo(self, mock_db):
        return InvestmentRepository(mock_db)

    @pytest.fixture
    def first_purchase(self):
        return MergeResult(quantity=Decimal("10"), average_cost=Decimal("150"), aggregated=False)

    # =====================
    # Reads
    # =====================

    @pytest.mark.asyncio
    async def test_get_by_ticker(self, repo, mock_db, make_investment):
        investment = make_investment("AAPL")
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = investment
        mock_db.execute.return_value = mock_result

        result = await repo.get_by_ticker(1, "aapl", for_update=True)

        assert result is investment
        statement = mock_db.execute.call_args.args[0]
        assert statement._for_update_arg is not None

    @pytest.mark.asyncio
    async def test_get_by_ticker_without_lock(self, repo, mock_db):
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = mock_result

        assert await repo.get_by_ticker(1, "AAPL") is None
        statement = mock_db.execute.call_args.args[0]
        assert statement._for_update_arg is None

    @pytest.mark.asyncio
    async def test_latest_price_filters_on_quote_currency(self, repo, mock_db):
        mock_result = MagicMock()
        mock_result.scalars.return_value.first.return_value = None
        mock_db.execute.return_value = mock_result

        assert await repo.latest_price_for_ticker("btc", "eur") is None

        statement = mock_db.execute.call_args.args[0]
        sql = str(statement.compile(compile_kwargs={"literal_binds": True}))
        assert "investments.current_price_currency = 'EUR'" in sql
        assert "investments.ticker = 'BTC'" in sql

    # =====================
    # create_with_purchase tests
    # =====================

    @pytest.mark.asyncio
    async def test_create_adds_position_and_transaction_in_one_commit(self, repo, mock_db, first_purchase):
        investment = await repo.create_with_purchase(
            portfolio_id=1,
            ticker="aapl",
            asset_name="Apple Inc.",
            asset_type=AssetType.STOCK,
            currency="USD",
            merge=first_purchase,
            price_per_unit=Decimal("150"),
            quantity=Decimal("10"),
            purchase_date=datetime(2025, 1, 2),
            notes="first lot",
        )

        assert isinstance(investment, Investment)
        assert investment.ticker == "AAPL"
        assert investment.total_quantity == Decimal("10")
        assert investment.average_cost_basis == Decimal("150")
        assert len(investment.transactions) == 1
        transaction = investment.transactions[0]
        assert isinstance(transaction, PurchaseTransaction)
        assert transaction.notes == "first lot"
        mock_db.add.assert_called_once_with(investment)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_unique_conflict_raises_duplicate(self, repo, mock_db, first_purchase):
        mock_db.commit.side_effect = _integrity_error(
            'duplicate key value violates unique constraint "uq_investments_portfolio_ticker"'
        )

        with pytest.raises(DuplicatePositionError) as exc_info:
            await repo.create_with_purchase(
                1, "AAPL", "Apple", AssetType.STOCK, "USD", first_purchase, Decimal("150"), Decimal("10")
            )

        assert exc_info.value.retryable is True
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_other_integrity_error(self, repo, mock_db, first_purchase):
        mock_db.commit.side_effect = _integrity_error('violates check constraint "ck_investments_quantity_positive"')

        with pytest.raises(PersistenceError) as exc_info:
            await repo.create_with_purchase(
                1, "AAPL", "Apple", AssetType.STOCK, "USD", first_purchase, Decimal("150"), Decimal("10")
            )

        assert not isinstance(exc_info.value, DuplicatePositionError)
        mock_db.rollback.assert_awaited_once()

    # =====================
    # apply_merge tests
    # =====================

    @pytest.mark.asyncio
    async def test_apply_merge_updates_totals_and_adds_transaction(self, repo, mock_db, make_investment):
        investment = make_investment("AAPL", quantity="10", average_cost="150")
        merge = MergeResult(quantity=Decimal("15"), average_cost=Decimal("153.333333333333"), aggregated=True)

        await repo.apply_merge(investment, merge, Decimal("160"), Decimal("5"), "USD")

        assert investment.total_quantity == Decimal("15")
        assert investment.average_cost_basis == Decimal("153.333333333333")
        transaction = mock_db.add.call_args.args[0]
        assert isinstance(transaction, PurchaseTransaction)
        assert transaction.investment_id == investment.id
        assert transaction.quantity == Decimal("5")
        assert transaction.price_per_unit == Decimal("160")
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_apply_merge_failure_rolls_back(self, repo, mock_db, make_investment):
        investment = make_investment("AAPL")
        mock_db.commit.side_effect = OperationalError("UPDATE investments ...", {}, Exception("connection lost"))
        merge = MergeResult(quantity=Decimal("11"), average_cost=Decimal("150"), aggregated=True)

        with pytest.raises(PersistenceError) as exc_info:
            await repo.apply_merge(investment, merge, Decimal("150"), Decimal("1"), "USD")

        assert "connection" not in exc_info.value.message
        mock_db.rollback.assert_awaited_once()

    # =====================
    # Other writes
    # =====================

    @pytest.mark.asyncio
    async def test_update_price(self, repo, mock_db, make_investment):
        investment = make_investment("AAPL", current_price=None)
        stamp = datetime(2025, 3, 1, 12, 0)

        await repo.update_price(investment, Decimal("187.44"), "USD", updated_at=stamp)

        assert investment.current_price == Decimal("187.44")
        assert investment.current_price_currency == "USD"
        assert investment.price_updated_at == stamp
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete(self, repo, mock_db, make_investment):
        investment = make_investment("AAPL")

        await repo.delete(investment)

        mock_db.delete.assert_awaited_once_with(investment)
        mock_db.commit.assert_awaited_once()
