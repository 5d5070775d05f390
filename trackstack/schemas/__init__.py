"""
Track Your Stack - Pydantic Schemas
"""
from trackstack.schemas.investment import (
    AddInvestmentRequest,
    UpdateInvestmentRequest,
)

from trackstack.schemas.portfolio import (
    PortfolioCreate,
    PortfolioUpdate,
)

from trackstack.schemas.results import ActionResult

__all__ = [
    "AddInvestmentRequest",
    "UpdateInvestmentRequest",
    "PortfolioCreate",
    "PortfolioUpdate",
    "ActionResult",
]
