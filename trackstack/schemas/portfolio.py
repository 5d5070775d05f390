"""
Track Your Stack - Portfolio Schemas
"""
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from trackstack.schemas.investment import collapse_whitespace, normalize_currency


def normalize_name(value: Any) -> str:
    name = collapse_whitespace(value) if isinstance(value, str) else ""
    if not name:
        raise ValueError("Portfolio name is required")
    if len(name) > 100:
        raise ValueError("Portfolio name must be at most 100 characters")
    return name


class PortfolioCreate(BaseModel):
    """Schema for creating a portfolio."""
    name: str = Field(..., description="Portfolio name")
    base_currency: str = Field("USD", description="Currency all totals are reported in")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return normalize_name(v)

    @field_validator("base_currency", mode="before")
    @classmethod
    def validate_base_currency(cls, v: Any) -> str:
        return normalize_currency(v)


class PortfolioUpdate(BaseModel):
    """Schema for updating a portfolio."""
    name: Optional[str] = None
    base_currency: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> Optional[str]:
        return None if v is None else normalize_name(v)

    @field_validator("base_currency", mode="before")
    @classmethod
    def validate_base_currency(cls, v: Any) -> Optional[str]:
        return None if v is None else normalize_currency(v)
