"""
Track Your Stack - Investment Schemas
"""
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from trackstack.db.models.investment import AssetType
from trackstack.utils import decimal_utils as dec

TICKER_PATTERN = re.compile(r"^[A-Z0-9.\-]{1,20}$")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")
MARKUP_PATTERN = re.compile(r"<[^>]*>")

MAX_AMOUNT = Decimal("1e12")


def collapse_whitespace(value: str) -> str:
    return " ".join(value.split())


def normalize_currency(value: Any) -> str:
    """Upper-case a 3-letter currency code or raise ValueError."""
    if not isinstance(value, str):
        raise ValueError("Invalid currency code")
    code = value.strip().upper()
    if not CURRENCY_PATTERN.match(code):
        raise ValueError("Invalid currency code")
    return code


def normalize_asset_name(value: Any) -> str:
    name = collapse_whitespace(value) if isinstance(value, str) else ""
    if not name:
        raise ValueError("Asset name is required")
    if len(name) > 200:
        raise ValueError("Asset name must be at most 200 characters")
    return name


def parse_amount(value: Any, label: str) -> Decimal:
    """Strictly positive finite decimal with at most 8 fractional digits."""
    try:
        amount = dec.to_decimal(value)
    except ValueError:
        raise ValueError(f"{label} must be a number") from None
    if amount <= dec.ZERO:
        raise ValueError(f"{label} must be a positive number")
    if amount >= MAX_AMOUNT:
        raise ValueError(f"{label} is too large")
    if dec.fractional_digits(amount) > dec.QUANTITY_PLACES:
        raise ValueError(f"{label} allows at most {dec.QUANTITY_PLACES} decimal places")
    return amount


class AddInvestmentRequest(BaseModel):
    """A purchase to add to a portfolio."""
    ticker: str = Field(..., description="Asset ticker symbol")
    asset_name: str = Field(..., description="Display name of the asset")
    asset_type: AssetType
    quantity: Decimal = Field(..., description="Units bought")
    price_per_unit: Decimal = Field(..., description="Price per unit in the purchase currency")
    currency: str = Field(..., description="ISO 4217 currency code")
    purchase_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("ticker", mode="before")
    @classmethod
    def validate_ticker(cls, v: Any) -> str:
        """Normalize ticker to upper case and check its characters."""
        if v is None:
            v = ""
        if not isinstance(v, str):
            raise ValueError("Ticker must be text")
        ticker = v.strip().upper()
        if not ticker:
            raise ValueError("Ticker is required")
        if not TICKER_PATTERN.match(ticker):
            raise ValueError("Ticker must be 1-20 characters of A-Z, 0-9, '.' or '-'")
        return ticker

    @field_validator("asset_name", mode="before")
    @classmethod
    def validate_asset_name(cls, v: Any) -> str:
        return normalize_asset_name(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def validate_quantity(cls, v: Any) -> Decimal:
        return parse_amount(v, "Quantity")

    @field_validator("price_per_unit", mode="before")
    @classmethod
    def validate_price(cls, v: Any) -> Decimal:
        return parse_amount(v, "Price per unit")

    @field_validator("currency", mode="before")
    @classmethod
    def validate_currency(cls, v: Any) -> str:
        return normalize_currency(v)

    @field_validator("purchase_date")
    @classmethod
    def validate_purchase_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store purchase dates as naive UTC."""
        if v is not None and v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @field_validator("notes", mode="before")
    @classmethod
    def sanitize_notes(cls, v: Any) -> Optional[str]:
        """Strip markup and collapse whitespace; empty notes become None."""
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("Notes must be text")
        notes = collapse_whitespace(MARKUP_PATTERN.sub("", v))
        if len(notes) > 500:
            raise ValueError("Notes must be at most 500 characters")
        return notes or None


class UpdateInvestmentRequest(BaseModel):
    """Descriptive fields of a position. Quantity and cost only change through purchases."""
    asset_name: str
    asset_type: AssetType

    @field_validator("asset_name", mode="before")
    @classmethod
    def validate_asset_name(cls, v: Any) -> str:
        return normalize_asset_name(v)
