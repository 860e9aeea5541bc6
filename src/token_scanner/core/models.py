"""Core data models for the token scanner."""

from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field, validator

from .enums import PositionStatus

UNKNOWN_SYMBOL = "UNKNOWN"
UNKNOWN_NAME = "Unknown"


class TokenRecord(BaseModel):
    """Canonical token record flowing through the scan pipeline."""

    # Identity
    symbol: str = Field(default=UNKNOWN_SYMBOL, description="Ticker symbol")
    name: str = Field(default=UNKNOWN_NAME, description="Token name")
    address: str = Field(default="", description="Chain-specific token address (dedup key)")

    # Market data
    price: float = Field(default=0.0, ge=0.0, description="Latest price in USD")
    price_change_24h: float = Field(default=0.0, description="Signed 24h price change %")
    volume_24h: float = Field(default=0.0, ge=0.0, description="24h traded volume in USD")
    liquidity: float = Field(default=0.0, ge=0.0, description="Available liquidity in USD")
    market_cap: float = Field(default=0.0, ge=0.0, description="Estimated market cap in USD")

    # Annotations
    score: int = Field(default=0, ge=0, le=100, description="Scoring stage annotation (0 = unscored)")
    source: str = Field(default="", description="Provider that produced the record")
    balance: float = Field(default=0.0, ge=0.0, description="Token account balance (chain RPC only)")

    @validator('symbol', pre=True)
    def fill_symbol(cls, v):
        if v is None or not str(v).strip():
            return UNKNOWN_SYMBOL
        return str(v)

    @validator('name', pre=True)
    def fill_name(cls, v):
        if v is None or not str(v).strip():
            return UNKNOWN_NAME
        return str(v)

    @property
    def volume_mcap_ratio(self) -> float:
        """24h volume divided by market cap; 0 when market cap is unknown."""
        if self.market_cap > 0:
            return self.volume_24h / self.market_cap
        return 0.0


class PaperPosition(BaseModel):
    """Simulated position opened from a scan result."""

    id: str = Field(description="Position ID")
    symbol: str = Field(description="Token symbol")
    address: str = Field(description="Token address")
    amount_usd: float = Field(gt=0.0, description="Notional committed in USD")
    entry_price: float = Field(gt=0.0, description="Entry price")
    quantity: float = Field(description="Simulated token quantity")
    current_price: float = Field(description="Last marked price")
    opened_at: datetime = Field(default_factory=datetime.now, description="Open time")

    status: PositionStatus = Field(default=PositionStatus.OPEN, description="Position status")
    exit_price: Optional[float] = Field(default=None, description="Exit price")
    closed_at: Optional[datetime] = Field(default=None, description="Close time")
    unrealized_pnl: float = Field(default=0.0, description="Unrealized P&L in USD")
    realized_pnl: float = Field(default=0.0, description="Realized P&L in USD")

    @property
    def return_pct(self) -> float:
        price = self.exit_price if self.exit_price is not None else self.current_price
        return (price - self.entry_price) / self.entry_price * 100


class TokenAnalysis(BaseModel):
    """Detailed single-token analysis."""

    address: str = Field(description="Token address")
    details: Dict[str, Any] = Field(default_factory=dict, description="Provider token overview")
    analysis: str = Field(description="Language-model analysis text")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation time")
