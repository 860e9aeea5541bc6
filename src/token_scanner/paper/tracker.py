"""Paper position tracker marked to scan-result prices.

Simulation only: nothing here places orders or touches a wallet.
"""

import uuid
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.enums import PositionStatus
from ..core.models import PaperPosition, TokenRecord

logger = logging.getLogger(__name__)


class PaperTracker:
    """Tracks simulated positions opened from scan results."""

    def __init__(self, max_open_positions: int = 5, default_amount_usd: float = 100.0):
        self.max_open_positions = max_open_positions
        self.default_amount_usd = default_amount_usd
        self._positions: Dict[str, PaperPosition] = {}
        logger.info(f"Paper tracker initialized (max open positions: {max_open_positions})")

    def open_position(self, record: TokenRecord, amount_usd: Optional[float] = None) -> PaperPosition:
        """Open a simulated position at the record's current price."""
        amount = amount_usd if amount_usd is not None else self.default_amount_usd
        if record.price <= 0:
            raise ValueError(f"Cannot open position for {record.symbol}: no price")
        if amount <= 0:
            raise ValueError("Position amount must be positive")
        if len(self.get_open_positions()) >= self.max_open_positions:
            raise ValueError(f"Max open positions ({self.max_open_positions}) reached")

        position = PaperPosition(
            id=str(uuid.uuid4()),
            symbol=record.symbol,
            address=record.address,
            amount_usd=amount,
            entry_price=record.price,
            quantity=amount / record.price,
            current_price=record.price,
        )
        self._positions[position.id] = position
        logger.info(
            f"Opened paper position {position.id[:8]} {record.symbol} "
            f"${amount:.2f} @ {record.price}"
        )
        return position

    def mark_to_market(self, records: Sequence[TokenRecord]) -> int:
        """Update open positions from the latest prices; returns the number updated."""
        prices = {r.address: r.price for r in records if r.price > 0}
        updated = 0
        for position in self.get_open_positions():
            price = prices.get(position.address)
            if price is None:
                continue
            position.current_price = price
            position.unrealized_pnl = (price - position.entry_price) * position.quantity
            updated += 1
        if updated:
            logger.debug(f"Marked {updated} paper positions to market")
        return updated

    def close_position(self, position_id: str, exit_price: Optional[float] = None) -> PaperPosition:
        """Close a position at *exit_price* (defaults to the last marked price)."""
        position = self._positions.get(position_id)
        if position is None:
            raise KeyError(f"Unknown position {position_id}")
        if position.status == PositionStatus.CLOSED:
            return position

        price = exit_price if exit_price is not None else position.current_price
        position.exit_price = price
        position.current_price = price
        position.realized_pnl = (price - position.entry_price) * position.quantity
        position.unrealized_pnl = 0.0
        position.status = PositionStatus.CLOSED
        position.closed_at = datetime.now()

        logger.info(
            f"Closed paper position {position.id[:8]} {position.symbol}: "
            f"P&L ${position.realized_pnl:.2f} ({position.return_pct:.2f}%)"
        )
        return position

    def get_open_positions(self) -> List[PaperPosition]:
        return [p for p in self._positions.values() if p.status == PositionStatus.OPEN]

    def get_closed_positions(self) -> List[PaperPosition]:
        return [p for p in self._positions.values() if p.status == PositionStatus.CLOSED]

    def get_position(self, position_id: str) -> Optional[PaperPosition]:
        return self._positions.get(position_id)

    def performance(self) -> Dict[str, float]:
        """Summary over closed positions."""
        closed = self.get_closed_positions()
        if not closed:
            return {"total_pnl": 0.0, "win_rate": 0.0, "total_trades": 0, "avg_return": 0.0}

        pnls = np.array([p.realized_pnl for p in closed])
        returns = np.array([p.return_pct for p in closed])
        return {
            "total_pnl": float(np.sum(pnls)),
            "win_rate": float(np.mean(pnls > 0)),
            "total_trades": len(closed),
            "avg_return": float(np.mean(returns)),
        }

    def to_dataframe(self) -> pd.DataFrame:
        """All positions, one row each."""
        columns = [
            "id", "symbol", "address", "status", "amount_usd", "entry_price",
            "current_price", "exit_price", "unrealized_pnl", "realized_pnl",
            "opened_at", "closed_at",
        ]
        rows = []
        for p in self._positions.values():
            row = {c: getattr(p, c) for c in columns}
            row["status"] = p.status.value
            rows.append(row)
        return pd.DataFrame(rows, columns=columns)
