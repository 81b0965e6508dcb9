"""Domain records for credentials and account snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

TOKENS_DOCUMENT = "tokens"


@dataclass(frozen=True)
class TokenPair:
    """Bearer and refresh credential pair. Either may be absent before the first exchange."""

    bearer: Optional[str] = None
    refresh: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.bearer) and bool(self.refresh)

    def to_document(self) -> Dict[str, Optional[str]]:
        return {"bearer": self.bearer, "refresh": self.refresh}

    @classmethod
    def from_document(cls, document: Any) -> "TokenPair":
        if not isinstance(document, Mapping):
            return cls()
        bearer = document.get("bearer")
        refresh = document.get("refresh")
        return cls(
            bearer=bearer if isinstance(bearer, str) and bearer else None,
            refresh=refresh if isinstance(refresh, str) and refresh else None,
        )

    @staticmethod
    def empty_document() -> Dict[str, Optional[str]]:
        return TokenPair().to_document()

    def masked(self) -> str:
        def _mask(value: Optional[str]) -> str:
            if not value:
                return "<absent>"
            return f"{value[:6]}..." if len(value) > 6 else "***"

        return f"bearer={_mask(self.bearer)} refresh={_mask(self.refresh)}"


@dataclass
class StockPosition:
    account: Optional[str]
    quantity: Optional[int]
    average_buy_price: Optional[float]
    instrument: Optional[str]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "account": self.account,
            "quantity": self.quantity,
            "averageBuyPrice": self.average_buy_price,
            "instrument": self.instrument,
        }


@dataclass
class OptionPosition:
    account: Optional[str]
    average_price: Optional[float]
    chain_id: Optional[str]
    chain_symbol: Optional[str]
    id: Optional[str]
    option: Optional[str]
    quantity: Optional[int]
    type: Optional[str]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "account": self.account,
            "averagePrice": self.average_price,
            "chainId": self.chain_id,
            "chainSymbol": self.chain_symbol,
            "id": self.id,
            "option": self.option,
            "quantity": self.quantity,
            "type": self.type,
        }


@dataclass
class InstrumentMarketData:
    last_trade_price: Optional[float]
    last_extended_hours_trade_price: Optional[float]
    symbol: Optional[str]
    updated_at: Optional[str]
    instrument: Optional[str]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "lastTradePrice": self.last_trade_price,
            "lastExtendedHoursTradePrice": self.last_extended_hours_trade_price,
            "symbol": self.symbol,
            "updatedAt": self.updated_at,
            "instrument": self.instrument,
        }


@dataclass
class OptionMarketData:
    adjusted_mark_price: Any
    break_even_price: Any
    instrument: Optional[str]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "adjustedMarkPrice": self.adjusted_mark_price,
            "breakEvenPrice": self.break_even_price,
            "instrument": self.instrument,
        }


@dataclass
class OptionInstrument:
    chain_id: Optional[str]
    chain_symbol: Optional[str]
    expiration_date: Optional[str]
    id: Optional[str]
    strike_price: Optional[float]
    type: Optional[str]
    url: Optional[str]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "chainSymbol": self.chain_symbol,
            "expirationDate": self.expiration_date,
            "id": self.id,
            "strikePrice": self.strike_price,
            "type": self.type,
            "url": self.url,
        }


@dataclass
class AccountSnapshot:
    """Everything uploaded in one cycle."""

    stock_positions: List[StockPosition] = field(default_factory=list)
    option_positions: List[OptionPosition] = field(default_factory=list)
    stock_market_data: List[InstrumentMarketData] = field(default_factory=list)
    option_market_data: List[OptionMarketData] = field(default_factory=list)
    options: List[OptionInstrument] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Return the upload body in the shape the upload endpoint expects."""
        return {
            "positions": {
                "stocks": [p.to_payload() for p in self.stock_positions],
                "options": [p.to_payload() for p in self.option_positions],
            },
            "marketData": {
                "stocks": [m.to_payload() for m in self.stock_market_data],
                "options": [m.to_payload() for m in self.option_market_data],
            },
            "metadata": {
                "options": [o.to_payload() for o in self.options],
            },
        }

    def counts(self) -> Dict[str, int]:
        return {
            "stock_positions": len(self.stock_positions),
            "option_positions": len(self.option_positions),
            "stock_quotes": len(self.stock_market_data),
            "option_quotes": len(self.option_market_data),
            "options": len(self.options),
        }


__all__ = [
    "TOKENS_DOCUMENT",
    "TokenPair",
    "StockPosition",
    "OptionPosition",
    "InstrumentMarketData",
    "OptionMarketData",
    "OptionInstrument",
    "AccountSnapshot",
]
