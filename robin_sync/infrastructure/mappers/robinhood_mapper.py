"""Decode Robinhood REST payloads into domain records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, TypeVar

from robin_sync.domain.entities import (
    InstrumentMarketData,
    OptionInstrument,
    OptionMarketData,
    OptionPosition,
    StockPosition,
)
from robin_sync.utils.converters import to_float, to_int, to_str

T = TypeVar("T")

_OPTION_ID_PATTERN = re.compile(r"instruments/(.*)/")


class RobinhoodMappingError(ValueError):
    """Raised when a payload does not have the expected shape."""


def extract_option_id(option_url: str) -> str:
    """Return the contract id from an option instrument URL."""

    match = _OPTION_ID_PATTERN.search(option_url or "")
    if not match or not match.group(1):
        raise RobinhoodMappingError(f"Could not extract option id from option url: {option_url}")
    return match.group(1)


@dataclass
class RobinhoodPayloadMapper:
    """Stateless decoder for list endpoints returning ``{"results": [...]}``."""

    def results(self, payload: Any, decode: Callable[[Mapping[str, Any]], T]) -> List[T]:
        if not isinstance(payload, Mapping):
            raise RobinhoodMappingError(f"Expected an object payload, got {type(payload).__name__}.")
        rows = payload.get("results")
        if rows is None:
            raise RobinhoodMappingError("Payload has no 'results' field.")
        if not isinstance(rows, list):
            raise RobinhoodMappingError("Payload 'results' is not a list.")
        # market data endpoints return null entries for unknown instruments
        return [decode(row) for row in rows if isinstance(row, Mapping)]

    @staticmethod
    def stock_position(raw: Mapping[str, Any]) -> StockPosition:
        return StockPosition(
            account=to_str(raw.get("account")),
            quantity=to_int(raw.get("quantity")),
            average_buy_price=to_float(raw.get("average_buy_price")),
            instrument=to_str(raw.get("instrument")),
        )

    @staticmethod
    def option_position(raw: Mapping[str, Any]) -> OptionPosition:
        return OptionPosition(
            account=to_str(raw.get("account")),
            average_price=to_float(raw.get("average_price")),
            chain_id=to_str(raw.get("chain_id")),
            chain_symbol=to_str(raw.get("chain_symbol")),
            id=to_str(raw.get("id")),
            option=to_str(raw.get("option")),
            quantity=to_int(raw.get("quantity")),
            type=to_str(raw.get("type")),
        )

    @staticmethod
    def instrument_market_data(raw: Mapping[str, Any]) -> InstrumentMarketData:
        return InstrumentMarketData(
            last_trade_price=to_float(raw.get("last_trade_price")),
            last_extended_hours_trade_price=to_float(raw.get("last_extended_hours_trade_price")),
            symbol=to_str(raw.get("symbol")),
            updated_at=to_str(raw.get("updated_at")),
            instrument=to_str(raw.get("instrument")),
        )

    @staticmethod
    def option_market_data(raw: Mapping[str, Any]) -> OptionMarketData:
        # prices are passed through untouched, as the upload consumer expects strings here
        return OptionMarketData(
            adjusted_mark_price=raw.get("adjusted_mark_price"),
            break_even_price=raw.get("break_even_price"),
            instrument=to_str(raw.get("instrument")),
        )

    @staticmethod
    def option_instrument(raw: Mapping[str, Any]) -> OptionInstrument:
        return OptionInstrument(
            chain_id=to_str(raw.get("chain_id")),
            chain_symbol=to_str(raw.get("chain_symbol")),
            expiration_date=to_str(raw.get("expiration_date")),
            id=to_str(raw.get("id")),
            strike_price=to_float(raw.get("strike_price")),
            type=to_str(raw.get("type")),
            url=to_str(raw.get("url")),
        )

    def stock_positions(self, payload: Any) -> List[StockPosition]:
        return self.results(payload, self.stock_position)

    def option_positions(self, payload: Any) -> List[OptionPosition]:
        return self.results(payload, self.option_position)

    def stock_quotes(self, payload: Any) -> List[InstrumentMarketData]:
        return self.results(payload, self.instrument_market_data)

    def option_quotes(self, payload: Any) -> List[OptionMarketData]:
        return self.results(payload, self.option_market_data)

    def option_instruments(self, payload: Any) -> List[OptionInstrument]:
        return self.results(payload, self.option_instrument)


__all__ = ["RobinhoodMappingError", "RobinhoodPayloadMapper", "extract_option_id"]
