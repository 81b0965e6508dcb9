"""Domain-level protocol for the refresh-token exchange."""

from __future__ import annotations

from typing import Protocol

from robin_sync.domain.entities import TokenPair


class TokenExchange(Protocol):
    """Trades a refresh token for a fresh bearer/refresh pair."""

    def exchange(self, refresh_token: str) -> TokenPair:
        """Return the new pair or raise ``ExchangeError``."""


__all__ = ["TokenExchange"]
