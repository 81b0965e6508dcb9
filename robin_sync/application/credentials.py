"""Bearer token lifecycle: stored refresh token first, environment overrides second."""

from __future__ import annotations

from typing import Callable, Mapping, Optional

from robin_sync.application.exceptions import ConfigurationError, ExchangeError, StorageError
from robin_sync.config import get_env
from robin_sync.domain.document_store import DocumentStore
from robin_sync.domain.entities import TOKENS_DOCUMENT, TokenPair
from robin_sync.domain.token_exchange import TokenExchange
from robin_sync.infrastructure.log_utils import log_message

BEARER_OVERRIDE_ENV = "ROBINHOOD_ACCESS_TOKEN"
REFRESH_OVERRIDE_ENV = "ROBINHOOD_REFRESH_TOKEN"


def env_overrides() -> TokenPair:
    """Read the bearer/refresh overrides from the environment or settings."""
    return TokenPair(
        bearer=get_env(BEARER_OVERRIDE_ENV) or None,
        refresh=get_env(REFRESH_OVERRIDE_ENV) or None,
    )


class CredentialManager:
    """Produce a valid bearer token for each cycle and persist refreshed pairs.

    Fallback chain:

    1. Exchange the refresh token persisted under the ``tokens`` document.
    2. If there is none, or that exchange fails, adopt the environment
       overrides and exchange their refresh token instead. A missing refresh
       override is a :class:`ConfigurationError`; a second exchange failure
       propagates as :class:`ExchangeError`.

    Every successful exchange is saved before it is returned so that a
    restarted process can reuse it without the overrides.
    """

    def __init__(
        self,
        store: DocumentStore,
        exchanger: TokenExchange,
        *,
        overrides: Callable[[], TokenPair] = env_overrides,
        document_name: str = TOKENS_DOCUMENT,
    ) -> None:
        self._store = store
        self._exchanger = exchanger
        self._overrides = overrides
        self._document_name = document_name
        self._tokens: Optional[TokenPair] = None

    @property
    def current(self) -> TokenPair:
        """The in-memory pair, hydrated from the store on first access."""
        if self._tokens is None:
            self._tokens = self._load()
        return self._tokens

    def stored(self) -> TokenPair:
        """Read the persisted pair, bypassing the in-memory copy."""
        return self._load()

    def _load(self) -> TokenPair:
        document = self._store.load(self._document_name, TokenPair.empty_document())
        if not isinstance(document, Mapping):
            raise StorageError(
                f"Token document {self._document_name!r} must be a JSON object, got {type(document).__name__}."
            )
        return TokenPair.from_document(document)

    def _persist(self, tokens: TokenPair) -> TokenPair:
        self._store.save(self._document_name, tokens.to_document())
        self._tokens = tokens
        return tokens

    def ensure_fresh_tokens(self) -> TokenPair:
        stored = self._load()
        self._tokens = stored

        if stored.refresh:
            try:
                tokens = self._exchanger.exchange(stored.refresh)
            except ExchangeError as exc:
                log_message(
                    f"Exchange with stored refresh token failed ({exc}); falling back to configured overrides.",
                    "WARN",
                )
            else:
                log_message("Refreshed tokens using the stored refresh token.", "INFO")
                return self._persist(tokens)
        else:
            log_message("No stored refresh token; using configured overrides.", "INFO")

        return self._refresh_from_overrides()

    def _refresh_from_overrides(self) -> TokenPair:
        overrides = self._overrides()
        if not overrides.refresh:
            raise ConfigurationError(
                f"Must set {REFRESH_OVERRIDE_ENV}: no usable refresh token is stored.",
                missing=REFRESH_OVERRIDE_ENV,
            )

        self._tokens = overrides
        tokens = self._exchanger.exchange(overrides.refresh)
        log_message("Refreshed tokens using the configured refresh token override.", "INFO")
        return self._persist(tokens)


__all__ = ["CredentialManager", "env_overrides", "BEARER_OVERRIDE_ENV", "REFRESH_OVERRIDE_ENV"]
