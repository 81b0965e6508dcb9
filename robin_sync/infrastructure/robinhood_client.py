"""Read-only client for the Robinhood account and market data endpoints."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import requests

from robin_sync.application.exceptions import PipelineError
from robin_sync.config import settings
from robin_sync.infrastructure import log_utils

MARKET_DATA_PATHS = {
    "stocks": "quotes",
    "options": "options",
}


def _body_excerpt(response: Optional[requests.Response]) -> Optional[str]:
    if response is None:
        return None
    return (response.text or "")[:500]


class RobinhoodClient:
    """Fetch raw JSON from the Robinhood REST API using one bearer token.

    The bearer token is fixed at construction; a new client is built for
    every cycle so that each cycle uses the token it just refreshed.
    """

    def __init__(
        self,
        bearer_token: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        if not bearer_token:
            raise PipelineError("A bearer token is required to call the Robinhood API.", stage="auth")
        self.base_url = (base_url or settings.ROBINHOOD_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS
        self._bearer_token = bearer_token

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._bearer_token}",
        }

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        normalized = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}{normalized}"

    def _get(self, path: str, *, stage: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(path)
        log_utils.debug(f"[robinhood.api] GET {url} params={params}")
        try:
            response = requests.get(url, headers=self._headers(), params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            failed = exc.response
            status = failed.status_code if failed is not None else "?"
            raise PipelineError(
                f"GET {url} failed with HTTP {status}",
                stage=stage,
                url=url,
                response_body=_body_excerpt(failed),
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise PipelineError(f"GET {url} failed: {exc}", stage=stage, url=url) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise PipelineError(
                f"GET {url} returned invalid JSON",
                stage=stage,
                url=url,
                response_body=_body_excerpt(response),
            ) from exc

    def get_stock_positions(self) -> Any:
        return self._get("/positions/", stage="stock_positions", params={"nonzero": "true"})

    def get_option_positions(self) -> Any:
        return self._get("/options/positions/", stage="option_positions", params={"nonzero": "True"})

    def get_market_data(self, instrument_urls: Iterable[str], kind: str) -> Any:
        try:
            path_component = MARKET_DATA_PATHS[kind]
        except KeyError as exc:
            raise ValueError(f"Unknown market data kind: {kind!r}") from exc
        return self._get(
            f"/marketdata/{path_component}/",
            stage=f"{kind}_market_data",
            params={"instruments": ",".join(instrument_urls)},
        )

    def get_option_instruments(self, ids: Iterable[str]) -> Any:
        return self._get("/options/instruments/", stage="option_metadata", params={"ids": ",".join(ids)})


__all__ = ["RobinhoodClient", "MARKET_DATA_PATHS"]
