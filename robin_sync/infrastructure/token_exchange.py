"""Refresh-token exchange against the Robinhood OAuth endpoint."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from robin_sync.application.exceptions import ExchangeError
from robin_sync.config import settings
from robin_sync.domain.entities import TokenPair
from robin_sync.infrastructure.log_utils import log_message


def _response_detail(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return (response.text or "").strip()[:300]
    if isinstance(payload, dict):
        for key in ("error_description", "error", "detail", "message"):
            if payload.get(key):
                return str(payload[key])
    return str(payload)[:300]


class RobinhoodTokenExchange:
    """Trade a refresh token for a new bearer/refresh pair.

    Any network failure, non-2xx status, non-JSON body or missing field is
    reported as :class:`ExchangeError`.
    """

    def __init__(
        self,
        *,
        token_url: Optional[str] = None,
        client_id: Optional[str] = None,
        device_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.token_url = token_url or settings.token_exchange_url
        self.client_id = client_id or settings.ROBINHOOD_CLIENT_ID
        self.device_token = device_token if device_token is not None else settings.ROBINHOOD_DEVICE_TOKEN
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS

    def _build_payload(self, refresh_token: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "client_id": self.client_id,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        if self.device_token:
            payload["device_token"] = self.device_token
        return payload

    def exchange(self, refresh_token: str) -> TokenPair:
        if not refresh_token:
            raise ExchangeError("Cannot exchange an empty refresh token.")

        try:
            response = requests.post(
                self.token_url,
                data=self._build_payload(refresh_token),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            log_message(f"Token exchange request failed: {exc}", "ERROR")
            raise ExchangeError(f"Token exchange request failed: {exc}") from exc

        if response.status_code >= 400:
            detail = _response_detail(response)
            raise ExchangeError(
                f"Token exchange rejected with HTTP {response.status_code}: {detail}",
                status_code=response.status_code,
                detail=detail,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise ExchangeError(
                "Token exchange returned a non-JSON body.", status_code=response.status_code
            ) from exc

        if not isinstance(body, dict):
            raise ExchangeError("Token exchange returned an unexpected payload.", status_code=response.status_code)

        access_token = body.get("access_token")
        new_refresh = body.get("refresh_token")
        if not isinstance(access_token, str) or not access_token or not isinstance(new_refresh, str) or not new_refresh:
            missing = [
                key for key, value in (("access_token", access_token), ("refresh_token", new_refresh))
                if not isinstance(value, str) or not value
            ]
            raise ExchangeError(
                f"Token exchange response missing {', '.join(missing)}.",
                status_code=response.status_code,
            )

        return TokenPair(bearer=access_token, refresh=new_refresh)


__all__ = ["RobinhoodTokenExchange"]
