"""POST composed account snapshots to the configured upload endpoint."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from robin_sync.application.exceptions import ConfigurationError, PipelineError
from robin_sync.config import get_env, settings
from robin_sync.infrastructure.log_utils import log_message


class UploadClient:
    def __init__(self, endpoint: Optional[str] = None, *, timeout: Optional[float] = None) -> None:
        self.endpoint = endpoint or get_env("UPLOAD_ENDPOINT")
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS

    def upload(self, body: Dict[str, Any]) -> int:
        """Send ``body`` as JSON and return the HTTP status code."""
        if not self.endpoint:
            raise ConfigurationError("UPLOAD_ENDPOINT must be set to upload snapshots.", missing="UPLOAD_ENDPOINT")

        try:
            response = requests.post(self.endpoint, json=body, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            failed = exc.response
            status = failed.status_code if failed is not None else "?"
            text = (failed.text or "")[:500] if failed is not None else None
            log_message(f"Upload to {self.endpoint} rejected with HTTP {status}: {text}", "ERROR")
            raise PipelineError(
                f"Upload rejected with HTTP {status}",
                stage="upload",
                url=self.endpoint,
                response_body=text,
            ) from exc
        except requests.exceptions.RequestException as exc:
            log_message(f"Upload to {self.endpoint} failed: {exc}", "ERROR")
            raise PipelineError(f"Upload failed: {exc}", stage="upload", url=self.endpoint) from exc

        return response.status_code


__all__ = ["UploadClient"]
