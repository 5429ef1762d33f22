"""HTTP client for a remote summarization service (no tokenizer available)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from charsheet.backends.base import BackendCapabilities, SummaryBackend, SummaryRequest
from charsheet.configs import Settings, settings as default_settings
from charsheet.engine.errors import DelegatedSummaryError


class DelegatedSummaryBackend(SummaryBackend):
    """Thin wrapper around the ``/api/summarize`` endpoint.

    The service summarizes the whole block it receives, so the orchestrator
    sends it everything accumulated since the last checkpoint.
    """

    name = "extras"
    capabilities = BackendCapabilities(counts_tokens=False, delegated=True)

    def __init__(self, config: Optional[Settings] = None) -> None:
        self.config = config or default_settings
        self.base_url = (self.config.EXTRAS_API_URL or "").rstrip("/")
        self.logger = logging.getLogger("extras.client")

    def is_available(self) -> bool:
        return bool(self.base_url)

    async def context_budget(self, override_response_length: int = 0) -> int:
        return self.config.EXTRAS_CONTEXT_SIZE

    async def generate(self, request: SummaryRequest) -> str:
        return await asyncio.to_thread(self.summarize, request.prompt)

    def summarize(self, text: str) -> str:
        """Post ``text`` to the service and return its summary."""
        if not self.base_url:
            raise DelegatedSummaryError(self.name, "Summarize service is not configured")

        url = f"{self.base_url}/api/summarize"
        payload: Dict[str, Any] = {"text": text, "params": {}}
        headers = {"Content-Type": "application/json", "Bypass-Tunnel-Reminder": "bypass"}
        if self.config.EXTRAS_API_KEY:
            headers["Authorization"] = f"Bearer {self.config.EXTRAS_API_KEY}"

        try:
            response = requests.post(
                url, headers=headers, json=payload, timeout=self.config.EXTRAS_TIMEOUT
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as http_err:
            self.logger.error("Summarize service returned an HTTP error: %s", http_err)
            raise DelegatedSummaryError(self.name, f"HTTP error: {http_err}") from http_err
        except requests.exceptions.Timeout as timeout_err:
            self.logger.error("Summarize service timed out: %s", timeout_err)
            raise DelegatedSummaryError(self.name, f"Timeout error: {timeout_err}") from timeout_err
        except requests.exceptions.RequestException as req_err:
            self.logger.error("Summarize service request failed: %s", req_err)
            raise DelegatedSummaryError(self.name, f"Request error: {req_err}") from req_err
        except ValueError as json_err:
            raise DelegatedSummaryError(self.name, f"Invalid response: {json_err}") from json_err

        return str(data.get("summary") or "")
