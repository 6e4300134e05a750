"""HTTP transport the quote wizard submits through."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from requests.exceptions import RequestException

from .options import WizardOptions


class SubmissionError(Exception):
    """A submission step failed; the message is shown to the customer."""


class StorefrontClient:
    """Client for the storefront's public quote API.

    Args:
        host: Base URL of the storefront (e.g. ``https://print.example.com``).
        session: Optional pre-configured :class:`requests.Session`, for
            example one already carrying a login cookie.
        timeout: Request timeout in seconds. Defaults to 30.
    """

    def __init__(
        self,
        host: str,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ) -> None:
        self.host = host.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.host}{path}"

    @staticmethod
    def _error_message(response: requests.Response, fallback: str) -> str:
        """Prefer the server's ``error`` message, then the HTTP reason."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("error") or body.get("message")
            if isinstance(message, str) and message:
                return message
        return response.reason or fallback

    def _send(self, method: str, path: str, fallback: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except RequestException as exc:
            raise SubmissionError("We could not reach the server. Please try again.") from exc

        if not response.ok:
            raise SubmissionError(self._error_message(response, fallback))

        try:
            payload = response.json()
        except ValueError as exc:
            raise SubmissionError(fallback) from exc
        return payload if isinstance(payload, dict) else {}

    def load_options(self) -> WizardOptions:
        payload = self._send("GET", "/api/catalog/options", "We could not load the print options.")
        return WizardOptions.from_payload(payload)

    def upload_model(self, filename: str, content: bytes) -> Optional[Any]:
        """Upload one model file and return the stored model id (None if absent)."""
        payload = self._send(
            "POST",
            "/api/models",
            "Failed to upload one of the models.",
            files={"file": (filename, content, "application/octet-stream")},
        )
        doc = payload.get("doc")
        return doc.get("id") if isinstance(doc, dict) else None

    def create_quote(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create the quote and return the created document."""
        payload = self._send("POST", "/api/quotes", "We could not create the quote.", json=body)
        doc = payload.get("doc")
        return doc if isinstance(doc, dict) else {}
