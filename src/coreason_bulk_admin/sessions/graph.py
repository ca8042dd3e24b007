# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

"""
Microsoft Graph session handling.

Authenticates with an app registration (client credentials flow) through MSAL
and wraps a requests.Session carrying the bearer token. Throttled requests
(HTTP 429/503/504) are retried inside the HTTP layer with tenacity; everything
else surfaces as GraphRequestError for the caller to translate.
"""

from typing import Any, Callable, Dict, Iterator, Optional

import msal
import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from coreason_bulk_admin.config import Settings
from coreason_bulk_admin.exceptions import BulkAdminError, SessionError
from coreason_bulk_admin.utils.logger import logger

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
THROTTLE_CODES = (429, 503, 504)


class GraphRequestError(BulkAdminError):
    """Raised when a Graph request returns an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ThrottledError(GraphRequestError):
    """Raised for throttled or temporarily unavailable responses."""

    pass


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("code") or "")
    return str(body)


class GraphSession:
    """An authenticated Microsoft Graph connection."""

    def __init__(
        self,
        http: requests.Session,
        base_url: str,
        timeout: float = 30,
        max_retries: int = 3,
        wait: Optional[wait_base] = None,
    ) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.wait = wait or wait_exponential(multiplier=1, min=2, max=30)
        self.closed = False

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        response = self.http.request(method, url, timeout=self.timeout, **kwargs)
        if response.status_code in THROTTLE_CODES:
            logger.warning(f"Graph throttled {method} {url} (HTTP {response.status_code})")
            raise ThrottledError(f"{method} {url} throttled (HTTP {response.status_code})", response.status_code)
        if not response.ok:
            raise GraphRequestError(
                f"{method} {url} failed with HTTP {response.status_code}: {_error_detail(response)}",
                response.status_code,
            )
        return response

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        if self.closed:
            raise SessionError("Graph session is closed.")
        url = self._url(path)
        for attempt in Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self.wait,
            retry=retry_if_exception_type(ThrottledError),
            reraise=True,
        ):
            with attempt:
                try:
                    return self._send(method, url, **kwargs)
                except requests.RequestException as e:
                    raise GraphRequestError(f"{method} {url} failed: {e}") from e
        raise GraphRequestError(f"{method} {url} exhausted retries")  # pragma: no cover

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", path, params=params).json()

    def patch(self, path: str, payload: Dict[str, Any]) -> None:
        self.request("PATCH", path, json=payload)

    def get_paged(self, path: str, params: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        """Yields every item of a collection, following @odata.nextLink."""
        data = self.get(path, params=params)
        while True:
            for item in data.get("value", []):
                yield item
            next_link = data.get("@odata.nextLink")
            if not next_link:
                break
            data = self.get(next_link)

    def close(self) -> None:
        self.http.close()
        self.closed = True


class GraphSessionManager:
    """
    Opens a GraphSession using the app registration in Settings.
    open() is idempotent; an already-open session is reused.
    """

    def __init__(
        self,
        settings: Settings,
        app_factory: Optional[Callable[..., Any]] = None,
        http_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.settings = settings
        self._app_factory = app_factory or msal.ConfidentialClientApplication
        self._http_factory = http_factory
        self._session: Optional[GraphSession] = None

    def _acquire_token(self) -> str:
        self.settings.require_graph()
        if self.settings.client_secret is None:
            raise SessionError("Microsoft Graph is not configured. Missing: BULK_CLIENT_SECRET")
        app = self._app_factory(
            self.settings.client_id,
            authority=f"https://login.microsoftonline.com/{self.settings.tenant_id}",
            client_credential=self.settings.client_secret.get_secret_value(),
        )
        result = app.acquire_token_for_client(scopes=[GRAPH_SCOPE])
        if not result or "access_token" not in result:
            detail = (result or {}).get("error_description") or (result or {}).get("error") or "unknown error"
            raise SessionError(f"Failed to acquire Graph token: {detail}")
        return str(result["access_token"])

    def open(self) -> GraphSession:
        if self._session is not None and not self._session.closed:
            logger.debug("Graph session already open. Reusing it.")
            return self._session

        logger.info(f"Connecting to Microsoft Graph (tenant {self.settings.tenant_id})")
        token = self._acquire_token()
        http = self._http_factory()
        http.headers.update({"Authorization": f"Bearer {token}", "Content-Type": "application/json"})
        self._session = GraphSession(
            http,
            base_url=self.settings.graph_base_url,
            timeout=self.settings.http_timeout,
            max_retries=self.settings.max_http_retries,
        )
        return self._session

    def current(self) -> GraphSession:
        """Returns the open session without connecting."""
        if self._session is None or self._session.closed:
            raise SessionError("No open Graph session.")
        return self._session

    def close(self, session: GraphSession) -> None:
        try:
            session.close()
        finally:
            if session is self._session:
                self._session = None
            logger.info("Disconnected from Microsoft Graph.")
