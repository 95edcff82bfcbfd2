"""Authenticated session against the remote query service."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, FrozenSet, Mapping, Optional

import httpx

from ..core.config import RuntimeConfig
from ..core.errors import RemoteAuthError, RemoteQueryError
from ..core.log import redact

logger = logging.getLogger(__name__)

_USER_AGENT = "hostsweep/0.1.0"
RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({429, 502, 503, 504})
DEFAULT_AUDIENCE = "wiz-api"


class Session:
    """One authenticated client shared by every remote step of a run.

    Queries are retried up to ``max_attempts`` times with a fixed
    ``retry_delay`` on transport errors and on the statuses in
    :data:`RETRYABLE_STATUS_CODES`; any other response is returned at once.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        auth_url: str,
        query_url: str,
        *,
        audience: str = DEFAULT_AUDIENCE,
        timeout: float = 60.0,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client_id = client_id
        self._client_secret = client_secret
        self.auth_url = auth_url
        self.query_url = query_url
        self.audience = audience
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._token = ""
        headers = {"User-Agent": _USER_AGENT}
        self._client = httpx.Client(transport=transport, timeout=timeout, headers=headers)
        self._upload_client = httpx.Client(transport=transport, timeout=timeout, headers=headers)

    @classmethod
    def from_config(cls, config: RuntimeConfig, **kwargs: Any) -> "Session":
        return cls(
            config.client_id,
            config.client_secret,
            config.auth_url,
            config.query_url,
            **kwargs,
        )

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    def authenticate(self) -> None:
        """Exchange the client credentials for a bearer token."""

        form = {
            "audience": self.audience,
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self._client_secret,
        }
        try:
            response = self._client.post(self.auth_url, data=form)
        except httpx.HTTPError as exc:
            raise RemoteAuthError(f"Error authenticating to {self.auth_url}: {exc}") from exc
        if response.status_code != 200:
            raise RemoteAuthError(
                f"Authentication failed with status {response.status_code}: {redact(response.text)}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteAuthError("Authentication response is not JSON") from exc
        token = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            raise RemoteAuthError("No access token found in the authentication response")
        self._token = token
        logger.debug("Authenticated client %s", self.client_id)

    def _headers(self) -> dict[str, str]:
        if not self._token:
            raise RemoteAuthError("Session is not authenticated")
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

    def query(self, query: str, variables: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """POST a GraphQL document and return its ``data`` object."""

        payload = {"query": query, "variables": dict(variables or {})}
        headers = self._headers()
        failure: Optional[RemoteQueryError] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self._client.post(self.query_url, json=payload, headers=headers)
            except httpx.TransportError as exc:
                failure = RemoteQueryError(f"Error querying {self.query_url}: {exc}", retryable=True)
            else:
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    return self._decode(response)
                failure = RemoteQueryError(
                    f"Max retries reached with status code {response.status_code}",
                    status_code=response.status_code,
                    retryable=True,
                )
            if attempt < self.max_attempts:
                logger.warning(
                    "Retrying query (attempt %d/%d): %s", attempt, self.max_attempts, failure
                )
                self._sleep(self.retry_delay)
        raise failure or RemoteQueryError("No query attempts were made")

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise RemoteQueryError(
                f"Unexpected response with status {response.status_code}",
                status_code=response.status_code,
            )
        errors = body.get("errors") or []
        if errors:
            messages = [
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            ]
            raise RemoteQueryError(
                f"GraphQL errors: {'; '.join(messages)}",
                status_code=response.status_code,
                messages=messages,
            )
        if response.status_code >= 400:
            raise RemoteQueryError(
                f"Query failed with status {response.status_code}",
                status_code=response.status_code,
            )
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    def put_content(self, url: str, payload: bytes) -> httpx.Response:
        """PUT raw bytes to a pre-signed URL without the bearer token."""

        return self._upload_client.put(
            url,
            content=payload,
            headers={"Content-Type": "application/octet-stream"},
        )

    def close(self) -> None:
        self._client.close()
        self._upload_client.close()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


__all__ = ["Session", "RETRYABLE_STATUS_CODES"]
