"""HTTP access to the OPNsense REST API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

import requests

from opnsync.errors import APIError

if TYPE_CHECKING:
    from opnsync.config import RouterConfig

logger = logging.getLogger(__name__)

STATUS_PATH = "/api/core/system/status"


class Transport(Protocol):
    """What the stores need from the router connection.

    ``request`` returns the decoded JSON body and raises ``APIError`` for any
    failed call.
    """

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Mapping[str, str] | None = None,
    ) -> Any: ...


def _error_from_response(response: requests.Response, path: str) -> APIError:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        return APIError(
            response.text or f"request to {path} failed",
            http_status=response.status_code,
        )

    validations = payload.get("validations") or {}
    return APIError(
        payload.get("message") or "API request failed",
        http_status=response.status_code,
        validations={str(k): str(v) for k, v in dict(validations).items()},
    )


class OPNsenseClient:
    """Blocking client with key/secret basic auth.

    Usage:
        with OPNsenseClient.from_config(settings.router) as client:
            client.test_connection()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_secret: str,
        timeout: float = 30.0,
        verify_tls: bool = True,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key or not api_secret:
            raise ValueError("api_key and api_secret are required")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.auth = (api_key, api_secret)
        self._session.verify = verify_tls
        self._session.headers.update({"Accept": "application/json"})

    @classmethod
    def from_config(cls, config: RouterConfig) -> OPNsenseClient:
        if not config.host:
            raise ValueError("router host is required")
        return cls(
            config.base_url,
            config.api_key,
            config.api_secret,
            timeout=config.timeout,
            verify_tls=config.verify_tls,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        logger.debug("%s %s params=%s", method, path, dict(params or {}))
        try:
            response = self._session.request(
                method,
                f"{self._base_url}{path}",
                json=body,
                params=dict(params) if params else None,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise APIError(f"request to {path} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            logger.error(
                "%s %s failed with HTTP %d", method, path, response.status_code
            )
            raise _error_from_response(response, path)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise APIError(
                f"invalid JSON in response from {path}",
                http_status=response.status_code,
            ) from exc

    def test_connection(self) -> dict[str, Any]:
        logger.info("Testing connection to %s", self._base_url)
        status = self.request("GET", STATUS_PATH)
        logger.info("OPNsense connection test successful")
        return status if isinstance(status, dict) else {}

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> OPNsenseClient:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()
