"""HTTP transport for SAP OData services, built on httpx.

Requests authenticate with the caller's bearer token when one is passed,
otherwise with the technical credentials from configuration (bearer token or
basic auth).
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import httpx

from ..constants import DEFAULT_HTTP_TIMEOUT, V2_CATALOG_PATH
from ..exceptions import TransportError
from ..logging_config import create_logger
from .base import TransportResponse

if TYPE_CHECKING:
    from ..config import Settings

logger = create_logger(__name__)

_LOCATION_KEY = re.compile(r"\(([^)]+)\)$")

JSON_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


def sanitize_query_value(value: str) -> str:
    """Flatten line breaks in a query option value.

    Quotes are left alone so string literals in ``$filter`` reach the service intact.
    """
    return value.replace("\n", " ").replace("\r", " ")


def extract_error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of an OData error body.

    Handles V2 ``{"error": {"message": {"value": ...}}}``, V4
    ``{"error": {"message": ...}}`` and falls back to the reason phrase.
    """
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, dict):
                message = message.get("value")
            if message:
                return str(message)
    return response.reason_phrase or "Unknown error"


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpTransport:
    """Async OData transport over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        username: str | None = None,
        password: str | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._basic_auth = httpx.BasicAuth(username, password or "") if username else None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpTransport:
        return cls(
            base_url=settings.base_url or "",
            token=settings.token,
            username=settings.username,
            password=settings.password,
            timeout=settings.timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: dict[str, str | int] | None = None,
        json: Any = None,
        accept: str | None = None,
    ) -> httpx.Response:
        headers = dict(JSON_HEADERS)
        if accept:
            headers["Accept"] = accept
        auth: httpx.Auth | None = None
        bearer = token or self._token
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        elif self._basic_auth is not None:
            auth = self._basic_auth

        url = self._url(path)
        logger.debug(f"Executing {method} request to {url}")
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                auth=auth,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {url} timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if response.is_error:
            message = extract_error_message(response)
            raise TransportError(
                f"SAP API Error {response.status_code}: {message}",
                status_code=response.status_code,
                upstream_message=message,
            )
        logger.debug(f"Request completed with status {response.status_code}")
        return response

    async def fetch_entity_set(
        self,
        base_path: str,
        entity_set: str,
        query_options: dict[str, str | int],
        token: str | None = None,
    ) -> TransportResponse:
        params = {
            name: sanitize_query_value(value) if isinstance(value, str) else value
            for name, value in query_options.items()
            if value is not None and value != ""
        }
        response = await self._request(
            "GET", f"{base_path}{entity_set}", token=token, params=params or None
        )
        return TransportResponse(response.status_code, _decode(response), dict(response.headers))

    async def fetch_entity(
        self,
        base_path: str,
        entity_set: str,
        key_expression: str,
        token: str | None = None,
    ) -> TransportResponse:
        response = await self._request(
            "GET", f"{base_path}{entity_set}({key_expression})", token=token
        )
        return TransportResponse(response.status_code, _decode(response), dict(response.headers))

    async def create_entity(
        self,
        base_path: str,
        entity_set: str,
        payload: dict[str, Any],
        token: str | None = None,
    ) -> TransportResponse:
        response = await self._request(
            "POST", f"{base_path}{entity_set}", token=token, json=payload
        )
        data = _decode(response)
        if data is None:
            data = dict(payload)
            match = _LOCATION_KEY.search(response.headers.get("location", ""))
            if match:
                data["__key"] = match.group(1)
        return TransportResponse(response.status_code, data, dict(response.headers))

    async def update_entity(
        self,
        base_path: str,
        entity_set: str,
        key_expression: str,
        payload: dict[str, Any],
        token: str | None = None,
    ) -> TransportResponse:
        response = await self._request(
            "PATCH", f"{base_path}{entity_set}({key_expression})", token=token, json=payload
        )
        data = _decode(response)
        if data is None:
            # OData usually answers 204 No Content to a PATCH
            data = {
                "message": f"Entity updated successfully with key: {key_expression}",
                "success": True,
                "key": key_expression,
                "updatedFields": list(payload),
            }
        return TransportResponse(response.status_code, data, dict(response.headers))

    async def delete_entity(
        self,
        base_path: str,
        entity_set: str,
        key_expression: str,
        token: str | None = None,
    ) -> TransportResponse:
        response = await self._request(
            "DELETE", f"{base_path}{entity_set}({key_expression})", token=token
        )
        return TransportResponse(response.status_code, None, dict(response.headers))

    async def fetch_metadata(self, metadata_path: str) -> str:
        """Return the raw CSDL ``$metadata`` document of a service."""
        response = await self._request("GET", metadata_path, accept="application/xml")
        return response.text

    async def fetch_service_catalog(self) -> Any:
        """Return the decoded V2 catalog ``ServiceCollection`` response."""
        response = await self._request("GET", V2_CATALOG_PATH)
        return _decode(response)
