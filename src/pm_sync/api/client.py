"""HTTP façade for the project-management REST API."""

import time
from typing import Any

import httpx

from pm_sync.exceptions import EnvelopeError, TransportError, api_error_for_status
from pm_sync.storage.local_store import AUTH_TOKEN_KEY, KeyValueStore
from pm_sync.utils.logging import get_logger
from pm_sync.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()

DEFAULT_TIMEOUT = 10.0

# Keys that mark a dict as a response envelope rather than a record
ENVELOPE_KEYS = frozenset({"success", "data", "message", "error", "pagination", "meta", "uniqueTeamMembers"})


def _is_envelope(value: Any) -> bool:
    return isinstance(value, dict) and "data" in value and set(value) <= ENVELOPE_KEYS


def unwrap_envelope(body: Any) -> Any:
    """Strip up to two levels of ``{success, data, message}`` wrapping.

    Args:
        body: Decoded JSON response body

    Returns:
        The innermost payload; the body itself when it is not an envelope
    """
    payload = body
    for _ in range(2):
        if not _is_envelope(payload):
            break
        payload = payload["data"]
    return payload


def unwrap_list(body: Any, *keys: str) -> list[Any]:
    """Normalize a "get list" response body to a list.

    ``{data: {data: [...]}}``, ``{data: [...]}`` and a bare array all yield the
    same list. Named keys (e.g. ``projects``) are checked on each envelope
    level when the payload itself is not a list.

    Args:
        body: Decoded JSON response body
        *keys: Alternative collection keys to look for

    Returns:
        The list payload

    Raises:
        EnvelopeError: If no list can be found
    """
    candidates = [body]
    payload = body
    for _ in range(2):
        if not _is_envelope(payload):
            break
        payload = payload["data"]
        candidates.append(payload)

    if isinstance(payload, list):
        return payload
    if payload is None:
        return []

    for candidate in reversed(candidates):
        if not isinstance(candidate, dict):
            continue
        for key in keys:
            value = candidate.get(key)
            if isinstance(value, list):
                return value

    raise EnvelopeError("list", payload)


class ApiResponse:
    """Decoded backend response."""

    def __init__(self, status_code: int, body: Any, resource: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.resource = resource

    @property
    def data(self) -> Any:
        """Payload with envelopes stripped."""
        return unwrap_envelope(self.body)

    def items(self, *keys: str) -> list[Any]:
        """Payload as a list; shape mismatches are logged and yield ``[]``."""
        try:
            return unwrap_list(self.body, *keys)
        except EnvelopeError as e:
            logger.error(
                "unexpected_response_shape",
                resource=self.resource,
                expected=e.expected,
                received=e.received_type,
            )
            metrics.unexpected_shapes_total.labels(resource=self.resource or "unknown").inc()
            return []

    def field(self, name: str, default: Any = None) -> Any:
        """Read a top-level body field (e.g. ``uniqueTeamMembers``)."""
        if isinstance(self.body, dict):
            return self.body.get(name, default)
        return default


def _resource_label(path: str) -> str:
    segment = path.strip("/").split("/", 1)[0]
    return segment or "root"


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    if not params:
        return None
    cleaned = {k: v for k, v in params.items() if v is not None and v != ""}
    return cleaned or None


class ApiClient:
    """Single HTTP client wrapper all controllers route through.

    Provides:
    - Fixed base URL and timeout
    - Bearer token injection from local storage on every request
    - Token clearing on every 401 response (no redirect)
    - Typed errors; no retries, no deduplication, no caching
    """

    def __init__(
        self,
        base_url: str,
        store: KeyValueStore,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize API client.

        Args:
            base_url: API base URL including the /api prefix
            store: Local store holding the auth token
            timeout: Request timeout in seconds
            transport: Optional custom transport
        """
        self.base_url = base_url.rstrip("/")
        self.store = store
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
            event_hooks={
                "request": [self._attach_token],
                "response": [self._clear_token_on_unauthorized],
            },
            transport=transport,
        )

        logger.info("api_client_initialized", base_url=self.base_url, timeout=timeout)

    async def _attach_token(self, request: httpx.Request) -> None:
        token = await self.store.get(AUTH_TOKEN_KEY)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        else:
            logger.debug("request_without_token", url=str(request.url))

    async def _clear_token_on_unauthorized(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            await self.store.remove(AUTH_TOKEN_KEY)
            metrics.api_unauthorized_total.inc()
            logger.warning("unauthorized_token_cleared", url=str(response.request.url))

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> ApiResponse:
        """Send a request and decode the response.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            params: Query parameters; None and empty-string values are dropped
            json: JSON request body

        Returns:
            Decoded response

        Raises:
            TransportError: On timeouts and connection failures
            ApiError: On HTTP 4xx/5xx (UnauthorizedError, NotFoundError, ServerError)
        """
        resource = _resource_label(path)
        start_time = time.perf_counter()

        try:
            response = await self._client.request(
                method,
                path,
                params=_clean_params(params),
                json=json,
            )
        except httpx.RequestError as e:
            duration = time.perf_counter() - start_time
            metrics.record_api_request(method, resource, "error", duration)
            logger.warning("api_transport_error", method=method, path=path, error=str(e))
            raise TransportError(str(e) or type(e).__name__, method=method, url=path) from e

        duration = time.perf_counter() - start_time
        metrics.record_api_request(method, resource, str(response.status_code), duration)

        body = self._decode(response)

        if response.status_code >= 400:
            logger.warning(
                "api_response_error",
                method=method,
                path=path,
                status=response.status_code,
            )
            raise api_error_for_status(response.status_code, body=body, method=method, url=path)

        logger.debug(
            "api_request_complete",
            method=method,
            path=path,
            status=response.status_code,
            duration_ms=int(duration * 1000),
        )
        return ApiResponse(response.status_code, body, resource=resource)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def get(self, path: str, params: dict[str, Any] | None = None) -> ApiResponse:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, json: Any = None) -> ApiResponse:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> ApiResponse:
        return await self.request("DELETE", path)

    @property
    def health_url(self) -> str:
        """Server liveness URL (outside the /api prefix)."""
        root = self.base_url
        if root.endswith("/api"):
            root = root[: -len("/api")]
        return f"{root}/health"

    async def health_check(self) -> bool:
        """Check that the backend answers its liveness endpoint.

        Returns:
            True if the backend responded with 2xx
        """
        try:
            response = await self._client.get(self.health_url)
            return response.is_success
        except httpx.RequestError as e:
            logger.warning("api_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
        logger.info("api_client_closed")
