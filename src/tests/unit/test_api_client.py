"""Unit tests for the HTTP façade and envelope normalization."""

import httpx
import pytest

from pm_sync.api.client import ApiClient, ApiResponse, unwrap_envelope, unwrap_list
from pm_sync.exceptions import (
    ApiError,
    EnvelopeError,
    NotFoundError,
    ServerError,
    TransportError,
    UnauthorizedError,
    error_message,
)
from pm_sync.storage.local_store import AUTH_TOKEN_KEY, MemoryStore
from tests.fixtures.backend import BASE_URL, FakeBackend, envelope


class TestUnwrapEnvelope:
    """Unit tests for envelope stripping."""

    @pytest.mark.parametrize(
        "body",
        [
            {"success": True, "data": {"data": [{"id": 1}, {"id": 2}]}},
            {"success": True, "data": [{"id": 1}, {"id": 2}]},
            [{"id": 1}, {"id": 2}],
        ],
    )
    def test_list_shapes_normalize_to_same_list(self, body: object) -> None:
        """Test every list envelope shape yields the same list."""
        assert unwrap_list(body) == [{"id": 1}, {"id": 2}]

    def test_named_collection_key(self) -> None:
        """Test a named key is found inside the envelope."""
        body = {"success": True, "data": {"projects": [{"id": 7}]}, "uniqueTeamMembers": 3}

        assert unwrap_list(body, "projects") == [{"id": 7}]

    def test_null_payload_is_empty_list(self) -> None:
        """Test a null payload becomes an empty list."""
        assert unwrap_list({"success": True, "data": None}) == []

    def test_non_list_payload_raises(self) -> None:
        """Test an object without a list raises EnvelopeError."""
        with pytest.raises(EnvelopeError) as exc_info:
            unwrap_list({"success": True, "data": {"foo": 1}}, "events")

        assert exc_info.value.received_type == "dict"

    def test_record_is_not_mistaken_for_envelope(self) -> None:
        """Test a record with a data field is returned untouched."""
        record = {"id": 1, "type": "custom", "data": {"task_id": 4}}

        assert unwrap_envelope(record) == record

    def test_single_record_envelope(self) -> None:
        """Test a wrapped record is unwrapped."""
        assert unwrap_envelope(envelope({"id": 3, "name": "X"})) == {"id": 3, "name": "X"}


class TestApiResponse:
    """Unit tests for ApiResponse accessors."""

    def test_items_mismatch_returns_empty(self) -> None:
        """Test an unexpected shape is logged and yields an empty list."""
        response = ApiResponse(200, {"data": "oops"}, resource="projects")

        assert response.items("projects") == []

    def test_field_reads_top_level(self) -> None:
        """Test field reads a key next to the envelope."""
        response = ApiResponse(200, {"data": [], "uniqueTeamMembers": 5})

        assert response.field("uniqueTeamMembers") == 5
        assert response.field("missing", 0) == 0

    def test_field_on_non_dict_body(self) -> None:
        """Test field returns the default for list bodies."""
        assert ApiResponse(200, []).field("x", "d") == "d"


class TestApiClient:
    """Unit tests for ApiClient request handling."""

    @pytest.mark.asyncio
    async def test_bearer_token_attached(self, api_client: ApiClient, backend: FakeBackend, store: MemoryStore) -> None:
        """Test the stored token is sent as a bearer header."""
        await store.set(AUTH_TOKEN_KEY, "abc123")
        backend.add("GET", "/projects", envelope([]))

        await api_client.get("/projects")

        assert backend.requests[0].headers["Authorization"] == "Bearer abc123"

    @pytest.mark.asyncio
    async def test_no_token_no_header(self, api_client: ApiClient, backend: FakeBackend) -> None:
        """Test requests without a stored token carry no auth header."""
        backend.add("GET", "/projects", envelope([]))

        await api_client.get("/projects")

        assert "Authorization" not in backend.requests[0].headers

    @pytest.mark.asyncio
    async def test_token_read_on_every_request(
        self, api_client: ApiClient, backend: FakeBackend, store: MemoryStore
    ) -> None:
        """Test a token change is picked up by the next request."""
        backend.add("GET", "/projects", envelope([]))
        await store.set(AUTH_TOKEN_KEY, "first")
        await api_client.get("/projects")
        await store.set(AUTH_TOKEN_KEY, "second")
        await api_client.get("/projects")

        assert [r.headers["Authorization"] for r in backend.requests] == ["Bearer first", "Bearer second"]

    @pytest.mark.asyncio
    async def test_unauthorized_clears_token(
        self, api_client: ApiClient, backend: FakeBackend, store: MemoryStore
    ) -> None:
        """Test a 401 removes the stored token and raises UnauthorizedError."""
        await store.set(AUTH_TOKEN_KEY, "expired")
        backend.add("GET", "/auth/me", {"success": False, "message": "Token expired"}, status=401)

        with pytest.raises(UnauthorizedError) as exc_info:
            await api_client.get("/auth/me")

        assert await store.get(AUTH_TOKEN_KEY) is None
        assert exc_info.value.message == "Token expired"

    @pytest.mark.asyncio
    async def test_status_mapping(self, api_client: ApiClient, backend: FakeBackend) -> None:
        """Test 404 and 5xx map to typed errors."""
        backend.add("GET", "/projects/9", {"message": "Project not found"}, status=404)
        backend.add("GET", "/projects/10", {"error": "Database down"}, status=503)
        backend.add("POST", "/projects", {"message": "Name taken"}, status=409)

        with pytest.raises(NotFoundError):
            await api_client.get("/projects/9")
        with pytest.raises(ServerError) as server_exc:
            await api_client.get("/projects/10")
        with pytest.raises(ApiError) as conflict_exc:
            await api_client.post("/projects", {"name": "x"})

        assert server_exc.value.message == "Database down"
        assert conflict_exc.value.status_code == 409

    @pytest.mark.asyncio
    async def test_transport_error(self, store: MemoryStore) -> None:
        """Test connection failures raise TransportError."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = ApiClient(BASE_URL, store, transport=httpx.MockTransport(refuse))
        try:
            with pytest.raises(TransportError) as exc_info:
                await client.get("/projects")
        finally:
            await client.close()

        assert exc_info.value.method == "GET"

    @pytest.mark.asyncio
    async def test_empty_params_dropped(self, api_client: ApiClient, backend: FakeBackend) -> None:
        """Test None and empty-string query values are not sent."""
        backend.add("GET", "/projects", envelope([]))

        await api_client.get("/projects", params={"status": "active", "priority": "", "search": None})

        assert dict(backend.requests[0].url.params) == {"status": "active"}

    @pytest.mark.asyncio
    async def test_health_check(self, store: MemoryStore) -> None:
        """Test health check hits /health outside the API prefix."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"status": "ok"})

        client = ApiClient(BASE_URL, store, transport=httpx.MockTransport(handler))
        try:
            assert await client.health_check() is True
        finally:
            await client.close()

        assert seen == ["/health"]


class TestErrorMessage:
    """Unit tests for user-facing error messages."""

    def test_body_message_preferred(self) -> None:
        """Test the response body's message wins over the fallback."""
        exc = ApiError(400, body={"success": False, "message": "Email already registered"})

        assert error_message(exc, "Registration failed") == "Email already registered"

    def test_nested_error_field(self) -> None:
        """Test an error nested under data is found."""
        exc = ApiError(400, body={"data": {"error": "Bad date"}})

        assert error_message(exc, "fallback") == "Bad date"

    def test_fallback_for_transport(self) -> None:
        """Test transport errors use the fallback."""
        assert error_message(TransportError("timeout"), "Failed to load projects") == "Failed to load projects"
