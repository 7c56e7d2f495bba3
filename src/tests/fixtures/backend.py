"""In-process fake of the REST backend built on httpx.MockTransport."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx

API_PREFIX = "/api"
BASE_URL = f"http://backend.test{API_PREFIX}"

Handler = Callable[[httpx.Request], Any]


def envelope(data: Any, message: str | None = None, nested: bool = False) -> dict[str, Any]:
    """Wrap a payload the way the backend does.

    Args:
        data: Payload
        message: Optional message field
        nested: Wrap twice (``{data: {data: ...}}``)
    """
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    if nested:
        body = {"success": True, "data": {"data": data}}
    return body


class FakeBackend:
    """Routes requests by (method, path) and records every request seen."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler | tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        status: int = 200,
        handler: Handler | None = None,
    ) -> None:
        """Register a response (or handler) for ``method`` on ``/api{path}``."""
        key = (method.upper(), f"{API_PREFIX}{path}")
        if handler is not None:
            self.routes[key] = handler
        else:
            self.routes[key] = (status, json_body)

    def add_gated(self, method: str, path: str, json_body: Any = None, status: int = 200) -> asyncio.Event:
        """Register a response that is held back until the returned event is set."""
        gate = asyncio.Event()

        async def respond(request: httpx.Request) -> httpx.Response:
            await gate.wait()
            return httpx.Response(status, json=json_body)

        self.add(method, path, handler=respond)
        return gate

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        if isinstance(route, tuple):
            status, json_body = route
            return httpx.Response(status, json=json_body)

        result = route(request)
        if asyncio.iscoroutine(result):
            result = await result
        return result

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        target = f"{API_PREFIX}{path}"
        return [r for r in self.requests if r.method == method.upper() and r.url.path == target]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)
