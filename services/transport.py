"""HTTP transport backed by httpx."""

from typing import Any

import httpx

from core.exceptions import (
    SeeOtherError,
    TransportConnectionError,
    TransportError,
    TransportTimeoutError,
    UnauthorizedError,
)
from core.request_types import RequestDescriptor, RequestHooks


class HttpxTransport:
    """Send resolved requests and classify failed responses."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def send(self, request: RequestDescriptor, hooks: RequestHooks | None = None) -> Any:
        """Send the request and return the parsed body (JSON, text or None)."""
        response = await self._send(request, hooks)
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            return response.json()
        return response.text

    async def send_text(self, request: RequestDescriptor, hooks: RequestHooks | None = None) -> str:
        """Send the request and return the raw body text."""
        response = await self._send(request, hooks)
        return response.text

    async def _send(self, request: RequestDescriptor, hooks: RequestHooks | None) -> httpx.Response:
        if hooks and hooks.on_request:
            hooks.on_request(request)

        req = self._client.build_request(
            request.method.value,
            request.url,
            headers=request.headers,
            **self._body_kwargs(request.body),
        )
        try:
            response = await self._client.send(req, follow_redirects=False)
        except httpx.TimeoutException as e:
            raise TransportTimeoutError(str(e) or "Upstream timeout") from e
        except httpx.RequestError as e:
            raise TransportConnectionError(f"Upstream connection error: {e}") from e

        if hooks and hooks.on_response:
            hooks.on_response(response)

        self._raise_for_status(response)
        return response

    @staticmethod
    def _body_kwargs(body: Any) -> dict[str, Any]:
        if body is None:
            return {}
        if isinstance(body, (bytes, str)):
            return {"content": body}
        return {"json": body}

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status == 303:
            raise SeeOtherError(response.headers.get("location", ""))
        if status == 401:
            raise UnauthorizedError(response.text or "Unauthorized")
        if status >= 400:
            raise TransportError(response.text or response.reason_phrase, status_code=status)
