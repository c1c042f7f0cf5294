"""Shared protocol definitions."""

from collections.abc import Awaitable
from typing import Any, Protocol

from core.exceptions import TransportError
from core.request_types import AuthorizationOptions, RequestDescriptor, RequestHooks


class AuthorizationProvider(Protocol):
    """Protocol for credential sources consulted by the fetch client."""

    async def get_authorization_options(self) -> AuthorizationOptions: ...
    def handle_unauthorized(self, error: TransportError) -> bool | Awaitable[bool]: ...


class Transport(Protocol):
    """Protocol for the component that actually sends requests."""

    async def send(self, request: RequestDescriptor, hooks: RequestHooks | None = None) -> Any: ...
    async def send_text(self, request: RequestDescriptor, hooks: RequestHooks | None = None) -> str: ...


class Navigator(Protocol):
    """Protocol for client-side navigation after a see-other response."""

    def navigate(self, location: str) -> None | Awaitable[None]: ...
