from __future__ import annotations

import types
from typing import Any

import pytest

from core.exceptions import UnauthorizedError
from core.request_types import AuthorizationOptions, RequestDescriptor, RequestHooks
from ui import log_utils


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path, monkeypatch):
    """Keep CLI logs and traces inside the test's tmp dir."""
    monkeypatch.setattr(log_utils, "LOG_ROOT", tmp_path / "logs")
    monkeypatch.setattr(log_utils, "CLI_LOG_FILE", tmp_path / "logs" / "fetch.log")
    return tmp_path / "logs"


class StubTransport:
    """Transport double: returns ``body`` or raises ``error``, counting calls."""

    def __init__(self, body: Any = None, error: Exception | None = None) -> None:
        self.body = body
        self.error = error
        self.calls: list[RequestDescriptor] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def send(self, request: RequestDescriptor, hooks: RequestHooks | None = None) -> Any:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        return self.body

    async def send_text(self, request: RequestDescriptor, hooks: RequestHooks | None = None) -> str:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        return str(self.body)


class StubAuth:
    """Authorization provider double."""

    def __init__(
        self,
        options: AuthorizationOptions | None = None,
        *,
        fail: bool = False,
        handled: bool = False,
    ) -> None:
        self.options = options or AuthorizationOptions()
        self.fail = fail
        self.handled = handled
        self.requested = 0
        self.unauthorized_errors: list[Exception] = []

    async def get_authorization_options(self) -> AuthorizationOptions:
        self.requested += 1
        if self.fail:
            raise UnauthorizedError("no session")
        return self.options

    def handle_unauthorized(self, error) -> bool:
        self.unauthorized_errors.append(error)
        return self.handled


class RecordingNavigator:
    def __init__(self) -> None:
        self.locations: list[str] = []

    def navigate(self, location: str) -> None:
        self.locations.append(location)


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport(body={"ok": True})


@pytest.fixture
def auth() -> StubAuth:
    return StubAuth(AuthorizationOptions(headers={"Authorization": "Bearer abc"}))


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def fake_clock() -> types.SimpleNamespace:
    """Millisecond clock advanced by hand."""
    t = {"now": 1_000_000.0}
    return types.SimpleNamespace(
        now=lambda: t["now"],
        advance=lambda ms: t.__setitem__("now", t["now"] + float(ms)),
    )
