from __future__ import annotations

import json

import httpx
import pytest
from conftest import RecordingNavigator, StubAuth, StubTransport

from core.exceptions import (
    AdmissionDenied,
    SeeOtherError,
    TransportError,
    UnauthorizedError,
    URLPathError,
)
from core.middleware import AdmissionMiddleware
from core.request_types import (
    AuthorizationOptions,
    HttpMethod,
    RequestDescriptor,
    RequestOptions,
)
from services.fetch import FetchClient

BASE = "https://api.test"


def _client(auth, transport, navigator, **kwargs) -> FetchClient:
    return FetchClient(auth, transport, navigator=navigator, base_url=BASE, **kwargs)


def _descriptor(**kwargs) -> RequestDescriptor:
    return RequestDescriptor(url=f"{BASE}/things", **kwargs)


# ---------------------------------- auth merging --------------------------------------


@pytest.mark.asyncio
async def test_auth_headers_are_merged_with_precedence(transport, navigator):
    auth = StubAuth(AuthorizationOptions(headers={"X": "2", "Y": "3"}))
    client = _client(auth, transport, navigator)

    r = await client.normalize_options("/things", RequestOptions(headers={"X": "1"}))

    assert r.headers == {"X": "2", "Y": "3"}
    assert auth.requested == 1


@pytest.mark.asyncio
async def test_disable_auth_never_consults_provider(auth, transport, navigator):
    client = _client(auth, transport, navigator)

    r = await client.normalize_options(
        "/things",
        RequestOptions(headers={"X": "1"}, disable_auth=True),
    )

    assert auth.requested == 0
    assert r.headers == {"X": "1"}
    assert r.disable_auth is True


@pytest.mark.asyncio
async def test_must_auth_with_failing_provider_never_sends(transport, navigator):
    auth = StubAuth(fail=True)
    client = _client(auth, transport, navigator)

    with pytest.raises(UnauthorizedError):
        await client.get_endpoint("/things", RequestOptions(must_auth=True))

    assert transport.call_count == 0


@pytest.mark.asyncio
async def test_failing_provider_without_must_auth_sends_unauthenticated(transport, navigator):
    auth = StubAuth(fail=True)
    client = _client(auth, transport, navigator)

    body = await client.get_endpoint("/things", RequestOptions(headers={"X": "1"}))

    assert body == {"ok": True}
    assert transport.call_count == 1
    assert transport.calls[0].headers == {"X": "1"}


@pytest.mark.asyncio
async def test_invalid_base_url_fails_before_sending(auth, transport, navigator):
    client = FetchClient(auth, transport, navigator=navigator, base_url="nope")

    with pytest.raises(URLPathError):
        await client.get_endpoint("/things")
    assert transport.call_count == 0


# ------------------------------------ recovery ----------------------------------------


@pytest.mark.asyncio
async def test_see_other_navigates_and_resolves(auth, navigator):
    transport = StubTransport(error=SeeOtherError("/login"))
    client = _client(auth, transport, navigator)

    result = await client.get(_descriptor())

    assert result is None
    assert navigator.locations == ["/login"]


@pytest.mark.asyncio
async def test_see_other_from_raw_httpx_error_is_recovered(auth, navigator):
    request = httpx.Request("GET", f"{BASE}/things")
    response = httpx.Response(303, headers={"location": "/login"}, request=request)
    transport = StubTransport(
        error=httpx.HTTPStatusError("see other", request=request, response=response)
    )
    client = _client(auth, transport, navigator)

    assert await client.request(_descriptor()) is None
    assert navigator.locations == ["/login"]


@pytest.mark.asyncio
async def test_async_navigator_is_awaited(auth):
    class AsyncNavigator:
        def __init__(self):
            self.locations = []

        async def navigate(self, location):
            self.locations.append(location)

    navigator = AsyncNavigator()
    client = _client(auth, StubTransport(error=SeeOtherError("/next")), navigator)

    await client.post(_descriptor())
    assert navigator.locations == ["/next"]


@pytest.mark.asyncio
async def test_handled_unauthorized_resolves(transport, navigator):
    error = UnauthorizedError("expired")
    auth = StubAuth(handled=True)
    client = _client(auth, StubTransport(error=error), navigator)

    assert await client.get(_descriptor()) is None
    assert auth.unauthorized_errors == [error]


@pytest.mark.asyncio
async def test_unhandled_unauthorized_rejects_with_original_error(navigator):
    error = UnauthorizedError("expired")
    auth = StubAuth(handled=False)
    client = _client(auth, StubTransport(error=error), navigator)

    with pytest.raises(UnauthorizedError) as excinfo:
        await client.get(_descriptor())
    assert excinfo.value is error


@pytest.mark.asyncio
async def test_async_handle_unauthorized_is_awaited(navigator):
    class AsyncAuth(StubAuth):
        async def handle_unauthorized(self, error):
            self.unauthorized_errors.append(error)
            return True

    auth = AsyncAuth()
    client = _client(auth, StubTransport(error=UnauthorizedError()), navigator)

    assert await client.delete(_descriptor()) is None
    assert len(auth.unauthorized_errors) == 1


@pytest.mark.asyncio
async def test_other_failures_propagate_unchanged(auth, navigator):
    error = TransportError("boom", status_code=500)
    client = _client(auth, StubTransport(error=error), navigator)

    with pytest.raises(TransportError) as excinfo:
        await client.put(_descriptor())
    assert excinfo.value is error
    assert navigator.locations == []
    assert auth.unauthorized_errors == []


# ------------------------------------ verb helpers ------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("helper", "method"),
    [
        ("get", HttpMethod.GET),
        ("post", HttpMethod.POST),
        ("put", HttpMethod.PUT),
        ("patch", HttpMethod.PATCH),
        ("delete", HttpMethod.DELETE),
    ],
)
async def test_verb_helpers_set_method(auth, transport, navigator, helper, method):
    client = _client(auth, transport, navigator)
    r = _descriptor()

    body = await getattr(client, helper)(r)

    assert body == {"ok": True}
    assert r.method is method
    assert transport.calls[0].method is method


@pytest.mark.asyncio
async def test_delete_endpoint_uses_delete(auth, transport, navigator):
    client = _client(auth, transport, navigator)

    await client.delete_endpoint("/things/{id}", RequestOptions(params={"id": 3}))

    sent = transport.calls[0]
    assert sent.method is HttpMethod.DELETE
    assert sent.url == f"{BASE}/things/3"


@pytest.mark.asyncio
async def test_head_discards_body(auth, transport, navigator):
    client = _client(auth, transport, navigator)

    assert await client.head_endpoint("/things") is None
    assert transport.calls[0].method is HttpMethod.HEAD


@pytest.mark.asyncio
async def test_endpoint_verb_overrides_options_method(auth, transport, navigator):
    client = _client(auth, transport, navigator)

    await client.post_endpoint("/things", RequestOptions(method="GET", body={"a": 1}))

    sent = transport.calls[0]
    assert sent.method is HttpMethod.POST
    assert sent.body == {"a": 1}


@pytest.mark.asyncio
async def test_fetch_returns_raw_text(auth, navigator):
    client = _client(auth, StubTransport(body="plain"), navigator)
    assert await client.fetch_endpoint("/things") == "plain"


@pytest.mark.asyncio
async def test_request_endpoint_uses_options_method(auth, transport, navigator):
    client = _client(auth, transport, navigator)
    await client.request_endpoint("/things", RequestOptions(method="patch"))
    assert transport.calls[0].method is HttpMethod.PATCH


# ------------------------------------- admission --------------------------------------


@pytest.mark.asyncio
async def test_admission_denial_never_reaches_transport(auth, transport, navigator, fake_clock):
    middleware = AdmissionMiddleware(400, clock=fake_clock.now)
    client = _client(auth, transport, navigator, middleware=middleware)

    await client.get(_descriptor())
    fake_clock.advance(100)
    with pytest.raises(AdmissionDenied):
        await client.get(_descriptor())

    assert transport.call_count == 1

    fake_clock.advance(400)
    await client.get(_descriptor())
    assert transport.call_count == 2


# ------------------------------------ debug traces ------------------------------------


@pytest.mark.asyncio
async def test_debug_traces_are_written_and_redacted(transport, navigator, _isolated_logs):
    auth = StubAuth(
        AuthorizationOptions(
            headers={"Authorization": "Bearer abc"},
            params={"access_token": "supersecretvalue123"},
        )
    )
    client = _client(auth, transport, navigator, enable_debug=True)

    await client.get_endpoint("/things", RequestOptions(params={"q": "x"}))

    assert "access_token=supersecretvalue123" in transport.calls[0].url
    traces = sorted((_isolated_logs / "traces").glob("*.json"))
    stages = [json.loads(p.read_text())["stage"] for p in traces]
    assert "FetchClient auth data" in stages
    assert "FetchClient merge auth data into options" in stages
    assert "FetchClient normalize request options" in stages
    for path in traces:
        text = path.read_text()
        assert "Bearer abc" not in text
        assert "supersecretvalue123" not in text


@pytest.mark.asyncio
async def test_debug_disabled_writes_nothing(auth, transport, navigator, _isolated_logs):
    client = _client(auth, transport, navigator)

    await client.get_endpoint("/things")

    assert not (_isolated_logs / "traces").exists()


# ------------------------------ pipeline ordering -------------------------------------


@pytest.mark.asyncio
async def test_denied_endpoint_call_never_consults_provider(auth, transport, navigator, fake_clock):
    middleware = AdmissionMiddleware(400, clock=fake_clock.now)
    client = _client(auth, transport, navigator, middleware=middleware)

    assert await client.get_endpoint("/things") == {"ok": True}
    with pytest.raises(AdmissionDenied):
        await client.get_endpoint("/things")

    assert auth.requested == 1
    assert transport.call_count == 1


class BrokenAuth(StubAuth):
    async def get_authorization_options(self):
        self.requested += 1
        raise RuntimeError("session store unavailable")


@pytest.mark.asyncio
async def test_any_provider_failure_with_must_auth_is_unauthorized(transport, navigator):
    client = _client(BrokenAuth(), transport, navigator)

    with pytest.raises(UnauthorizedError):
        await client.get_endpoint("/things", RequestOptions(must_auth=True))
    assert transport.call_count == 0


@pytest.mark.asyncio
async def test_any_provider_failure_without_must_auth_degrades(transport, navigator):
    client = _client(BrokenAuth(), transport, navigator)

    assert await client.get_endpoint("/things") == {"ok": True}
    assert transport.calls[0].headers == {}
