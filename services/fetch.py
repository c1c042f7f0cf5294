"""Fetch orchestration: normalize, admit, authorize, send, recover."""

import inspect
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx

from core.exceptions import (
    AdmissionDenied,
    ClientError,
    ErrorKind,
    UnauthorizedError,
    as_transport_error,
    classify_error,
)
from core.middleware import AdmissionMiddleware
from core.normalize import merge_authorization, normalize_options, normalize_request
from core.protocols import AuthorizationProvider, Navigator, Transport
from core.request_types import (
    Denied,
    HttpMethod,
    Outcome,
    Rejected,
    RequestDescriptor,
    RequestHooks,
    RequestOptions,
    Resolved,
)
from ui.log_utils import write_trace_log

Sender = Callable[[RequestDescriptor, RequestHooks | None], Awaitable[Any]]


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class FetchClient:
    """Request pipeline with authorization merging and error recovery.

    Every call runs normalize -> admission check -> authorize -> send ->
    recover. See-other and handled unauthorized failures resolve to None
    instead of raising; every other failure propagates unchanged.
    """

    def __init__(
        self,
        auth: AuthorizationProvider,
        transport: Transport,
        *,
        navigator: Navigator,
        middleware: AdmissionMiddleware | None = None,
        base_url: str | None = None,
        default_headers: Mapping[str, str] | None = None,
        enable_debug: bool = False,
    ) -> None:
        self.auth = auth
        self.transport = transport
        self.navigator = navigator
        self.middleware = middleware
        self.base_url = base_url
        self.default_headers = dict(default_headers or {})
        self.enable_debug = enable_debug

    async def handle_redirect(self, location: str) -> None:
        await _resolve(self.navigator.navigate(location))

    async def normalize_options(
        self,
        api: str,
        options: RequestOptions | None = None,
        method: HttpMethod | str | None = None,
        *,
        admit: bool = False,
    ) -> RequestDescriptor:
        """Resolve options and merge authorization into a descriptor.

        With ``admit`` the admission check runs before the authorization
        provider is consulted, so a denied request never touches the session.
        """
        options = normalize_options(options, method)
        self._debug("input options", {"api": api, "options": options})

        if admit:
            error = self._admission_error(self._build(api, options))
            if error is not None:
                raise error

        if not options.disable_auth:
            try:
                auth = await self.auth.get_authorization_options()
            except Exception as e:
                if options.must_auth:
                    raise UnauthorizedError(f"Authorization required: {e}") from e
                self._debug("auth unavailable, sending without it", {"error": repr(e)})
            else:
                self._debug("auth data", auth)
                options = merge_authorization(options, auth)
                self._debug("merge auth data into options", options)

        result = self._build(api, options)
        self._debug("normalize request options", result)
        return result

    async def fetch(self, r: RequestDescriptor, hooks: RequestHooks | None = None) -> str | None:
        """Send and return the raw response text."""
        return await self._call(r, None, hooks, send=self.transport.send_text)

    async def fetch_endpoint(
        self,
        api: str,
        options: RequestOptions | None = None,
        hooks: RequestHooks | None = None,
    ) -> str | None:
        r = await self.normalize_options(api, options, admit=True)
        return await self._call(r, None, hooks, send=self.transport.send_text, admitted=True)

    async def request(self, r: RequestDescriptor, hooks: RequestHooks | None = None) -> Any:
        """Send and return the parsed response body."""
        return await self._call(r, None, hooks)

    async def request_endpoint(
        self,
        api: str,
        options: RequestOptions | None = None,
        hooks: RequestHooks | None = None,
    ) -> Any:
        r = await self.normalize_options(api, options, admit=True)
        return await self._call(r, None, hooks, admitted=True)

    async def head(self, r: RequestDescriptor, hooks: RequestHooks | None = None) -> None:
        await self._call(r, HttpMethod.HEAD, hooks)

    async def head_endpoint(
        self,
        api: str,
        options: RequestOptions | None = None,
        hooks: RequestHooks | None = None,
    ) -> None:
        await self._call_endpoint(api, options, HttpMethod.HEAD, hooks)

    async def get(self, r: RequestDescriptor, hooks: RequestHooks | None = None) -> Any:
        return await self._call(r, HttpMethod.GET, hooks)

    async def get_endpoint(
        self,
        api: str,
        options: RequestOptions | None = None,
        hooks: RequestHooks | None = None,
    ) -> Any:
        return await self._call_endpoint(api, options, HttpMethod.GET, hooks)

    async def delete(self, r: RequestDescriptor, hooks: RequestHooks | None = None) -> Any:
        return await self._call(r, HttpMethod.DELETE, hooks)

    async def delete_endpoint(
        self,
        api: str,
        options: RequestOptions | None = None,
        hooks: RequestHooks | None = None,
    ) -> Any:
        return await self._call_endpoint(api, options, HttpMethod.DELETE, hooks)

    async def post(self, r: RequestDescriptor, hooks: RequestHooks | None = None) -> Any:
        return await self._call(r, HttpMethod.POST, hooks)

    async def post_endpoint(
        self,
        api: str,
        options: RequestOptions | None = None,
        hooks: RequestHooks | None = None,
    ) -> Any:
        return await self._call_endpoint(api, options, HttpMethod.POST, hooks)

    async def put(self, r: RequestDescriptor, hooks: RequestHooks | None = None) -> Any:
        return await self._call(r, HttpMethod.PUT, hooks)

    async def put_endpoint(
        self,
        api: str,
        options: RequestOptions | None = None,
        hooks: RequestHooks | None = None,
    ) -> Any:
        return await self._call_endpoint(api, options, HttpMethod.PUT, hooks)

    async def patch(self, r: RequestDescriptor, hooks: RequestHooks | None = None) -> Any:
        return await self._call(r, HttpMethod.PATCH, hooks)

    async def patch_endpoint(
        self,
        api: str,
        options: RequestOptions | None = None,
        hooks: RequestHooks | None = None,
    ) -> Any:
        return await self._call_endpoint(api, options, HttpMethod.PATCH, hooks)

    async def _call_endpoint(
        self,
        api: str,
        options: RequestOptions | None,
        method: HttpMethod,
        hooks: RequestHooks | None,
    ) -> Any:
        r = await self.normalize_options(api, options, method, admit=True)
        return await self._call(r, method, hooks, admitted=True)

    async def _call(
        self,
        r: RequestDescriptor,
        method: HttpMethod | None,
        hooks: RequestHooks | None,
        *,
        send: Sender | None = None,
        admitted: bool = False,
    ) -> Any:
        if method is not None:
            r.method = method
        outcome = await self._dispatch(r, hooks, send or self.transport.send, admitted=admitted)
        result = self._unwrap(outcome)
        return None if r.method is HttpMethod.HEAD else result

    def _build(self, api: str, options: RequestOptions) -> RequestDescriptor:
        return normalize_request(
            api,
            options,
            base_url=self.base_url,
            default_headers=self.default_headers,
        )

    def _admission_error(self, r: RequestDescriptor) -> AdmissionDenied | None:
        if self.middleware is None:
            return None
        decision = self.middleware.evaluate(r)
        if isinstance(decision, Denied):
            self._debug("admission denied", {"url": r.url, "reason": decision.error.message})
            return decision.error
        return None

    async def _dispatch(
        self,
        r: RequestDescriptor,
        hooks: RequestHooks | None,
        send: Sender,
        *,
        admitted: bool = False,
    ) -> Outcome:
        if not admitted:
            error = self._admission_error(r)
            if error is not None:
                return Rejected(error)

        try:
            body = await send(r, hooks)
        except (ClientError, httpx.HTTPError) as e:
            return await self._recover(e)
        return Resolved(body)

    async def _recover(self, original: Exception) -> Outcome:
        error = as_transport_error(original)
        kind = classify_error(error)

        if kind is ErrorKind.REDIRECT_SEE_OTHER:
            self._debug("see other", {"location": error.message})
            await self.handle_redirect(error.message)
            return Resolved(None)

        if kind is ErrorKind.UNAUTHORIZED:
            handled = await _resolve(self.auth.handle_unauthorized(error))
            self._debug("unauthorized", {"handled": bool(handled)})
            if handled:
                return Resolved(None)

        return Rejected(original)

    @staticmethod
    def _unwrap(outcome: Outcome) -> Any:
        if isinstance(outcome, Rejected):
            raise outcome.error
        return outcome.value

    def _debug(self, stage: str, payload: Any) -> None:
        if not self.enable_debug:
            return
        write_trace_log(f"FetchClient {stage}", payload)
