"""Shared request data types."""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

import httpx

from core.exceptions import AdmissionDenied, RequestValidationError

T = TypeVar("T")

# "a=1&b=2", {"a": 1}, [("a", 1)] or httpx.QueryParams
Params = str | Mapping[str, Any] | Iterable[tuple[str, Any]] | httpx.QueryParams


class HttpMethod(StrEnum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: "str | HttpMethod") -> "HttpMethod":
        """Resolve a method name in any case."""
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise RequestValidationError(f"Unsupported HTTP method: {value!r}") from None


@dataclass(frozen=True)
class RequestOptions:
    """Caller-supplied request options.

    Every field is optional; ``normalize_request`` resolves the defaults.
    """

    method: HttpMethod | str | None = None
    base_url: str | None = None
    params: Params | None = None
    hash: str | None = None
    headers: Mapping[str, str] | None = None
    body: Any = None
    disable_auth: bool = False
    must_auth: bool = False


@dataclass
class RequestDescriptor:
    """Resolved request ready for the transport."""

    url: str
    method: HttpMethod = HttpMethod.GET
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    disable_auth: bool = False
    must_auth: bool = False


@dataclass(frozen=True)
class AuthorizationOptions:
    """Fields an authorization provider merges into outgoing requests."""

    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestHooks:
    """Optional callbacks invoked by the transport around a single send."""

    on_request: Callable[[RequestDescriptor], None] | None = None
    on_response: Callable[[httpx.Response], None] | None = None


@dataclass(frozen=True)
class Resolved(Generic[T]):
    value: T | None = None


@dataclass(frozen=True)
class Rejected:
    error: Exception


Outcome = Resolved | Rejected


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class Denied:
    error: AdmissionDenied


AdmissionDecision = Allowed | Denied
