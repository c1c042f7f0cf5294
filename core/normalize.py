"""Request option normalization."""

import dataclasses
from collections.abc import Mapping

from core.headers import merge_headers
from core.params import build_url, query_items
from core.request_types import (
    AuthorizationOptions,
    HttpMethod,
    RequestDescriptor,
    RequestOptions,
)


def normalize_options(
    options: RequestOptions | None = None,
    method: HttpMethod | str | None = None,
) -> RequestOptions:
    """Resolve the request method: override, then ``options.method``, then GET."""
    options = options or RequestOptions()
    resolved = HttpMethod.parse(method or options.method or HttpMethod.GET)
    return dataclasses.replace(options, method=resolved)


def merge_authorization(
    options: RequestOptions,
    auth: AuthorizationOptions,
) -> RequestOptions:
    """Merge authorization fields into options; authorization values win."""
    headers = merge_headers(options.headers, auth.headers)
    params = options.params
    if auth.params:
        overridden = set(auth.params)
        params = [(k, v) for k, v in query_items(options.params) if k not in overridden]
        params.extend((k, str(v)) for k, v in auth.params.items())
    return dataclasses.replace(options, headers=headers, params=params)


def normalize_request(
    api: str,
    options: RequestOptions | None = None,
    method: HttpMethod | str | None = None,
    *,
    base_url: str | None = None,
    default_headers: Mapping[str, str] | None = None,
) -> RequestDescriptor:
    """Build a RequestDescriptor from an API path and loose options.

    Same inputs always produce an equal descriptor. ``options.base_url``
    overrides ``base_url``; option headers override ``default_headers``.
    """
    options = normalize_options(options, method)
    url = build_url(api, options.base_url or base_url, options.params, options.hash)
    return RequestDescriptor(
        url=url,
        method=HttpMethod.parse(options.method),
        headers=merge_headers(default_headers, options.headers),
        body=options.body,
        disable_auth=options.disable_auth,
        must_auth=options.must_auth,
    )
