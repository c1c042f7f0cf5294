"""Path-parameter coercion and URL assembly."""

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx

from core.exceptions import RequestValidationError, URLPathError
from core.request_types import Params

# A query parameter with this name supplies the fragment when no hash is given
HASH_REF_NAME = "#HASH"

# {id} or {id:uint64}
PATH_PARAM_PATTERN = re.compile(r"\{([A-Za-z_][\w.-]*)(?::([A-Za-z0-9]+))?\}")

INT_RANGES: dict[str, tuple[int, int]] = {
    "int8": (-(2**7), 2**7 - 1),
    "int16": (-(2**15), 2**15 - 1),
    "int32": (-(2**31), 2**31 - 1),
    "int": (-(2**31), 2**31 - 1),
    "int64": (-(2**63), 2**63 - 1),
    "uint8": (0, 2**8 - 1),
    "uint16": (0, 2**16 - 1),
    "uint32": (0, 2**32 - 1),
    "uint": (0, 2**32 - 1),
    "uint64": (0, 2**64 - 1),
}

_TRUE_WORDS = {"true", "1", "yes", "on"}
_FALSE_WORDS = {"false", "0", "no", "off"}


def safe_path_param_value(value: Any, kind: str | None = None) -> str:
    """Coerce a path parameter to its canonical string form.

    Empty values (None or "") always coerce to "". Kinds without a rule
    (string, alphabetical, uuid, email, mail, weekday) fall back to ``str``.
    """
    if value is None or value == "":
        return ""
    kind = (kind or "").lstrip(":").lower()
    if kind == "bool":
        return "true" if _to_bool(value) else "false"
    if kind in INT_RANGES:
        return str(_to_int(value, kind))
    return _stringify(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise RequestValidationError(f"Cannot coerce {value!r} to bool")


def _to_int(value: Any, kind: str) -> int:
    if isinstance(value, bool):
        number = int(value)
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str):
        try:
            number = int(value.strip(), 10)
        except ValueError:
            raise RequestValidationError(f"Cannot coerce {value!r} to {kind}") from None
    else:
        raise RequestValidationError(f"Cannot coerce {value!r} to {kind}")

    low, high = INT_RANGES[kind]
    if not low <= number <= high:
        raise RequestValidationError(f"{number} out of range for {kind}")
    return number


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def param_pairs(params: Params | None) -> list[tuple[str, Any]]:
    """Flatten any supported params shape into ordered key/value pairs.

    None values are dropped; list values expand to repeated keys.
    """
    if params is None:
        return []
    if isinstance(params, httpx.QueryParams):
        return params.multi_items()
    if isinstance(params, str):
        return httpx.QueryParams(params.lstrip("?")).multi_items()

    items = params.items() if isinstance(params, Mapping) else params
    result: list[tuple[str, Any]] = []
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            result.extend((key, v) for v in value if v is not None)
        else:
            result.append((key, value))
    return result


def query_items(params: Params | None) -> list[tuple[str, str]]:
    return [(key, _stringify(value)) for key, value in param_pairs(params)]


def validate_base_url(base_url: str) -> httpx.URL:
    """Parse a base URL, requiring an absolute http(s) URL with a host."""
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise URLPathError(f"Invalid base URL {base_url!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise URLPathError(f"Invalid base URL {base_url!r}: expected an absolute http(s) URL")
    return url


def build_url(
    api: str,
    base_url: str | None,
    params: Params | None = None,
    hash: str | None = None,
) -> str:
    """Assemble the absolute request URL.

    ``{name}`` and ``{name:kind}`` placeholders in ``api`` are filled from
    ``params`` and consumed; the remaining params form the query string.
    """
    pairs = param_pairs(params)
    path = _fill_path_params(api, pairs)

    if hash is None:
        hash = next((_stringify(v) for k, v in pairs if k == HASH_REF_NAME), None)
    items = [(k, _stringify(v)) for k, v in pairs if k != HASH_REF_NAME]

    if _is_absolute(path):
        url = validate_base_url(path)
    else:
        if not base_url:
            raise URLPathError(f"Relative path {api!r} requires a base URL")
        base = validate_base_url(base_url)
        joined = str(base.copy_with(query=None, fragment=None)).rstrip("/")
        if path:
            joined = f"{joined}/{path.lstrip('/')}"
        try:
            url = httpx.URL(joined)
        except httpx.InvalidURL as e:
            raise URLPathError(f"Invalid path {api!r}: {e}") from e

    query = url.params.multi_items() + items
    url = url.copy_with(params=query)
    if hash:
        url = url.copy_with(fragment=hash.lstrip("#"))
    return str(url)


def _is_absolute(path: str) -> bool:
    return bool(re.match(r"^[A-Za-z][A-Za-z0-9+.-]*://", path))


def _fill_path_params(api: str, items: list[tuple[str, Any]]) -> str:
    """Substitute placeholders, removing the consumed params from ``items``."""

    def replace(match: re.Match[str]) -> str:
        name, kind = match.group(1), match.group(2)
        for index, (key, value) in enumerate(items):
            if key == name:
                del items[index]
                return quote(safe_path_param_value(value, kind), safe="")
        raise URLPathError(f"Missing path parameter {name!r} for {api!r}")

    return PATH_PARAM_PATTERN.sub(replace, api)
