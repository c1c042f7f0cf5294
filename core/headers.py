"""Header construction for outgoing requests."""

from collections.abc import Mapping
from typing import Any


def merge_headers(
    base: Mapping[str, Any] | None,
    extra: Mapping[str, Any] | None,
) -> dict[str, str]:
    """Union two header maps, case-insensitively, with ``extra`` taking precedence.

    On collision the spelling of the winning key is kept.
    """
    merged: dict[str, str] = {}
    for source in (base, extra):
        if not source:
            continue
        for key, value in source.items():
            key_lower = key.lower()
            for existing in [k for k in merged if k.lower() == key_lower]:
                del merged[existing]
            merged[key] = str(value)
    return merged
