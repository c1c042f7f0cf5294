"""Shared logging utilities."""

import json
from dataclasses import asdict, is_dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import httpx

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "fetch.log"

SENSITIVE_MARKERS = ("key", "authorization", "cookie", "token")


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path | None = None,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file = log_file or CLI_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def write_trace_log(
    stage: str,
    payload: Any,
    *,
    log_root: Path | None = None,
) -> Path:
    """Write a single pipeline trace entry, masking credentials."""
    log_root = log_root or LOG_ROOT
    entry = {
        "timestamp": _utc_now(),
        "stage": stage,
        "data": _redact(_plain(payload)),
    }
    return _write_json(log_root / "traces", entry)


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive headers."""
    redacted = {}
    for key, value in headers.items():
        if _is_sensitive(key):
            redacted[key] = _mask(str(value))
        else:
            redacted[key] = value
    return redacted


def redact_url(url: str) -> str:
    """Mask sensitive query parameter values in a URL."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return url
    if not parsed.query:
        return url
    return str(parsed.copy_with(params=_redact_pairs(parsed.params.multi_items())))


def _redact(data: Any) -> Any:
    if isinstance(data, dict):
        redacted = {}
        for k, v in data.items():
            if k == "headers" and isinstance(v, dict):
                redacted[k] = redact_headers(v)
            elif k == "params" and isinstance(v, str):
                redacted[k] = str(httpx.QueryParams(_redact_pairs(httpx.QueryParams(v).multi_items())))
            elif _is_sensitive(str(k)) and not isinstance(v, (dict, list, tuple)):
                redacted[k] = _mask(str(v))
            else:
                redacted[k] = _redact(v)
        return redacted
    if isinstance(data, httpx.QueryParams):
        return _redact_pairs(data.multi_items())
    if isinstance(data, (list, tuple)):
        if _is_pair(data):
            return _redact_pairs([data])[0]
        return [_redact(item) for item in data]
    if isinstance(data, str) and "://" in data and "?" in data:
        return redact_url(data)
    return data


def _is_pair(data: list | tuple) -> bool:
    return len(data) == 2 and isinstance(data[0], str) and not isinstance(data[1], (dict, list, tuple))


def _redact_pairs(pairs: list) -> list[tuple[str, Any]]:
    return [(k, _mask(str(v)) if _is_sensitive(k) else v) for k, v in pairs]


def _plain(payload: Any) -> Any:
    if is_dataclass(payload) and not isinstance(payload, type):
        return asdict(payload)
    if isinstance(payload, dict):
        return {k: _plain(v) for k, v in payload.items()}
    return payload


def _is_sensitive(key: str) -> bool:
    key_lower = key.lower()
    return any(marker in key_lower for marker in SENSITIVE_MARKERS)


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()
