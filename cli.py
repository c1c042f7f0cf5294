"""CLI entry point for fetch-pipeline."""

import asyncio
import sys
from typing import Any

from rich.console import Console
from rich.pretty import Pretty

from auth import TOKENS_FILE, print_auth_status
from client import create_client
from core.config import CONFIG_FILE, Config, load_config
from core.exceptions import ClientError
from core.request_types import HttpMethod, RequestOptions
from ui.log_utils import write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    args = sys.argv[1:]

    if not args or args[0] in ("--help", "-h"):
        _print_help()
        return

    if args[0] in ("--check", "--auth"):
        print_auth_status()
        return

    if args[0] == "--config":
        console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
        console.print(f"[bold]Tokens:[/bold] {TOKENS_FILE}")
        return

    config = load_config()
    try:
        method, api, options, debug = parse_request_args(args)
    except ClientError as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(2)
    if debug:
        config.client.debug = True

    try:
        body = asyncio.run(_run(config, method, api, options))
    except ClientError as e:
        write_cli_log("ERROR", str(e), method=method, api=api)
        console.print(f"[red][ERROR][/red] {type(e).__name__}: {e}")
        sys.exit(1)

    if body is None:
        console.print("[dim](no body)[/dim]")
    else:
        console.print(Pretty(body))


def parse_request_args(args: list[str]) -> tuple[HttpMethod, str, RequestOptions, bool]:
    """Parse ``[METHOD] URL [key=value ...] [flags]`` into request options."""
    flags = {a for a in args if a.startswith("--")}
    positional = [a for a in args if not a.startswith("--")]

    method = HttpMethod.GET
    if positional and positional[0].upper() in HttpMethod.__members__:
        method = HttpMethod.parse(positional.pop(0))
    if not positional:
        raise ClientError("Missing URL")
    api = positional.pop(0)

    params: list[tuple[str, str]] = []
    for pair in positional:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ClientError(f"Expected key=value, got {pair!r}")
        params.append((key, value))

    options = RequestOptions(
        params=params or None,
        disable_auth="--no-auth" in flags,
        must_auth="--must-auth" in flags,
    )
    return method, api, options, "--debug" in flags


async def _run(config: Config, method: HttpMethod, api: str, options: RequestOptions) -> Any:
    async with create_client(config) as client:
        write_cli_log("REQUEST", "Sending", method=method, api=api)
        send = getattr(client, f"{method.value.lower()}_endpoint")
        return await send(api, options)


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]fetch-pipeline[/bold cyan]

Send one request through the fetch pipeline (auth, admission, recovery).

[bold]Usage:[/bold]
    fetch-pipeline [METHOD] URL [key=value ...]   Send a request
    fetch-pipeline --check                        Check auth status
    fetch-pipeline --config                       Show config locations
    fetch-pipeline --help                         Show this help

[bold]Flags:[/bold]
    --no-auth      Do not attach authorization
    --must-auth    Fail unless authorization is available
    --debug        Write pipeline traces to logs/traces
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
