"""Token-file authorization provider for the fetch client."""

import json
import time
from pathlib import Path

import httpx
from rich.console import Console

from core.config import CONFIG_DIR, AuthSettings
from core.exceptions import ClientError, TransportError, UnauthorizedError
from core.protocols import Navigator
from core.request_types import AuthorizationOptions
from ui.log_utils import write_cli_log

console = Console()
TOKENS_FILE = CONFIG_DIR / "tokens.json"


class TokenRefreshError(ClientError):
    """Raised when the token file cannot be read."""


def load_tokens(tokens_file: Path = TOKENS_FILE) -> dict | None:
    """Load stored tokens, or None when there are none."""
    if not tokens_file.exists():
        return None
    try:
        tokens = json.loads(tokens_file.read_text())
    except json.JSONDecodeError as e:
        raise TokenRefreshError(f"Corrupted token file {tokens_file}: {e}") from e
    if not isinstance(tokens, dict) or not tokens.get("access_token"):
        return None
    return tokens


def save_tokens(tokens: dict, tokens_file: Path = TOKENS_FILE):
    """Save tokens to our file."""
    tokens_file.parent.mkdir(parents=True, exist_ok=True)
    tokens_file.write_text(json.dumps(tokens, indent=2))
    tokens_file.chmod(0o600)


class TokenAuthorizationProvider:
    """Supply bearer tokens from a JSON file, refreshing them when expired."""

    def __init__(
        self,
        settings: AuthSettings,
        navigator: Navigator | None = None,
        *,
        tokens_file: Path = TOKENS_FILE,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._navigator = navigator
        self._tokens_file = tokens_file
        self._client = client

    async def get_authorization_options(self) -> AuthorizationOptions:
        tokens = load_tokens(self._tokens_file)
        if not tokens:
            raise UnauthorizedError("Not authenticated")

        if tokens.get("expires_at", 0) <= time.time():
            refresh_token = tokens.get("refresh_token")
            if not refresh_token:
                raise UnauthorizedError("Session expired")
            tokens = await self.refresh_tokens(refresh_token)

        return AuthorizationOptions(headers={"Authorization": f"Bearer {tokens['access_token']}"})

    async def refresh_tokens(self, refresh_token: str) -> dict:
        """Exchange a refresh token for new tokens and store them."""
        if not self._settings.token_url:
            raise UnauthorizedError("Session expired and no token URL is configured")

        client = self._client or httpx.AsyncClient()
        try:
            response = await client.post(
                self._settings.token_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                },
            )
        finally:
            if self._client is None:
                await client.aclose()

        if response.status_code != 200:
            write_cli_log("ERROR", "Token refresh failed", status=response.status_code)
            raise UnauthorizedError(f"Token refresh failed: {response.status_code}")

        data = response.json()
        if not isinstance(data, dict) or not data.get("access_token"):
            write_cli_log("ERROR", "Token refresh returned no access token")
            raise UnauthorizedError("Token refresh returned no access token")
        tokens = {
            "access_token": data["access_token"],
            "refresh_token": data.get("refresh_token", refresh_token),
            "expires_at": time.time() + data.get("expires_in", 3600) - 60,
        }
        save_tokens(tokens, self._tokens_file)
        return tokens

    async def handle_unauthorized(self, error: TransportError) -> bool:
        """Drop the stale session and send the user to sign in again."""
        if self._tokens_file.exists():
            self._tokens_file.unlink()
        write_cli_log("WARN", "Unauthorized response", detail=error.message)

        if self._navigator is None or not self._settings.login_url:
            return False
        result = self._navigator.navigate(self._settings.login_url)
        if result is not None:
            await result
        return True


def print_auth_status(tokens_file: Path = TOKENS_FILE) -> bool:
    """Check if we have a usable session."""
    try:
        tokens = load_tokens(tokens_file)
    except TokenRefreshError as e:
        console.print(f"[red][ERROR][/red] {e}")
        return False
    if tokens:
        expires_at = tokens.get("expires_at", 0)
        state = "expired, refresh on next request" if expires_at <= time.time() else "valid"
        console.print(f"[green]Authenticated[/green] ({state}, expires {time.ctime(expires_at)})")
        return True
    console.print("[yellow]Not authenticated[/yellow]")
    console.print(f"\n[dim]Place tokens at:[/dim] {tokens_file}")
    return False
