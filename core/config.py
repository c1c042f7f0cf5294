"""Configuration models and loading."""

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

CONFIG_DIR = Path.home() / ".config" / "fetch-pipeline"
CONFIG_FILE = CONFIG_DIR / "config.json"


class ClientSettings(BaseModel):
    base_url: str = "http://127.0.0.1:8080"
    timeout: float = 30.0
    debug: bool = False
    default_headers: dict[str, str] = Field(
        default_factory=lambda: {"Accept": "application/json"}
    )


class MiddlewareSettings(BaseModel):
    enabled: bool = True
    debounce_interval_ms: int = Field(default=400, ge=0)


class AuthSettings(BaseModel):
    token_url: str = ""
    login_url: str = "/login"


class Config(BaseModel):
    client: ClientSettings = Field(default_factory=ClientSettings)
    middleware: MiddlewareSettings = Field(default_factory=MiddlewareSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)


def load_config(config_file: Path = CONFIG_FILE) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default

    try:
        data = json.loads(config_file.read_text())
        return Config.model_validate(data)
    except (json.JSONDecodeError, ValidationError):
        # Backup corrupted config and recreate default
        backup = config_file.with_suffix(".json.bak")
        config_file.rename(backup)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default
