# Taskboard: configuration
# Override values via taskboard.yaml, environment variables, or CLI args.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Optional

CONFIG_PATH = Path(__file__).parent.parent / "taskboard.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


@dataclass
class Config:
    """Runtime configuration shared by the client, CLI and server."""

    # Board API (client side)
    api_url: str = "http://localhost:3000"
    folder_id: str = "demo"
    request_timeout: float = 5.0
    api_key_env: str = "TASKBOARD_API_SECRET"   # Name of the env var holding the key

    # Reference server
    db_path: str = "~/.local/share/taskboard/board.db"
    host: str = "127.0.0.1"
    port: int = 3000

    log_level: str = "INFO"

    @property
    def api_key(self) -> str:
        return os.environ.get(self.api_key_env, "").strip()

    def apply_env(self):
        """Environment variables win over file values."""
        self.api_url = os.environ.get("TASKBOARD_API_URL", self.api_url)
        self.folder_id = os.environ.get("TASKBOARD_FOLDER", self.folder_id)
        self.db_path = os.environ.get("TASKBOARD_DB", self.db_path)

    def resolve_paths(self):
        """Expand ~ in paths."""
        self.db_path = str(Path(self.db_path).expanduser())

    def validate(self):
        if not self.api_url.startswith(("http://", "https://")):
            raise ConfigError(f"api_url must be an http(s) URL, got {self.api_url!r}")
        try:
            self.request_timeout = float(self.request_timeout)
            self.port = int(self.port)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if path and not cfg_path.exists():
            raise ConfigError(f"Config file not found: {cfg_path}")
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Cannot parse {cfg_path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"{cfg_path} must contain a mapping")
            known = {f.name for f in fields(cls)}
            cfg = cls(**{k: v for k, v in data.items() if k in known})
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.resolve_paths()
        cfg.validate()
        return cfg
