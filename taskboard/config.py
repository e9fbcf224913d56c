# Taskboard — configuration
# Override the API endpoint and session path via config.yaml or environment.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import ConfigError

CONFIG_PATH = Path("~/.config/taskboard/config.yaml").expanduser()


@dataclass
class Config:
    """Runtime configuration for the taskboard client."""

    # API server (the original dev default; production deployments set TASKBOARD_API_URL)
    api_url: str = "http://localhost:5000/api"
    request_timeout: float = 10.0

    # Durable session storage (token + identity)
    session_path: str = "~/.local/share/taskboard/session.json"

    # User administration
    users_per_page: int = 5

    # Task filters the server accepts; anything else is filtered client-side
    server_filters: List[str] = field(
        default_factory=lambda: ["status", "search", "projectId"]
    )

    log_level: str = "WARNING"

    def apply_env(self):
        """Environment variables win over the YAML file."""
        if os.environ.get("TASKBOARD_API_URL", "").strip():
            self.api_url = os.environ["TASKBOARD_API_URL"].strip()
        if os.environ.get("TASKBOARD_SESSION"):
            self.session_path = os.environ["TASKBOARD_SESSION"]
        if os.environ.get("TASKBOARD_TIMEOUT"):
            try:
                self.request_timeout = float(os.environ["TASKBOARD_TIMEOUT"])
            except ValueError:
                raise ConfigError(
                    f"TASKBOARD_TIMEOUT must be a number, got: "
                    f"'{os.environ['TASKBOARD_TIMEOUT']}'"
                )
        if os.environ.get("TASKBOARD_LOG_LEVEL"):
            self.log_level = os.environ["TASKBOARD_LOG_LEVEL"].upper()

    def resolve_paths(self):
        """Expand ~ and normalise the API base URL."""
        self.session_path = str(Path(self.session_path).expanduser())
        self.api_url = self.api_url.rstrip("/")
        if self.users_per_page < 1:
            raise ConfigError(f"users_per_page must be >= 1, got: {self.users_per_page}")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path).expanduser() if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Cannot parse {cfg_path}: {e}")
            if not isinstance(data, dict):
                raise ConfigError(f"{cfg_path} must contain a mapping")
            known = cls.__dataclass_fields__
            cfg = cls(**{k: v for k, v in data.items() if k in known})
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.resolve_paths()
        return cfg
