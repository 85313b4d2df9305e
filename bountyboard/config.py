# Bounty board: configuration
# Override via bountyboard.yaml, environment variables or CLI args.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Optional

CONFIG_PATH = Path("bountyboard.yaml")


class ConfigError(Exception):
    """Raised when configuration values are unusable."""
    pass


@dataclass
class BoardConfig:
    """Runtime configuration shared by the data service and board clients."""

    # Data service
    api_url: str = "http://127.0.0.1:3000"
    api_secret: str = ""           # Empty = mutating routes are open
    host: str = "127.0.0.1"
    port: int = 3000
    request_timeout: float = 5.0

    # Storage
    db_path: str = "~/.local/share/bountyboard/board.db"
    storage_key: str = "bounty-board-data"
    max_document_bytes: int = 5 * 1024 * 1024

    # Behavior: persistence
    save_debounce_ms: int = 500
    max_retries: int = 3
    retry_delay_secs: float = 1.0

    # Behavior: consistency sweep
    sweep_interval_secs: float = 30.0

    def apply_env(self):
        """Environment variables win over the file."""
        if os.environ.get("BOUNTYBOARD_DB"):
            self.db_path = os.environ["BOUNTYBOARD_DB"]
        if os.environ.get("BOUNTYBOARD_API_URL"):
            self.api_url = os.environ["BOUNTYBOARD_API_URL"]
        if os.environ.get("BOUNTYBOARD_API_SECRET"):
            self.api_secret = os.environ["BOUNTYBOARD_API_SECRET"]

    def resolve_paths(self):
        self.db_path = str(Path(self.db_path).expanduser())

    def validate(self):
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.save_debounce_ms < 0:
            raise ConfigError(f"save_debounce_ms must be >= 0, got {self.save_debounce_ms}")
        if self.sweep_interval_secs <= 0:
            raise ConfigError(f"sweep_interval_secs must be > 0, got {self.sweep_interval_secs}")
        if self.max_document_bytes <= 0:
            raise ConfigError(f"max_document_bytes must be > 0, got {self.max_document_bytes}")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "BoardConfig":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                known = {f.name for f in fields(cls)}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except Exception:
                cfg = cls()
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.resolve_paths()
        cfg.validate()
        return cfg
