"""
Central configuration for the study timer service.
All values can be overridden via environment variables or a local config.json.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

_ROOT = Path(__file__).parent.parent
_CONFIG_FILE = _ROOT / "config.json"


@dataclass
class Config:
    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8765

    # Engine
    tick_interval_ms: int = 250              # countdown re-evaluation period

    # Storage
    data_dir: Path = field(default_factory=lambda: _ROOT / "data")
    store_db: str = "study_timer.db"
    profile: str = "default"                 # persistence key for this local profile

    # Side effects
    notifier: str = "desktop"                # desktop | log

    # Logging
    log_level: str = "INFO"
    log_file: str = "study_timer.log"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        # coarser ticks make the countdown visibly stutter
        self.tick_interval_ms = max(1, min(int(self.tick_interval_ms), 250))

    @property
    def store_path(self) -> Path:
        return self.data_dir / self.store_db

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"

    @classmethod
    def load(cls) -> "Config":
        cfg = cls()
        if _CONFIG_FILE.exists():
            overrides = json.loads(_CONFIG_FILE.read_text())
            for k, v in overrides.items():
                if hasattr(cfg, k):
                    setattr(cfg, k, v)
        # environment variable overrides (STUDY_*)
        for k in cfg.__dataclass_fields__:  # type: ignore[attr-defined]
            env_key = f"STUDY_{k.upper()}"
            if env_key in os.environ:
                setattr(cfg, k, type(getattr(cfg, k))(os.environ[env_key]))
        cfg.__post_init__()
        return cfg


# Module-level singleton
config = Config.load()
