"""Configuration management for the live-context CLI.

Reads/writes a TOML config file and provides a typed Config dataclass.
Default location: ``~/.config/live-context/config.toml``.
Override with the ``LIVE_CONTEXT_CONFIG`` environment variable.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from live_context.config import DEFAULT_DATA_DIR

_DEFAULT_CONFIG_DIR = Path("~/.config/live-context").expanduser()
_SQLITE_FILENAME = "live-context.db"


def _config_path() -> Path:
    env = os.environ.get("LIVE_CONTEXT_CONFIG")
    if env:
        return Path(env).expanduser()
    return _DEFAULT_CONFIG_DIR / "config.toml"


@dataclass
class Config:
    openai_api_key: str = ""

    # Chat model override; empty means "use the saved selection"
    model: str = ""

    # Storage backend: "disk" (one JSON file per document) or "sqlite"
    storage_provider: str = "disk"

    data_dir: str = DEFAULT_DATA_DIR

    @property
    def is_configured(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def uses_sqlite(self) -> bool:
        return self.storage_provider == "sqlite"

    @property
    def sqlite_path(self) -> str:
        return str(self.data_path / _SQLITE_FILENAME)

    def ensure_dirs(self) -> None:
        self.data_path.mkdir(parents=True, exist_ok=True)


def load_config() -> Config:
    """Load config from disk, falling back to defaults + env overrides."""
    path = _config_path()
    cfg = Config()

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)
        openai_section = data.get("openai", {})
        storage_section = data.get("storage", {})
        data_section = data.get("data", {})

        cfg.openai_api_key = openai_section.get("api_key", cfg.openai_api_key)
        cfg.model = openai_section.get("model", cfg.model)
        cfg.storage_provider = storage_section.get("provider", cfg.storage_provider)
        cfg.data_dir = data_section.get("dir", cfg.data_dir)

    # Environment variables always take precedence
    cfg.openai_api_key = os.environ.get("OPENAI_API_KEY", cfg.openai_api_key)
    cfg.storage_provider = os.environ.get("LIVE_CONTEXT_STORAGE", cfg.storage_provider)
    cfg.data_dir = os.environ.get("LIVE_CONTEXT_DATA_DIR", cfg.data_dir)
    cfg.model = os.environ.get("LIVE_CONTEXT_MODEL", cfg.model)

    return cfg


def save_config(cfg: Config) -> Path:
    """Write config to the TOML file. Returns the path written."""
    path = _config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "[openai]",
        f'api_key = "{cfg.openai_api_key}"',
    ]
    if cfg.model:
        lines.append(f'model = "{cfg.model}"')
    lines.extend(
        [
            "",
            "[storage]",
            f'provider = "{cfg.storage_provider}"',
            "",
            "[data]",
            f'dir = "{cfg.data_dir}"',
            "",
        ]
    )

    path.write_text("\n".join(lines), encoding="utf-8")
    return path


def config_exists() -> bool:
    return _config_path().exists()


def config_path_display() -> str:
    return str(_config_path())
