"""Configuration loading and defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "autolinker"
_DEFAULT_CONFIG_PATH = _DEFAULT_CONFIG_DIR / "config.yaml"


@dataclass
class Config:
    vault_path: Path
    trigger_key: str = ""
    debounce_seconds: float = 0.3
    startup_retry_delay: float = 0.2
    max_startup_attempts: int = 2
    max_results: int = 100


def load_config(config_path: Path | None = None) -> Config:
    """Load config from YAML file, falling back to defaults where possible."""
    path = config_path or _DEFAULT_CONFIG_PATH
    path = Path(path).expanduser()

    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            f"Create one at {_DEFAULT_CONFIG_PATH} or pass --config / --vault."
        )

    raw = yaml.safe_load(path.read_text())
    if not raw or not isinstance(raw, dict):
        raise ValueError(f"Invalid config file: {path}")

    if "vault_path" not in raw:
        raise ValueError("'vault_path' is required in config")

    kwargs: dict = {"vault_path": Path(raw["vault_path"]).expanduser()}
    if raw.get("trigger_key") is not None:
        kwargs["trigger_key"] = str(raw["trigger_key"])
    for key in (
        "debounce_seconds",
        "startup_retry_delay",
        "max_startup_attempts",
        "max_results",
    ):
        if key in raw:
            kwargs[key] = raw[key]

    return Config(**kwargs)
