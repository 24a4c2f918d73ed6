"""Profile-based configuration loader for the vault stamping service."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Sequence

import yaml

DEFAULT_ENVIRONMENT = "dev"
DEFAULT_VAULT_ROOT = "vault"
DEFAULT_DOCUMENT_EXTENSION = "md"
DEFAULT_RESERVED_PREFIXES: Sequence[str] = (
    ".git",
    ".obsidian",
    "archive",
    "assets",
    "templates",
)
DEFAULT_NOTICE_DURATION_MS = 4000
DEFAULT_PROFILE_DICT: dict[str, Any] = {
    "environment": DEFAULT_ENVIRONMENT,
    "vault_root": DEFAULT_VAULT_ROOT,
    "stamping": {
        "document_extension": DEFAULT_DOCUMENT_EXTENSION,
        "reserved_prefixes": list(DEFAULT_RESERVED_PREFIXES),
        "notice_duration_ms": DEFAULT_NOTICE_DURATION_MS,
    },
    "watcher": {"enabled": False, "recursive": True},
    "logging": {"level": "INFO"},
}
CONFIG_PROFILE_ENV = "VAULTSTAMP_CONFIG_PROFILE"
CONFIG_DIR_ENV = "VAULTSTAMP_CONFIG_DIR"
VAULT_ROOT_ENV = "VAULTSTAMP_VAULT_ROOT"
DEFAULT_PROFILE = "dev"
DEFAULT_CONFIG_ROOT = Path(__file__).resolve().parents[2] / "config" / "profiles"
CONFIG_EXTENSIONS = (".yaml", ".yml")


@dataclass
class StampingConfig:
    document_extension: str = DEFAULT_DOCUMENT_EXTENSION
    reserved_prefixes: List[str] = field(
        default_factory=lambda: list(DEFAULT_RESERVED_PREFIXES)
    )
    notice_duration_ms: int = DEFAULT_NOTICE_DURATION_MS


@dataclass
class WatcherConfig:
    enabled: bool = False
    recursive: bool = True


@dataclass
class Settings:
    environment: str = DEFAULT_ENVIRONMENT
    vault_root: str = DEFAULT_VAULT_ROOT
    stamping: StampingConfig = field(default_factory=StampingConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    logging: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def vault_path(self) -> Path:
        """Return the vault root as an expanded, absolute path."""

        return Path(self.vault_root).expanduser().resolve()


def load_settings(
    profile: str | None = None, config_dir: str | Path | None = None
) -> Settings:
    """Load settings from the requested profile or fall back to defaults."""

    profile_name = profile or os.getenv(CONFIG_PROFILE_ENV, DEFAULT_PROFILE)
    config_root = Path(
        config_dir or os.getenv(CONFIG_DIR_ENV, DEFAULT_CONFIG_ROOT)
    ).expanduser()
    config_data = _load_profile_dict(profile_name, config_root)
    if not config_data:
        config_data = copy.deepcopy(DEFAULT_PROFILE_DICT)

    environment = config_data.get("environment", DEFAULT_ENVIRONMENT)
    vault_root = os.getenv(
        VAULT_ROOT_ENV, config_data.get("vault_root", DEFAULT_VAULT_ROOT)
    )

    return Settings(
        environment=str(environment),
        vault_root=str(vault_root),
        stamping=_build_stamping_config(config_data.get("stamping")),
        watcher=_build_watcher_config(config_data.get("watcher")),
        logging=dict(config_data.get("logging") or {}),
        raw=config_data,
    )


def _load_profile_dict(profile_name: str, config_root: Path) -> dict[str, Any]:
    """Load the YAML profile if available, otherwise return an empty dict."""

    if not config_root.exists():
        return {}

    for extension in CONFIG_EXTENSIONS:
        candidate = config_root / f"{profile_name}{extension}"
        if not candidate.exists():
            continue
        try:
            with candidate.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise RuntimeError(
                f"Failed to parse config profile {candidate}: {exc}"
            ) from exc
        if not isinstance(loaded, dict):
            raise RuntimeError(
                f"Config profile {candidate} must be a mapping at the root"
            )
        return loaded

    return {}


def _build_stamping_config(stamping_cfg: dict[str, Any] | None) -> StampingConfig:
    stamping_cfg = stamping_cfg or {}
    extension = str(
        stamping_cfg.get("document_extension", DEFAULT_DOCUMENT_EXTENSION)
    ).lstrip(".")
    prefixes = stamping_cfg.get("reserved_prefixes")
    if prefixes is None:
        prefixes = list(DEFAULT_RESERVED_PREFIXES)
    return StampingConfig(
        document_extension=extension or DEFAULT_DOCUMENT_EXTENSION,
        reserved_prefixes=[str(prefix) for prefix in prefixes],
        notice_duration_ms=int(
            stamping_cfg.get("notice_duration_ms", DEFAULT_NOTICE_DURATION_MS)
        ),
    )


def _build_watcher_config(watcher_cfg: dict[str, Any] | None) -> WatcherConfig:
    watcher_cfg = watcher_cfg or {}
    return WatcherConfig(
        enabled=bool(watcher_cfg.get("enabled", False)),
        recursive=bool(watcher_cfg.get("recursive", True)),
    )
