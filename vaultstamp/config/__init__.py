"""Config package exporting loader helpers."""

from .loader import Settings, StampingConfig, WatcherConfig, load_settings

__all__ = ["Settings", "StampingConfig", "WatcherConfig", "load_settings"]
