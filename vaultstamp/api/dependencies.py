"""Shared API dependencies."""

from __future__ import annotations

from functools import lru_cache

from ..config import Settings, load_settings
from ..domain.vault.store import VaultDocumentStore
from ..infra.metrics import MetricsClient, get_metrics_client
from ..infra.notices import Notifier, get_notifier

__all__ = [
    "get_document_store",
    "get_metrics",
    "get_notifier_dependency",
    "get_settings",
]


@lru_cache()
def _settings_singleton() -> Settings:
    return load_settings()


def get_settings() -> Settings:
    """Return the process-wide settings loaded from the active profile."""

    return _settings_singleton()


@lru_cache()
def _document_store_singleton() -> VaultDocumentStore:
    settings = get_settings()
    return VaultDocumentStore(
        settings.vault_path, recursive=settings.watcher.recursive
    )


def get_document_store() -> VaultDocumentStore:
    """Return the vault document store for the configured root."""

    return _document_store_singleton()


def get_notifier_dependency() -> Notifier:
    return get_notifier()


def get_metrics() -> MetricsClient:
    return get_metrics_client()
