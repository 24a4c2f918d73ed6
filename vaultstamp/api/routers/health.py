"""Service health endpoint."""

from typing import Any

from fastapi import APIRouter, Depends

from ..dependencies import get_metrics, get_settings
from ...config import Settings
from ...infra.metrics import MetricsClient

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/healthz")
def healthcheck(
    settings: Settings = Depends(get_settings),
    metrics: MetricsClient = Depends(get_metrics),
) -> dict[str, Any]:
    """Return coarse-grained readiness information and stamp counters."""

    return {
        "status": "ok",
        "environment": settings.environment,
        "vaultRoot": str(settings.vault_path),
        "vaultExists": settings.vault_path.is_dir(),
        "watcherEnabled": settings.watcher.enabled,
        "stampCounters": metrics.snapshot(),
    }
