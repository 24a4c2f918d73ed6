"""Manual stamp endpoint.

Runs the same per-document pipeline the watcher uses, for one note, on demand.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from ..dependencies import (
    get_document_store,
    get_metrics,
    get_notifier_dependency,
    get_settings,
)
from ...config import Settings
from ...domain.stamping.handler import build_eligibility_check, handle_document_change
from ...domain.vault.store import VaultDocumentStore
from ...infra.logging import get_logger
from ...infra.metrics import MetricsClient
from ...infra.notices import Notifier

router = APIRouter(prefix="/api/stamp", tags=["stamp"])
logger = get_logger(__name__)


class StampRequest(BaseModel):
    path: str = Field(
        description="Document path, relative to the vault root or absolute."
    )

    @field_validator("path")
    @classmethod
    def _validate_path(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("path must not be empty")
        return value.strip()


class StampResponse(BaseModel):
    path: str
    status: Literal["ok", "ignored", "error"]
    reason: str
    error: Optional[str] = None


@router.post("", response_model=StampResponse)
def stamp_document(
    payload: StampRequest,
    settings: Settings = Depends(get_settings),
    store: VaultDocumentStore = Depends(get_document_store),
    notifier: Notifier = Depends(get_notifier_dependency),
    metrics: MetricsClient = Depends(get_metrics),
) -> StampResponse:
    path = _resolve_document_path(store, payload.path)
    ref = store.describe(path)
    outcome = handle_document_change(
        ref,
        store,
        notifier=notifier,
        metrics=metrics,
        eligibility_check=build_eligibility_check(
            document_extension=settings.stamping.document_extension,
            reserved_prefixes=tuple(settings.stamping.reserved_prefixes),
        ),
        notice_duration_ms=settings.stamping.notice_duration_ms,
    )
    logger.info(
        "stamp_api_handled",
        extra={"path": outcome.path, "status": outcome.status},
    )
    return StampResponse(
        path=outcome.path,
        status=outcome.status,
        reason=outcome.reason,
        error=str(outcome.error) if outcome.error is not None else None,
    )


def _resolve_document_path(store: VaultDocumentStore, raw_path: str) -> Path:
    candidate = Path(raw_path).expanduser()
    if not candidate.is_absolute():
        candidate = store.root / candidate
    resolved = candidate.resolve()
    if not resolved.is_relative_to(store.root):
        logger.warning("stamp_api_outside_vault", extra={"path": raw_path})
        raise _http_error(
            status.HTTP_400_BAD_REQUEST,
            "STAMP-OUTSIDE-VAULT",
            f"Path is outside the vault: {raw_path}",
        )
    if not resolved.is_file():
        logger.warning("stamp_api_file_missing", extra={"path": raw_path})
        raise _http_error(
            status.HTTP_404_NOT_FOUND,
            "STAMP-NOT-FOUND",
            f"File not found: {raw_path}",
        )
    return resolved


def _http_error(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error_code": error_code,
            "message": message,
            "details": details or {},
        },
    )
