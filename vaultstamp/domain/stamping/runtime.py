"""Runtime helpers wiring vault notifications to the stamping pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol

from .handler import (
    OUTCOME_ERROR,
    OUTCOME_OK,
    EligibilityCheck,
    StampOutcome,
    build_eligibility_check,
    handle_document_change,
)
from ..vault.store import DocumentRef, DocumentStore, Subscription, VaultDocumentStore
from ...config import Settings
from ...infra.logging import get_logger
from ...infra.metrics import MetricsClient, get_metrics_client
from ...infra.notices import DEFAULT_NOTICE_DURATION_MS, Notifier

__all__ = [
    "SUBSCRIBED_EVENTS",
    "StampWatcher",
    "SubscribingStore",
    "build_stamp_watcher",
    "run_stamp_once",
]

logger = get_logger(__name__)

SUBSCRIBED_EVENTS = ("create", "modify")


class SubscribingStore(DocumentStore, Protocol):  # pragma: no cover - typing hook
    """Document store that can also deliver create/modify notifications."""

    def subscribe(
        self, kind: Any, callback: Callable[[DocumentRef], Any]
    ) -> Subscription: ...

    def unsubscribe(self, subscription: Subscription) -> None: ...


@dataclass
class StampWatcher:
    """Owns the vault subscriptions and routes each notification to the handler.

    Every subscription taken in ``start`` is kept in ``subscriptions`` and
    released in ``stop``; use the watcher as a context manager to guarantee it.
    """

    store: SubscribingStore
    notifier: Optional[Notifier] = None
    metrics: Optional[MetricsClient] = None
    eligibility_check: Optional[EligibilityCheck] = None
    notice_duration_ms: int = DEFAULT_NOTICE_DURATION_MS
    subscriptions: List[Subscription] = field(default_factory=list)

    @property
    def running(self) -> bool:
        return bool(self.subscriptions)

    def start(self) -> None:
        if self.running:
            return
        for kind in SUBSCRIBED_EVENTS:
            self.subscriptions.append(self.store.subscribe(kind, self.handle))
        logger.info(
            "stamp_watcher_started",
            extra={"subscriptions": len(self.subscriptions)},
        )

    def stop(self) -> None:
        released = 0
        while self.subscriptions:
            self.store.unsubscribe(self.subscriptions.pop())
            released += 1
        logger.info("stamp_watcher_stopped", extra={"released": released})

    def handle(self, ref: DocumentRef) -> StampOutcome:
        return handle_document_change(
            ref,
            self.store,
            notifier=self.notifier,
            metrics=self.metrics,
            eligibility_check=self.eligibility_check,
            notice_duration_ms=self.notice_duration_ms,
        )

    def __enter__(self) -> "StampWatcher":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def build_stamp_watcher(
    settings: Settings,
    *,
    store: SubscribingStore | None = None,
    notifier: Notifier | None = None,
    metrics: MetricsClient | None = None,
) -> StampWatcher:
    """Create a watcher configured from loaded settings."""

    store = store or VaultDocumentStore(
        settings.vault_path, recursive=settings.watcher.recursive
    )
    return StampWatcher(
        store=store,
        notifier=notifier,
        metrics=metrics,
        eligibility_check=build_eligibility_check(
            document_extension=settings.stamping.document_extension,
            reserved_prefixes=tuple(settings.stamping.reserved_prefixes),
        ),
        notice_duration_ms=settings.stamping.notice_duration_ms,
    )


def run_stamp_once(
    vault_root: str | Path,
    *,
    store: VaultDocumentStore | None = None,
    notifier: Notifier | None = None,
    metrics: MetricsClient | None = None,
    eligibility_check: EligibilityCheck | None = None,
) -> List[StampOutcome]:
    """Execute a single stamping pass over every document in the vault.

    A document that fails is reported as an ``error`` outcome and the pass
    moves on to the next one.
    """

    store = store or VaultDocumentStore(vault_root)
    outcomes: List[StampOutcome] = []
    for ref in store.iter_documents():
        try:
            outcome = handle_document_change(
                ref,
                store,
                notifier=notifier,
                metrics=metrics,
                eligibility_check=eligibility_check,
            )
        except Exception as exc:
            logger.exception(
                "stamp_pass_document_failed",
                extra={"path": ref.relative_path},
            )
            (metrics or get_metrics_client()).increment(f"stamp.{OUTCOME_ERROR}")
            outcome = StampOutcome(
                OUTCOME_ERROR, "document_failed", ref.relative_path, exc
            )
        outcomes.append(outcome)
    stamped = sum(1 for outcome in outcomes if outcome.status == OUTCOME_OK)
    logger.info(
        "stamp_pass_completed",
        extra={
            "vault_root": str(store.root),
            "documents": len(outcomes),
            "stamped": stamped,
        },
    )
    return outcomes
