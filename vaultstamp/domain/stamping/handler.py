"""Per-document stamping pipeline run for every create/modify notification."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .decision import StampDecision, apply_stamp, decide_stamp
from .filters import DOCUMENT_EXTENSION, RESERVED_FOLDER_PREFIXES, is_eligible
from .frontmatter import FrontmatterParseError
from ..vault.store import DocumentRef, DocumentStore
from ...infra.logging import get_logger
from ...infra.metrics import MetricsClient, get_metrics_client
from ...infra.notices import DEFAULT_NOTICE_DURATION_MS, Notifier, get_notifier

__all__ = [
    "EligibilityCheck",
    "OUTCOME_ERROR",
    "OUTCOME_IGNORED",
    "OUTCOME_OK",
    "StampMutator",
    "StampOutcome",
    "build_eligibility_check",
    "handle_document_change",
]

logger = get_logger(__name__)

OUTCOME_OK = "ok"
OUTCOME_IGNORED = "ignored"
OUTCOME_ERROR = "error"

MALFORMED_FRONTMATTER_NOTICE = (
    "Timestamp failed to update because of malformed frontmatter on this file : "
    "{path} {message}"
)

EligibilityCheck = Callable[[DocumentRef], bool]


@dataclass(frozen=True)
class StampOutcome:
    """Result of handling one notification."""

    status: str
    reason: str
    path: str
    error: Optional[Exception] = None


@dataclass
class StampMutator:
    """Frontmatter mutator evaluated inside the store's read-modify-write.

    The decision is re-run against the mapping the store just parsed so the
    merge always applies to the header as it is on disk.
    """

    raw_content: str
    creation_time_ms: float
    modification_time_ms: float
    decisions: List[StampDecision] = field(default_factory=list)

    def __call__(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        decision = decide_stamp(
            self.raw_content,
            self.creation_time_ms,
            self.modification_time_ms,
            fields,
        )
        self.decisions.append(decision)
        return apply_stamp(fields, decision.write)

    @property
    def decision(self) -> Optional[StampDecision]:
        return self.decisions[-1] if self.decisions else None


def build_eligibility_check(
    *,
    document_extension: str = DOCUMENT_EXTENSION,
    reserved_prefixes: Sequence[str] = RESERVED_FOLDER_PREFIXES,
) -> EligibilityCheck:
    """Bind the path filter to configured extension and reserved prefixes."""

    def check(ref: DocumentRef) -> bool:
        return is_eligible(
            ref.path,
            ref.extension,
            ref.ancestor_folders,
            document_extension=document_extension,
            reserved_prefixes=reserved_prefixes,
        )

    return check


def handle_document_change(
    ref: DocumentRef,
    store: DocumentStore,
    *,
    notifier: Notifier | None = None,
    metrics: MetricsClient | None = None,
    eligibility_check: EligibilityCheck | None = None,
    notice_duration_ms: int = DEFAULT_NOTICE_DURATION_MS,
) -> StampOutcome:
    """Stamp ``ref`` if its body changed; never raises on malformed frontmatter."""

    check = eligibility_check or build_eligibility_check()
    metrics = metrics or get_metrics_client()

    if not check(ref):
        return _report(
            metrics, StampOutcome(OUTCOME_IGNORED, "not_eligible", ref.relative_path)
        )

    try:
        raw_content = store.read(ref)
    except UnicodeDecodeError as exc:
        logger.warning(
            "stamp_document_undecodable",
            extra={"path": ref.relative_path, "error": str(exc)},
        )
        return _report(
            metrics,
            StampOutcome(OUTCOME_ERROR, "undecodable", ref.relative_path, exc),
        )

    # Empty-body and already-recorded guards do not depend on the header.
    screen = decide_stamp(raw_content, ref.ctime_ms, ref.mtime_ms, {})
    if not screen.should_write:
        return _report(
            metrics, StampOutcome(OUTCOME_IGNORED, screen.reason, ref.relative_path)
        )

    mutator = StampMutator(raw_content, ref.ctime_ms, ref.mtime_ms)
    try:
        store.process_frontmatter(ref, mutator)
    except FrontmatterParseError as exc:
        message = MALFORMED_FRONTMATTER_NOTICE.format(
            path=ref.relative_path, message=exc
        )
        (notifier or get_notifier()).notify(message, duration_ms=notice_duration_ms)
        logger.error(
            "stamp_frontmatter_malformed",
            extra={"path": ref.relative_path, "error": str(exc)},
        )
        return _report(
            metrics,
            StampOutcome(
                OUTCOME_ERROR, "malformed_frontmatter", ref.relative_path, exc
            ),
        )

    decision = mutator.decision
    if decision is None or not decision.should_write:
        reason = decision.reason if decision is not None else "no_decision"
        return _report(
            metrics, StampOutcome(OUTCOME_IGNORED, reason, ref.relative_path)
        )
    return _report(
        metrics, StampOutcome(OUTCOME_OK, decision.reason, ref.relative_path)
    )


def _report(metrics: MetricsClient, outcome: StampOutcome) -> StampOutcome:
    metrics.increment(f"stamp.{outcome.status}")
    logger.info(
        "stamp_outcome",
        extra={
            "path": outcome.path,
            "status": outcome.status,
            "reason": outcome.reason,
        },
    )
    return outcome
