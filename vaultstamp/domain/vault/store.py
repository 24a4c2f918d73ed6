"""Filesystem-backed vault document store.

Provides what the stamping flow needs from the host: describing a document,
reading it, a read-modify-write of its frontmatter mapping, and create/modify
notifications backed by a ``watchdog`` observer.
"""

from __future__ import annotations

import codecs
import itertools
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Literal, Optional, Protocol, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from ..stamping.frontmatter import (
    parse_frontmatter,
    rewrite_frontmatter,
    split_frontmatter,
)
from ...infra.logging import get_logger

__all__ = [
    "DocumentRef",
    "DocumentStore",
    "EventKind",
    "FrontmatterMutator",
    "Subscription",
    "VaultDocumentStore",
]

logger = get_logger(__name__)

EventKind = Literal["create", "modify"]
EVENT_KINDS: tuple[str, ...] = ("create", "modify")
FrontmatterMutator = Callable[[Dict[str, Any]], Dict[str, Any]]
DocumentCallback = Callable[["DocumentRef"], Any]


@dataclass(frozen=True)
class DocumentRef:
    """Snapshot of a vault document as delivered with a notification."""

    path: Path
    relative_path: str
    extension: str
    ancestor_folders: tuple[str, ...]
    ctime_ms: float
    mtime_ms: float


@dataclass(frozen=True)
class Subscription:
    """Handle returned by ``subscribe``; pass it back to ``unsubscribe``."""

    kind: str
    token: int


class DocumentStore(Protocol):  # pragma: no cover - structural typing hook
    """Subset of store functionality the stamping flow needs."""

    def read(self, ref: DocumentRef) -> str: ...

    def process_frontmatter(
        self, ref: DocumentRef, mutator: FrontmatterMutator
    ) -> bool: ...


class _VaultEventHandler(FileSystemEventHandler):
    """Forwards watchdog file events to the owning store."""

    def __init__(self, store: "VaultDocumentStore") -> None:
        super().__init__()
        self._store = store

    def _forward(self, kind: str, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = Path(os.fsdecode(event.src_path))
        # Editors often replace files via short-lived temp names.
        if not path.is_file():
            return
        self._store.dispatch(kind, path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward("create", event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._forward("modify", event)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Atomic saves write a temp file and rename it over the note.
        if event.is_directory:
            return
        path = Path(os.fsdecode(event.dest_path))
        if not path.is_file():
            return
        self._store.dispatch("modify", path)


class VaultDocumentStore:
    """Document store over a vault directory on the local filesystem."""

    def __init__(self, root: str | Path, *, recursive: bool = True) -> None:
        self.root = Path(root).expanduser().resolve()
        self.recursive = recursive
        self._observer: Optional[Any] = None
        self._watch: Optional[ObservedWatch] = None
        self._callbacks: Dict[int, Tuple[str, DocumentCallback]] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    # -------- Documents --------

    def describe(self, path: str | Path) -> DocumentRef:
        """Build a ``DocumentRef`` for a file inside the vault."""

        resolved = Path(path).expanduser().resolve()
        relative = resolved.relative_to(self.root)
        stat_result = resolved.stat()
        birth_time = getattr(stat_result, "st_birthtime", None)
        ctime = birth_time if birth_time is not None else stat_result.st_ctime
        return DocumentRef(
            path=resolved,
            relative_path=relative.as_posix(),
            extension=resolved.suffix.lstrip("."),
            ancestor_folders=tuple(relative.parts[:-1]),
            ctime_ms=ctime * 1000,
            mtime_ms=stat_result.st_mtime_ns / 1_000_000,
        )

    def iter_documents(self) -> Iterator[DocumentRef]:
        """Yield a ref for every regular file under the vault root."""

        for candidate in sorted(self.root.rglob("*")):
            if not candidate.is_file():
                continue
            try:
                ref = self.describe(candidate)
            except (OSError, ValueError):
                logger.warning(
                    "vault_document_unreadable",
                    extra={"path": str(candidate)},
                )
                continue
            yield ref

    def read(self, ref: DocumentRef) -> str:
        """Decode the note as UTF-8; a leading BOM is dropped, line endings kept."""

        return ref.path.read_bytes().decode("utf-8-sig")

    def process_frontmatter(
        self, ref: DocumentRef, mutator: FrontmatterMutator
    ) -> bool:
        """Apply ``mutator`` to the document's frontmatter and persist it.

        Raises ``FrontmatterParseError`` without touching the file when the
        existing block is not valid YAML. Returns True when the file was
        rewritten.
        """

        raw_bytes = ref.path.read_bytes()
        bom = codecs.BOM_UTF8 if raw_bytes.startswith(codecs.BOM_UTF8) else b""
        raw_content = raw_bytes[len(bom):].decode("utf-8")
        yaml_text, _ = split_frontmatter(raw_content)
        current = parse_frontmatter(yaml_text)
        updated = mutator(dict(current))
        if yaml_text is not None and updated == current:
            return False
        if yaml_text is None and not updated:
            return False
        rewritten = rewrite_frontmatter(raw_content, current, updated)
        ref.path.write_bytes(bom + rewritten.encode("utf-8"))
        logger.info(
            "vault_frontmatter_written",
            extra={"path": ref.relative_path, "keys": sorted(updated)},
        )
        return True

    # -------- Notifications --------

    def subscribe(self, kind: EventKind, callback: DocumentCallback) -> Subscription:
        """Register ``callback`` for ``create`` or ``modify`` notifications."""

        if kind not in EVENT_KINDS:
            raise ValueError(f"unsupported event kind: {kind}")
        with self._lock:
            if self._watch is None:
                self._watch = self._ensure_observer().schedule(
                    _VaultEventHandler(self),
                    str(self.root),
                    recursive=self.recursive,
                )
            subscription = Subscription(kind=kind, token=next(self._tokens))
            self._callbacks[subscription.token] = (kind, callback)
        logger.info(
            "vault_subscription_added",
            extra={"kind": kind, "root": str(self.root)},
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Release a subscription; the watch is dropped with the last one."""

        with self._lock:
            if self._callbacks.pop(subscription.token, None) is None:
                return
            if not self._callbacks and self._watch is not None:
                if self._observer is not None:
                    self._observer.unschedule(self._watch)
                self._watch = None
        logger.info("vault_subscription_released", extra={"kind": subscription.kind})

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def close(self) -> None:
        """Stop the observer thread, if one was started."""

        with self._lock:
            observer, self._observer = self._observer, None
            self._watch = None
            self._callbacks.clear()
        if observer is None:
            return
        observer.stop()
        observer.join()

    def dispatch(self, kind: str, path: str | Path) -> None:
        """Deliver a notification for ``path`` to every ``kind`` subscriber.

        Callback failures are logged; the observer thread keeps running.
        """

        with self._lock:
            callbacks = [cb for k, cb in self._callbacks.values() if k == kind]
        if not callbacks:
            return
        try:
            ref = self.describe(path)
        except (OSError, ValueError):
            logger.warning(
                "vault_event_unreadable",
                extra={"kind": kind, "path": str(path)},
            )
            return
        logger.debug(
            "vault_event_received",
            extra={"kind": kind, "path": ref.relative_path},
        )
        for callback in callbacks:
            try:
                callback(ref)
            except Exception:
                logger.exception(
                    "vault_callback_failed",
                    extra={"kind": kind, "path": ref.relative_path},
                )

    def _ensure_observer(self) -> Any:
        if self._observer is None:
            self._observer = Observer()
            self._observer.start()
        return self._observer
