"""Tests for the filesystem vault document store."""

from __future__ import annotations

from pathlib import Path

import pytest
from watchdog.events import (
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from vaultstamp.domain.stamping.frontmatter import FrontmatterParseError
from vaultstamp.domain.vault import store as store_module
from vaultstamp.domain.vault.store import VaultDocumentStore

pytestmark = [pytest.mark.vault]


class FakeObserver:
    """Observer stand-in recording schedule/unschedule calls."""

    instances: list["FakeObserver"] = []

    def __init__(self) -> None:
        self.started = False
        self.stopped = False
        self.joined = False
        self.scheduled: list[tuple[object, str, bool]] = []
        self.unscheduled: list[object] = []
        FakeObserver.instances.append(self)

    def start(self) -> None:
        self.started = True

    def schedule(self, handler, path: str, recursive: bool = False):
        watch = object()
        self.scheduled.append((handler, path, recursive))
        self.watch = watch
        return watch

    def unschedule(self, watch) -> None:
        self.unscheduled.append(watch)

    def stop(self) -> None:
        self.stopped = True

    def join(self) -> None:
        self.joined = True


@pytest.fixture()
def fake_observer(monkeypatch: pytest.MonkeyPatch):
    FakeObserver.instances = []
    monkeypatch.setattr(store_module, "Observer", FakeObserver)
    return FakeObserver


@pytest.fixture()
def vault(tmp_path: Path) -> VaultDocumentStore:
    (tmp_path / "projects" / "alpha").mkdir(parents=True)
    return VaultDocumentStore(tmp_path)


def test_describe_builds_relative_ref(vault):
    note = vault.root / "projects" / "alpha" / "plan.md"
    note.write_text("Body", encoding="utf-8")

    ref = vault.describe(note)

    assert ref.path == note.resolve()
    assert ref.relative_path == "projects/alpha/plan.md"
    assert ref.extension == "md"
    assert ref.ancestor_folders == ("projects", "alpha")
    assert ref.mtime_ms == pytest.approx(note.stat().st_mtime * 1000, abs=1)
    assert ref.ctime_ms > 0


def test_describe_root_level_file_has_no_ancestors(vault):
    note = vault.root / "inbox.md"
    note.write_text("Body", encoding="utf-8")

    assert vault.describe(note).ancestor_folders == ()


def test_describe_rejects_paths_outside_the_vault(vault, tmp_path_factory):
    outside = tmp_path_factory.mktemp("elsewhere") / "note.md"
    outside.write_text("Body", encoding="utf-8")

    with pytest.raises(ValueError):
        vault.describe(outside)


def test_iter_documents_lists_every_file(vault):
    (vault.root / "inbox.md").write_text("a", encoding="utf-8")
    (vault.root / "projects" / "alpha" / "plan.md").write_text("b", encoding="utf-8")

    refs = list(vault.iter_documents())

    assert [ref.relative_path for ref in refs] == [
        "inbox.md",
        "projects/alpha/plan.md",
    ]


def test_process_frontmatter_prepends_block_when_missing(vault):
    note = vault.root / "projects" / "alpha" / "plan.md"
    note.write_text("First line\n\nSecond line\n", encoding="utf-8")

    written = vault.process_frontmatter(
        vault.describe(note), lambda fields: {**fields, "hash": "abc"}
    )

    assert written is True
    assert note.read_text(encoding="utf-8") == (
        "---\nhash: abc\n---\nFirst line\n\nSecond line\n"
    )


def test_process_frontmatter_preserves_other_keys_and_body(vault):
    note = vault.root / "projects" / "alpha" / "plan.md"
    note.write_text(
        "---\ntitle: Plan\naliases:\n- p\n---\n# Heading\n\n---\nrule above\n",
        encoding="utf-8",
    )

    vault.process_frontmatter(
        vault.describe(note), lambda fields: {**fields, "modified": "2024-01-01T00:00"}
    )

    assert note.read_text(encoding="utf-8") == (
        "---\ntitle: Plan\naliases:\n- p\nmodified: 2024-01-01T00:00\n---\n"
        "# Heading\n\n---\nrule above\n"
    )


def test_process_frontmatter_skips_write_when_mapping_unchanged(vault):
    note = vault.root / "projects" / "alpha" / "plan.md"
    original = "---\ntitle:   Plan   # spacing kept\n---\nBody\n"
    note.write_text(original, encoding="utf-8")

    written = vault.process_frontmatter(vault.describe(note), lambda fields: fields)

    assert written is False
    assert note.read_text(encoding="utf-8") == original


def test_process_frontmatter_skips_write_for_headerless_noop(vault):
    note = vault.root / "projects" / "alpha" / "plan.md"
    note.write_text("Body\n", encoding="utf-8")

    written = vault.process_frontmatter(vault.describe(note), lambda fields: fields)

    assert written is False
    assert note.read_text(encoding="utf-8") == "Body\n"


def test_process_frontmatter_raises_parse_error_without_writing(vault):
    note = vault.root / "projects" / "alpha" / "plan.md"
    original = "---\ntitle: a: b\n---\nBody\n"
    note.write_text(original, encoding="utf-8")
    calls = []

    with pytest.raises(FrontmatterParseError):
        vault.process_frontmatter(vault.describe(note), calls.append)

    assert calls == []
    assert note.read_text(encoding="utf-8") == original


def test_subscribe_routes_events_by_kind(vault, fake_observer):
    note = vault.root / "projects" / "alpha" / "plan.md"
    note.write_text("Body", encoding="utf-8")
    created, modified = [], []

    vault.subscribe("create", created.append)
    vault.subscribe("modify", modified.append)

    observer = fake_observer.instances[0]
    assert observer.started is True
    assert len(observer.scheduled) == 1
    handler, path, recursive = observer.scheduled[0]
    assert path == str(vault.root)
    assert recursive is True

    handler.dispatch(FileCreatedEvent(str(note)))
    handler.dispatch(FileModifiedEvent(str(note)))
    handler.dispatch(DirModifiedEvent(str(note.parent)))

    assert [ref.relative_path for ref in created] == ["projects/alpha/plan.md"]
    assert [ref.relative_path for ref in modified] == ["projects/alpha/plan.md"]


def test_events_for_vanished_files_are_dropped(vault, fake_observer):
    received = []
    vault.subscribe("modify", received.append)
    handler = fake_observer.instances[0].scheduled[0][0]

    handler.dispatch(FileModifiedEvent(str(vault.root / "projects" / "gone.md")))

    assert received == []


def test_callback_failures_do_not_escape_dispatch(vault, fake_observer):
    note = vault.root / "projects" / "alpha" / "plan.md"
    note.write_text("Body", encoding="utf-8")
    received = []

    def explode(ref):
        raise RuntimeError("boom")

    vault.subscribe("modify", explode)
    vault.subscribe("modify", received.append)

    vault.dispatch("modify", note)

    assert len(received) == 1


def test_unsubscribe_releases_watch_after_last_subscription(vault, fake_observer):
    first = vault.subscribe("create", lambda ref: None)
    second = vault.subscribe("modify", lambda ref: None)
    observer = fake_observer.instances[0]

    vault.unsubscribe(first)
    assert observer.unscheduled == []
    assert vault.subscription_count == 1

    vault.unsubscribe(second)
    vault.unsubscribe(second)
    assert observer.unscheduled == [observer.watch]
    assert vault.subscription_count == 0


def test_unsubscribed_callbacks_receive_nothing(vault, fake_observer):
    note = vault.root / "projects" / "alpha" / "plan.md"
    note.write_text("Body", encoding="utf-8")
    received = []
    subscription = vault.subscribe("modify", received.append)
    vault.subscribe("create", lambda ref: None)

    vault.unsubscribe(subscription)
    vault.dispatch("modify", note)

    assert received == []


def test_subscribe_rejects_unknown_kinds(vault, fake_observer):
    with pytest.raises(ValueError):
        vault.subscribe("delete", lambda ref: None)


def test_close_stops_observer(vault, fake_observer):
    vault.subscribe("create", lambda ref: None)
    observer = fake_observer.instances[0]

    vault.close()
    vault.close()

    assert observer.stopped is True
    assert observer.joined is True
    assert vault.subscription_count == 0


def test_rename_over_note_is_delivered_as_modify(vault, fake_observer):
    note = vault.root / "projects" / "alpha" / "plan.md"
    note.write_text("Old body", encoding="utf-8")
    temp = vault.root / "projects" / "alpha" / ".plan.md.tmp"
    temp.write_text("New body", encoding="utf-8")
    temp.replace(note)
    created, modified = [], []
    vault.subscribe("create", created.append)
    vault.subscribe("modify", modified.append)
    handler = fake_observer.instances[0].scheduled[0][0]

    handler.dispatch(FileMovedEvent(str(temp), str(note)))
    handler.dispatch(DirMovedEvent(str(vault.root / "a"), str(vault.root / "b")))

    assert created == []
    assert [ref.relative_path for ref in modified] == ["projects/alpha/plan.md"]


def test_rename_to_vanished_destination_is_dropped(vault, fake_observer):
    received = []
    vault.subscribe("modify", received.append)
    handler = fake_observer.instances[0].scheduled[0][0]

    handler.dispatch(
        FileMovedEvent(
            str(vault.root / "projects" / "a.tmp"),
            str(vault.root / "projects" / "gone.md"),
        )
    )

    assert received == []


def test_iter_documents_skips_links_leaving_the_vault(vault, tmp_path_factory):
    outside = tmp_path_factory.mktemp("elsewhere") / "outside.md"
    outside.write_text("Outside", encoding="utf-8")
    (vault.root / "projects" / "alpha" / "plan.md").write_text("b", encoding="utf-8")
    try:
        (vault.root / "projects" / "linked.md").symlink_to(outside)
    except OSError:
        pytest.skip("symlinks unavailable")

    refs = list(vault.iter_documents())

    assert [ref.relative_path for ref in refs] == ["projects/alpha/plan.md"]


def test_process_frontmatter_keeps_byte_order_mark_and_line_endings(vault):
    note = vault.root / "projects" / "alpha" / "plan.md"
    note.write_bytes(b"\xef\xbb\xbf---\r\ntitle: Plan\r\n---\r\nBody\r\n")

    assert vault.read(vault.describe(note)).startswith("---\r\n")
    vault.process_frontmatter(
        vault.describe(note), lambda fields: {**fields, "hash": "abc"}
    )

    assert note.read_bytes() == (
        b"\xef\xbb\xbf---\r\ntitle: Plan\r\nhash: abc\r\n---\r\nBody\r\n"
    )
