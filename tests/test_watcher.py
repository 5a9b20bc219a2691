"""Tests for :mod:`inbox_organizer.watcher`."""

import queue
import re
import zipfile
from pathlib import Path

import pytest
from watchdog.events import (
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from inbox_organizer.actions import DeleteAction, DuplicateStrategy, MoveAction, UnzipAction
from inbox_organizer.loader import Config
from inbox_organizer.rules import Rule
from inbox_organizer.watcher import EventKind, InboxHandler, Organizer, WatchEvent


def make_rule(regex: str, action, min_size=None) -> Rule:
    return Rule(pattern=re.compile(regex), actions=(action,), min_size=min_size)


def create_file(path: Path, content: str = "content") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture()
def base(tmp_path) -> Path:
    (tmp_path / "inbox").mkdir()
    (tmp_path / "docs").mkdir()
    (tmp_path / "other").mkdir()
    return tmp_path


def make_organizer(base: Path, *rules: Rule) -> Organizer:
    return Organizer(Config(base_dir=base, watch_dir=base / "inbox", rules=tuple(rules)))


# -- dispatch -----------------------------------------------------------


def test_close_write_event_moves_file(base):
    source = create_file(base / "inbox" / "report.pdf")
    organizer = make_organizer(base, make_rule(r"\.pdf$", MoveAction("docs", DuplicateStrategy.SKIP)))

    result = organizer.process_event(WatchEvent(EventKind.CLOSE_WRITE, "report.pdf"))

    assert result["status"] == "moved"
    assert not source.exists()
    assert (base / "docs" / "report.pdf").exists()


def test_moved_to_event_is_processed(base):
    source = create_file(base / "inbox" / "junk.tmp")
    organizer = make_organizer(base, make_rule(r"\.tmp$", DeleteAction()))

    organizer.process_event(WatchEvent(EventKind.MOVED_TO, "junk.tmp"))

    assert not source.exists()


@pytest.mark.parametrize(
    "kind",
    [EventKind.CREATED, EventKind.MODIFIED, EventKind.DELETED, EventKind.MOVED_FROM, EventKind.OTHER],
)
def test_irrelevant_kinds_are_ignored(base, kind):
    source = create_file(base / "inbox" / "junk.tmp")
    organizer = make_organizer(base, make_rule(r"\.tmp$", DeleteAction()))

    assert organizer.process_event(WatchEvent(kind, "junk.tmp")) is None
    assert source.exists()


def test_event_without_name_is_ignored(base):
    organizer = make_organizer(base, make_rule(".", DeleteAction()))
    assert organizer.process_event(WatchEvent(EventKind.CLOSE_WRITE, None)) is None


def test_missing_file_is_ignored_with_warning(base, caplog):
    organizer = make_organizer(base, make_rule(".", DeleteAction()))

    with caplog.at_level("WARNING", logger="inbox_organizer"):
        result = organizer.process_event(WatchEvent(EventKind.CLOSE_WRITE, "gone.txt"))

    assert result is None
    assert "does not exist" in caplog.text


def test_unmatched_file_is_left_in_place(base):
    source = create_file(base / "inbox" / "notes.txt")
    organizer = make_organizer(base, make_rule(r"\.pdf$", DeleteAction()))

    assert organizer.process_event(WatchEvent(EventKind.CLOSE_WRITE, "notes.txt")) is None
    assert source.exists()


def test_earlier_rule_wins(base):
    create_file(base / "inbox" / "report.pdf")
    organizer = make_organizer(
        base,
        make_rule("report", MoveAction("docs", DuplicateStrategy.SKIP)),
        make_rule(r"\.pdf$", MoveAction("other", DuplicateStrategy.SKIP)),
    )

    organizer.process_event(WatchEvent(EventKind.CLOSE_WRITE, "report.pdf"))

    assert (base / "docs" / "report.pdf").exists()
    assert not (base / "other" / "report.pdf").exists()


def test_small_file_falls_through_size_gate(base):
    create_file(base / "inbox" / "movie.mkv", "tiny")
    organizer = make_organizer(
        base,
        make_rule(r"\.mkv$", MoveAction("docs", DuplicateStrategy.SKIP), min_size="1k"),
        make_rule(r"\.mkv$", MoveAction("other", DuplicateStrategy.SKIP)),
    )

    organizer.process_event(WatchEvent(EventKind.CLOSE_WRITE, "movie.mkv"))

    assert (base / "other" / "movie.mkv").exists()


def test_unzip_scenario(base):
    archive = base / "inbox" / "archive.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("a.txt", "hello")
    organizer = make_organizer(base, make_rule(r"\.zip$", UnzipAction("extracted")))

    organizer.process_event(WatchEvent(EventKind.CLOSE_WRITE, "archive.zip"))

    assert (base / "extracted" / "a.txt").read_text(encoding="utf-8") == "hello"
    assert archive.exists()


def test_errors_are_contained_per_event(base, caplog):
    create_file(base / "inbox" / "bad.zip", "not a zip")
    good = create_file(base / "inbox" / "junk.tmp")
    organizer = make_organizer(
        base,
        make_rule(r"\.zip$", UnzipAction("extracted")),
        make_rule(r"\.tmp$", DeleteAction()),
    )

    with caplog.at_level("ERROR", logger="inbox_organizer"):
        organizer.run(
            [
                WatchEvent(EventKind.CLOSE_WRITE, "bad.zip"),
                WatchEvent(EventKind.CLOSE_WRITE, "junk.tmp"),
            ]
        )

    assert "bad.zip" in caplog.text
    assert not good.exists()
    assert (base / "inbox" / "bad.zip").exists()


def test_malformed_size_is_a_per_event_error(base):
    source = create_file(base / "inbox" / "a.iso")
    organizer = make_organizer(base, make_rule(r"\.iso$", DeleteAction(), min_size="5x"))

    assert organizer.handle_event(WatchEvent(EventKind.CLOSE_WRITE, "a.iso")) is None
    assert source.exists()


def test_second_event_for_same_file_is_harmless(base):
    create_file(base / "inbox" / "report.pdf")
    organizer = make_organizer(base, make_rule(r"\.pdf$", MoveAction("docs", DuplicateStrategy.SKIP)))

    organizer.run(
        [
            WatchEvent(EventKind.CLOSE_WRITE, "report.pdf"),
            WatchEvent(EventKind.CLOSE_WRITE, "report.pdf"),
        ]
    )

    assert (base / "docs" / "report.pdf").exists()


# -- watchdog adapter ---------------------------------------------------


@pytest.fixture()
def handler(tmp_path):
    return InboxHandler(tmp_path, queue.Queue())


def test_closed_event_maps_to_close_write(handler, tmp_path):
    event = handler.translate(FileClosedEvent(str(tmp_path / "a.txt")))
    assert event == WatchEvent(EventKind.CLOSE_WRITE, "a.txt")


def test_move_into_folder_maps_to_moved_to(handler, tmp_path):
    event = handler.translate(FileMovedEvent(str(tmp_path / "a.part"), str(tmp_path / "a.iso")))
    assert event == WatchEvent(EventKind.MOVED_TO, "a.iso")


def test_move_out_of_folder_maps_to_moved_from(handler, tmp_path):
    event = handler.translate(FileMovedEvent(str(tmp_path / "a.iso"), str(tmp_path / "sub" / "a.iso")))
    assert event == WatchEvent(EventKind.MOVED_FROM, "a.iso")


@pytest.mark.parametrize(
    "event_class, kind",
    [
        (FileCreatedEvent, EventKind.CREATED),
        (FileDeletedEvent, EventKind.DELETED),
        (FileModifiedEvent, EventKind.MODIFIED),
        (DirModifiedEvent, EventKind.MODIFIED),
    ],
)
def test_other_events_keep_their_kind(handler, tmp_path, event_class, kind):
    assert handler.translate(event_class(str(tmp_path / "a.txt"))).kind is kind


def test_handler_queues_events_in_order(handler, tmp_path):
    handler.dispatch(FileCreatedEvent(str(tmp_path / "a.txt")))
    handler.dispatch(FileClosedEvent(str(tmp_path / "a.txt")))

    assert handler.events.get_nowait().kind is EventKind.CREATED
    assert handler.events.get_nowait() == WatchEvent(EventKind.CLOSE_WRITE, "a.txt")


def test_watch_folder_removal_ends_stream(handler, tmp_path):
    handler.dispatch(DirDeletedEvent(str(tmp_path)))
    assert handler.events.get_nowait() is None


def test_folder_moved_in_is_not_relevant(handler, tmp_path):
    event = handler.translate(DirMovedEvent(str(tmp_path / "a.part"), str(tmp_path / "album")))
    assert event == WatchEvent(EventKind.OTHER, "album")
