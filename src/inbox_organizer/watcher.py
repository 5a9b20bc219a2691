"""
Inbox Folder Watcher.

This module watches a single folder and applies the configured rules to
every file that finishes arriving there.

WHAT IT DOES:
    1. Registers a non-recursive watch on the watch folder (raw inotify on
       Linux, a watchdog observer elsewhere)
    2. Queues "file closed after writing" and "file moved in" events
    3. Processes queued events one at a time, in arrival order
    4. Picks the first rule whose regex (and minimum size) fits the file
    5. Runs that rule's first action: move, unzip or delete
    6. Logs and skips any event that fails, then carries on

A large unzip holds up the events queued behind it; no two files are ever
processed at the same time.
"""

import logging
import os
import queue
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, Optional

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from . import config
from .actions import ActionExecutor
from .loader import Config
from .rules import RuleMatcher

if TYPE_CHECKING:
    from watchdog.observers.inotify_buffer import InotifyBuffer
    from watchdog.observers.inotify_c import InotifyEvent

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Kinds of change notification the watch folder can produce."""

    CLOSE_WRITE = "close-write"
    MOVED_TO = "moved-to"
    MOVED_FROM = "moved-from"
    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"
    OTHER = "other"


# Only these kinds mean a file has finished arriving
RELEVANT_KINDS = frozenset({EventKind.CLOSE_WRITE, EventKind.MOVED_TO})


@dataclass(frozen=True)
class WatchEvent:
    kind: EventKind
    name: Optional[str] = None


# =============================================================================
# EVENT DISPATCH
# =============================================================================


class Organizer:
    """
    Apply rules to files named by watch events.

    Each event is handled on its own: the first eligible rule is chosen and
    only its first action runs. Errors raised while handling one event are
    logged and do not stop the loop.
    """

    def __init__(
        self,
        cfg: Config,
        matcher: Optional[RuleMatcher] = None,
        executor: Optional[ActionExecutor] = None,
    ):
        self.watch_dir = cfg.watch_dir
        self.matcher = matcher or RuleMatcher(cfg.rules, cfg.watch_dir)
        self.executor = executor or ActionExecutor(cfg.base_dir)

    def run(self, events: Iterable[WatchEvent]) -> None:
        """Process events in order until the stream ends."""
        for event in events:
            self.handle_event(event)

    def handle_event(self, event: WatchEvent) -> Optional[Dict]:
        """Process one event, logging instead of raising on failure."""
        try:
            return self.process_event(event)
        except Exception as e:
            logger.error(f"Encountered error processing event: filename={event.name} error={e}")
            return None

    def process_event(self, event: WatchEvent) -> Optional[Dict]:
        """
        Process one event.

        Args:
            event: Watch event to handle

        Returns:
            Result of the executed action, or None if nothing was done

        Raises:
            Exception: Any failure while matching or acting on the file
        """
        logger.debug(f"Received filesystem event: event_type={event.kind.value} filename={event.name}")

        if event.kind not in RELEVANT_KINDS:
            return None

        if not event.name:
            return None

        source = self.watch_dir / event.name

        if not source.exists():
            logger.warning(
                f"File does not exist - assuming processed by previous event: filename={event.name}"
            )
            return None

        rule = self.matcher.select(event.name)
        if rule is None:
            logger.debug(f"No rule matched file, leaving in place: filename={event.name}")
            return None

        result = self.executor.execute(rule, source)
        logger.debug(f"Action for file processed successfully: filename={event.name} status={result['status']}")
        return result


# =============================================================================
# INOTIFY ADAPTER (Linux)
# =============================================================================


def translate_inotify(event: "InotifyEvent") -> WatchEvent:
    """Map a raw inotify event onto a WatchEvent for the watch folder."""
    if event.is_close_write:
        kind = EventKind.CLOSE_WRITE
    elif event.is_moved_to:
        kind = EventKind.MOVED_TO
    elif event.is_moved_from:
        kind = EventKind.MOVED_FROM
    elif event.is_create:
        kind = EventKind.CREATED
    elif event.is_delete:
        kind = EventKind.DELETED
    elif event.is_modify:
        kind = EventKind.MODIFIED
    else:
        kind = EventKind.OTHER

    # Folders are never acted on
    if event.is_directory and kind in RELEVANT_KINDS:
        kind = EventKind.OTHER

    name = os.path.basename(os.fsdecode(event.src_path))
    return WatchEvent(kind, name or None)


def _read_inotify(buffer: "InotifyBuffer", watch_dir: Path) -> Iterator[WatchEvent]:
    try:
        while True:
            event = buffer.read_event()
            if event is None:
                logger.warning("Inotify reader stopped")
                return

            # A rename inside the folder arrives as a (from, to) pair
            if isinstance(event, tuple):
                event = event[1]

            if event.is_delete_self or event.is_ignored:
                logger.warning(f"Watch folder removed: {watch_dir}")
                return

            yield translate_inotify(event)
    finally:
        buffer.close()


# =============================================================================
# WATCHDOG ADAPTER (other platforms)
# =============================================================================


class InboxHandler(FileSystemEventHandler):
    """
    File system event handler for the watch folder.

    Translates watchdog events into WatchEvents and queues them; all real
    work happens on the thread reading the queue.
    """

    def __init__(self, watch_dir: Path, events: "queue.Queue[Optional[WatchEvent]]"):
        super().__init__()
        self.watch_dir = watch_dir
        self.events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type == EVENT_TYPE_DELETED and Path(event.src_path) == self.watch_dir:
            logger.warning(f"Watch folder removed: {self.watch_dir}")
            self.events.put(None)
            return

        self.events.put(self.translate(event))

    def translate(self, event: FileSystemEvent) -> WatchEvent:
        """Map a watchdog event onto a WatchEvent for the watch folder."""
        src_path = Path(event.src_path)

        if event.event_type == EVENT_TYPE_MOVED:
            dest_path = Path(event.dest_path)
            if dest_path.parent != self.watch_dir:
                return WatchEvent(EventKind.MOVED_FROM, src_path.name)
            kind, name = EventKind.MOVED_TO, dest_path.name
        else:
            kinds = {
                EVENT_TYPE_CLOSED: EventKind.CLOSE_WRITE,
                EVENT_TYPE_CREATED: EventKind.CREATED,
                EVENT_TYPE_DELETED: EventKind.DELETED,
                EVENT_TYPE_MODIFIED: EventKind.MODIFIED,
            }
            kind, name = kinds.get(event.event_type, EventKind.OTHER), src_path.name

        # Folders are never acted on
        if event.is_directory and kind in RELEVANT_KINDS:
            kind = EventKind.OTHER

        return WatchEvent(kind, name or None)


def watch_events(watch_dir: Path, poll_seconds: float = config.EVENT_POLL_SECONDS) -> Iterator[WatchEvent]:
    """
    Register a watch on watch_dir and return its events in arrival order.

    On Linux the raw inotify masks are read, so a file moved in from another
    folder arrives as MOVED_TO. Elsewhere a watchdog observer is used.
    The stream ends when the folder is removed or the reader stops.

    Raises:
        OSError: If the watch cannot be registered
    """
    if sys.platform.startswith("linux"):
        from watchdog.observers.inotify_buffer import InotifyBuffer

        buffer = InotifyBuffer(os.fsencode(str(watch_dir)), recursive=False)
        logger.info(f"Watching directory for file events: watch_dir={watch_dir}")
        return _read_inotify(buffer, watch_dir)

    events: "queue.Queue[Optional[WatchEvent]]" = queue.Queue()
    observer = Observer()
    observer.schedule(InboxHandler(watch_dir, events), str(watch_dir), recursive=False)
    observer.start()
    logger.info(f"Watching directory for file events: watch_dir={watch_dir}")
    return _read_observer(observer, events, poll_seconds)


def _read_observer(
    observer: Observer, events: "queue.Queue[Optional[WatchEvent]]", poll_seconds: float
) -> Iterator[WatchEvent]:
    try:
        while True:
            try:
                event = events.get(timeout=poll_seconds)
            except queue.Empty:
                if not observer.is_alive():
                    logger.warning("Observer stopped")
                    return
                continue

            if event is None:
                return
            yield event
    finally:
        observer.stop()
        observer.join()


def run(cfg: Config) -> None:
    """
    Run the inbox watcher until the watch folder goes away.

    Args:
        cfg: Loaded configuration
    """
    logger.info("=" * 60)
    logger.info("Inbox Folder Watcher")
    logger.info("=" * 60)
    logger.info(f"Base folder: {cfg.base_dir}")
    logger.info(f"Watch folder: {cfg.watch_dir}")
    logger.info(f"Rules loaded: {len(cfg.rules)}")
    logger.info("Press Ctrl+C to stop")
    logger.info("=" * 60)

    organizer = Organizer(cfg)
    try:
        organizer.run(watch_events(cfg.watch_dir))
    except KeyboardInterrupt:
        logger.info("Stopping watcher...")

    logger.info("Watcher stopped")
