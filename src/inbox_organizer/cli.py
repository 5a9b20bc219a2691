"""
Command-line interface for Inbox Organizer.

Provides the watcher entry point plus commands to check a rules file and
show what it points at.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config

logger = logging.getLogger("inbox_organizer")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="inbox-organizer",
        description="Watch a folder and move, unzip or delete new files by rule",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Watcher
    watch_parser = subparsers.add_parser("watch", help="Watch the inbox folder and apply rules")
    watch_parser.add_argument("--config", "-c", type=Path, default=config.DEFAULT_CONFIG_FILE, help="Rules file")
    watch_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Check
    check_parser = subparsers.add_parser("check", help="Validate a rules file")
    check_parser.add_argument("--config", "-c", type=Path, default=config.DEFAULT_CONFIG_FILE, help="Rules file")

    # Status
    status_parser = subparsers.add_parser("status", help="Show organizer status")
    status_parser.add_argument("--config", "-c", type=Path, default=config.DEFAULT_CONFIG_FILE, help="Rules file")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    from .loader import ConfigError, load_config

    if args.command == "watch":
        from . import utils
        from . import watcher

        utils.setup_logging("inbox_organizer", args.verbose)
        try:
            cfg = load_config(args.config)
        except ConfigError as e:
            logger.error(f"Failed to load config: {e}")
            return 1

        try:
            watcher.run(cfg)
        except OSError as e:
            logger.error(f"Failed to watch {cfg.watch_dir}: {e}")
            return 1
        return 0

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        print(f"Config error: {e}")
        return 1

    if args.command == "check":
        return print_check(cfg)

    if args.command == "status":
        print_status(cfg)
        return 0

    parser.print_help()
    return 1


def print_check(cfg) -> int:
    """Print each rule and report size thresholds that do not parse."""
    from .actions import describe_action
    from .sizes import SizeMatcher, SizeParseError

    sizes = SizeMatcher()
    problems = 0

    print(f"Rules ({len(cfg.rules)}):")
    for index, rule in enumerate(cfg.rules):
        line = f"  [{index}] /{rule.pattern.pattern}/ -> {describe_action(rule.actions[0])}"
        if rule.min_size is not None:
            line += f" (larger than {rule.min_size})"
        print(line)

        if len(rule.actions) > 1:
            print(f"      note: {len(rule.actions) - 1} further action(s) ignored")

        if rule.min_size is not None:
            try:
                sizes.parse(rule.min_size)
            except SizeParseError as e:
                print(f"      error: {e}")
                problems += 1

    if problems:
        print(f"\n{problems} problem(s) found")
        return 1

    print("\nConfig OK")
    return 0


def print_status(cfg) -> None:
    """Print current organizer status."""
    from .actions import MoveAction, UnzipAction

    print("=" * 50)
    print("Inbox Organizer Status")
    print("=" * 50)

    print(f"\nBase folder: {cfg.base_dir}")
    print(f"  Exists: {cfg.base_dir.exists()}")

    print(f"\nWatch folder: {cfg.watch_dir}")
    print(f"  Exists: {cfg.watch_dir.exists()}")
    if cfg.watch_dir.is_dir():
        pending = sum(1 for p in cfg.watch_dir.iterdir() if p.is_file())
        print(f"  Files pending: {pending}")

    print(f"\nRules: {len(cfg.rules)}")
    destinations = []
    for rule in cfg.rules:
        action = rule.actions[0]
        if isinstance(action, (MoveAction, UnzipAction)) and action.dest not in destinations:
            destinations.append(action.dest)

    for dest in destinations:
        print(f"  {cfg.base_dir / dest}: {'exists' if (cfg.base_dir / dest).is_dir() else 'MISSING'}")

    print("=" * 50)


if __name__ == "__main__":
    sys.exit(main())
