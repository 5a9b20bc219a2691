"""
Actions applied to files that matched a rule.

Three actions are supported:
    move   - rename the file into a destination folder, resolving clashes
             with an existing file by skipping, overwriting or date-prefixing
    unzip  - extract a zip archive into a destination folder
    delete - remove the file

Only the first action of a matched rule is executed for each event.
"""

import logging
import os
import shutil
import stat
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

from . import utils

logger = logging.getLogger(__name__)

# ZipInfo.create_system value for archives written on Unix
ZIP_SYSTEM_UNIX = 3


class DuplicateStrategy(str, Enum):
    """What to do when a move target already exists."""

    RENAME_DATE = "rename-date"
    SKIP = "skip"
    OVERWRITE = "overwrite"


@dataclass(frozen=True)
class MoveAction:
    dest: str
    duplicate: DuplicateStrategy


@dataclass(frozen=True)
class UnzipAction:
    dest: str


@dataclass(frozen=True)
class DeleteAction:
    pass


Action = Union[MoveAction, UnzipAction, DeleteAction]


def describe_action(action: Action) -> str:
    """Short human-readable form of an action, used in logs and the CLI."""
    if isinstance(action, MoveAction):
        return f"move dest={action.dest} duplicate={action.duplicate.value}"
    if isinstance(action, UnzipAction):
        return f"unzip dest={action.dest}"
    return "delete"


class ActionExecutor:
    """
    Execute rule actions against files in the watch directory.

    All destination folders are resolved relative to base_dir. Move
    destinations are expected to exist already; unzip creates whatever
    folders the archive needs.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir

    def execute(self, rule, source: Path) -> Dict:
        """
        Run the first action of a matched rule against a file.

        Args:
            rule: The matched rule
            source: Full path of the file that triggered the event

        Returns dictionary with operation details:
        - action: 'move', 'unzip' or 'delete'
        - status: 'moved', 'skipped', 'extracted' or 'deleted'
        - from_path, to_path

        Raises:
            OSError, zipfile.BadZipFile: On any failure; nothing is rolled back
        """
        action = rule.actions[0]
        logger.info(f"Performing action: {describe_action(action)} filename={source.name}")

        if isinstance(action, MoveAction):
            return self.move(source, action)
        if isinstance(action, UnzipAction):
            return self.unzip(source, action)
        if isinstance(action, DeleteAction):
            return self.delete(source)
        raise TypeError(f"Unsupported action: {action!r}")

    def move(self, source: Path, action: MoveAction) -> Dict:
        """Move a file into base_dir/dest, honouring the duplicate strategy."""
        target = self.base_dir / action.dest / source.name
        result = {
            "action": "move",
            "status": "moved",
            "from_path": str(source),
            "to_path": str(target),
        }

        if not target.exists():
            source.rename(target)
        elif action.duplicate is DuplicateStrategy.SKIP:
            logger.info(f"Target exists, skipping move: filename={source.name} target={target}")
            result["status"] = "skipped"
            result["to_path"] = None
        elif action.duplicate is DuplicateStrategy.OVERWRITE:
            logger.info(f"Target exists, overwriting: filename={source.name} target={target}")
            source.replace(target)
        else:
            renamed = target.parent / utils.date_prefixed_name(source.name)
            logger.info(f"Target exists, renaming with date: filename={source.name} target={renamed}")
            source.rename(renamed)
            result["to_path"] = str(renamed)

        return result

    def unzip(self, source: Path, action: UnzipAction) -> Dict:
        """
        Extract a zip archive into base_dir/dest.

        Entries whose stored path would land outside the destination are
        skipped. The archive itself is left where it is.
        """
        dest = self.base_dir / action.dest

        with zipfile.ZipFile(source) as archive:
            for index, info in enumerate(archive.infolist()):
                relative = utils.enclosed_path(info.filename)
                if relative is None:
                    logger.warning(f"Skipping unsafe archive entry: file_index={index} name={info.filename!r}")
                    continue
                outpath = dest / relative

                if info.comment:
                    comment = info.comment.decode("utf-8", errors="replace")
                    logger.info(f"File comment: file_index={index} comment={comment}")

                if info.filename.endswith("/"):
                    logger.info(f"File extracted: file_index={index} destination={outpath}")
                    outpath.mkdir(parents=True, exist_ok=True)
                else:
                    logger.info(
                        f"File extracted: file_index={index} destination={outpath} "
                        f"file_size={info.file_size}"
                    )
                    outpath.parent.mkdir(parents=True, exist_ok=True)
                    with archive.open(info) as entry, open(outpath, "wb") as outfile:
                        shutil.copyfileobj(entry, outfile)

                mode = _unix_mode(info)
                if mode is not None and os.name == "posix":
                    os.chmod(outpath, mode)

        return {
            "action": "unzip",
            "status": "extracted",
            "from_path": str(source),
            "to_path": str(dest),
        }

    def delete(self, source: Path) -> Dict:
        source.unlink()
        return {
            "action": "delete",
            "status": "deleted",
            "from_path": str(source),
            "to_path": None,
        }


def _unix_mode(info: zipfile.ZipInfo) -> Optional[int]:
    """Permission bits recorded by an entry, if it was written on Unix."""
    if info.create_system != ZIP_SYSTEM_UNIX:
        return None
    mode = stat.S_IMODE(info.external_attr >> 16)
    return mode or None
