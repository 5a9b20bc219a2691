"""
Rule matching.

Rules are checked in the order they are declared. A rule applies to a file
when its regex is found anywhere in the filename and, if it has a minimum
size, the file is strictly larger than that size. The first rule that
applies wins.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .actions import Action
from .sizes import SizeMatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    pattern: re.Pattern
    actions: Tuple[Action, ...]
    min_size: Optional[str] = None

    def matches_name(self, file_name: str) -> bool:
        return self.pattern.search(file_name) is not None


class RuleMatcher:
    """Select the first eligible rule for a file in a directory."""

    def __init__(
        self,
        rules: Sequence[Rule],
        directory: Path,
        size_matcher: Optional[SizeMatcher] = None,
    ):
        self.rules = list(rules)
        self.directory = directory
        self.size_matcher = size_matcher or SizeMatcher()

    def select(self, file_name: str) -> Optional[Rule]:
        """
        Find the first rule that applies to a file.

        Args:
            file_name: Name of a file inside the matcher's directory

        Returns:
            The matching rule, or None if no rule applies

        Raises:
            OSError: If the file's size is needed and it can no longer be read
            SizeParseError: If a matching rule has a malformed minimum size
        """
        for rule in self.rules:
            if not rule.matches_name(file_name):
                logger.debug(f"Rule regex did not match file: regex={rule.pattern.pattern} filename={file_name}")
                continue

            logger.debug(f"Rule matched regex for file: regex={rule.pattern.pattern} filename={file_name}")

            if rule.min_size is not None:
                file_size = (self.directory / file_name).stat().st_size
                if not self.size_matcher.exceeds(file_size, rule.min_size):
                    logger.info(
                        f"File is not larger than the minimum size for this rule - skipping rule: "
                        f"filename={file_name} file_size={file_size} min_size={rule.min_size}"
                    )
                    continue

            return rule

        return None
