"""
Size thresholds for rule gating.

A rule may carry a ``minSize`` such as ``"500k"`` or ``"2GB"``. The string is
kept as written in the config and only resolved to bytes when a file is
checked against it, so a bad threshold fails the event that hits it rather
than the whole config.
"""

import re
from typing import Dict

SIZE_PATTERN = re.compile(r"^(?P<size>\d+)(?P<units>\w{0,2})\Z")

UNIT_MULTIPLIERS: Dict[str, int] = {
    "": 1,
    "b": 1,
    "B": 1,
    "k": 2 ** 10,
    "kb": 2 ** 10,
    "Kb": 2 ** 10,
    "KB": 2 ** 10,
    "m": 2 ** 20,
    "mb": 2 ** 20,
    "Mb": 2 ** 20,
    "MB": 2 ** 20,
    "g": 2 ** 30,
    "gb": 2 ** 30,
    "Gb": 2 ** 30,
    "GB": 2 ** 30,
    "t": 2 ** 40,
    "tb": 2 ** 40,
    "Tb": 2 ** 40,
    "TB": 2 ** 40,
}


class SizeParseError(ValueError):
    """Raised when a size threshold string cannot be resolved to bytes."""


class SizeMatcher:
    """Resolve size thresholds and compare file sizes against them."""

    def __init__(self, pattern: re.Pattern = SIZE_PATTERN):
        self.pattern = pattern

    def parse(self, threshold: str) -> int:
        """
        Resolve a threshold string to a byte count.

        Args:
            threshold: Digits followed by an optional unit, e.g. "10k"

        Returns:
            Threshold in bytes

        Raises:
            SizeParseError: If the string is malformed or the unit is unknown
        """
        match = self.pattern.match(threshold)
        if not match:
            raise SizeParseError(
                f"size comparison string [{threshold}] is not valid for regex [{self.pattern.pattern}]"
            )

        size = int(match.group("size"))
        units = match.group("units")

        if units not in UNIT_MULTIPLIERS:
            raise SizeParseError(f"unknown unit specification {units}")

        return size * UNIT_MULTIPLIERS[units]

    def exceeds(self, file_size: int, threshold: str) -> bool:
        """Return True only if file_size is strictly larger than the threshold."""
        return file_size > self.parse(threshold)
