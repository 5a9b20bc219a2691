r"""
Rules file loading.

Rules file format (YAML):

    baseDir: /srv/nas
    watchDir: downloads
    rules:
      - regex: '\.zip$'
        actions:
          - unzip: { dest: extracted }
      - regex: '\.iso$'
        minSize: 500m
        actions:
          - move: { dest: isos, duplicate: rename-date }
      - regex: '\.tmp$'
        actions:
          - delete

Actions are single-key mappings, except delete which may be a bare string.
Size thresholds are kept as strings and checked when a file is matched.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Tuple

import yaml

from .actions import Action, DeleteAction, DuplicateStrategy, MoveAction, UnzipAction
from .rules import Rule

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the rules file cannot be read or is invalid."""


@dataclass(frozen=True)
class Config:
    base_dir: Path
    watch_dir: Path
    rules: Tuple[Rule, ...]


def load_config(path: Path) -> Config:
    """
    Load and validate a rules file.

    Args:
        path: Path to the YAML rules file

    Returns:
        Parsed configuration

    Raises:
        ConfigError: If the file is missing, not valid YAML, or not a valid config
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    return parse_config(data)


def parse_config(data: Any) -> Config:
    """Build a Config from already-parsed YAML data."""
    if not isinstance(data, Mapping):
        raise ConfigError("Config must be a mapping with baseDir, watchDir and rules")

    for key in ("baseDir", "watchDir", "rules"):
        if key not in data:
            raise ConfigError(f"Missing required key '{key}'")

    if not isinstance(data["baseDir"], str) or not isinstance(data["watchDir"], str):
        raise ConfigError("'baseDir' and 'watchDir' must be strings")

    raw_rules = data["rules"]
    if not isinstance(raw_rules, list):
        raise ConfigError("'rules' must be a list")

    base_dir = Path(data["baseDir"]).expanduser()
    watch_dir = base_dir / data["watchDir"]
    rules = tuple(_parse_rule(index, raw) for index, raw in enumerate(raw_rules))

    return Config(base_dir=base_dir, watch_dir=watch_dir, rules=rules)


def _parse_rule(index: int, raw: Any) -> Rule:
    where = f"rules[{index}]"

    if not isinstance(raw, Mapping):
        raise ConfigError(f"{where}: rule must be a mapping")

    regex = raw.get("regex")
    if not isinstance(regex, str):
        raise ConfigError(f"{where}: 'regex' must be a string")
    try:
        pattern = re.compile(regex)
    except re.error as e:
        raise ConfigError(f"{where}: invalid regex {regex!r}: {e}") from e

    min_size = raw.get("minSize")
    if min_size is not None:
        # YAML reads a bare "500" as an int
        min_size = str(min_size)

    raw_actions = raw.get("actions")
    if not isinstance(raw_actions, list) or not raw_actions:
        raise ConfigError(f"{where}: 'actions' must be a non-empty list")

    actions = tuple(_parse_action(f"{where}.actions[{i}]", a) for i, a in enumerate(raw_actions))
    if len(actions) > 1:
        logger.warning(f"{where}: {len(actions)} actions configured, only the first is executed (regex={regex})")

    return Rule(pattern=pattern, actions=actions, min_size=min_size)


def _parse_action(where: str, raw: Any) -> Action:
    if raw == "delete":
        return DeleteAction()

    if not isinstance(raw, Mapping) or len(raw) != 1:
        raise ConfigError(f"{where}: action must be 'delete' or a single-key mapping")

    (kind, params), = raw.items()

    if kind == "delete":
        return DeleteAction()

    if not isinstance(params, Mapping) or not isinstance(params.get("dest"), str):
        raise ConfigError(f"{where}: '{kind}' requires a 'dest' string")

    if kind == "unzip":
        return UnzipAction(dest=params["dest"])

    if kind == "move":
        duplicate = params.get("duplicate")
        try:
            strategy = DuplicateStrategy(duplicate)
        except ValueError:
            choices: List[str] = [s.value for s in DuplicateStrategy]
            raise ConfigError(f"{where}: 'duplicate' must be one of {choices}, got {duplicate!r}") from None
        return MoveAction(dest=params["dest"], duplicate=strategy)

    raise ConfigError(f"{where}: unknown action '{kind}'")
