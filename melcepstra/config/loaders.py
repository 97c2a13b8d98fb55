# melcepstra/config/loaders.py

"""
Loading and merging of melcepstra configuration sources.

Sources are collected lowest-precedence first and folded into one nested dict,
which is then validated by `MelcepstraConfig`.
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import toml
from pydantic import ValidationError

from .models import MelcepstraConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "MELCEPSTRA_"
USER_CONFIG_FILE = Path("~/.config/melcepstra/melcepstra.toml").expanduser()
PROJECT_CONFIG_FILE = Path("./melcepstra.toml")

# Field names contain underscores, so environment variables separate
# levels with a double underscore: MELCEPSTRA_PARAMETERS__MFCC__HOP_SIZE=128
ENV_NESTING_SEPARATOR = "__"

ConfigSource = Tuple[str, Dict[str, Any]]


def _read_toml(path: Path) -> Dict[str, Any]:
    """Parsed TOML content, or an empty dict if the file is absent or unreadable."""
    if not path.is_file():
        return {}
    try:
        return toml.load(str(path))
    except (toml.TomlDecodeError, OSError) as e:
        logger.warning(f"Ignoring config file '{path}': {e}")
        return {}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Nested merge; values from `override` win, sub-tables are merged key by key."""
    result = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _merge(current, value)
        else:
            result[key] = value
    return result


def _env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Nested dict built from MELCEPSTRA_* variables.

    Values stay strings; pydantic coerces them to each field's type
    ("128" -> 128, "true" -> True) during validation.
    """
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = [part for part in name[len(ENV_PREFIX):].lower().split(ENV_NESTING_SEPARATOR) if part]
        if not path:
            continue
        *parents, leaf = path
        node = overrides
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
    return overrides


def _collect_sources(
    config_files: Iterable[Path],
    use_project: bool,
    use_user: bool,
) -> List[ConfigSource]:
    # Lowest precedence first; among explicit files the first one listed wins
    sources: List[ConfigSource] = [(str(p), _read_toml(Path(p))) for p in reversed(list(config_files))]
    if use_project:
        sources.append((str(PROJECT_CONFIG_FILE.resolve()), _read_toml(PROJECT_CONFIG_FILE.resolve())))
    if use_user:
        sources.append((str(USER_CONFIG_FILE), _read_toml(USER_CONFIG_FILE)))
    sources.append(("environment", _env_overrides()))
    return sources


def load_configuration(
    config_files: Optional[List[Path]] = None,
    disable_project_config: bool = False,
    disable_user_config: bool = False,
) -> MelcepstraConfig:
    """
    Loads melcepstra configuration from defaults, files, and environment variables.

    Precedence (highest first):
    1. Environment Variables (MELCEPSTRA_*, '__' between levels)
    2. User Config File (~/.config/melcepstra/melcepstra.toml)
    3. Project Config File (./melcepstra.toml)
    4. Explicitly passed config files, earlier files first
    5. Internal Defaults (from the pydantic models)

    Returns:
        A validated MelcepstraConfig. If the merged settings do not validate,
        the error is logged and the defaults are returned instead.
    """
    merged: Dict[str, Any] = {}
    for label, settings in _collect_sources(config_files or [], not disable_project_config, not disable_user_config):
        if settings:
            logger.debug(f"Applying configuration from {label}: {settings}")
            merged = _merge(merged, settings)

    try:
        return MelcepstraConfig(**merged)
    except ValidationError as e:
        logger.error(f"Configuration validation failed:\n{e}")
        logger.warning("Falling back to default configuration due to validation errors.")
        return MelcepstraConfig()
