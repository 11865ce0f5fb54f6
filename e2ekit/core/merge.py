"""
Deep merging of on-disk JSON overrides over built-in defaults.

Both ``web.config.json`` and ``auth.config.json`` are optional. When
present they only need to carry the keys that differ from the defaults:
nested objects are merged key by key, everything else (including
arrays) replaces the default wholesale.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from loguru import logger

from e2ekit.runner.errors import ConfigError


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Return a new dict with ``override`` merged over ``base``.

    Keys absent from the override keep their default. A JSON ``null``
    is a value like any other and replaces the default, which is how an
    override file clears an optional field. Neither input is mutated.
    """
    output: dict[str, Any] = dict(base)
    if not override:
        return output
    for key, value in override.items():
        if isinstance(value, Mapping):
            current = base.get(key)
            output[key] = deep_merge(current if isinstance(current, Mapping) else {}, value)
        else:
            output[key] = value
    return output


def config_dir(directory: str | os.PathLike[str] | None = None) -> Path:
    if directory:
        return Path(directory)
    return Path.cwd()


def load_override_file(filename: str, directory: str | os.PathLike[str] | None = None) -> dict[str, Any]:
    """
    Read ``filename`` from ``directory`` (default: cwd).

    :return: The parsed object, or ``{}`` when the file does not exist
    :raises ConfigError: If the file is not valid JSON or not an object
    """
    path = config_dir(directory) / filename
    if not path.exists():
        logger.debug("No override file at {}, using defaults", path)
        return {}

    raw = path.read_text(encoding="utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a JSON object, got {type(data).__name__}")

    logger.debug("Loaded override file {} ({} keys)", path, len(data))
    return data
