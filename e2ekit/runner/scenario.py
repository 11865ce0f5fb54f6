"""
Loading of standalone scenario files.

Named scenarios normally live in ``web.config.json``. A scenario can
also be kept in its own JSON or YAML file, which is what ``python -m
e2ekit run-file`` consumes::

    base_url: https://staging.example.com
    steps:
      - action: goto
        target: /
      - action: expect-visible
        target: body
"""

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List

import yaml

from e2ekit.runner.errors import ConfigError


@dataclass
class Scenario:
    name: str
    # empty means "use the web config base URL"
    base_url: str
    steps: List[Dict[str, Any]]
    # extra top-level keys, kept for callers that want them
    config: Dict[str, Any]


def load_scenario(path: str) -> Scenario:
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()

    ext = os.path.splitext(path)[1].lower()
    try:
        if ext == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"{path}: cannot parse scenario file ({e})") from e

    if isinstance(data, list):
        data = {"steps": data}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: scenario must be an object with 'steps' or a list of steps")

    steps = data.get("steps") or []
    if not isinstance(steps, list):
        raise ConfigError(f"{path}: 'steps' must be a list")
    name = str(data.get("name") or os.path.splitext(os.path.basename(path))[0])
    base_url = str(data.get("base_url") or data.get("baseUrl") or "")
    config = {k: v for k, v in data.items() if k not in ("name", "base_url", "baseUrl", "steps")}
    return Scenario(name=name, base_url=base_url, steps=list(steps), config=config)
