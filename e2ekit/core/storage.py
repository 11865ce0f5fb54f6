"""
Helpers for working with run artifact storage.

Artifacts (failure screenshots, ``step_log.jsonl``) live on the local
filesystem under ``ARTIFACT_ROOT/<run_id>``. Nothing is written unless a
caller asks for a run directory.
"""

import os
import re
from datetime import datetime, timezone
from typing import List

from e2ekit.core.config import get_settings


def new_run_id(name: str) -> str:
    """Build a filesystem-safe run id from a scenario name and the current time."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    return f"{safe_filename(name)}-{stamp}"


def safe_filename(value: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", value).strip("_")
    return cleaned[:120] or "artifact"


def get_run_dir(run_id: str) -> str:
    """Return the path to the directory used for a given run, creating it."""
    path = os.path.join(get_settings().ARTIFACT_ROOT, run_id)
    os.makedirs(path, exist_ok=True)
    return path


def list_artifacts(run_dir: str) -> List[str]:
    """
    List the filenames of artifacts stored in a run directory.

    :param run_dir: Directory returned by :func:`get_run_dir`
    :return: Sorted filenames, empty if the directory does not exist
    """
    if not os.path.isdir(run_dir):
        return []
    return sorted(f for f in os.listdir(run_dir) if os.path.isfile(os.path.join(run_dir, f)))


def artifact_path(run_dir: str, filename: str) -> str:
    """Construct a path to a specific artifact file inside ``run_dir``."""
    return os.path.join(run_dir, safe_filename(filename))
