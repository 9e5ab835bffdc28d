"""Run plumbing shared by the CLI: log setup, species file naming, run manifests."""

from __future__ import annotations

import hashlib
import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Iterable

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILE_NAME = "rangemap.log"

# Vector readers and the plotting stack log every file open at DEBUG.
_QUIET_LOGGERS = ("fiona", "pyogrio", "matplotlib", "PIL")


def setup_logging(logs_dir: Path | None = None, verbose: bool = False) -> Path | None:
    """Log to the console and, when ``logs_dir`` is given, to ``rangemap.log`` inside it.

    Returns the log file path, if any.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file: Path | None = None
    if logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / LOG_FILE_NAME
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    for noisy in _QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return log_file


def ensure_directories(paths: Iterable[Path]) -> None:
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def slugify(name: str) -> str:
    """Species identity used for queue ids and output file stems.

    >>> slugify("  Sri Lankan  Leopard ")
    'sri_lankan_leopard'
    """
    return "_".join(name.lower().split())


def run_manifest_path(manifests_dir: Path, command: str) -> Path:
    """Manifest file for a CLI command, e.g. ``run-queue`` -> ``queue_run.json``."""
    stem = command.removeprefix("run-").replace("-", "_")
    return manifests_dir / f"{stem}_run.json"


def write_json(path: Path, payload: Any) -> None:
    """Write ``payload`` as sorted, indented JSON, replacing ``path`` in one step."""
    path.parent.mkdir(parents=True, exist_ok=True)
    partial = path.with_name(path.name + ".part")
    with partial.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, sort_keys=True, ensure_ascii=False)
        fh.write("\n")
    partial.replace(path)


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def detect_git_commit(cwd: Path) -> str | None:
    """Commit of the checkout holding the config, or None outside a git work tree."""
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=True,
        )
    except (FileNotFoundError, subprocess.CalledProcessError):
        return None
    return proc.stdout.strip() or None


def run_provenance(config_path: Path, root_dir: Path) -> tuple[str, str | None]:
    """Config hash and git commit recorded in every run manifest."""
    return sha256_file(config_path), detect_git_commit(root_dir)
