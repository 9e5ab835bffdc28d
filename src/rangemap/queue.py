"""Species job queue: CSV persistence and the batch runner."""

from __future__ import annotations

import csv
import logging
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence

from .models import BuildErr, BuildOk, QueueItem, QueueStatus, SpeciesJob

_LOGGER = logging.getLogger("rangemap.queue")

QUEUE_COLUMNS = (
    "common_name",
    "scientific_name",
    "shapefile_path",
    "photo_path",
    "photo_credit",
    "palette_type",
    "continent",
    "iucn_status",
    "status",
)

_RULE = "=" * 54


def read_queue_rows(path: Path) -> list[dict[str, str]]:
    if not path.exists():
        raise FileNotFoundError(f"Queue file not found: {path}")
    with path.open("r", encoding="utf-8", newline="") as fh:
        reader = csv.DictReader(fh)
        header = reader.fieldnames or []
        missing = [
            col for col in ("common_name", "scientific_name", "shapefile_path") if col not in header
        ]
        if missing:
            raise ValueError(f"Queue file {path} is missing columns: {', '.join(missing)}")
        return [{key: (value or "") for key, value in row.items() if key is not None} for row in reader]


def write_queue_rows(path: Path, rows: Iterable[Mapping[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=list(QUEUE_COLUMNS), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({col: row.get(col, "") or "" for col in QUEUE_COLUMNS})


def load_jobs(path: Path, root_dir: Path) -> list[SpeciesJob]:
    """Parse every queue row into a job; malformed rows raise ``ValueError``."""
    jobs: list[SpeciesJob] = []
    for idx, row in enumerate(read_queue_rows(path), start=1):
        try:
            jobs.append(SpeciesJob.from_row(row, root_dir))
        except ValueError as exc:
            raise ValueError(f"Invalid queue row {idx} in {path}: {exc}") from exc
    return jobs


def upsert_queue_row(path: Path, row: Mapping[str, Any]) -> int:
    """Append ``row``, replacing any existing row with the same common name."""
    rows = read_queue_rows(path) if path.exists() else []
    name = str(row.get("common_name", "")).strip()
    kept = [existing for existing in rows if existing.get("common_name", "").strip() != name]
    if len(kept) != len(rows):
        _LOGGER.warning("  Already in queue, updating row: %s", name)
    kept.append({col: str(row.get(col, "") or "") for col in QUEUE_COLUMNS})
    write_queue_rows(path, kept)
    return len(kept)


def record_statuses(path: Path, items: Sequence[QueueItem]) -> None:
    """Write the terminal status of each item back to the queue file."""
    by_name = {item.inputs.common_name: item.status.value for item in items}
    rows = read_queue_rows(path)
    for row in rows:
        status = by_name.get(row.get("common_name", "").strip())
        if status is not None:
            row["status"] = status
    write_queue_rows(path, rows)


def build_queue_items(
    jobs: Sequence[SpeciesJob],
    output_path_for: Callable[[str], Path],
) -> list[QueueItem]:
    return [
        QueueItem(id=job.slug, inputs=job, output_path=output_path_for(job.slug))
        for job in jobs
    ]


@dataclass(slots=True)
class QueueReport:
    items: list[QueueItem] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def count(self, status: QueueStatus) -> int:
        return sum(1 for item in self.items if item.status is status)

    @property
    def summary(self) -> dict[str, int]:
        return {
            "total": len(self.items),
            "built": self.count(QueueStatus.BUILT),
            "skipped": self.count(QueueStatus.SKIPPED),
            "failed": self.count(QueueStatus.FAILED),
        }

    @property
    def summary_line(self) -> str:
        counts = self.summary
        return f"{counts['built']} built, {counts['skipped']} skipped, {counts['failed']} failed"

    def failed_items(self) -> list[QueueItem]:
        return [item for item in self.items if item.status is QueueStatus.FAILED]

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "items": [item.to_dict() for item in self.items],
            "warnings": list(self.warnings),
        }


class QueueRunner:
    """Run the build pipeline over queue items, one at a time.

    Items whose output already exists are skipped unless ``force_rebuild`` is
    set. A failed item is recorded and the run moves on.
    """

    def __init__(self, pipeline: Any, *, force_rebuild: bool = False) -> None:
        self.pipeline = pipeline
        self.force_rebuild = force_rebuild

    def run(self, items: Sequence[QueueItem]) -> QueueReport:
        report = QueueReport()
        total = len(items)
        _LOGGER.info(_RULE)
        _LOGGER.info("  Species Map Queue: %d species", total)
        _LOGGER.info(_RULE)

        for idx, item in enumerate(items, start=1):
            name = item.inputs.common_name
            if item.output_path.exists() and not self.force_rebuild:
                _LOGGER.info("[%d/%d] %s already built, skipping", idx, total, name)
                report.items.append(replace(item, status=QueueStatus.SKIPPED))
                continue

            _LOGGER.info("[%d/%d] Building: %s", idx, total, name)
            t0 = time.perf_counter()
            result = self.pipeline.build(item.inputs, item.output_path)
            elapsed = time.perf_counter() - t0
            if isinstance(result, BuildOk):
                report.items.append(replace(item, status=QueueStatus.BUILT))
                _LOGGER.info("[%d/%d] built %s in %.2fs", idx, total, name, elapsed)
                if result.plan is not None:
                    report.warnings.extend(f"{name}: {msg}" for msg in result.plan.warnings)
            elif isinstance(result, BuildErr):
                report.items.append(replace(item, status=QueueStatus.FAILED, error=result.error))
                report.add_error(f"{name}: {result.error.message}")
            else:
                raise TypeError(f"Unexpected build result for {name}: {result!r}")

        report.add_info(f"Queue complete: {report.summary_line}")
        return report


def format_queue_lines(report: QueueReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    for item in report.failed_items():
        message = item.error.message if item.error is not None else "unknown error"
        stage = f" [{item.error.stage}]" if item.error is not None and item.error.stage else ""
        lines.append(f"[ERROR] {item.inputs.common_name}{stage}: {message}")
    if report.ok:
        lines.append("[OK] Queue completed with no failures.")
    return lines
