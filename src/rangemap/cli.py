"""CLI entrypoint for the species range map builder."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from .config import AppConfig, load_config
from .intake import IntakeRequest, batch_add, format_intake_lines
from .io_data import SpeciesDataRepository
from .models import BuildErr, PhotoRef, RunManifest, SpeciesJob
from .pipeline import BuildPipeline, PipelineSettings
from .queue import QueueRunner, build_queue_items, format_queue_lines, load_jobs, record_statuses
from .render import MapRenderer
from .util import ensure_directories, run_manifest_path, run_provenance, setup_logging, slugify, write_json

LOGGER = logging.getLogger("rangemap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rangemap",
        description="Species range map builder.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    def add_species_fields(p: argparse.ArgumentParser, *, required: bool) -> None:
        p.add_argument("--common-name", required=required, help="Common name, e.g. 'Sri Lankan Leopard'.")
        p.add_argument("--scientific-name", required=required, help="Scientific name.")
        p.add_argument("--photo", default=None, help="Species photo (JPG/PNG).")
        p.add_argument("--photo-credit", default="", help="Photo credit line.")
        p.add_argument("--palette", default="jungle", help="Palette name.")

    build_p = subparsers.add_parser("build", help="Build one species map from flags.")
    add_common(build_p)
    add_species_fields(build_p, required=True)
    build_p.add_argument("--range", required=True, help="Range shapefile or directory holding one.")
    build_p.add_argument("--output", default=None, help="Output file (default: outputs_dir naming).")

    queue_p = subparsers.add_parser("run-queue", help="Build every species in the queue CSV.")
    add_common(queue_p)
    queue_p.add_argument(
        "--force-rebuild",
        action="store_true",
        help="Rebuild maps even when the output file already exists.",
    )
    queue_p.add_argument(
        "--species",
        action="append",
        default=[],
        help="Common name filter. Can be repeated.",
    )

    add_p = subparsers.add_parser("add-species", help="Unpack a range archive and add it to the queue.")
    add_common(add_p)
    add_species_fields(add_p, required=False)
    add_p.add_argument("--range", default=None, help="Range .zip archive, .shp file or directory.")
    add_p.add_argument("--continent", default="", help="Continent note stored in the queue.")
    add_p.add_argument("--iucn-status", default="", help="IUCN status stored in the queue.")
    add_p.add_argument(
        "--batch",
        default=None,
        help="YAML list of species entries (common_name, scientific_name, range, photo, ...).",
    )

    plan_p = subparsers.add_parser("plan", help="Print the layout plan of one queued species as JSON.")
    add_common(plan_p)
    plan_p.add_argument("--species", required=True, help="Common name of a queued species.")
    plan_p.add_argument("--output", default=None, help="Write the JSON here instead of stdout.")

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    setup_logging(cfg.paths.logs_dir, verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _make_pipeline(cfg: AppConfig) -> BuildPipeline:
    repository = SpeciesDataRepository(cfg.paths.base_layer, cfg.paths.inset_layer)
    renderer = MapRenderer(dpi=cfg.render.dpi, image_format=cfg.render.format)
    return BuildPipeline(PipelineSettings.from_config(cfg), repository, renderer)


def _resolve_arg_path(value: str) -> Path:
    path = Path(value)
    return path if path.is_absolute() else Path.cwd() / path


def _run_build(cfg: AppConfig, args: argparse.Namespace) -> int:
    photo = (
        PhotoRef(path=_resolve_arg_path(args.photo), credit=str(args.photo_credit))
        if args.photo
        else None
    )
    job = SpeciesJob(
        common_name=str(args.common_name).strip(),
        scientific_name=str(args.scientific_name).strip(),
        range_path=_resolve_arg_path(args.range),
        photo=photo,
        palette_key=str(args.palette),
    )
    output_path = (
        _resolve_arg_path(args.output) if args.output else cfg.output_path_for(job.slug)
    )
    result = _make_pipeline(cfg).build(job, output_path)
    if isinstance(result, BuildErr):
        LOGGER.error("Build failed: %s", json.dumps(result.error.to_error_dict()))
        return 1
    LOGGER.info("Map written to %s", result.output_path)
    return 0


def _select_jobs(jobs: Sequence[SpeciesJob], names: Sequence[str]) -> list[SpeciesJob]:
    requested = {slugify(name) for name in names if name and name.strip()}
    if not requested:
        return list(jobs)
    selected = [job for job in jobs if job.slug in requested]
    missing = requested - {job.slug for job in selected}
    for slug in sorted(missing):
        LOGGER.warning("Requested species not in queue: %s", slug)
    return selected


def _run_queue(cfg: AppConfig, *, force_rebuild: bool, species: Sequence[str]) -> int:
    try:
        jobs = load_jobs(cfg.paths.queue_csv, cfg.root_dir)
    except (FileNotFoundError, ValueError) as exc:
        LOGGER.error("Could not read queue: %s", exc)
        return 1
    jobs = _select_jobs(jobs, species)
    if not jobs:
        LOGGER.error("No species to build.")
        return 1

    items = build_queue_items(jobs, cfg.output_path_for)
    report = QueueRunner(_make_pipeline(cfg), force_rebuild=force_rebuild).run(items)
    for line in format_queue_lines(report):
        LOGGER.info(line)

    record_statuses(cfg.paths.queue_csv, report.items)
    config_hash, git_commit = run_provenance(cfg.source_path, cfg.root_dir)
    manifest = RunManifest.create(
        config_hash_sha256=config_hash,
        git_commit=git_commit,
        force_rebuild=force_rebuild,
        summary=report.summary,
        items=tuple(item.to_dict() for item in report.items),
    )
    manifest_path = run_manifest_path(cfg.paths.manifests_dir, "run-queue")
    write_json(manifest_path, manifest.to_dict())
    LOGGER.info("Run manifest written to %s", manifest_path)
    LOGGER.info("Queue complete: %s", report.summary_line)
    return 0 if report.ok else 1


def _load_batch(path: Path, root_dir: Path) -> list[IntakeRequest]:
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, list):
        raise ValueError(f"Batch file must be a YAML list of species entries: {path}")
    requests: list[IntakeRequest] = []
    for idx, entry in enumerate(raw, start=1):
        if not isinstance(entry, Mapping):
            raise ValueError(f"Batch entry {idx} is not a mapping")
        requests.append(IntakeRequest.from_mapping(entry, root_dir))
    return requests


def _intake_from_args(args: argparse.Namespace) -> IntakeRequest:
    raw: dict[str, Any] = {
        "common_name": args.common_name,
        "scientific_name": args.scientific_name,
        "range": args.range,
        "photo": args.photo,
        "photo_credit": args.photo_credit,
        "palette": args.palette,
        "continent": args.continent,
        "iucn_status": args.iucn_status,
    }
    return IntakeRequest.from_mapping(raw, Path.cwd())


def _run_add_species(cfg: AppConfig, args: argparse.Namespace) -> int:
    try:
        if args.batch:
            batch_path = _resolve_arg_path(args.batch)
            requests = _load_batch(batch_path, batch_path.parent)
        else:
            requests = [_intake_from_args(args)]
    except (OSError, ValueError) as exc:
        LOGGER.error("Invalid species input: %s", exc)
        return 1

    report = batch_add(
        requests,
        shapefile_root=cfg.paths.shapefile_root,
        photos_dir=cfg.paths.photos_dir,
        queue_csv=cfg.paths.queue_csv,
        root_dir=cfg.root_dir,
    )
    for line in format_intake_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_plan(cfg: AppConfig, *, species: str, output: str | None) -> int:
    try:
        jobs = _select_jobs(load_jobs(cfg.paths.queue_csv, cfg.root_dir), [species])
    except (FileNotFoundError, ValueError) as exc:
        LOGGER.error("Could not read queue: %s", exc)
        return 1
    if not jobs:
        return 1
    job = jobs[0]
    try:
        plan = _make_pipeline(cfg).plan(job)
    except Exception as exc:
        LOGGER.error("Planning failed for %s: %s", job.common_name, exc)
        return 1

    payload = plan.summary_dict()
    payload["output_path"] = str(cfg.output_path_for(job.slug))
    if output:
        out_path = _resolve_arg_path(output)
        write_json(out_path, payload)
        LOGGER.info("Plan written to %s", out_path)
    else:
        print(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False))
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "build":
        return _run_build(cfg, args)
    if command == "run-queue":
        species = [str(item) for item in args.species]
        return _run_queue(cfg, force_rebuild=bool(args.force_rebuild), species=species)
    if command == "add-species":
        if not args.batch and not (args.common_name and args.scientific_name and args.range):
            LOGGER.error("add-species needs --batch or --common-name, --scientific-name and --range.")
            return 2
        return _run_add_species(cfg, args)
    if command == "plan":
        return _run_plan(cfg, species=str(args.species), output=args.output)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
