import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path

from docintake.boundaries.separator import BoundarySeparator
from docintake.config.settings import Settings
from docintake.database.connection import close_pool, init_pool
from docintake.database.repositories.job_repository import JobRepository
from docintake.logging.logger import Log
from docintake.pipeline.builder import build_boundary_detector, build_pipeline, build_type_registry
from docintake.storage.factory import BlobSourceFactory
from docintake.worker.job_runner import JobRunner
from docintake.worker.worker import Worker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docintake", description="Document intake worker")
    subcommands = parser.add_subparsers(dest="command")

    subcommands.add_parser("worker", help="Poll the job queue and process documents (default)")

    process = subcommands.add_parser("process", help="Process one document now")
    process.add_argument("document_id")
    process.add_argument("--level", type=int, default=4, choices=range(1, 5))
    process.add_argument("--reprocess", action="store_true")

    analyze = subcommands.add_parser(
        "analyze", help="Detect the documents contained in a local PDF"
    )
    analyze.add_argument("pdf_path", type=Path)
    analyze.add_argument(
        "--output-dir", type=Path, help="Write each detected document to this directory"
    )
    analyze.add_argument("--include-text", action="store_true")

    subcommands.add_parser("types", help="List the supported document types")
    return parser


async def run_worker(settings: Settings) -> None:
    """Initialize pool -> build dependencies -> start worker loop."""
    await init_pool(settings)
    blob_source = BlobSourceFactory.create(settings)
    try:
        pipeline = build_pipeline(settings, blob_source)
        job_repo = JobRepository(settings.max_job_attempts)
        job_runner = JobRunner(pipeline, job_repo, settings)
        worker = Worker(job_repo, job_runner, settings)
        await worker.run()
    finally:
        await blob_source.aclose()
        await close_pool()


async def run_process(settings: Settings, document_id: str, level: int, reprocess: bool) -> int:
    await init_pool(settings)
    blob_source = BlobSourceFactory.create(settings)
    try:
        pipeline = build_pipeline(settings, blob_source)
        result = await pipeline.process_document(document_id, level=level, reprocess=reprocess)
    finally:
        await blob_source.aclose()
        await close_pool()
    _print_json(asdict(result))
    return 0 if result.success else 1


async def run_analyze(
    settings: Settings, pdf_path: Path, output_dir: Path | None, include_text: bool
) -> int:
    detector = build_boundary_detector(settings)
    result = await detector.analyze(pdf_path.read_bytes(), pdf_path.name)
    payload = result.to_dict(include_text=include_text)
    if output_dir is not None:
        separation = BoundarySeparator().write_segments(result, pdf_path.name, output_dir)
        payload["output_files"] = [str(path) for path in separation.output_files]
        payload["log_file"] = str(separation.log_file) if separation.log_file else None
        payload["errors"] = separation.errors
    _print_json(payload)
    return 0 if result.segments else 1


def run_types(settings: Settings) -> int:
    type_registry = build_type_registry(settings)
    configs = [type_registry.get_config(name) for name in type_registry.get_supported_types()]
    _print_json(
        {
            "using_fallback": type_registry.using_fallback,
            "document_types": [asdict(config) for config in configs if config is not None],
        }
    )
    return 0


def _print_json(payload: object) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False, default=str) + "\n")


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse the command, configure logging, run it."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    try:
        if args.command == "process":
            return asyncio.run(
                run_process(settings, args.document_id, args.level, args.reprocess)
            )
        if args.command == "analyze":
            return asyncio.run(
                run_analyze(settings, args.pdf_path, args.output_dir, args.include_text)
            )
        if args.command == "types":
            return run_types(settings)
        asyncio.run(run_worker(settings))
    except KeyboardInterrupt:
        Log.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
