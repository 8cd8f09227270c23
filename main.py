"""CLI entry point for the site-migration URL verifier."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from migration_verifier.core.config import RunConfig, Settings
from migration_verifier.core.db import init_db
from migration_verifier.core.errors import VerifierError
from migration_verifier.core.lifecycle import progress_percent
from migration_verifier.core.schemas import JobDetail, JobStatus
from migration_verifier.core.store import SQLiteJobStore
from migration_verifier.pipeline.jobs import rerun_job, start_job, submit_job, wait_for_job
from migration_verifier.pipeline.prober import build_client
from migration_verifier.reporting.export import EXPORT_FORMATS, export_filename, render

DEFAULT_CONFIG = "config/settings.yaml"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Site-migration verifier - check source URL paths against a new domain",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to settings YAML file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- run ---
    run_parser = subparsers.add_parser("run", help="Verify a URL list against a new domain")
    run_parser.add_argument(
        "--urls",
        required=True,
        help="File with one source URL per line ('-' for stdin)",
    )
    run_parser.add_argument("--domain", required=True, help="Target domain, e.g. https://new.example")
    run_parser.add_argument("--name", help="Display name for the job")
    run_parser.add_argument(
        "--no-follow-redirects",
        dest="follow_redirects",
        action="store_false",
        default=None,
        help="Do not auto-follow redirects",
    )
    run_parser.add_argument("--max-concurrency", type=int, help="URLs checked in parallel per slice")
    run_parser.add_argument("--retry-attempts", type=int, help="Max attempts per URL on network failure")
    run_parser.add_argument("--timeout", type=float, dest="timeout_seconds", help="Per-request timeout (seconds)")

    # --- list / show / rerun / delete ---
    subparsers.add_parser("list", help="List jobs with their summaries")

    show_parser = subparsers.add_parser("show", help="Show a job and its results")
    show_parser.add_argument("job_id")

    rerun_parser = subparsers.add_parser("rerun", help="Run a job again with the same parameters")
    rerun_parser.add_argument("job_id")

    delete_parser = subparsers.add_parser("delete", help="Delete a job and its results")
    delete_parser.add_argument("job_id")

    # --- export ---
    export_parser = subparsers.add_parser("export", help="Export a job's results")
    export_parser.add_argument("job_id")
    export_parser.add_argument("--format", choices=EXPORT_FORMATS, default="json")
    export_parser.add_argument(
        "--output",
        help="Output file (default: url-comparison-<job id>.<format>; '-' for stdout)",
    )

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def load_settings(path: str) -> Settings:
    """Load settings; the default path may be absent, an explicit one may not."""
    if path == DEFAULT_CONFIG and not Path(path).exists():
        return Settings()
    return Settings.from_yaml(path)


def read_urls(path: str) -> list[str]:
    """Read one URL per line, skipping blanks and '#' comments."""
    text = sys.stdin.read() if path == "-" else Path(path).read_text()
    return [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


def print_progress(detail: JobDetail) -> None:
    job = detail.job
    print(
        f"  [{job.status.value}] {job.completed_urls}/{job.total_urls} "
        f"({progress_percent(job):.0f}%)",
    )


def print_summary(detail: JobDetail) -> None:
    job = detail.job
    s = detail.summary
    print(f"\nJob {job.id} - {job.name or 'Untitled'}")
    print(f"  Domain: {job.new_domain}")
    print(f"  Status: {job.status.value} ({job.completed_urls}/{job.total_urls})")
    print(
        f"  Results: {s.total_urls} total, {s.ok} OK, {s.redirected} redirected, "
        f"{s.missing} missing, {s.error} error",
    )


async def run(settings: Settings, args: argparse.Namespace) -> JobDetail:
    """Create a job from CLI input, run it in the background and poll until done."""
    config = settings.defaults.with_overrides(
        follow_redirects=args.follow_redirects,
        max_concurrency=args.max_concurrency,
        retry_attempts=args.retry_attempts,
        timeout_seconds=args.timeout_seconds,
    )
    conn = init_db(settings.database.path)
    store = SQLiteJobStore(conn)
    try:
        sources = read_urls(args.urls)
        async with build_client(settings.http.user_agent) as client:
            job_id, task = submit_job(store, sources, args.domain, config, args.name, client)
            print(f"Started job {job_id} ({len(sources)} URLs)")
            detail = await wait_for_job(
                store, job_id, settings.http.poll_interval_seconds, on_progress=print_progress,
            )
            await task
    finally:
        conn.close()
    return detail


async def rerun(settings: Settings, job_id: str) -> JobDetail:
    conn = init_db(settings.database.path)
    store = SQLiteJobStore(conn)
    try:
        new_id = rerun_job(store, job_id)
        print(f"Started job {new_id} (rerun of {job_id})")
        async with build_client(settings.http.user_agent) as client:
            task = start_job(store, new_id, client=client)
            detail = await wait_for_job(
                store, new_id, settings.http.poll_interval_seconds, on_progress=print_progress,
            )
            await task
    finally:
        conn.close()
    return detail


def cmd_list(settings: Settings) -> None:
    conn = init_db(settings.database.path)
    try:
        jobs = SQLiteJobStore(conn).list_jobs()
    finally:
        conn.close()
    if not jobs:
        print("No jobs.")
    for detail in jobs:
        job = detail.job
        s = detail.summary
        print(
            f"{job.id}  {job.status.value:<9}  {job.completed_urls}/{job.total_urls}  "
            f"ok={s.ok} redirected={s.redirected} missing={s.missing} error={s.error}  "
            f"{job.name or ''}",
        )


def cmd_show(settings: Settings, job_id: str) -> None:
    detail = _load_job(settings, job_id)
    print_summary(detail)
    for r in detail.results:
        status = r.status_code if r.status_code is not None else "-"
        line = f"  {r.result.value:<10} {status!s:>4}  {r.source_url} -> {r.new_url}"
        if r.redirect_chain:
            line += f" => {r.redirect_chain[0]}"
        if r.error:
            line += f"  ({r.error})"
        print(line)


def cmd_delete(settings: Settings, job_id: str) -> None:
    conn = init_db(settings.database.path)
    try:
        deleted = SQLiteJobStore(conn).delete_job(job_id)
    finally:
        conn.close()
    if not deleted:
        msg = f"Job not found: {job_id}"
        raise VerifierError(msg)
    print(f"Deleted job {job_id}")


def cmd_export(settings: Settings, args: argparse.Namespace) -> None:
    detail = _load_job(settings, args.job_id)
    content = render(detail, args.format)
    if args.output == "-":
        print(content)
        return
    output = Path(args.output or export_filename(args.job_id, args.format))
    output.write_text(content, encoding="utf-8")
    print(f"Exported {len(detail.results)} results to {output}")


def _load_job(settings: Settings, job_id: str) -> JobDetail:
    conn = init_db(settings.database.path)
    try:
        return _require_job(SQLiteJobStore(conn), job_id)
    finally:
        conn.close()


def _require_job(store: SQLiteJobStore, job_id: str) -> JobDetail:
    detail = store.get_job(job_id)
    if detail is None:
        msg = f"Job not found: {job_id}"
        raise VerifierError(msg)
    return detail


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "run":
            detail = asyncio.run(run(settings, args))
        elif args.command == "rerun":
            detail = asyncio.run(rerun(settings, args.job_id))
        elif args.command == "list":
            cmd_list(settings)
            return
        elif args.command == "show":
            cmd_show(settings, args.job_id)
            return
        elif args.command == "delete":
            cmd_delete(settings, args.job_id)
            return
        else:
            cmd_export(settings, args)
            return
    except (FileNotFoundError, ValueError, VerifierError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print_summary(detail)
    if detail.job.status is JobStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
