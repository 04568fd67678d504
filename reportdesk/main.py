import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from dataclasses import dataclass, fields, replace
from datetime import date
from pathlib import Path

import uvicorn

from reportdesk.analysis.exceptions import AnalysisError
from reportdesk.analysis.fetcher import FileFetcher
from reportdesk.analysis.pipeline import ReportAnalyzer
from reportdesk.config.app_config import AppConfig, ConfigRepository
from reportdesk.config.settings import Settings
from reportdesk.database.base import StateBackend
from reportdesk.database.connection import close_pool
from reportdesk.database.exceptions import StateBackendError
from reportdesk.database.factory import StateBackendFactory
from reportdesk.history.exceptions import HistoryError
from reportdesk.history.models import JobRecord, JobType
from reportdesk.history.store import HistoryStore
from reportdesk.logging.logger import Log
from reportdesk.relay.server import create_app
from reportdesk.reports.base import BaseReportClient
from reportdesk.reports.exceptions import ReportError
from reportdesk.reports.factory import ReportClientFactory
from reportdesk.reports.service import ReportService, default_sales_range
from reportdesk.worker.poller import PollerManager

JOB_TYPES = {"stock": JobType.STOCK, "sales": JobType.SALES}


@dataclass
class Runtime:
    """Everything a command needs, wired from one Settings instance."""

    settings: Settings
    config_repo: ConfigRepository
    config: AppConfig
    history: HistoryStore
    client: BaseReportClient
    poller: PollerManager
    service: ReportService
    fetcher: FileFetcher
    analyzer: ReportAnalyzer

    async def aclose(self) -> None:
        await self.poller.stop()
        await self.client.aclose()
        await self.fetcher.aclose()


def build_runtime(settings: Settings, backend: StateBackend | None = None) -> Runtime:
    """Build the dependency graph: state -> config -> history -> client -> poller -> service."""
    backend = backend or StateBackendFactory.create(settings)
    config_repo = ConfigRepository(backend, AppConfig.from_settings(settings))
    config = config_repo.load()
    history = HistoryStore(backend)
    client = ReportClientFactory.create(config, timeout_seconds=settings.http_timeout_seconds)
    poller = PollerManager(
        client,
        history,
        interval_seconds=settings.poll_interval_seconds,
        timeout_seconds=settings.poll_timeout_seconds,
    )
    fetcher = FileFetcher(config.relay_url, timeout_seconds=settings.http_timeout_seconds)
    return Runtime(
        settings=settings,
        config_repo=config_repo,
        config=config,
        history=history,
        client=client,
        poller=poller,
        service=ReportService(config, client, history, poller),
        fetcher=fetcher,
        analyzer=ReportAnalyzer(config, history, fetcher),
    )


def _print_record(record: JobRecord) -> None:
    print(json.dumps(record.to_dict(), ensure_ascii=False, indent=2))


async def _wait_and_report(runtime: Runtime, record: JobRecord, wait: bool) -> int:
    if wait:
        state = await runtime.poller.wait(record.id)
        Log.info(f"Polling for job {record.id} finished: {state.value if state else 'unknown'}")
    current = runtime.history.get(record.id) or record
    _print_record(current)
    return 0


async def _cmd_stock(runtime: Runtime, args: argparse.Namespace) -> int:
    record = await runtime.service.queue_stock_report()
    return await _wait_and_report(runtime, record, args.wait)


async def _cmd_sales(runtime: Runtime, args: argparse.Namespace) -> int:
    record = await runtime.service.queue_sales_report(args.start, args.end)
    return await _wait_and_report(runtime, record, args.wait)


async def _cmd_resume(runtime: Runtime, args: argparse.Namespace) -> int:
    started = runtime.poller.resume_pending()
    print(f"Resumed {started} job(s)")
    await runtime.poller.wait_all()
    return 0


async def _cmd_status(runtime: Runtime, args: argparse.Namespace) -> int:
    job_types = [JOB_TYPES[args.type]] if args.type else list(JobType)
    payload = {
        job_type.name.lower(): [r.to_dict() for r in runtime.history.list_jobs(job_type)]
        for job_type in job_types
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


async def _cmd_clear(runtime: Runtime, args: argparse.Namespace) -> int:
    removed = runtime.history.clear(JOB_TYPES[args.type])
    print(f"Removed {removed} record(s)")
    return 0


async def _cmd_analyze(runtime: Runtime, args: argparse.Namespace) -> int:
    summary = await runtime.analyzer.analyze_record(args.job_id)
    print(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    return 0


async def _cmd_analyze_csv(runtime: Runtime, args: argparse.Namespace) -> int:
    summary = runtime.analyzer.analyze_csv_file(Path(args.path))
    print(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    return 0


async def _cmd_config(runtime: Runtime, args: argparse.Namespace) -> int:
    if args.action == "reset":
        config = runtime.config_repo.reset()
    elif args.action == "set":
        config = runtime.config_repo.update(_apply_overrides(runtime.config, args.values))
    else:
        config = runtime.config
    print(json.dumps(config.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _apply_overrides(config: AppConfig, pairs: Sequence[str]) -> AppConfig:
    names = {f.name for f in fields(config)}
    changes: dict[str, object] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or key not in names:
            raise ValueError(f"Expected one of {sorted(names)} as key=value, got '{pair}'")
        if key == "simulation_mode":
            changes[key] = value.strip().lower() in ("1", "true", "yes", "on")
        else:
            changes[key] = value
    return replace(config, **changes)


async def _cmd_serve(runtime: Runtime, args: argparse.Namespace) -> int:
    settings = runtime.settings
    runtime.poller.resume_pending()
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(timeout_seconds=settings.http_timeout_seconds),
            host=settings.relay_host,
            port=settings.relay_port,
            log_level=settings.log_level.lower(),
        )
    )
    Log.info(f"Relay listening on http://{settings.relay_host}:{settings.relay_port}")
    await server.serve()
    return 0


COMMANDS = {
    "stock": _cmd_stock,
    "sales": _cmd_sales,
    "resume": _cmd_resume,
    "status": _cmd_status,
    "clear": _cmd_clear,
    "analyze": _cmd_analyze,
    "analyze-csv": _cmd_analyze_csv,
    "config": _cmd_config,
    "serve": _cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reportdesk", description="Queue, track and analyse marketplace reports."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    stock = sub.add_parser("stock", help="Queue a status-wise stock report")
    stock.add_argument("--no-wait", dest="wait", action="store_false")

    start, end = default_sales_range(date.today())
    sales = sub.add_parser("sales", help="Queue a mini sales report")
    sales.add_argument("--start", default=start.isoformat(), help="YYYY-MM-DD")
    sales.add_argument("--end", default=end.isoformat(), help="YYYY-MM-DD")
    sales.add_argument("--no-wait", dest="wait", action="store_false")

    sub.add_parser("resume", help="Resume polling for jobs still processing")

    status = sub.add_parser("status", help="Show job history")
    status.add_argument("--type", choices=sorted(JOB_TYPES))

    clear = sub.add_parser("clear", help="Delete one history partition")
    clear.add_argument("type", choices=sorted(JOB_TYPES))

    analyze = sub.add_parser("analyze", help="Analyse a ready job's report archive")
    analyze.add_argument("job_id", type=int)

    analyze_csv = sub.add_parser("analyze-csv", help="Status dashboard for a local CSV file")
    analyze_csv.add_argument("path")

    config = sub.add_parser("config", help="Show or change the saved app config")
    config.add_argument("action", choices=["show", "set", "reset"], nargs="?", default="show")
    config.add_argument("values", nargs="*", help="key=value pairs for 'set'")

    sub.add_parser("serve", help="Run the download relay and resume pending polls")
    return parser


def _fail(exc: Exception) -> int:
    Log.error(str(exc))
    print(f"error: {exc}", file=sys.stderr)
    return 1


async def run(args: argparse.Namespace, settings: Settings) -> int:
    try:
        runtime = build_runtime(settings)
    except (StateBackendError, ValueError) as exc:
        return _fail(exc)
    try:
        return await COMMANDS[args.command](runtime, args)
    except (ReportError, AnalysisError, HistoryError, StateBackendError, ValueError) as exc:
        return _fail(exc)
    finally:
        await runtime.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: settings -> logging -> command."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        Log.info("Interrupted, shutting down")
        return 130
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())
