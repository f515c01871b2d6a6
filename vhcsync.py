#!/usr/bin/env python3
from __future__ import annotations
import sys
import argparse
import asyncio
import json
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from config.constants import DEFAULT_CONFIG, EXIT_CODES, PENDING_OP_TYPES, get_version
from vhc_offline.models.config import WorkerConfig
from vhc_offline.models.exceptions import (
    OfflineException,
    NetworkException,
    StorageException,
    ConfigurationException,
    ValidationException,
    LifecycleException,
)
from vhc_offline.models.http import SWRequest, SWResponse
from vhc_offline.core.worker import OfflineWorker
from vhc_offline.utils.logger import setup_logging, get_logger
from vhc_offline.utils.output_formatter import (
    output_formatter,
    NAMESPACE_COLUMNS,
    PENDING_COLUMNS,
    RESPONSE_COLUMNS,
    SYNC_COLUMNS,
)
from vhc_offline.utils.validator import url_validator, input_sanitizer

logger = get_logger("cli")

TITLE = "VHC Sync - offline cache and background sync for Wrenchd IVHC"

COMMANDS = ["install", "activate", "start", "status", "fetch", "queue", "enqueue", "sync", "clear"]


class VHCSyncCLI:
    def __init__(self, console: Optional[Console] = None):
        self.parser = self._create_parser()
        self.console = console or Console()
        self.worker: Optional[OfflineWorker] = None

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(prog="vhcsync", description=TITLE, formatter_class=argparse.RawTextHelpFormatter)
        parser.add_argument("-V", "--version", action="version", version=f"vhcsync {get_version()}")
        parser.add_argument("command", choices=COMMANDS, help="Action to run:\n  " + ", ".join(COMMANDS))
        parser.add_argument("args", nargs="*", help="Command arguments (URL for fetch, TYPE ENDPOINT for enqueue)")

        worker = parser.add_argument_group("Worker Options")
        worker.add_argument("--origin", help=f'App origin (default: {DEFAULT_CONFIG["origin"]})')
        worker.add_argument("--cache-version", help=f'Cache generation tag (default: {DEFAULT_CONFIG["cache_version"]})')
        worker.add_argument("--cache-db", dest="cache_db_path", help="Path of the cache database")
        worker.add_argument("--storage-db", dest="storage_db_path", help="Path of the offline storage database")

        req = parser.add_argument_group("Request Options")
        req.add_argument("-t", "--timeout", type=float, help=f'Request timeout in seconds (default: {DEFAULT_CONFIG["request_timeout"]})')
        req.add_argument("-X", "--method", default="GET", help="HTTP method for fetch/enqueue (default: GET for fetch, POST for enqueue)")
        req.add_argument("--kind", default="", help="Resource kind of the fetched request (e.g. image, script, document)")
        req.add_argument("--header", action="append", dest="headers", default=[], help='Extra HTTP header (repeatable, e.g., "K: V")')
        req.add_argument("--data", help="JSON body for enqueue")
        req.add_argument("--offline", action="store_true", help="Treat the platform as offline for this run")

        out = parser.add_argument_group("Output Options")
        out.add_argument("-f", "--format", default="table", choices=["table", "tsv", "json", "csv"], help="Output format (default: table)")
        out.add_argument("-q", "--quiet", action="store_true", help="Only print results")
        out.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
        out.add_argument("--log-file", help="Also write logs to this file")
        return parser

    def parse_arguments(self, argv: Optional[List[str]] = None) -> argparse.Namespace:
        return self.parser.parse_args(argv)

    def _create_config(self, args: argparse.Namespace) -> WorkerConfig:
        headers: Dict[str, str] = {}
        for raw in args.headers or []:
            k, v = input_sanitizer.parse_header(raw)
            headers[k] = v

        config = WorkerConfig.from_env(
            origin=args.origin,
            cache_version=args.cache_version,
            cache_db_path=args.cache_db_path,
            storage_db_path=args.storage_db_path,
            request_timeout=args.timeout,
            log_file=args.log_file,
        )
        config.headers.update(headers)
        config.validate()
        return config

    def _emit(self, rows: List[Dict[str, Any]], columns: List[str], fmt: str, title: str = "") -> None:
        if fmt != "table":
            print(output_formatter.format_rows(rows, columns, fmt), file=self.console.file)
            return
        table = Table(title=title or None, show_lines=False)
        for c in columns:
            table.add_column(c)
        for r in rows:
            table.add_row(*[str(r.get(c)) if r.get(c) is not None else "-" for c in columns])
        self.console.print(table)

    async def _status(self, args: argparse.Namespace) -> int:
        w = self.worker
        stats: Dict[str, int] = {}
        for name in await w.caches.keys():
            stats[name] = await (await w.caches.open(name)).count()
        rows = output_formatter.namespace_rows(stats, w.config.cache_names)
        self._emit(rows, NAMESPACE_COLUMNS, args.format, title="Cache namespaces")
        if args.format == "table" and not args.quiet:
            pending = await w.storage.count_pending_operations()
            self.console.print(f"Lifecycle: [bold]{w.lifecycle.state.value}[/]  Pending sync items: [bold]{pending}[/]")
        return EXIT_CODES["SUCCESS"]

    async def _fetch(self, args: argparse.Namespace) -> int:
        if not args.args:
            raise ValidationException("fetch needs a URL", field="url")
        w = self.worker
        url = url_validator.resolve(args.args[0], w.config.origin)
        method = input_sanitizer.validate_method(args.method)
        request = SWRequest(url=url, method=method, destination=args.kind, headers=dict(w.config.headers))
        response: SWResponse = await w.handle_fetch(request)
        self._emit([response.to_dict()], RESPONSE_COLUMNS, args.format, title=f"{method} {url}")
        return EXIT_CODES["SUCCESS"] if response.ok else EXIT_CODES["NETWORK_ERROR"]

    async def _queue(self, args: argparse.Namespace) -> int:
        items = await self.worker.storage.get_pending_operations()
        self._emit(output_formatter.pending_rows(items), PENDING_COLUMNS, args.format, title="Pending sync items")
        return EXIT_CODES["SUCCESS"]

    async def _enqueue(self, args: argparse.Namespace) -> int:
        if len(args.args) < 2:
            raise ValidationException("enqueue needs TYPE and ENDPOINT", field="args")
        op_type, endpoint = args.args[0].upper(), args.args[1]
        if op_type not in PENDING_OP_TYPES:
            raise ValidationException(f"Unknown operation type: {op_type}", field="type", value=op_type)
        try:
            data = json.loads(args.data) if args.data else {}
        except json.JSONDecodeError as e:
            raise ValidationException(f"--data is not valid JSON: {e}", field="data")
        method = input_sanitizer.validate_method("POST" if args.method.upper() == "GET" else args.method)
        item = await self.worker.storage.add_pending_operation(op_type, endpoint, method, data)
        self._emit(output_formatter.pending_rows([item]), PENDING_COLUMNS, args.format, title="Queued")
        return EXIT_CODES["SUCCESS"]

    async def _sync(self, args: argparse.Namespace) -> int:
        result = await self.worker.register_sync()
        if result is None:
            return EXIT_CODES["SUCCESS"]
        self._emit([result.to_dict()], SYNC_COLUMNS, args.format, title="Sync")
        return EXIT_CODES["SUCCESS"] if result.ok else EXIT_CODES["SYNC_ERROR"]

    async def _clear(self, args: argparse.Namespace) -> int:
        w = self.worker
        names = await w.caches.keys()
        for name in names:
            await w.caches.delete(name)
        await w.storage.clear_all()
        if not args.quiet:
            self.console.print(f"Deleted {len(names)} cache namespace(s) and all offline data")
        return EXIT_CODES["SUCCESS"]

    async def _dispatch(self, args: argparse.Namespace) -> int:
        w = self.worker
        if args.offline:
            await w.network.go_offline()

        if args.command == "install":
            count = await w.install()
            if not args.quiet:
                self.console.print(f"Installed {w.config.cache_version}: {count} asset(s) precached")
            return EXIT_CODES["SUCCESS"]

        if args.command in ("activate", "start"):
            if args.command == "start":
                await w.install()
            elif not await w.restore():
                raise LifecycleException("Nothing installed for this cache version; run install first")
            deleted = await w.activate()
            if not args.quiet:
                self.console.print(Panel("\n".join(deleted) or "no stale caches", title="Deleted caches", expand=False))
            return EXIT_CODES["SUCCESS"]

        await w.restore()
        handler = {
            "status": self._status,
            "fetch": self._fetch,
            "queue": self._queue,
            "enqueue": self._enqueue,
            "sync": self._sync,
            "clear": self._clear,
        }[args.command]
        return await handler(args)

    def _log_level(self, args: argparse.Namespace, configured: str) -> str:
        if args.verbose:
            return "DEBUG"
        if args.quiet:
            return "ERROR"
        return configured or DEFAULT_CONFIG["log_level"]

    async def run_async(self, config: WorkerConfig, args: argparse.Namespace) -> int:
        self.worker = OfflineWorker(config)
        try:
            return await self._dispatch(args)
        finally:
            await self.worker.close()

    def run(self, args: argparse.Namespace) -> int:
        try:
            config = self._create_config(args)
        except (ConfigurationException, ValidationException) as e:
            setup_logging(level=self._log_level(args, DEFAULT_CONFIG["log_level"]), log_file=args.log_file)
            logger.error(str(e))
            return EXIT_CODES["CONFIG_ERROR"]

        setup_logging(level=self._log_level(args, config.log_level), log_file=config.log_file)
        try:
            return asyncio.run(self.run_async(config, args))
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return EXIT_CODES["UNKNOWN_ERROR"]
        except NetworkException as e:
            logger.error(str(e))
            return EXIT_CODES["NETWORK_ERROR"]
        except StorageException as e:
            logger.error(str(e))
            return EXIT_CODES["STORAGE_ERROR"]
        except ValidationException as e:
            logger.error(str(e))
            return EXIT_CODES["USAGE_ERROR"]
        except OfflineException as e:
            logger.error(str(e))
            if args.verbose:
                logger.exception("Detailed error:")
            return EXIT_CODES["UNKNOWN_ERROR"]


def main(argv: Optional[List[str]] = None):
    cli = VHCSyncCLI()
    args = cli.parse_arguments(argv)
    sys.exit(cli.run(args))


if __name__ == "__main__":
    main()
