"""Entry point for sys-agent."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sysagent import __version__
from sysagent.api.server import build_service, create_app
from sysagent.checks.registry import ConfigError
from sysagent.config import Settings
from sysagent.health.status import StatusService
from sysagent.models import AggregateReport

console = Console()
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sys-agent", description="System and service health agent")
    parser.add_argument("-f", "--config", help="YAML config file with services and volumes")
    parser.add_argument("-l", "--listen", help="listen on host:port (default localhost:8080)")
    parser.add_argument(
        "-v", "--volume", dest="volumes", action="append", metavar="NAME:PATH",
        help="volumes to report, repeatable (default root:/)",
    )
    parser.add_argument(
        "-s", "--service", dest="services", action="append", metavar="NAME:URL",
        help="services to check, repeatable",
    )
    parser.add_argument("--timeout", type=float, help="per-check timeout in seconds (default 5)")
    parser.add_argument("--concurrency", type=int, help="max checks in flight (default 4)")
    parser.add_argument("--dbg", dest="debug", action="store_true", default=None, help="debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="Start the status server (default)")
    check = sub.add_parser("check", help="Run all checks once and print the report")
    check.add_argument("--json", action="store_true", help="print the report as JSON")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Environment / .env values, overridden by the flags that were given."""
    overrides = {
        key: getattr(args, key)
        for key in ("config", "listen", "volumes", "services", "timeout", "concurrency", "debug")
        if getattr(args, key) is not None
    }
    return Settings(**overrides)


def run_server(settings: Settings, service: StatusService) -> None:
    """Start the FastAPI server."""
    console.print(Panel(
        f"sys-agent {__version__}\n"
        f"listen: {settings.listen}\n"
        f"checks: {len(service.registry.requests)}, volumes: {len(service.registry.volumes)}",
        title="Starting sys-agent",
        style="bold green",
    ))
    uvicorn.run(
        create_app(settings, service),
        host=settings.host,
        port=settings.port,
        log_level=settings.effective_log_level.lower(),
    )


def run_check(service: StatusService, as_json: bool = False) -> bool:
    """Run one report cycle and print it; returns the overall verdict."""
    try:
        with console.status("[bold green]Checking..."):
            report = asyncio.run(service.report())
    finally:
        service.close()

    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        console.print(report_table(report))
        verdict = "[bold green]OK[/bold green]" if report.overall_ok else "[bold red]FAILED[/bold red]"
        console.print(f"\nOverall: {verdict}")
    return report.overall_ok


def report_table(report: AggregateReport) -> Table:
    table = Table(title=f"sys-agent {report.version}")
    table.add_column("Name", style="bold")
    table.add_column("Kind")
    table.add_column("Status", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Details")

    for r in report.results:
        style = "green" if r.ok else "red"
        table.add_row(
            r.name, r.kind, f"[{style}]{r.status_code}[/{style}]",
            f"{r.response_time_ms}ms", r.error or _summary(r.body),
        )
    for v in report.volumes:
        style = "green" if v.ok else "red"
        detail = v.error or f"{v.path} {v.used_percent:.1f}% used (limit {v.threshold:g}%)"
        table.add_row(v.name, "volume", f"[{style}]{'ok' if v.ok else 'failed'}[/{style}]", "", detail)
    return table


def _summary(body: dict[str, Any]) -> str:
    status = body.get("status")
    return str(status) if status is not None else ""


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args)
    except ValidationError as e:
        console.print(f"[bold red]Invalid configuration:[/bold red]\n{e}")
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, settings.effective_log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    try:
        service = build_service(settings)
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)

    if args.command in (None, "serve"):
        run_server(settings, service)
    elif args.command == "check":
        sys.exit(0 if run_check(service, as_json=args.json) else 1)


if __name__ == "__main__":
    main()
