"""Nitpicker command line interface."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from . import __version__
from .config import NitpickerSettings, get_settings
from .ledger import BuildLedger
from .orchestrator import Nitpicker, StreamSink
from .process import CommandFailed, CommandRunner
from .projects import discover_projects


def configure_logging(level: str) -> None:
    """Configure root logging for the watcher."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def load_settings() -> NitpickerSettings:
    try:
        return get_settings()
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        raise SystemExit(2)


def build_watcher(settings: NitpickerSettings, args: argparse.Namespace) -> Nitpicker:
    root = Path(args.root).expanduser().resolve() if args.root else settings.root
    delay = getattr(args, "delay", None)
    if delay is None:
        delay = settings.poll_delay
    return Nitpicker(
        root,
        sink=StreamSink(sys.stdout),
        project_options=settings.project_options(),
        delay=delay,
    )


def cmd_watch(args: argparse.Namespace) -> int:
    settings = load_settings()
    configure_logging(settings.log_level)
    build_watcher(settings, args).run()
    return 0


def cmd_once(args: argparse.Namespace) -> int:
    settings = load_settings()
    configure_logging(settings.log_level)
    watcher = build_watcher(settings, args)
    snapshot = asyncio.run(watcher.iterate())
    watcher.report_if_changed(snapshot)
    return 0 if all(snapshot.values()) else 1


async def _collect_status(root: Path, settings: NitpickerSettings) -> list[dict[str, str | None]]:
    ledger = BuildLedger()
    runner = CommandRunner()
    rows: list[dict[str, str | None]] = []
    for project in discover_projects(root, runner=runner, **settings.project_options()):
        try:
            revision = await project.latest_revision()
        except CommandFailed as exc:
            rows.append({"project": project.name, "revision": None, "status": "error", "error": str(exc).strip()})
            continue
        status = ledger.status_of(project, revision)
        entry = ledger.entry_for(project, revision)
        rows.append(
            {
                "project": project.name,
                "revision": revision,
                "status": status.value,
                "log": str(entry.path) if entry else None,
            }
        )
    return rows


def cmd_status(args: argparse.Namespace) -> int:
    settings = load_settings()
    configure_logging(settings.log_level)
    root = Path(args.root).expanduser().resolve() if args.root else settings.root
    rows = asyncio.run(_collect_status(root, settings))
    if args.json:
        print(json.dumps(rows, indent=2))
    else:
        for row in rows:
            revision = (row["revision"] or "-")[:7]
            print(f"{row['project']} [{row['status']}] {revision}")
    return 0


def positive_seconds(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number of seconds: {value!r}") from exc
    if not seconds > 0:
        raise argparse.ArgumentTypeError("delay must be > 0")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nitpicker",
        description="Build every new revision of the projects under a directory exactly once",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd")

    p_watch = sub.add_parser("watch", help="Poll projects and build new revisions until interrupted")
    p_watch.add_argument("--root", help="Directory holding the watched working copies")
    p_watch.add_argument("--delay", type=positive_seconds, default=None, help="Seconds to sleep between passes")
    p_watch.set_defaults(func=cmd_watch)

    p_once = sub.add_parser("once", help="Run a single pass and print the aggregate status")
    p_once.add_argument("--root", help="Directory holding the watched working copies")
    p_once.set_defaults(func=cmd_once)

    p_status = sub.add_parser("status", help="Show recorded outcomes without fetching or building")
    p_status.add_argument("--root", help="Directory holding the watched working copies")
    p_status.add_argument("--json", action="store_true", help="Output JSON")
    p_status.set_defaults(func=cmd_status)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
