"""
Pandoro command line entry point.

Usage:
    pandoro [-c config.yaml] projects [--query QUERY]
    pandoro [-c config.yaml] frequent
    pandoro [-c config.yaml] overview
    pandoro [-c config.yaml] groups
    pandoro [-c config.yaml] changelogs [--unread]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, List, Optional

import structlog

from pandoro_shared.overview import (
    build_overview,
    filter_projects,
    frequent_projects,
)
from pandoro_shared.schemas.changelogs import unread_changelogs

from .config import resolve_config
from .requester import PandoroRequester, PandoroResult


class CommandError(Exception):
    """A backend call of a command failed; carries the error to show."""


def configure_logging(level: str = "info", fmt: str = "text") -> None:
    """Configure structlog with the specified level and format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


def _unwrap(result: PandoroResult):
    if not result.success_response():
        raise CommandError(result.error_message() or "Request failed")
    return result.value


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def command_projects(requester: PandoroRequester, args: argparse.Namespace) -> List[str]:
    projects = filter_projects(args.query or "", _unwrap(requester.get_projects()))
    return [
        f"{project.name} v. {project.version} ({project.updates_number} updates)"
        for project in projects
    ]


def command_frequent(requester: PandoroRequester, args: argparse.Namespace) -> List[str]:
    projects = frequent_projects(_unwrap(requester.get_projects()))
    return [f"{project.name}: {project.updates_number}" for project in projects]


def command_overview(requester: PandoroRequester, args: argparse.Namespace) -> List[str]:
    overview = build_overview(_unwrap(requester.get_projects()), requester.user_id or "")
    lines = [
        f"Projects: {overview.total_projects.total} "
        f"(personal {overview.total_projects.personal}, group {overview.total_projects.group})",
        f"Updates: {overview.total_updates.total}",
    ]
    for status, stats in overview.updates_by_status.items():
        lines.append(f"  {status.value}: {stats.total} (by me {stats.by_me})")
    lines.append(f"Development days: {overview.development_days.total}")
    rankings = [
        ("Best personal project", overview.best_personal_project),
        ("Worst personal project", overview.worst_personal_project),
        ("Best group project", overview.best_group_project),
        ("Worst group project", overview.worst_group_project),
    ]
    for label, stats in rankings:
        if stats is not None:
            lines.append(
                f"{label}: {stats.name} ({stats.updates} updates, "
                f"{stats.total_development_days} days, {stats.average_days_per_update} avg)"
            )
    return lines


def command_groups(requester: PandoroRequester, args: argparse.Namespace) -> List[str]:
    return [
        f"{group.name}: {group.total_members} members, {group.total_projects} projects"
        for group in _unwrap(requester.get_groups())
    ]


def command_changelogs(requester: PandoroRequester, args: argparse.Namespace) -> List[str]:
    changelogs = _unwrap(requester.get_changelogs())
    lines = [f"{unread_changelogs(changelogs)} unread"]
    for changelog in changelogs:
        if args.unread and changelog.read:
            continue
        lines.append(f"{changelog.title}: {changelog.content}")
    return lines


COMMANDS: dict[str, Callable[[PandoroRequester, argparse.Namespace], List[str]]] = {
    "projects": command_projects,
    "frequent": command_frequent,
    "overview": command_overview,
    "groups": command_groups,
    "changelogs": command_changelogs,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pandoro projects and updates client")
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (default: PANDORO_CONFIG_PATH or environment)",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    parser.add_argument("--log-format", choices=["json", "text"], default=None)

    subparsers = parser.add_subparsers(dest="command", required=True)
    projects = subparsers.add_parser("projects", help="List projects")
    projects.add_argument("-q", "--query", default="", help="Filter projects by text")
    subparsers.add_parser("frequent", help="Projects with the most updates")
    subparsers.add_parser("overview", help="Statistics about your projects")
    subparsers.add_parser("groups", help="List groups")
    changelogs = subparsers.add_parser("changelogs", help="List notifications")
    changelogs.add_argument("--unread", action="store_true", help="Only the unread ones")
    return parser


def run(argv: Optional[List[str]] = None, requester: Optional[PandoroRequester] = None) -> int:
    """CLI entry point for the Pandoro client."""
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args.config)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(args.log_level or config.logging.level, args.log_format or config.logging.format)
    log = structlog.get_logger()
    log.debug("cli.config_loaded", config_path=args.config, host=config.host)

    requester = requester or PandoroRequester.from_config(config)
    try:
        lines = COMMANDS[args.command](requester, args)
    except CommandError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        requester.close()

    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(run())
