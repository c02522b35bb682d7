#!/usr/bin/env python3
"""
Moderator console: list whispers, re-label, hide/unhide, attach AI replies,
and read the action log.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from whispr.config import load_config
from whispr.errors import GenerationUnavailable, NotFound, Unauthorized, ValidationError
from whispr.pipeline.service import build_service
from whispr.state.models import LABELS
from whispr.utils.deferred import DeferredFailure

console = Console()


def _configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        force=True,
    )
    for noisy_name in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy_name).setLevel(logging.WARNING)


def report_failure(failure: DeferredFailure) -> None:
    title = "Permission error" if failure.is_permission_error else "Write failed"
    console.print(f"[bold red]{title}:[/bold red] {failure.operation} {failure.path} ({failure.error})")


def show_whispers(service, admin: str) -> None:
    table = Table(title="All Whispers", show_lines=True)
    table.add_column("ID", style="dim")
    table.add_column("Whisper")
    table.add_column("Label", justify="center")
    table.add_column("Conf.", justify="right")
    table.add_column("Hidden", justify="center")
    table.add_column("Reply", style="green")
    for w in service.list_all_whispers_for_moderator(admin):
        table.add_row(
            w.id,
            w.content[:60] + "..." if len(w.content) > 60 else w.content,
            w.label,
            f"{w.confidence:.2f}",
            "yes" if w.hidden else "no",
            (w.reply or "")[:40],
        )
    console.print(table)


def show_log(service, admin: str, limit: int | None) -> None:
    actions = service.list_audit_log(admin, limit=limit)
    if not actions:
        console.print("No admin actions recorded yet.")
        return
    table = Table(title="Admin Action Log", show_lines=True)
    table.add_column("When", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Post ID")
    table.add_column("Admin", style="magenta")
    table.add_column("Details")
    for a in actions:
        table.add_row(a.timestamp[:19], a.type, a.target_id, a.admin_id, a.describe())
    console.print(table)


def main():
    parser = argparse.ArgumentParser(description="Whispr moderator console.")
    parser.add_argument("--config", type=Path, default=Path("configs/default.yaml"))
    parser.add_argument("--admin", required=True, help="Moderator identity.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List all whispers, hidden ones included.")
    relabel = sub.add_parser("relabel", help="Change a whisper's label.")
    relabel.add_argument("whisper_id")
    relabel.add_argument("label", choices=LABELS)
    toggle = sub.add_parser("toggle", help="Hide or unhide a whisper.")
    toggle.add_argument("whisper_id")
    reply = sub.add_parser("reply", help="Generate and attach an AI reply.")
    reply.add_argument("whisper_id")
    log = sub.add_parser("log", help="Show the action log.")
    log.add_argument("--limit", type=int, default=None)
    args = parser.parse_args()

    load_dotenv(project_root / ".env")
    config = load_config(args.config)
    _configure_logging(config.log_level)
    service = build_service(config)
    service.channel.subscribe(report_failure)

    try:
        if args.command == "list":
            show_whispers(service, args.admin)
        elif args.command == "log":
            show_log(service, args.admin, args.limit)
        else:
            if args.command == "relabel":
                result = service.relabel(args.admin, args.whisper_id, args.label)
            elif args.command == "toggle":
                result = service.toggle_visibility(args.admin, args.whisper_id)
            else:
                result = service.generate_reply(args.admin, args.whisper_id)
            console.print(f"[green]Success:[/green] {result.message}")
            if result.reply:
                console.print(f"[dim]{result.reply}[/dim]")
    except Unauthorized as e:
        console.print(f"[red]Action Failed:[/red] {e}")
        sys.exit(3)
    except (NotFound, ValidationError, GenerationUnavailable) as e:
        console.print(f"[red]Action Failed:[/red] {e}")
        sys.exit(1)
    finally:
        service.flush()


if __name__ == "__main__":
    main()
