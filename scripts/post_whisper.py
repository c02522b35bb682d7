#!/usr/bin/env python3
"""
Post a whisper or print the public feed.
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
from whispr.errors import ClassificationUnavailable, ValidationError
from whispr.pipeline.service import build_service

console = Console()

LABEL_STYLES = {"normal": "cyan", "stressed": "yellow", "need_help": "bold red"}


def _configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        force=True,
    )
    for noisy_name in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy_name).setLevel(logging.WARNING)


def main():
    parser = argparse.ArgumentParser(description="Share a whisper or read the feed.")
    parser.add_argument("--config", type=Path, default=Path("configs/default.yaml"))
    parser.add_argument("--user", default="anon-cli", help="Anonymous author id.")
    parser.add_argument("content", nargs="?", help="Whisper text. Omit to list the feed.")
    args = parser.parse_args()

    load_dotenv(project_root / ".env")
    config = load_config(args.config)
    _configure_logging(config.log_level)
    service = build_service(config)

    if args.content:
        try:
            whisper = service.submit_whisper(args.user, args.content)
        except ValidationError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(2)
        except ClassificationUnavailable:
            console.print("[red]We couldn't check your whisper right now. Please try again.[/red]")
            sys.exit(1)
        console.print(f"[green]Your whisper has been shared.[/green] ({whisper.id})")
        return

    whispers = service.list_visible_whispers()
    if not whispers:
        console.print("The world is quiet right now. Be the first to share a whisper.")
        return

    table = Table(title="Whispers", show_lines=True)
    table.add_column("When", style="dim")
    table.add_column("Whisper")
    table.add_column("Label", justify="center")
    for w in whispers:
        style = LABEL_STYLES.get(w.label, "white")
        table.add_row(w.created_at[:19], w.content, f"[{style}]{w.label.replace('_', ' ')}[/{style}]")
    console.print(table)


if __name__ == "__main__":
    main()
