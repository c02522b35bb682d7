#!/usr/bin/env python3
"""
Interactive support chat. Shows the helpline panel once the conversation escalates.
"""

from __future__ import annotations

import argparse
import logging
import sys
import uuid
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from whispr.config import load_config
from whispr.pipeline.helplines import HELPLINES
from whispr.pipeline.service import build_service

console = Console()


def _configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        force=True,
    )
    for noisy_name in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy_name).setLevel(logging.WARNING)


def helpline_panel() -> Panel:
    lines = [
        "It sounds like you are going through a lot. Please consider reaching out to a professional for support.",
        "",
    ]
    for h in HELPLINES:
        lines.append(f"[bold]{h.name}[/bold]: {h.number}  [dim]{h.description}[/dim]")
    return Panel("\n".join(lines), title="Support Resources", border_style="red")


def main():
    parser = argparse.ArgumentParser(description="Chat with the Whispr companion.")
    parser.add_argument("--config", type=Path, default=Path("configs/default.yaml"))
    parser.add_argument("--user", default=None, help="Anonymous identity; a new one is made if omitted.")
    args = parser.parse_args()

    load_dotenv(project_root / ".env")
    config = load_config(args.config)
    _configure_logging(config.log_level)
    service = build_service(config)
    identity = args.user or f"anon-{uuid.uuid4().hex[:12]}"

    console.print("[bold]Namaste.[/bold] How are you feeling today?")
    console.print(
        "[dim]This is a safe space to share. This is not medical advice. "
        "If you're in crisis, please use the resources provided. Ctrl-D to leave.[/dim]"
    )
    shown_panel = False
    while True:
        try:
            message = console.input("[bold cyan]you> [/bold cyan]")
        except (EOFError, KeyboardInterrupt):
            break
        if not message.strip():
            continue
        result = service.send_chat_turn(identity, message)
        console.print(f"[magenta]whispr>[/magenta] {result.reply}")
        if result.escalated and not shown_panel:
            console.print(helpline_panel())
            shown_panel = True

    service.flush()


if __name__ == "__main__":
    main()
