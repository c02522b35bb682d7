#!/usr/bin/env python3
"""
Submit synthetic whispers through the pipeline to populate a local store.
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
from rich.console import Console
from tqdm import tqdm

from whispr.config import load_config
from whispr.errors import ClassificationUnavailable
from whispr.pipeline.service import build_service

console = Console()

SAMPLES = {
    "normal": [
        "Had the best chai with my grandmother today.",
        "Finally finished the book I started last summer!",
        "The sunset from the rooftop was unreal tonight.",
    ],
    "stressed": [
        "Exams next week and I feel so overwhelmed.",
        "Work pressure is crushing me, can't sleep properly.",
        "I'm anxious about telling my parents I changed my major.",
    ],
    "need_help": [
        "I feel so empty and alone, thinking of giving up.",
        "Everyone would be better off without me.",
        "I don't think I can go on like this. I want to die.",
    ],
}


def main():
    parser = argparse.ArgumentParser(description="Seed the store with sample whispers.")
    parser.add_argument("--config", type=Path, default=Path("configs/default.yaml"))
    parser.add_argument("--num", type=int, default=20)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    load_dotenv(project_root / ".env")
    config = load_config(args.config)
    logging.basicConfig(level=logging.WARNING, force=True)
    random.seed(args.seed)
    service = build_service(config)

    counts = {"normal": 0, "stressed": 0, "need_help": 0}
    failed = 0
    for i in tqdm(range(args.num), desc="Seeding"):
        kind = random.choice(list(SAMPLES.keys()))
        text = random.choice(SAMPLES[kind])
        try:
            whisper = service.submit_whisper(f"anon-{i:03d}", text)
        except ClassificationUnavailable:
            failed += 1
            continue
        counts[whisper.label] += 1

    console.print(f"[bold]Seeded[/bold] {sum(counts.values())} whispers: {counts}")
    if failed:
        console.print(f"[yellow]{failed} whispers skipped: classification unavailable[/yellow]")
    stats = service.cost_tracker.get_stats()
    if stats["total_calls"]:
        console.print(f"  Judgment calls: {stats['total_calls']}, tokens: {stats['total_tokens']:,}, cost: ${stats['total_cost']:.4f}")


if __name__ == "__main__":
    main()
