#!/usr/bin/env python3
"""
Train a Markov chatter snapshot from exported chat logs.

Lets a fresh deployment start warm instead of waiting for live traffic.
Input is either plain text (one message per line) or JSONL with a
"content" field per message. An existing snapshot is extended, not replaced.

Usage:
    python scripts/train_markov_snapshot.py \\
        --input exports/general.jsonl \\
        --output data/markov-chain.json \\
        --order 4
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Iterator

from markov_service.services.markov import MarkovModel
from markov_service.services.persistence import ModelPersistence
from markov_service.services.text_cleaning import TextPreprocessor

logger = logging.getLogger("train_markov_snapshot")


def iter_messages(path: Path) -> Iterator[str]:
    """Yield message texts from a .jsonl or plain text export."""
    is_jsonl = path.suffix == ".jsonl"
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            if not is_jsonl:
                yield line
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                logger.warning(f"Skipping malformed line: {line[:60]}")
                continue
            content = obj.get("content") if isinstance(obj, dict) else None
            if isinstance(content, str):
                yield content


async def build_snapshot(input_path: Path, output_path: Path, order: int) -> int:
    model = MarkovModel(order=order)
    persistence = ModelPersistence(output_path)
    if await persistence.load(model) and model.order != order:
        logger.warning(f"Existing snapshot uses order {model.order}, keeping it")

    preprocessor = TextPreprocessor()
    trained = 0
    for text in iter_messages(input_path):
        cleaned = preprocessor.clean(text)
        if cleaned:
            model.train(cleaned)
            trained += 1

    if not await persistence.save(model, force=True):
        raise SystemExit(f"Failed to write snapshot to {output_path}")
    logger.info(f"Trained on {trained} messages, {len(model.chain)} keys -> {output_path}")
    return trained


def main():
    parser = argparse.ArgumentParser(description="Train a Markov chatter snapshot from chat exports")
    parser.add_argument("--input", type=Path, required=True, help="Plain text or JSONL export")
    parser.add_argument("--output", type=Path, default=Path("data/markov-chain.json"), help="Snapshot path")
    parser.add_argument("--order", type=int, default=4, help="N-gram order for a new snapshot")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    if not args.input.exists():
        parser.error(f"input not found: {args.input}")

    asyncio.run(build_snapshot(args.input, args.output, args.order))


if __name__ == "__main__":
    main()
