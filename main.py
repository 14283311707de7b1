#!/usr/bin/env python3
"""
Concept -> prompt -> render -> feedback -> style evolution.

Each cycle renders every concept with the current style, optionally asks for a
rating or comment on stdin, and lets the orchestrator evolve the style on its
configured cadence.

Examples:
  python main.py --config config.yaml --concept "lighthouse at dusk" --cycles 3
  python main.py --seed-style styles/noir.yaml --dry-run --history-out history.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from style_lab.config import LabConfig, load_config, load_mapping
from style_lab.errors import StyleLabError
from style_lab.evolution import GenerationRecord, StyleEvolutionEngine
from style_lab.feedback import FeedbackAggregator
from style_lab.logging_utils import configure_stdlib_logging, create_logger
from style_lab.orchestrator.adapter import (
    ChatCompletionClient,
    DryRunRenderClient,
    OfflineCompletionClient,
    ReplicateRenderClient,
)
from style_lab.orchestrator.creative import CreativeOrchestrator
from style_lab.rng import DeterministicRNG
from style_lab.style import Style

DEFAULT_SEED_STYLE = {
    "name": "Baseline",
    "parameters": {"brightness": 0.5, "contrast": 0.5, "saturation": 0.5, "abstraction": 0.3},
    "tags": ["baseline"],
}


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evolve a visual style from render feedback")
    parser.add_argument("--config", type=Path, help="YAML or JSON configuration file")
    parser.add_argument("--seed-style", type=Path, help="YAML or JSON file describing the seed style")
    parser.add_argument("--concept", action="append", default=[], help="Concept to render (repeatable)")
    parser.add_argument("--cycles", type=int, default=1)
    parser.add_argument("--seed", type=int, default=None, help="Random seed for mutation")
    parser.add_argument("--dry-run", action="store_true", help="Skip provider calls")
    parser.add_argument("--interactive", action="store_true", help="Ask for feedback after each render")
    parser.add_argument("--resume", type=Path, help="History JSON written by --history-out")
    parser.add_argument("--history-out", type=Path, help="Write the generation history as JSON")
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


def _load_seed_style(path: Optional[Path]) -> Style:
    if path is None:
        return Style.from_dict(DEFAULT_SEED_STYLE)
    return Style.from_dict(load_mapping(path))


def _build_engine(args: argparse.Namespace, config: LabConfig) -> StyleEvolutionEngine:
    seed = args.seed if args.seed is not None else config.evolution.seed
    rng = DeterministicRNG(seed)
    if args.resume is not None:
        payload = json.loads(args.resume.read_text(encoding="utf-8"))
        records = [GenerationRecord.from_dict(item) for item in payload.get("history", [])]
        return StyleEvolutionEngine.from_history(records, rng=rng, config=config.evolution)
    engine = StyleEvolutionEngine(rng=rng, config=config.evolution)
    engine.seed(_load_seed_style(args.seed_style or config.seed_style))
    return engine


def _ask_feedback(orchestrator: CreativeOrchestrator, generation: int) -> None:
    try:
        answer = input("rating (e.g. 7/10) or comment, blank to skip: ").strip()
    except EOFError:
        return
    if answer:
        sample = orchestrator.record_comment(answer, generation=generation)
        print(f"  feedback score={sample.normalized_score:.2f} weight={sample.weight:.2f}")


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    load_dotenv()
    config = load_config(args.config) if args.config else LabConfig()
    if args.log_level:
        config.logging.level = args.log_level
    configure_stdlib_logging(config.logging.level)
    logger = create_logger(config.logging)

    try:
        engine = _build_engine(args, config)
        if args.dry_run:
            completion = OfflineCompletionClient()
            renderer = DryRunRenderClient()
        else:
            completion = ChatCompletionClient.from_config(config.providers)
            renderer = ReplicateRenderClient.from_config(config.providers)
        orchestrator = CreativeOrchestrator(
            engine,
            FeedbackAggregator(config.feedback),
            completion,
            renderer,
            config=config.orchestrator,
            providers=config.providers,
            social_weight=config.feedback.social_weight,
            logger=logger,
        )

        concepts = args.concept or ["abstract composition"]
        for cycle in range(1, max(1, args.cycles) + 1):
            logger.log("cycle", f"{cycle}/{args.cycles} style='{orchestrator.current_style().name}'")
            for concept in concepts:
                result = orchestrator.create_art(concept)
                logger.log("prompt", result.prompt)
                for url in result.image_urls:
                    logger.log("output", url)
                if args.interactive:
                    _ask_feedback(orchestrator, result.generation)
                orchestrator.complete_cycle()

        if args.history_out is not None:
            history = [record.to_dict() for record in orchestrator.history()]
            args.history_out.parent.mkdir(parents=True, exist_ok=True)
            args.history_out.write_text(json.dumps({"history": history}, indent=2), encoding="utf-8")
            logger.log("history", f"wrote {len(history)} records to {args.history_out}")
    except StyleLabError as exc:
        logger.log("error", str(exc), level="ERROR")
        return 1
    finally:
        logger.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
