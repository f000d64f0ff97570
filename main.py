#!/usr/bin/env python3
"""
Dopamint E2E - resilient browser journeys for the Dopamint NFT marketplace.

Main entry point for the runner.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from dopamint_e2e.core.logger import setup_logging
from dopamint_e2e.core.settings import get_settings
from dopamint_e2e.runner import JOURNEYS, JourneyOptions, run_workflow
from dopamint_e2e.workflows import AIModel


def build_parser() -> argparse.ArgumentParser:
    """Command-line interface."""
    parser = argparse.ArgumentParser(description="Dopamint E2E - marketplace journeys")
    parser.add_argument("workflow", choices=sorted(JOURNEYS), help="Journey to run")
    parser.add_argument("--worker", type=int, default=0, help="Worker index (profile + stagger)")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--no-stagger", action="store_true", help="Start immediately")
    parser.add_argument(
        "--model",
        choices=[m.value for m in AIModel],
        default=AIModel.NANO_BANANA_PRO.value,
        help="Image model for the create journey",
    )
    parser.add_argument("--template", default="motorbike", help="Template card to pick")
    parser.add_argument("--image", type=Path, help="Source image for the create journey")
    parser.add_argument(
        "--mint-image",
        type=Path,
        action="append",
        default=[],
        dest="mint_images",
        help="Image per NFT to mint (repeatable)",
    )
    parser.add_argument("--collection-url", help="Existing collection for mint/sell")
    parser.add_argument(
        "--collection-name", help="Collection name to publish, or to search for in mint/sell"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to LOG_LEVEL)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging("INFO")
        logging.getLogger(__name__).error(f"Invalid configuration: {e}")
        return 2

    if args.headed:
        settings.headless = False
    setup_logging(args.log_level or settings.log_level, json_format=settings.log_json)
    logger = logging.getLogger(__name__)

    options = JourneyOptions(
        model=AIModel(args.model),
        template=args.template,
        image=args.image,
        mint_images=args.mint_images,
        collection_url=args.collection_url,
        collection_name=args.collection_name,
    )

    try:
        report = asyncio.run(
            run_workflow(
                args.workflow,
                settings,
                options,
                worker_index=args.worker,
                stagger=not args.no_stagger,
            )
        )
    except KeyboardInterrupt:
        logger.info("Run stopped by user")
        return 130

    return 0 if report.passed else 1


if __name__ == "__main__":
    sys.exit(main())
