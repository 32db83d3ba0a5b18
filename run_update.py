"""
run_update.py — Batch entry point: refresh players.json from the forum.

    python run_update.py                    # member list only
    python run_update.py --analyze-posts    # also score every player's post history
"""

import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()  # FORUM_* / PLAYERS_FILE overrides from .env

from config import FORUM_BASE_URL, PLAYERS_FILE, REQUEST_DELAY_SECONDS
from core.forum_client import ForumClient, ForumFetchError
from core.sections import ConfigurationError, SectionClassifier, load_section_config
from core.updater import run_update
from utils.utils import RateLimiter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Update hero-card player data from the forum.")
    parser.add_argument("--analyze-posts", action="store_true",
                        help="Also fetch and score every player's post history.")
    parser.add_argument("--output", default=PLAYERS_FILE,
                        help=f"Players JSON file (default: {PLAYERS_FILE}).")
    parser.add_argument("--skip-members", action="store_true",
                        help="Do not refresh from the member list.")
    parser.add_argument("--workers", type=int, default=1,
                        help="Players analysed in parallel (requests stay rate-limited).")
    parser.add_argument("--delay", type=float, default=REQUEST_DELAY_SECONDS,
                        help="Minimum seconds between forum requests.")
    parser.add_argument("--sections", default=None,
                        help="JSON file with the game/flood section table.")
    parser.add_argument("--no-cache", action="store_true",
                        help="Ignore cached post histories.")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        classifier = SectionClassifier(load_section_config(args.sections))
    except ConfigurationError as exc:
        logger.error(f"Invalid section config: {exc}")
        return 2
    logger.info(
        f"Sections: game {classifier.game_section_ids}, flood {classifier.flood_section_ids}"
    )

    client = ForumClient(base_url=FORUM_BASE_URL, rate_limiter=RateLimiter(args.delay))
    try:
        document = run_update(
            client,
            classifier,
            path=args.output,
            analyze_posts=args.analyze_posts,
            sync_member_list=not args.skip_members,
            max_workers=args.workers,
            use_cache=not args.no_cache,
        )
    except ForumFetchError as exc:
        logger.error(f"Could not fetch the member list and no saved players exist: {exc}")
        return 1

    logger.info(f"✅ {len(document['players'])} players written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
