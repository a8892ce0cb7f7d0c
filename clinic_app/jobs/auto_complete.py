"""
Session auto-completion runner
Run manually: python -m clinic_app.jobs.auto_complete [--dry-run] [--max-age-days N]
"""

import argparse
import logging
import sys

from .. import models  # noqa: F401 - register tables with Base
from ..cache import build_cache
from ..database import SessionLocal
from ..domain.sessions.completion import auto_complete_sessions

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_DAYS = 90


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mark overdue sessions as completed")
    parser.add_argument(
        "--dry-run", action="store_true", help="List the sessions that would be completed"
    )
    parser.add_argument(
        "--max-age-days",
        type=int,
        default=DEFAULT_MAX_AGE_DAYS,
        help=f"Ignore sessions older than this many days (default: {DEFAULT_MAX_AGE_DAYS})",
    )
    args = parser.parse_args(argv)
    if args.max_age_days < 0:
        parser.error("--max-age-days must be >= 0")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)

    logger.info("🚀 Starting session auto-completion...")
    db = SessionLocal()
    try:
        summary = auto_complete_sessions(
            db,
            dry_run=args.dry_run,
            max_age_days=args.max_age_days,
            cache=None if args.dry_run else build_cache(),
        )
    except Exception as e:
        logger.error(f"❌ Session auto-completion crashed: {e}")
        return 1
    finally:
        db.close()

    logger.info(
        f"✅ Updated: {summary['updated']} | Skipped: {summary['skipped']} | Errors: {len(summary['errors'])}"
    )
    for error in summary["errors"]:
        logger.error(f"  - {error}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    sys.exit(main())
