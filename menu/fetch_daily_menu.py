"""
Command to fetch daily menus from the DGU Coop website and print them as JSON.

    python -m menu.fetch_daily_menu --date 2025-10-20 --floors 2 3
"""
import argparse
import json
import logging
import sys

from dgucoop_lib.day import date_to_sday
from dgucoop_lib.parser import (
    build_http_session,
    dgucoop_all_floors_retrieve,
    dgucoop_weekly_menu_retrieve,
)
from menu.settings import load_settings
from menu.tasks import resolve_target_date, summarize_meals

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        description='Fetch daily menu from the DGU Coop website and print it as JSON',
    )
    parser.add_argument(
        '--date',
        type=str,
        help='Date to fetch (YYYY-MM-DD), defaults to today',
    )
    parser.add_argument(
        '--floors',
        nargs='+',
        type=int,
        choices=[1, 2, 3],
        default=[1, 2, 3],
        help='Which floors to fetch (default: all)',
    )
    parser.add_argument(
        '--weekly',
        action='store_true',
        help='Fetch the weekly desktop page (DGUCOOP_WEEKLY_URL) instead of the floor pages',
    )
    parser.add_argument(
        '--output',
        type=str,
        help='Write the JSON to this file instead of stdout',
    )
    return parser


def main(argv=None):
    parser = build_parser()
    options = parser.parse_args(argv)
    settings = load_settings()

    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, settings.log_level, logging.INFO),
    )

    try:
        target_date = resolve_target_date(options.date, settings.timezone)
    except ValueError:
        parser.error(f'Invalid date format: {options.date}. Use YYYY-MM-DD')

    session = build_http_session()
    try:
        if options.weekly:
            if not settings.weekly_url:
                parser.error('DGUCOOP_WEEKLY_URL is not set')
            meals = dgucoop_weekly_menu_retrieve(
                settings.weekly_url,
                session=session,
                timeout=settings.request_timeout,
                debug_dir=settings.debug_dir,
            )
        else:
            logger.info(f'Fetching menus for {target_date} (floors {options.floors})...')
            meals = dgucoop_all_floors_retrieve(
                date_to_sday(target_date),
                floors=options.floors,
                session=session,
                base_url=settings.base_url,
                timeout=settings.request_timeout,
                debug_dir=settings.debug_dir,
            )
    finally:
        session.close()

    payload = json.dumps([meal.to_dict() for meal in meals], indent=2, ensure_ascii=False)
    if options.output:
        with open(options.output, 'w', encoding='utf-8') as f:
            f.write(payload + '\n')
    else:
        sys.stdout.write(payload + '\n')

    stats = summarize_meals(meals)
    logger.info(f"✅ Menu fetching completed! {stats['total']} meals {stats['by_status']}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
