"""
Celery tasks for menu app.
"""
from celery import Task, shared_task
from collections import Counter
from datetime import date, datetime
from zoneinfo import ZoneInfo
import logging

from dgucoop_lib.day import date_to_sday
from dgucoop_lib.model import build_openai_client, ocr_menu_image
from dgucoop_lib.parser import (
    build_http_session,
    dgucoop_all_floors_retrieve,
    dgucoop_weekly_menu_retrieve,
)
from menu.settings import load_settings

logger = logging.getLogger(__name__)


def summarize_meals(meals):
    """Counts per status and meal type, for task results and logs."""
    return {
        'total': len(meals),
        'by_status': dict(Counter(meal.status for meal in meals)),
        'by_meal_type': dict(Counter(meal.meal_type for meal in meals)),
    }


def resolve_target_date(target_date=None, tz_name='Asia/Seoul'):
    """ISO string or date -> date; defaults to today in the cafeteria's timezone."""
    if target_date is None:
        return datetime.now(ZoneInfo(tz_name)).date()
    if isinstance(target_date, date):
        return target_date
    return date.fromisoformat(target_date)


@shared_task
def fetch_daily_menus(target_date=None, floors=(1, 2, 3)):
    """
    Fetch the day's menus from every DGU Coop floor.
    Scheduled to run daily at 6:00 AM.

    Args:
        target_date: Optional ISO date string. If None, defaults to today.
        floors: Floors to fetch.
    """
    settings = load_settings()
    target_date = resolve_target_date(target_date, settings.timezone)
    sday = date_to_sday(target_date)

    logger.info(f"Fetching menus for {target_date} (sday={sday}, floors={list(floors)})")

    session = build_http_session()
    try:
        meals = dgucoop_all_floors_retrieve(
            sday,
            floors=floors,
            session=session,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            debug_dir=settings.debug_dir,
        )
    finally:
        session.close()

    stats = summarize_meals(meals)
    logger.info(f"Fetched {stats['total']} meals for {target_date}: {stats['by_status']}")

    return {
        'status': 'success',
        'date': target_date.isoformat(),
        'stats': stats,
        'meals': [meal.to_dict() for meal in meals],
    }


@shared_task
def fetch_weekly_menus():
    """
    Fetch the weekly desktop menu page, when DGUCOOP_WEEKLY_URL is configured.
    """
    settings = load_settings()
    if not settings.weekly_url:
        logger.warning("DGUCOOP_WEEKLY_URL not set - skipping weekly menu fetch")
        return {'status': 'skipped', 'message': 'DGUCOOP_WEEKLY_URL not set'}

    session = build_http_session()
    try:
        meals = dgucoop_weekly_menu_retrieve(
            settings.weekly_url,
            session=session,
            timeout=settings.request_timeout,
            debug_dir=settings.debug_dir,
        )
    finally:
        session.close()

    stats = summarize_meals(meals)
    logger.info(f"Fetched {stats['total']} weekly meals")
    return {
        'status': 'success',
        'stats': stats,
        'meals': [meal.to_dict() for meal in meals],
    }


class OpenAITask(Task):
    """Task base holding one OpenAI client per worker process."""

    _openai_client = None

    @property
    def openai_client(self):
        if self._openai_client is None:
            self._openai_client = build_openai_client(load_settings().openai_api_key)
        return self._openai_client


@shared_task(bind=True, base=OpenAITask)
def ocr_menu_image_task(self, image_url):
    """
    Read a posted menu image with the vision model.

    Args:
        image_url: URL of the menu image.
    """
    settings = load_settings()
    logger.info(f"Running OCR for {image_url}")

    try:
        meals = ocr_menu_image(
            image_url,
            self.openai_client,
            model=settings.openai_model,
            timeout=settings.request_timeout,
        )
    except Exception as e:
        logger.error(f"OCR failed for {image_url}: {e}")
        return {
            'status': 'error',
            'message': str(e),
        }

    return {
        'status': 'success',
        'image_url': image_url,
        'meals': meals,
    }
