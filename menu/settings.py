"""
Settings for the menu fetcher, read from the environment (and a .env file).
"""
import os
from dataclasses import dataclass
from typing import Optional

import dotenv

from dgucoop_lib.parser import DEFAULT_TIMEOUT
from dgucoop_lib.webpage import DGUCOOP_MOBILE_MENU_URL


@dataclass(frozen=True)
class Settings:
    base_url: str = DGUCOOP_MOBILE_MENU_URL
    weekly_url: Optional[str] = None
    request_timeout: float = DEFAULT_TIMEOUT
    debug_dir: Optional[str] = None
    timezone: str = 'Asia/Seoul'
    celery_broker_url: str = 'redis://localhost:6379/0'
    celery_result_backend: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: str = 'gpt-4o-mini'
    log_level: str = 'INFO'


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build Settings from environment variables.

    Values already in the environment win over the .env file.
    """
    dotenv.load_dotenv(env_file)

    return Settings(
        base_url=os.environ.get('DGUCOOP_BASE_URL') or DGUCOOP_MOBILE_MENU_URL,
        weekly_url=os.environ.get('DGUCOOP_WEEKLY_URL') or None,
        request_timeout=float(os.environ.get('DGUCOOP_REQUEST_TIMEOUT') or DEFAULT_TIMEOUT),
        debug_dir=os.environ.get('DGUCOOP_DEBUG_DIR') or None,
        timezone=os.environ.get('DGUCOOP_TIMEZONE') or 'Asia/Seoul',
        celery_broker_url=os.environ.get('CELERY_BROKER_URL') or 'redis://localhost:6379/0',
        celery_result_backend=os.environ.get('CELERY_RESULT_BACKEND') or None,
        openai_api_key=os.environ.get('OPENAI_API_KEY') or None,
        openai_model=os.environ.get('OPENAI_MODEL') or 'gpt-4o-mini',
        log_level=(os.environ.get('LOG_LEVEL') or 'INFO').upper(),
    )
