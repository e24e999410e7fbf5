"""
DGU Coop (Dongguk University cooperative) Menu Parser

A Python package for retrieving and parsing the DGU Coop cafeteria menus.
"""

from .parser import (
    build_http_session,
    dgucoop_floor_menu_retrieve,
    dgucoop_all_floors_retrieve,
    dgucoop_weekly_menu_retrieve,
    save_debug_output,
    DgucoopError,
    MenuFetchError,
    TableNotFoundError,
)
from .tables import parse_floor1_menu, parse_floor2_menu, parse_floor3_menu
from .weekly import parse_weekly_menu
from .webpage import dgucoop_menu_url
from .day import classify_meal_time, date_to_sday, get_day_of_week, sday_to_date
from .meal import Meal, MenuItem
from .model import build_openai_client, ocr_menu_image


__version__ = "0.1.0"

__all__ = [
    "build_http_session",
    "dgucoop_floor_menu_retrieve",
    "dgucoop_all_floors_retrieve",
    "dgucoop_weekly_menu_retrieve",
    "save_debug_output",
    "DgucoopError",
    "MenuFetchError",
    "TableNotFoundError",
    "parse_floor1_menu",
    "parse_floor2_menu",
    "parse_floor3_menu",
    "parse_weekly_menu",
    "dgucoop_menu_url",
    "classify_meal_time",
    "date_to_sday",
    "get_day_of_week",
    "sday_to_date",
    "Meal",
    "MenuItem",
    "build_openai_client",
    "ocr_menu_image",
]
