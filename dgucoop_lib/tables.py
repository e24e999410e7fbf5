"""
Table parsing for the three DGU Coop mobile floor pages.

All floors share one row-walking algorithm; a ``FloorLayout`` carries what
differs between them (cell count, corner labels, cell grammar, whether a
single cell holds both meal periods, and whether closed periods are
reported).
"""
import logging
import re
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Callable, List, Mapping

from bs4 import BeautifulSoup, Tag

from .cells import CellResult, parse_floor1_cell, parse_floor2_cell, parse_floor3_cell
from .day import classify_meal_time, get_day_of_week
from .meal import (
    Meal,
    RESTAURANT_FLOOR2_SPECIAL,
    RESTAURANT_FLOOR2_TTUKBAEGI,
    RESTAURANT_FLOOR2_WESTERN,
    RESTAURANT_FLOOR3_HOME,
    RESTAURANT_FLOOR3_ONE_BOWL,
    RESTAURANT_SNACK_BAR,
    RESTAURANT_SOT_AND_NOODLE,
    STATUS_OPEN,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

HEADER_LABEL = '구분'


def _strip_label(text: str) -> str:
    return text.strip()


def _squash_label(text: str) -> str:
    # "한그릇<br>(한정판매)" -> "한그릇(한정판매)"
    return re.sub(r'\s+', '', text)


@dataclass(frozen=True)
class FloorLayout:
    floor: int
    corners: Mapping[str, str]
    cell_parser: Callable[[str], CellResult]
    normalize_label: Callable[[str], str] = _strip_label
    # floor 1 has a single cell per corner holding both lunch and dinner
    combined_cell: bool = False
    # floor 3 reports closed/unavailable periods as item-less meals
    emit_closed: bool = False

    @property
    def cell_count(self) -> int:
        return 2 if self.combined_cell else 3


FLOOR1_LAYOUT = FloorLayout(
    floor=1,
    corners=MappingProxyType({
        '메뉴1': RESTAURANT_SOT_AND_NOODLE,
        '메뉴2': RESTAURANT_SNACK_BAR,
    }),
    cell_parser=parse_floor1_cell,
    combined_cell=True,
)

FLOOR2_LAYOUT = FloorLayout(
    floor=2,
    corners=MappingProxyType({
        '일품': RESTAURANT_FLOOR2_SPECIAL,
        '양식': RESTAURANT_FLOOR2_WESTERN,
        '뚝배기': RESTAURANT_FLOOR2_TTUKBAEGI,
    }),
    cell_parser=parse_floor2_cell,
)

FLOOR3_LAYOUT = FloorLayout(
    floor=3,
    corners=MappingProxyType({
        '집밥': RESTAURANT_FLOOR3_HOME,
        '한그릇(한정판매)': RESTAURANT_FLOOR3_ONE_BOWL,
    }),
    cell_parser=parse_floor3_cell,
    normalize_label=_squash_label,
    emit_closed=True,
)

FLOOR_LAYOUTS = MappingProxyType({
    1: FLOOR1_LAYOUT,
    2: FLOOR2_LAYOUT,
    3: FLOOR3_LAYOUT,
})


def body_rows(table: Tag) -> List[Tag]:
    """Rows of the table body; html.parser does not add an implicit <tbody>."""
    bodies = table.find_all('tbody', recursive=False)
    if bodies:
        return [row for body in bodies for row in body.find_all('tr', recursive=False)]
    return table.find_all('tr', recursive=False)


def row_cells(row: Tag) -> List[Tag]:
    return row.find_all(['td', 'th'], recursive=False)


def _find_table(table_html: str) -> Tag:
    soup = BeautifulSoup(table_html, 'html.parser')
    return soup.find('table') or soup


def _combined_cell_meals(restaurant: str, day: str, result: CellResult, updated_at: str) -> List[Meal]:
    """Split one floor-1 cell into lunch and dinner by each item's hours."""
    lunch_items = []
    dinner_items = []
    for item in result.items:
        period = classify_meal_time(item.open_and_close_time)
        if period in ('lunch', 'both'):
            lunch_items.append(item)
        if period in ('dinner', 'both'):
            dinner_items.append(item)

    meals = []
    for meal_type, items in (('lunch', lunch_items), ('dinner', dinner_items)):
        if items:
            meals.append(Meal(
                restaurant=restaurant,
                day=day,
                meal_type=meal_type,
                items=items,
                status=STATUS_OPEN,
                updated_at=updated_at,
            ))
    return meals


def _period_meal(layout: FloorLayout, restaurant: str, day: str, meal_type: str,
                 result: CellResult, updated_at: str):
    if result.status == STATUS_OPEN and result.items:
        return Meal(
            restaurant=restaurant,
            day=day,
            meal_type=meal_type,
            items=result.items,
            status=STATUS_OPEN,
            updated_at=updated_at,
        )
    if layout.emit_closed:
        return Meal(
            restaurant=restaurant,
            day=day,
            meal_type=meal_type,
            items=None,
            status=result.status,
            notes=result.notes,
            updated_at=updated_at,
        )
    return None


def parse_floor_table(table_html: str, target_date: date, layout: FloorLayout) -> List[Meal]:
    """
    Parse one floor's menu <table> into Meal records.

    Parameters:
        table_html (str): outerHTML of the <table>.
        target_date (date): The day the page describes.
        layout (FloorLayout): Floor-specific configuration.

    Returns:
        List[Meal]: Records in row order, lunch before dinner. Rows whose
        corner label is not in ``layout.corners`` contribute nothing.
    """
    table = _find_table(table_html)
    day = get_day_of_week(target_date)
    updated_at = utc_timestamp()
    meals: List[Meal] = []

    for row in body_rows(table):
        cells = row_cells(row)
        if len(cells) < layout.cell_count:
            continue

        header_text = cells[0].get_text().strip()
        if not header_text or header_text == HEADER_LABEL:
            continue

        label = layout.normalize_label(header_text)
        restaurant = layout.corners.get(label)
        if restaurant is None:
            # 메뉴3~7, 백반 등 다른 코너
            logger.debug("Floor %s: skipping corner %r", layout.floor, label)
            continue

        if layout.combined_cell:
            cell_html = cells[1].decode_contents().strip()
            if not cell_html:
                continue
            result = layout.cell_parser(cell_html)
            meals.extend(_combined_cell_meals(restaurant, day, result, updated_at))
            continue

        for meal_type, cell in (('lunch', cells[1]), ('dinner', cells[2])):
            cell_html = cell.decode_contents().strip()
            if not cell_html and not layout.emit_closed:
                continue
            meal = _period_meal(layout, restaurant, day, meal_type,
                                layout.cell_parser(cell_html), updated_at)
            if meal is not None:
                meals.append(meal)

    return meals


def parse_floor1_menu(table_html: str, target_date: date) -> List[Meal]:
    """1층 (솥앤누들, 분식당)"""
    return parse_floor_table(table_html, target_date, FLOOR1_LAYOUT)


def parse_floor2_menu(table_html: str, target_date: date) -> List[Meal]:
    """2층 (일품, 양식, 뚝배기)"""
    return parse_floor_table(table_html, target_date, FLOOR2_LAYOUT)


def parse_floor3_menu(table_html: str, target_date: date) -> List[Meal]:
    """3층 (집밥, 한그릇)"""
    return parse_floor_table(table_html, target_date, FLOOR3_LAYOUT)
