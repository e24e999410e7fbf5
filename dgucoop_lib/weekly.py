"""
Parser for the weekly desktop menu table (all restaurants, Sunday–Saturday).

The weekly page is laid out as restaurant sections (``td.menu_st``), each
followed by corner rows whose first cell spans the corner's 중식/석식 rows.
Day columns are read from the header row. 솥앤누들 and 분식당 publish a
fixed menu instead of a per-day one, so their single cell is repeated for
every weekday.
"""
import html
import logging
import re
from types import MappingProxyType
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from .cells import CellResult, parse_price, PRICE_ONLY_RE, PRICE_RE, SET_PRICE_RE, TAG_RE, split_lines
from .meal import (
    Meal,
    MenuItem,
    RESTAURANT_FLOOR2_SPECIAL,
    RESTAURANT_FLOOR2_TTUKBAEGI,
    RESTAURANT_FLOOR2_WESTERN,
    RESTAURANT_FLOOR3_HOME,
    RESTAURANT_FLOOR3_ONE_BOWL,
    RESTAURANT_SNACK_BAR,
    RESTAURANT_SOT_AND_NOODLE,
    STATUS_CLOSED,
    STATUS_OPEN,
    STATUS_UNAVAILABLE,
    utc_timestamp,
)
from .tables import body_rows, row_cells

logger = logging.getLogger(__name__)

DAY_CHARS = MappingProxyType({
    '일': 'sun', '월': 'mon', '화': 'tue', '수': 'wed', '목': 'thu', '금': 'fri', '토': 'sat',
})

MEAL_TYPE_LABELS = MappingProxyType({
    '중식': 'lunch',
    '석식': 'dinner',
})

# "<섹션>-<코너>" -> restaurant
SECTION_CORNERS = MappingProxyType({
    '상록원3층식당-집밥': RESTAURANT_FLOOR3_HOME,
    '상록원3층식당-한그릇(한정판매)': RESTAURANT_FLOOR3_ONE_BOWL,
    '상록원2층식당-일품코너': RESTAURANT_FLOOR2_SPECIAL,
    '상록원2층식당-양식코너': RESTAURANT_FLOOR2_WESTERN,
    '상록원2층식당-뚝배기코너': RESTAURANT_FLOOR2_TTUKBAEGI,
})

CONSTANT_MENU_SECTION = '솥앤누들'
CONSTANT_MENU_CORNER = '메뉴'
CONSTANT_MENU_DAYS = ('mon', 'tue', 'wed', 'thu', 'fri')
CONSTANT_MENU_MARKERS = (
    ('****분식당****', RESTAURANT_SNACK_BAR),
    ('삼겹살김치철판', RESTAURANT_SOT_AND_NOODLE),
)

CONTENT_SPAN_SELECTOR = 'span[style*="color:#303030"]'

_GREEDY_PAREN_RE = re.compile(r'\(.*\)')


def _weekly_price(text: str) -> Optional[int]:
    """Set price ("￦ 4,500") if present, else the first "6,000원"."""
    match = SET_PRICE_RE.search(text) or PRICE_RE.search(text)
    if match:
        return parse_price(match.group(1))
    return None


def parse_weekly_cell(cell: Tag) -> CellResult:
    """Parse one day cell of the weekly table."""
    content = cell.select_one(CONTENT_SPAN_SELECTOR)
    if content is None or not content.get_text().strip():
        return CellResult(status=STATUS_CLOSED)

    raw_html = content.decode_contents()
    if '휴무' in raw_html:
        return CellResult(status=STATUS_CLOSED)

    set_price = _weekly_price(cell.get_text())

    set_lines = []
    for line in split_lines(raw_html):
        line = TAG_RE.sub('', _GREEDY_PAREN_RE.sub('', html.unescape(line)))
        line = SET_PRICE_RE.sub('', line).strip()
        if line and not line.startswith('**') and '한정판매' not in line:
            set_lines.append(line)

    if set_price and set_lines and not any(PRICE_RE.search(line) for line in set_lines):
        return CellResult(items=[MenuItem(name=set_lines, price=set_price)])

    raw_lines = [html.unescape(line).strip() for line in split_lines(raw_html)]
    raw_lines = [line for line in raw_lines if line and not line.startswith('****') and '~' not in line]

    items: List[MenuItem] = []
    cursor = 0
    while cursor < len(raw_lines):
        line = raw_lines[cursor]
        cursor += 1
        price = None

        next_line = raw_lines[cursor] if cursor < len(raw_lines) else ''
        price_only = PRICE_ONLY_RE.match(next_line)
        if price_only:
            price = parse_price(price_only.group(1))
            cursor += 1
        else:
            embedded = PRICE_RE.search(line)
            if embedded:
                price = parse_price(embedded.group(1))
                line = line.replace(embedded.group(0), '', 1).strip()

        line = line.replace('[NEW]', '')
        line = TAG_RE.sub('', _GREEDY_PAREN_RE.sub('', line)).strip()
        if line:
            items.append(MenuItem(name=[line], price=price))

    if not items:
        if len(set_lines) == 1 and set_price:
            return CellResult(items=[MenuItem(name=set_lines, price=set_price)])
        return CellResult(status=STATUS_UNAVAILABLE)

    return CellResult(items=items)


def _meal_from_cell(restaurant: str, day: str, meal_type: str, result: CellResult, updated_at: str) -> Meal:
    return Meal(
        restaurant=restaurant,
        day=day,
        meal_type=meal_type,
        items=result.items if result.status == STATUS_OPEN else None,
        status=result.status,
        notes=result.notes,
        updated_at=updated_at,
    )


def _day_columns(rows: List[Tag]) -> Dict[int, str]:
    """Map column index -> weekday tag, from the header row ("월<br>10/20")."""
    columns: Dict[int, str] = {}
    for row in rows:
        cells = row_cells(row)
        if len(cells) > 3 and '월<br' in cells[3].decode_contents():
            for index in range(2, min(9, len(cells))):
                day_char = cells[index].get_text().strip()[:1]
                if day_char in DAY_CHARS:
                    columns[index] = DAY_CHARS[day_char]
            break
    return columns


def _constant_menu_meals(cells: List[Tag], restaurant: str, data_start: int, updated_at: str) -> List[Meal]:
    data_cell = next((cell for cell in cells[data_start:] if cell.get_text().strip()), None)
    if data_cell is None:
        return []

    result = parse_weekly_cell(data_cell)
    return [
        _meal_from_cell(restaurant, day, meal_type, result, updated_at)
        for day in CONSTANT_MENU_DAYS
        for meal_type in ('lunch', 'dinner')
    ]


def parse_weekly_menu(table_html: str) -> List[Meal]:
    """
    Parse the weekly desktop table into Meal records.

    Parameters:
        table_html (str): outerHTML of the weekly <table>.

    Returns:
        List[Meal]: One record per (restaurant, day, meal period) found,
        including closed and unavailable ones.
    """
    soup = BeautifulSoup(table_html, 'html.parser')
    table = soup.find('table') or soup
    rows = body_rows(table)
    day_columns = _day_columns(rows)
    updated_at = utc_timestamp()

    meals: List[Meal] = []
    section = ''
    corner = ''

    for row in rows:
        cells = row_cells(row)
        if not cells:
            continue
        first_cell = cells[0]
        first_text = first_cell.get_text().strip()

        if 'menu_st' in (first_cell.get('class') or []):
            section = first_text
            corner = ''
            continue

        # 날짜 헤더 행
        if first_cell.get('colspan') == '2' and '코너' in first_text:
            continue

        has_rowspan = first_cell.has_attr('rowspan')
        if has_rowspan:
            label = re.sub(r'\s+', '', first_text)
            if label != '석식':
                corner = label

        if CONSTANT_MENU_SECTION in section:
            if corner == CONSTANT_MENU_CORNER and len(cells) > 3:
                monday_text = cells[3].get_text()
                for marker, restaurant in CONSTANT_MENU_MARKERS:
                    if marker in monday_text:
                        meals.extend(_constant_menu_meals(cells, restaurant, 3, updated_at))
                        break
            continue

        if has_rowspan:
            meal_type_cell = cells[1] if len(cells) > 1 else None
            data_start = 2
        else:
            meal_type_cell = first_cell
            data_start = 1

        meal_type = MEAL_TYPE_LABELS.get(meal_type_cell.get_text().strip() if meal_type_cell else '')
        if meal_type is None:
            continue

        restaurant = SECTION_CORNERS.get(f'{section}-{corner}')
        if restaurant is None:
            logger.debug("Weekly page: skipping %s-%s", section, corner)
            continue

        for column, day in day_columns.items():
            # rows without the corner cell are shifted one column left
            index = column if data_start == 2 else column - 1
            if index >= len(cells):
                continue
            result = parse_weekly_cell(cells[index])
            meals.append(_meal_from_cell(restaurant, day, meal_type, result, updated_at))

    return meals
