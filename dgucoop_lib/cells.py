"""
Menu-cell parsing for the DGU Coop mobile menu tables.

Every floor writes its cells differently:

* floor 1 (솥앤누들, 분식당) lists "name / price" lines under a leading
  operating-hours line, with the price either on the same line or alone on
  the next one;
* floors 2 and 3 use either a set menu (components without prices and one
  ``￦ 4,500`` marker for the whole cell) or an itemized list of
  ``name 6,500원`` pairs;
* floor 3 additionally marks closed days with ``휴무`` or leaves the cell
  empty.

The functions here take a cell's inner HTML and return a ``CellResult``.
"""
import html
import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence, Tuple

from .meal import MenuItem, STATUS_CLOSED, STATUS_OPEN, STATUS_UNAVAILABLE

NO_MENU_NOTE = '메뉴 정보 없음'
CLOSED_KEYWORD = '휴무'

_BR_RE = re.compile(r'<br\s*/?>', re.IGNORECASE)
# 원산지 span (내용 포함)
_ORIGIN_SPAN_RE = re.compile(r'<span.*</span>', re.IGNORECASE | re.DOTALL)
TAG_RE = re.compile(r'<[^>]+>')
_PAREN_RE = re.compile(r'\([^()]*\)')
_WHITESPACE_RE = re.compile(r'\s+')

PRICE_RE = re.compile(r'(\d[\d,]*)원')
PRICE_ONLY_RE = re.compile(r'^(\d[\d,]*)원$')
SET_PRICE_RE = re.compile(r'[￦₩]\s*(\d[\d,]*)')
_LEADING_TIME_RE = re.compile(r'^(\d{2}:\d{2}~\d{2}:\d{2})')
_OPERATING_HOURS_RE = re.compile(r'(\d{2}:\d{2}~\d{2}:\d{2}(?:\s*/\s*\d{2}:\d{2}~\d{2}:\d{2})?)')
_ITEM_PRICE_RE = re.compile(r'(.*?)(\d[\d,]*)원')
_NEW_TAG_RE = re.compile(r'\[NEW\]', re.IGNORECASE)

# (pattern, replacement) pairs applied by clean_line after markup removal
Noise = Sequence[Tuple[Pattern, str]]

FLOOR1_NOISE: Noise = (
    (re.compile(r'\*{4}분식당\*{4}'), ''),
    (re.compile(r'NEW 쌀국수'), '쌀국수'),
)

FLOOR2_SET_NOISE: Noise = (
    (_OPERATING_HOURS_RE, ''),
    (SET_PRICE_RE, ''),
    (re.compile(r'\*자율배식\*'), ''),
    (re.compile(r'배추김치/단무지'), ''),
)

FLOOR3_SET_NOISE: Noise = tuple(FLOOR2_SET_NOISE) + (
    (re.compile(r'\*\*12시부터 한정판매'), ''),
)

# floor 2 only
ITEMIZED_NOISE: Noise = (
    (re.compile(r'-더진국-'), ''),
)

_ITEM_NAME_NOISE: Noise = (
    (re.compile(r'\(\d{2}:\d{2}~\d{2}:\d{2}\)'), ''),
    (re.compile(r'\(한정판매\)'), ''),
    (_NEW_TAG_RE, ''),
    (re.compile(r'\(\s*\)'), ''),
)


@dataclass
class CellResult:
    items: List[MenuItem] = field(default_factory=list)
    status: str = STATUS_OPEN
    notes: Optional[str] = None


# =============================================================================
# NORMALIZER
# =============================================================================

def split_lines(cell_html: str) -> List[str]:
    """Split a cell's inner HTML on <br> markers, keeping empty lines."""
    return _BR_RE.split(cell_html)


def strip_markup(text: str) -> str:
    """Drop origin spans with their content, then every remaining tag."""
    text = _ORIGIN_SPAN_RE.sub('', text)
    text = TAG_RE.sub('', text)
    return html.unescape(text)


def _apply_noise(text: str, noise: Noise) -> str:
    for pattern, replacement in noise:
        text = pattern.sub(replacement, text)
    return text


def strip_parentheses(text: str) -> str:
    """Remove every (...) group, innermost first: "우동(면(밀:수입))" -> "우동"."""
    while True:
        stripped = _PAREN_RE.sub('', text)
        if stripped == text:
            return text
        text = stripped


def clean_line(line: str, noise: Noise = ()) -> str:
    """
    Normalize one cell line into a bare menu name.

    Parameters:
        line (str): Raw HTML for a single line of the cell.
        noise: Site-specific tokens to drop, applied last.

    Returns:
        str: The trimmed text. Already-clean text comes back unchanged
        apart from surrounding whitespace.
    """
    line = strip_markup(line)
    line = strip_parentheses(line)
    line = _apply_noise(line, noise)
    return line.strip()


def parse_price(digits: str) -> int:
    """'6,500' -> 6500"""
    return int(digits.replace(',', ''))


def _next_line_price(lines: Sequence[str], index: int) -> Optional[int]:
    """Price of lines[index] when that line holds nothing but a price."""
    if index >= len(lines):
        return None
    match = PRICE_ONLY_RE.match(TAG_RE.sub('', lines[index]).strip())
    if match:
        return parse_price(match.group(1))
    return None


def _split_names(name: str, separators: Sequence[str]) -> List[str]:
    for separator in separators:
        if separator in name:
            return [part.strip() for part in name.split(separator) if part.strip()]
    return [name]


# =============================================================================
# FLOOR 1
# =============================================================================

def parse_floor1_cell(cell_html: str) -> CellResult:
    """
    Parse a floor-1 cell, e.g. "11:00~19:00<br>삼겹살김치철판<br>6000원".

    A line starting with "HH:MM~HH:MM" sets the operating hours for the
    items that follow it. A name takes its price from the same line, or
    from the next line when that line is price-only, in which case the
    price line is consumed.
    """
    items: List[MenuItem] = []
    operating_hours = None
    lines = split_lines(cell_html)

    cursor = 0
    while cursor < len(lines):
        name = clean_line(lines[cursor], FLOOR1_NOISE)
        cursor += 1
        if not name:
            continue

        # "11:30~13:50(한정판매)" arrives here as "11:30~13:50"
        time_match = _LEADING_TIME_RE.match(name)
        if time_match:
            operating_hours = time_match.group(1)
            continue

        price = None
        same_line_price = PRICE_RE.search(name)
        if same_line_price:
            # "데리야끼치킨솥밥 5500원"
            price = parse_price(same_line_price.group(1))
            name = name.replace(same_line_price.group(0), '', 1).strip()
        else:
            price = _next_line_price(lines, cursor)
            if price is not None:
                cursor += 1

        # a lone "6000원" line leaves no name behind
        if name:
            items.append(MenuItem(name=[name], price=price, open_and_close_time=operating_hours))

    if not items:
        return CellResult(status=STATUS_UNAVAILABLE, notes=NO_MENU_NOTE)
    return CellResult(items=items)


# =============================================================================
# FLOORS 2 AND 3
# =============================================================================

def _parse_set_menu(lines: Sequence[str], set_price: int, operating_hours: Optional[str],
                    noise: Noise, separators: Sequence[str]) -> List[MenuItem]:
    names: List[str] = []
    for line in lines:
        line = clean_line(line, noise)
        if line:
            # "낙삼덮밥*요구르트" -> ["낙삼덮밥", "요구르트"]
            names.extend(_split_names(line, separators))
    if not names:
        return []
    return [MenuItem(name=names, price=set_price, open_and_close_time=operating_hours)]


def _clean_item_name(name: str) -> str:
    return _apply_noise(name, _ITEM_NAME_NOISE).strip()


def _priced_items(name: str, price: int, operating_hours: Optional[str]) -> List[MenuItem]:
    # 뚝배기코너: "순두부/김치찌개 6000원" is two dishes at one price
    items = []
    for sub_name in _split_names(name, ('/',)):
        sub_name = _NEW_TAG_RE.sub('', sub_name).strip()
        if sub_name:
            items.append(MenuItem(name=[sub_name], price=price, open_and_close_time=operating_hours))
    return items


def parse_itemized_text(single_line: str, operating_hours: Optional[str]) -> List[MenuItem]:
    """Extract every "(name)(price)원" pair from a joined cell text."""
    items: List[MenuItem] = []
    for match in _ITEM_PRICE_RE.finditer(single_line):
        name = _clean_item_name(match.group(1))
        if not name:
            continue
        items.extend(_priced_items(name, parse_price(match.group(2)), operating_hours))
    return items


def parse_lines_with_next_line_price(lines: Sequence[str], operating_hours: Optional[str],
                                     noise: Noise = ()) -> List[MenuItem]:
    """
    Line-by-line fallback for itemized cells: a name is kept only when the
    following line is price-only ("토마토파스타&마늘빵" <br> "6000원").
    """
    items: List[MenuItem] = []
    cursor = 0
    while cursor < len(lines):
        name = TAG_RE.sub('', lines[cursor])
        name = _OPERATING_HOURS_RE.sub('', name, count=1)
        name = _apply_noise(name, noise).strip()
        cursor += 1
        if not name:
            continue

        price = _next_line_price(lines, cursor)
        if price is None:
            continue
        cursor += 1

        name = strip_parentheses(html.unescape(name))
        name = _NEW_TAG_RE.sub('', name).strip()
        if name:
            items.append(MenuItem(name=[name], price=price, open_and_close_time=operating_hours))
    return items


def _parse_itemized_menu(lines: Sequence[str], operating_hours: Optional[str],
                         noise: Noise) -> List[MenuItem]:
    single_line = ' '.join(strip_markup(line) for line in lines)
    single_line = _OPERATING_HOURS_RE.sub('', single_line, count=1)
    single_line = _apply_noise(single_line, noise)
    single_line = _WHITESPACE_RE.sub(' ', single_line).strip()

    if _ITEM_PRICE_RE.search(single_line):
        return parse_itemized_text(single_line, operating_hours)
    # TODO: no sampled page has reached this branch yet; add a captured
    # cell to test_cells.py once one turns up.
    return parse_lines_with_next_line_price(lines, operating_hours, noise)


def _parse_priced_cell(cell_html: str, set_noise: Noise, separators: Sequence[str],
                       itemized_noise: Noise = ()) -> List[MenuItem]:
    hours_match = _OPERATING_HOURS_RE.search(cell_html)
    operating_hours = hours_match.group(1) if hours_match else None

    set_price_match = SET_PRICE_RE.search(cell_html)
    set_price = parse_price(set_price_match.group(1)) if set_price_match else None

    lines = split_lines(cell_html)
    if set_price:
        return _parse_set_menu(lines, set_price, operating_hours, set_noise, separators)
    return _parse_itemized_menu(lines, operating_hours, itemized_noise)


def parse_floor2_cell(cell_html: str) -> CellResult:
    """
    Parse a floor-2 cell (일품 set menu, or 양식/뚝배기 itemized list).
    """
    items = _parse_priced_cell(cell_html, FLOOR2_SET_NOISE, ('*',), ITEMIZED_NOISE)
    if not items:
        return CellResult(status=STATUS_UNAVAILABLE, notes=NO_MENU_NOTE)
    return CellResult(items=items)


def parse_floor3_cell(cell_html: str) -> CellResult:
    """
    Parse a floor-3 cell (집밥, 한그릇).

    Closed days ("휴무" or an empty cell) come back as 'closed'; a cell with
    text but no recoverable items comes back as 'unavailable'.
    """
    cell_text = html.unescape(TAG_RE.sub('', cell_html)).strip()
    if CLOSED_KEYWORD in cell_text:
        return CellResult(status=STATUS_CLOSED, notes=cell_text)
    if not cell_text:
        return CellResult(status=STATUS_CLOSED)

    items = _parse_priced_cell(cell_html, FLOOR3_SET_NOISE, ('*', '&'))
    if not items:
        return CellResult(status=STATUS_UNAVAILABLE, notes=NO_MENU_NOTE)
    return CellResult(items=items)
