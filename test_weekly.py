"""
Weekly desktop table: sections, rowspan corners and the fixed 솥앤누들/분식당 menu.
"""
from bs4 import BeautifulSoup
import requests

from dgucoop_lib.meal import (
    RESTAURANT_FLOOR2_SPECIAL,
    RESTAURANT_SNACK_BAR,
    RESTAURANT_SOT_AND_NOODLE,
)
from dgucoop_lib.parser import dgucoop_weekly_menu_retrieve
from dgucoop_lib.weekly import parse_weekly_cell, parse_weekly_menu

WEEKLY_URL = "https://dgucoop.dongguk.edu/store/store.php?w=4&l=2"


def content(inner):
    return f'<span style="color:#303030">{inner}</span>'


def day_cells(cells):
    return ''.join(f'<td>{cell}</td>' for cell in cells)


EMPTY_WEEK = [''] * 7

HEADER_ROW = (
    '<tr><td>구분</td><td>시간</td>'
    '<td>일<br>10/19</td><td>월<br>10/20</td><td>화<br>10/21</td><td>수<br>10/22</td>'
    '<td>목<br>10/23</td><td>금<br>10/24</td><td>토<br>10/25</td></tr>'
)

SPECIAL_LUNCH = [
    '',
    content('낙삼덮밥<br>요구르트') + '<br>￦ 4,500',
    content('휴무'),
    content('돈까스 6,000원<br>우동<br>5,000원'),
    content('11:00~14:00'),
    content('제육덮밥(돼지고기:국내산)<br>미니우동') + '<br>￦ 5,000',
    '',
]

SPECIAL_DINNER = list(EMPTY_WEEK)
SPECIAL_DINNER[1] = content('김치볶음밥 5,500원')

WEEKLY_TABLE = (
    '<table>'
    + HEADER_ROW
    + '<tr><td class="menu_st" colspan="9">상록원2층식당</td></tr>'
    + '<tr><td rowspan="2">일품코너</td><td>중식</td>' + day_cells(SPECIAL_LUNCH) + '</tr>'
    + '<tr><td>석식</td>' + day_cells(SPECIAL_DINNER) + '</tr>'
    + '<tr><td class="menu_st" colspan="9">누리터식당</td></tr>'
    + '<tr><td rowspan="1">백반</td><td>중식</td>' + day_cells([content('비빔밥 4,000원')] * 7) + '</tr>'
    + '<tr><td class="menu_st" colspan="9">솥앤누들 / 분식당</td></tr>'
    + '<tr><td rowspan="2">메뉴</td><td>중식</td>'
    + day_cells(['', content('****분식당****<br>라면 4,000원<br>김밥 3,000원'), '', '', '', '', ''])
    + '</tr>'
    + '<tr><td>석식</td>' + day_cells(EMPTY_WEEK) + '</tr>'
    + '<tr><td rowspan="1">메뉴</td><td>중식</td>'
    + day_cells(['', content('삼겹살김치철판<br>6,000원'), '', '', '', '', ''])
    + '</tr>'
    + '</table>'
)


def cell(inner):
    return BeautifulSoup(f'<table><tr><td>{inner}</td></tr></table>', 'html.parser').td


# =============================================================================
# CELLS
# =============================================================================

def test_weekly_cell_set_menu_price_outside_content():
    result = parse_weekly_cell(cell(SPECIAL_LUNCH[1]))

    assert result.status == 'open'
    assert len(result.items) == 1
    assert result.items[0].name == ("낙삼덮밥", "요구르트")
    assert result.items[0].price == 4500


def test_weekly_cell_drops_parentheses_from_set_components():
    result = parse_weekly_cell(cell(SPECIAL_LUNCH[5]))
    assert result.items[0].name == ("제육덮밥", "미니우동")
    assert result.items[0].price == 5000


def test_weekly_cell_itemized_prices():
    result = parse_weekly_cell(cell(SPECIAL_LUNCH[3]))

    assert [item.name for item in result.items] == [("돈까스",), ("우동",)]
    assert [item.price for item in result.items] == [6000, 5000]


def test_weekly_cell_closed_and_unavailable():
    assert parse_weekly_cell(cell('')).status == 'closed'
    assert parse_weekly_cell(cell(content(''))).status == 'closed'
    assert parse_weekly_cell(cell(content('휴무'))).status == 'closed'
    assert parse_weekly_cell(cell(content('11:00~14:00'))).status == 'unavailable'


# =============================================================================
# TABLE
# =============================================================================

def test_weekly_table_corner_rows():
    meals = parse_weekly_menu(WEEKLY_TABLE)
    special = [meal for meal in meals if meal.restaurant == RESTAURANT_FLOOR2_SPECIAL]

    assert len(special) == 14
    lunch = [meal for meal in special if meal.meal_type == 'lunch']
    dinner = [meal for meal in special if meal.meal_type == 'dinner']

    assert [meal.day for meal in lunch] == ['sun', 'mon', 'tue', 'wed', 'thu', 'fri', 'sat']
    assert [meal.status for meal in lunch] == [
        'closed', 'open', 'closed', 'open', 'unavailable', 'open', 'closed',
    ]
    assert [meal.status for meal in dinner] == [
        'closed', 'open', 'closed', 'closed', 'closed', 'closed', 'closed',
    ]
    assert dinner[1].items[0].name == ("김치볶음밥",)
    assert dinner[1].items[0].price == 5500
    assert lunch[0].items is None


def test_weekly_table_fixed_menus_repeat_on_weekdays():
    meals = parse_weekly_menu(WEEKLY_TABLE)

    snack = [meal for meal in meals if meal.restaurant == RESTAURANT_SNACK_BAR]
    sot = [meal for meal in meals if meal.restaurant == RESTAURANT_SOT_AND_NOODLE]

    assert len(snack) == 10
    assert len(sot) == 10
    assert {meal.day for meal in snack} == {'mon', 'tue', 'wed', 'thu', 'fri'}
    assert {meal.meal_type for meal in snack} == {'lunch', 'dinner'}
    assert [item.name for item in snack[0].items] == [("라면",), ("김밥",)]
    assert sot[0].items[0].name == ("삼겹살김치철판",)
    assert sot[0].items[0].price == 6000


def test_weekly_table_skips_unknown_sections():
    meals = parse_weekly_menu(WEEKLY_TABLE)
    assert len(meals) == 34
    assert len({meal.updated_at for meal in meals}) == 1


# =============================================================================
# RETRIEVE
# =============================================================================

class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append(url)
        return self.response


def test_weekly_retrieve_euc_kr_page():
    table = (
        '<table>' + HEADER_ROW
        + '<tr><td class="menu_st" colspan="9">상록원2층식당</td></tr>'
        + '<tr><td rowspan="2">일품코너</td><td>중식</td>' + day_cells(SPECIAL_DINNER) + '</tr>'
        + '<tr><td>석식</td>' + day_cells(EMPTY_WEEK) + '</tr>'
        + '</table>'
    )
    page = (
        '<html><head><meta http-equiv="Content-Type" content="text/html; charset=euc-kr"></head>'
        '<body><div id="sdetail"><table><tr><td>주간메뉴</td></tr></table>' + table + '</div></body></html>'
    )
    response = requests.Response()
    response._content = page.encode('cp949')
    response.status_code = 200
    response.url = WEEKLY_URL
    session = FakeSession(response)

    meals = dgucoop_weekly_menu_retrieve(WEEKLY_URL, session=session)

    assert session.calls == [WEEKLY_URL]
    assert len(meals) == 14
    monday_lunch = meals[1]
    assert (monday_lunch.day, monday_lunch.meal_type) == ('mon', 'lunch')
    assert monday_lunch.items[0].name == ("김치볶음밥",)


def test_weekly_retrieve_missing_table_returns_empty():
    response = requests.Response()
    response._content = '<html><body>점검중</body></html>'.encode('utf-8')
    response.status_code = 200
    response.url = WEEKLY_URL

    assert dgucoop_weekly_menu_retrieve(WEEKLY_URL, session=FakeSession(response)) == []


def test_weekly_retrieve_closes_its_own_session(monkeypatch):
    response = requests.Response()
    response._content = b''
    response.status_code = 502
    response.url = WEEKLY_URL
    created = []

    class ClosingSession(FakeSession):
        closed = False

        def close(self):
            self.closed = True

    def build_session():
        session = ClosingSession(response)
        created.append(session)
        return session

    monkeypatch.setattr('dgucoop_lib.parser.build_http_session', build_session)

    assert dgucoop_weekly_menu_retrieve(WEEKLY_URL) == []
    assert len(created) == 1
    assert created[0].closed
