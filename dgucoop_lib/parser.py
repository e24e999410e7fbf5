import json
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import requests
from bs4 import BeautifulSoup, Tag

from .day import sday_to_date
from .meal import Meal
from .tables import FLOOR_LAYOUTS, parse_floor_table
from .webpage import DGUCOOP_MOBILE_MENU_URL, dgucoop_menu_url
from .weekly import parse_weekly_menu

logger = logging.getLogger(__name__)

MOBILE_TABLE_SELECTOR = 'li > table'
WEEKLY_TABLE_SELECTOR = '#sdetail > table:nth-child(2)'

DEFAULT_TIMEOUT = 15

# EUC-KR 계열은 cp949로 디코딩 (cp949가 euc-kr의 상위 집합)
LEGACY_KOREAN_CHARSETS = ('euc-kr', 'euc_kr', 'ks_c_5601', 'cp949')
LEGACY_KOREAN_CODEC = 'cp949'

_CHARSET_RE = re.compile(rb'charset=["\']?([\w-]+)', re.IGNORECASE)


class DgucoopError(Exception):
    """Base class for failures while fetching or locating a menu page."""


class MenuFetchError(DgucoopError):
    """The page could not be downloaded or decoded."""


class TableNotFoundError(DgucoopError):
    """The page was fetched but the expected menu table is missing."""


def build_http_session() -> requests.Session:
    """
    Create an HTTP session with browser-like headers.

    Built once by the caller and passed to the retrieve functions.
    """
    session = requests.Session()
    session.headers.update({
        'User-Agent': 'Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1',
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': 'ko-KR,ko;q=0.9,en-US;q=0.8',
        'Connection': 'keep-alive',
    })
    return session


# =============================================================================
# FETCHING AND DECODING
# =============================================================================

def _declared_charset(response: requests.Response) -> Optional[str]:
    """Charset from the Content-Type header, else from a <meta> in the first 4KB."""
    content_type = response.headers.get('Content-Type', '')
    match = _CHARSET_RE.search(content_type.encode('ascii', 'ignore'))
    if not match:
        match = _CHARSET_RE.search(response.content[:4096])
    if match:
        return match.group(1).decode('ascii').lower()
    return None


def decode_html(response: requests.Response) -> str:
    """
    Decode the raw response bytes with the page's real encoding.

    The coop pages are not reliably UTF-8: EUC-KR/KS C 5601 declarations are
    decoded as cp949, and undeclared pages that fail UTF-8 are retried as
    cp949 before giving up.
    """
    charset = _declared_charset(response)
    if charset and any(candidate in charset for candidate in LEGACY_KOREAN_CHARSETS):
        charset = LEGACY_KOREAN_CODEC

    try:
        return response.content.decode(charset or 'utf-8')
    except (LookupError, UnicodeDecodeError):
        pass

    try:
        return response.content.decode(LEGACY_KOREAN_CODEC)
    except UnicodeDecodeError as e:
        raise MenuFetchError(f"Could not decode {response.url} (declared charset: {charset})") from e


def _fetch_html(session: requests.Session, url: str, timeout: float) -> str:
    response = session.get(url, timeout=timeout, allow_redirects=True)
    response.raise_for_status()
    return decode_html(response)


def _find_table(html_content: str, selector: str, label: str) -> Tag:
    soup = BeautifulSoup(html_content, 'html.parser')
    table = soup.select_one(selector)
    if table is None:
        raise TableNotFoundError(f"{label}: menu table not found (selector: {selector})")
    return table


def save_debug_output(debug_dir: str, name: str, table_html: str, meals: List[Meal]) -> bool:
    """
    Save the fetched table and the parsed meals for inspection.

    Returns:
        bool: True if both files were written.
    """
    try:
        os.makedirs(debug_dir, exist_ok=True)
        with open(os.path.join(debug_dir, f'fetched_table_{name}.html'), 'w', encoding='utf-8') as f:
            f.write(table_html)
        with open(os.path.join(debug_dir, f'parsed_menu_{name}.json'), 'w', encoding='utf-8') as f:
            json.dump([meal.to_dict() for meal in meals], f, indent=2, ensure_ascii=False)
        logger.debug("Debug output for %s saved to %s", name, debug_dir)
        return True
    except OSError as e:
        logger.warning("Could not save debug output for %s: %s", name, e)
        return False


# =============================================================================
# MOBILE FLOOR PAGES
# =============================================================================

def dgucoop_floor_menu_retrieve(floor: int, sday: int, session: Optional[requests.Session] = None,
                                base_url: str = DGUCOOP_MOBILE_MENU_URL, timeout: float = DEFAULT_TIMEOUT,
                                debug_dir: Optional[str] = None) -> List[Meal]:
    """
    Fetch and parse one floor's mobile menu page.

    Parameters:
        floor (int): 1, 2 or 3.
        sday (int): UTC midnight of the target day, in seconds.
        session: Shared HTTP session. When omitted, a fresh one is created
            and closed before returning.
        base_url (str): Mobile menu page URL.
        timeout (float): Request timeout in seconds.
        debug_dir (str): When set, the fetched table and the parsed result
            are written there.

    Returns:
        List[Meal]: Parsed meals, or an empty list on any fetch or parse
        failure (the failure is logged, never raised).
    """
    layout = FLOOR_LAYOUTS.get(floor)
    if layout is None:
        raise ValueError(f"Unknown floor: {floor!r}")

    url = dgucoop_menu_url(floor, sday, base_url)
    owns_session = session is None
    if owns_session:
        session = build_http_session()

    try:
        html_content = _fetch_html(session, url, timeout)
        table = _find_table(html_content, MOBILE_TABLE_SELECTOR, f"floor {floor}")
        table_html = str(table)

        target_date = sday_to_date(sday)
        meals = parse_floor_table(table_html, target_date, layout)
        logger.info("[%s] Floor %s: parsed %d meals", target_date.isoformat(), floor, len(meals))

        if debug_dir:
            save_debug_output(debug_dir, f'floor{floor}', table_html, meals)

        return meals

    except requests.RequestException as e:
        logger.error("Floor %s: failed to fetch %s: %s", floor, url, e)
        return []
    except Exception:
        logger.exception("Floor %s: failed to parse menu from %s", floor, url)
        return []
    finally:
        if owns_session:
            session.close()


def dgucoop_all_floors_retrieve(sday: int, floors=(1, 2, 3), session: Optional[requests.Session] = None,
                                base_url: str = DGUCOOP_MOBILE_MENU_URL, timeout: float = DEFAULT_TIMEOUT,
                                debug_dir: Optional[str] = None) -> List[Meal]:
    """
    Fetch every requested floor concurrently and concatenate the results in
    floor order. A failing floor contributes nothing; the others still count.

    A passed-in session is shared by the worker threads. When it is omitted,
    each floor gets its own session, closed after that floor's fetch.
    """
    floors = list(floors)
    if not floors:
        return []

    def retrieve(floor: int) -> List[Meal]:
        return dgucoop_floor_menu_retrieve(
            floor, sday, session=session, base_url=base_url, timeout=timeout, debug_dir=debug_dir,
        )

    with ThreadPoolExecutor(max_workers=len(floors)) as executor:
        results = list(executor.map(retrieve, floors))

    return [meal for floor_meals in results for meal in floor_meals]


# =============================================================================
# WEEKLY DESKTOP PAGE
# =============================================================================

def dgucoop_weekly_menu_retrieve(url: str, session: Optional[requests.Session] = None,
                                 timeout: float = DEFAULT_TIMEOUT,
                                 debug_dir: Optional[str] = None) -> List[Meal]:
    """
    Fetch and parse the weekly desktop menu page (EUC-KR encoded).

    Returns:
        List[Meal]: Parsed meals for the whole week, or an empty list on
        failure.
    """
    owns_session = session is None
    if owns_session:
        session = build_http_session()

    try:
        html_content = _fetch_html(session, url, timeout)
        table = _find_table(html_content, WEEKLY_TABLE_SELECTOR, "weekly page")
        table_html = str(table)

        meals = parse_weekly_menu(table_html)
        logger.info("Weekly page: parsed %d meals", len(meals))

        if debug_dir:
            save_debug_output(debug_dir, 'weekly', table_html, meals)

        return meals

    except requests.RequestException as e:
        logger.error("Weekly page: failed to fetch %s: %s", url, e)
        return []
    except Exception:
        logger.exception("Weekly page: failed to parse menu from %s", url)
        return []
    finally:
        if owns_session:
            session.close()
