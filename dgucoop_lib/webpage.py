DGUCOOP_MOBILE_MENU_URL = "https://dgucoop.dongguk.edu/mobile/menu.html"

# 1층 솥앤누들/분식당, 2층 상록원2층식당, 3층 상록원3층식당
FLOOR_CODES = {1: 7, 2: 1, 3: 5}


def dgucoop_menu_url(floor: int, sday: int, base_url: str = DGUCOOP_MOBILE_MENU_URL) -> str:
    """
    Generate a DGU Coop mobile menu URL for a given floor and day.

    Parameters:
        floor (int): 1, 2 or 3.
        sday (int): UTC midnight of the target day, in seconds.
        base_url (str): Mobile menu page, overridable for mirrors/tests.

    Returns:
        str: The full URL.
    """
    if floor not in FLOOR_CODES:
        raise ValueError(f"Floor must be one of {sorted(FLOOR_CODES)}, got {floor!r}")

    return f"{base_url}?code={FLOOR_CODES[floor]}&sday={int(sday)}"
