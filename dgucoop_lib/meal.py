"""
Meal records produced by the DGU Coop parsers.

A ``Meal`` is one serving context (restaurant, day, meal period). It is built
once per parse pass and never mutated afterwards.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from .day import DAYS_OF_WEEK

RESTAURANT_FLOOR3_HOME = '상록원3층식당 - 집밥'
RESTAURANT_FLOOR3_ONE_BOWL = '상록원3층식당 - 한그릇(한정판매)'
RESTAURANT_FLOOR2_SPECIAL = '상록원2층식당 - 일품코너'
RESTAURANT_FLOOR2_WESTERN = '상록원2층식당 - 양식코너'
RESTAURANT_FLOOR2_TTUKBAEGI = '상록원2층식당 - 뚝배기코너'
RESTAURANT_SOT_AND_NOODLE = '솥앤누들'
RESTAURANT_SNACK_BAR = '분식당'
RESTAURANT_NURITER = '누리터식당'
RESTAURANT_NAMSAN_DORM = '남산학사 기숙사 식당'
RESTAURANT_DFLEX = '경영관 D-flex'

RESTAURANTS = (
    RESTAURANT_FLOOR3_HOME,
    RESTAURANT_FLOOR3_ONE_BOWL,
    RESTAURANT_FLOOR2_SPECIAL,
    RESTAURANT_FLOOR2_WESTERN,
    RESTAURANT_FLOOR2_TTUKBAEGI,
    RESTAURANT_SOT_AND_NOODLE,
    RESTAURANT_SNACK_BAR,
    RESTAURANT_NURITER,
    RESTAURANT_NAMSAN_DORM,
    RESTAURANT_DFLEX,
)

MEAL_TYPES = ('breakfast', 'lunch', 'dinner')

STATUS_OPEN = 'open'
STATUS_CLOSED = 'closed'
STATUS_UNAVAILABLE = 'unavailable'
STATUSES = (STATUS_OPEN, STATUS_CLOSED, STATUS_UNAVAILABLE)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp used for ``Meal.updated_at``."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass(frozen=True)
class MenuItem:
    name: Tuple[str, ...]
    price: Optional[int] = None
    open_and_close_time: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        # lists are accepted for convenience and frozen into tuples
        object.__setattr__(self, 'name', tuple(self.name))
        if not self.name:
            raise ValueError("MenuItem name must not be empty")
        if self.price is not None and self.price < 0:
            raise ValueError(f"MenuItem price must be non-negative: {self.price}")

    def to_dict(self) -> Dict:
        data = {'name': list(self.name)}
        if self.price is not None:
            data['price'] = self.price
        if self.open_and_close_time is not None:
            data['openAndCloseTime'] = self.open_and_close_time
        if self.notes is not None:
            data['notes'] = self.notes
        return data


@dataclass(frozen=True)
class Meal:
    restaurant: str
    day: str
    meal_type: str
    items: Optional[Tuple[MenuItem, ...]]
    status: str
    updated_at: str
    notes: Optional[str] = None

    def __post_init__(self):
        if self.items is not None:
            object.__setattr__(self, 'items', tuple(self.items))

        if self.restaurant not in RESTAURANTS:
            raise ValueError(f"Unknown restaurant: {self.restaurant}")
        if self.day not in DAYS_OF_WEEK:
            raise ValueError(f"Unknown day: {self.day}")
        if self.meal_type not in MEAL_TYPES:
            raise ValueError(f"Unknown meal type: {self.meal_type}")
        if self.status not in STATUSES:
            raise ValueError(f"Unknown status: {self.status}")

        # open iff there is at least one item
        has_items = bool(self.items)
        if (self.status == STATUS_OPEN) != has_items:
            raise ValueError(
                f"Meal status '{self.status}' is inconsistent with "
                f"{len(self.items or ())} items"
            )

    def to_dict(self) -> Dict:
        """Serialize to the JSON shape consumed downstream (camelCase keys)."""
        data = {
            'restaurant': self.restaurant,
            'day': self.day,
            'mealType': self.meal_type,
            'items': [item.to_dict() for item in self.items] if self.items is not None else None,
            'status': self.status,
            'updatedAt': self.updated_at,
        }
        if self.notes is not None:
            data['notes'] = self.notes
        return data
