from __future__ import annotations

import logging
from typing import Callable, Optional

from ..models import LineItem

logger = logging.getLogger(__name__)


def blank_passenger_item() -> LineItem:
    return LineItem(quantity=1, unit_price=0, total=0)


def reconcile_passenger_rows(rows: list[LineItem], target: Optional[int]) -> list[LineItem]:
    """Grow or trim the item rows to match the passenger count.

    Rows are added blank at the end and removed from the end. At least one
    row always remains. A missing or non-positive target leaves the rows
    unchanged.
    """
    current = list(rows)
    if not target or target <= 0:
        return current
    if target > len(current):
        return current + [blank_passenger_item() for _ in range(target - len(current))]
    return current[: max(1, target)]


class PassengerRowSync:
    """Applies the passenger count to the item rows with a re-entrancy latch.

    ``apply`` hands the new rows to ``on_rows``; if that callback changes the
    watched passenger count and ends up calling ``apply`` again, the nested
    call is ignored until the outer one returns.
    """

    def __init__(self, on_rows: Callable[[list[LineItem]], None]) -> None:
        self._on_rows = on_rows
        self._updating = False

    @property
    def is_updating(self) -> bool:
        return self._updating

    def apply(self, rows: list[LineItem], target: Optional[int]) -> bool:
        if self._updating:
            logger.debug("passengers.nested_update_suppressed target=%s", target)
            return False
        if not target or target <= 0 or target == len(rows):
            return False
        self._updating = True
        try:
            updated = reconcile_passenger_rows(rows, target)
            self._on_rows(updated)
        finally:
            self._updating = False
        return True
