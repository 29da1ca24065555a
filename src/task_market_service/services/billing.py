"""Cost computation from logged minutes, the configured rate and prepay."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from task_market_service.core.exceptions import ValidationError

if TYPE_CHECKING:
    from task_market_service.models import Task


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class BillingCalculator:
    """
    Pure cost calculator.

    cost = round_half_up(minutes * rate_per_minute_cents) + prepay_amount_cents

    All amounts are integer cents; only the rate may be fractional.
    """

    def __init__(self, rate_per_minute_cents: Decimal | int | str) -> None:
        rate = Decimal(rate_per_minute_cents)
        if not rate.is_finite() or rate < 0:
            msg = "rate_per_minute_cents must be a non-negative number"
            raise ValueError(msg)
        self._rate = rate

    @property
    def rate_per_minute_cents(self) -> Decimal:
        return self._rate

    def cost(self, task: Task, total_minutes: int) -> int:
        """
        Return the amount owed for a task, in cents.

        Raises:
            ValidationError: total_minutes or the task's prepay is negative
                or not an integer
        """
        if not _is_int(total_minutes) or total_minutes < 0:
            raise ValidationError(
                "total_minutes must be a non-negative integer",
                {"field": "total_minutes"},
            )
        prepay = task.prepay_amount_cents
        if not _is_int(prepay) or prepay < 0:
            raise ValidationError(
                "prepay_amount_cents must be a non-negative integer",
                {"field": "prepay_amount_cents"},
            )

        time_cost = (Decimal(total_minutes) * self._rate).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
        return int(time_cost) + prepay

    def estimate(self, task: Task) -> int:
        """Cost of the task if exactly its estimated minutes are logged."""
        return self.cost(task, task.estimated_minutes)
