from __future__ import annotations

import logging
import os
import secrets
from typing import Callable, Iterator

from mop.application.metrics.order_lifecycle import record_order_number_collision
from mop.application.ports.repositories import OrderRepository
from mop.domain.common.ids import OrderNumber

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "O"
_MIN_SUFFIX = 1_000_000
_MAX_SUFFIX = 9_999_999
DEFAULT_MAX_ATTEMPTS = 10


class OrderNumberExhaustedError(Exception):
    pass


def random_order_number() -> OrderNumber:
    suffix = _MIN_SUFFIX + secrets.randbelow(_MAX_SUFFIX - _MIN_SUFFIX + 1)
    return OrderNumber(f"{ORDER_NUMBER_PREFIX}{suffix}")


def max_attempts_from_env() -> int:
    raw = os.getenv("ORDER_NUMBER_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_MAX_ATTEMPTS
    return max(value, 1)


class OrderNumberAllocator:
    """Draws order numbers until one is free, giving up after ``max_attempts`` draws."""

    def __init__(
        self,
        order_repository: OrderRepository,
        max_attempts: int | None = None,
        generator: Callable[[], OrderNumber] = random_order_number,
    ) -> None:
        self._order_repository = order_repository
        self._max_attempts = max_attempts if max_attempts is not None else max_attempts_from_env()
        self._generator = generator

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def allocate(self) -> OrderNumber:
        return next(self.candidates())

    def candidates(self) -> Iterator[OrderNumber]:
        """Yield numbers not yet in the store, sharing one budget of ``max_attempts`` draws.

        A caller that loses an insert race to a concurrent writer just pulls the
        next candidate; that retry spends from the same budget.
        """
        for _ in range(self._max_attempts):
            candidate = self._generator()
            if self._order_repository.order_number_exists(candidate):
                record_order_number_collision()
                logger.info("order_number_collision", extra={"order_number": candidate})
                continue
            yield candidate
        raise OrderNumberExhaustedError(
            "Could not allocate an order number, please try again shortly."
        )
