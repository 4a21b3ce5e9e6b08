from __future__ import annotations


class OrderNotFoundError(Exception):
    pass


class CustomerNotFoundError(Exception):
    pass


class RestaurantNotFoundError(Exception):
    pass


class OrderConflictError(Exception):
    pass


class DeliveryAddressRequiredError(Exception):
    pass


class InvalidDeliveryAddressError(Exception):
    pass


class RestaurantAddressInvalidError(Exception):
    pass


class InvalidStatusFilterError(Exception):
    def __init__(self, message: str, valid_statuses: list[str]) -> None:
        super().__init__(message)
        self.details = {"validStatuses": valid_statuses}
