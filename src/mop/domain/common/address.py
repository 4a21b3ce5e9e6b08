from __future__ import annotations

from dataclasses import dataclass

ADDRESS_FIELDS = ("street", "city", "state", "country", "zip_code")


@dataclass(frozen=True)
class Address:
    """Postal address as stored by the directory; blank parts are kept as ``""``."""

    street: str
    city: str
    state: str
    country: str
    zip_code: str
    label: str | None = None

    @property
    def missing_fields(self) -> list[str]:
        return [name for name in ADDRESS_FIELDS if not (getattr(self, name) or "").strip()]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields
