"""Sales tax percentages by US state code."""

from __future__ import annotations

from decimal import Decimal

DEFAULT_TAX_RATE = Decimal("5.0")

STATE_TAX_RATES: dict[str, Decimal] = {
    "AL": Decimal("4.0"),
    "AK": Decimal("0.0"),
    "AZ": Decimal("5.6"),
    "AR": Decimal("6.5"),
    "CA": Decimal("7.25"),
    "CO": Decimal("2.9"),
    "CT": Decimal("6.35"),
    "DE": Decimal("0.0"),
    "FL": Decimal("6.0"),
    "GA": Decimal("4.0"),
    "HI": Decimal("4.0"),
    "ID": Decimal("6.0"),
    "IL": Decimal("6.25"),
    "IN": Decimal("7.0"),
    "IA": Decimal("6.0"),
    "KS": Decimal("6.5"),
    "KY": Decimal("6.0"),
    "LA": Decimal("4.45"),
    "ME": Decimal("5.5"),
    "MD": Decimal("6.0"),
    "MA": Decimal("6.25"),
    "MI": Decimal("6.0"),
    "MN": Decimal("6.875"),
    "MS": Decimal("7.0"),
    "MO": Decimal("4.225"),
    "MT": Decimal("0.0"),
    "NE": Decimal("5.5"),
    "NV": Decimal("6.85"),
    "NH": Decimal("0.0"),
    "NJ": Decimal("6.625"),
    "NM": Decimal("5.125"),
    "NY": Decimal("4.0"),
    "NC": Decimal("4.75"),
    "ND": Decimal("5.0"),
    "OH": Decimal("5.75"),
    "OK": Decimal("4.5"),
    "OR": Decimal("0.0"),
    "PA": Decimal("6.0"),
    "RI": Decimal("7.0"),
    "SC": Decimal("6.0"),
    "SD": Decimal("4.5"),
    "TN": Decimal("7.0"),
    "TX": Decimal("6.25"),
    "UT": Decimal("6.1"),
    "VT": Decimal("6.0"),
    "VA": Decimal("5.3"),
    "WA": Decimal("6.5"),
    "WV": Decimal("6.0"),
    "WI": Decimal("5.0"),
    "WY": Decimal("4.0"),
    "DC": Decimal("6.0"),
}


def tax_rate_for_state(state: str | None) -> Decimal:
    """Return the tax percentage for ``state``, or :data:`DEFAULT_TAX_RATE` when unknown.

    Zero-rate states (AK, DE, MT, NH, OR) resolve to 0, not to the default.
    """
    if not state:
        return DEFAULT_TAX_RATE
    return STATE_TAX_RATES.get(state.strip().upper(), DEFAULT_TAX_RATE)
