# src/currency.py
"""Display formatting for CFA amounts, with a fixed-rate euro conversion."""

from decimal import Decimal, ROUND_HALF_UP

from config.settings import CFA_PER_EUR

# French grouping: narrow no-break space between thousands, no-break space before the symbol
GROUP_SEPARATOR = "\u202f"
SYMBOL_SEPARATOR = "\u00a0"

SUPPORTED_CURRENCIES = ("CFA", "EUR")


def cfa_to_eur(amount: float, rate: float = CFA_PER_EUR) -> float:
    return amount / rate


def _group(amount: float) -> str:
    rounded = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if rounded < 0 else ""
    return sign + f"{abs(rounded):,}".replace(",", GROUP_SEPARATOR)


def format_currency(amount: float, currency: str = "CFA") -> str:
    """
    Format a base-currency (CFA) amount for display.

    CFA amounts are shown as whole grouped numbers ("25 000 000"); EUR
    amounts are converted at the fixed rate and suffixed with the euro sign.
    """
    if currency not in SUPPORTED_CURRENCIES:
        raise ValueError(f"Unsupported currency: {currency}")
    if currency == "EUR":
        return f"{_group(cfa_to_eur(amount))}{SYMBOL_SEPARATOR}€"
    return _group(amount)
