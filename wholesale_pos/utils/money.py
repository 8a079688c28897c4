from decimal import ROUND_HALF_UP, Decimal

__all__ = ["ZERO", "CENT", "to_decimal", "money", "percent_label", "format_currency"]

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(v) -> Decimal:
    if isinstance(v, Decimal):
        return v
    if v is None or v == "":
        return ZERO
    return Decimal(str(v))


def money(v) -> Decimal:
    """Rounds to cents, half up. Used where amounts enter or leave the system."""
    return to_decimal(v).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_label(rate) -> str:
    # 0.0875 -> "8.75%", 0.2 -> "20%"
    pct = (to_decimal(rate) * 100).normalize()
    return f"{pct:f}%"


def format_currency(amount, currency: str = "USD") -> str:
    symbols = {"USD": "$", "CAD": "$", "AUD": "$", "GBP": "£", "EUR": "€", "MXN": "$"}
    value = money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbols.get(currency, currency + ' ')}{abs(value):,.2f}"
