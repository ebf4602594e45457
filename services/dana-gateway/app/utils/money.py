from __future__ import annotations

# Currencies the provider expects as fixed-point strings with two decimals
TWO_DECIMAL_CURRENCIES = frozenset({"IDR"})


def format_amount_value(value: str) -> str:
    """Normalize an amount to exactly two decimals: "100000" -> "100000.00".

    Extra fractional digits are truncated, never rounded.
    """
    if not value:
        return value
    value = value.strip()
    if "." in value:
        int_part, decimal_part = value.split(".")[:2]
        decimal_part = (decimal_part + "00")[:2]
        return f"{int_part}.{decimal_part}"
    return value + ".00"


def format_money(value: str, currency: str) -> str:
    if currency in TWO_DECIMAL_CURRENCIES:
        return format_amount_value(value)
    return value
