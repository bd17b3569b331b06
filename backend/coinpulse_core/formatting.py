"""Display formatting for prices and percentage changes."""

from __future__ import annotations


def format_price(price: float | None) -> str:
    """Format a USD price with precision scaled to its magnitude.

    A missing price renders as "N/A".

    >>> format_price(43250.5)
    '$43,250.50'
    >>> format_price(2.5)
    '$2.5000'
    >>> format_price(0.00001234)
    '$0.00001234'
    >>> format_price(None)
    'N/A'
    """
    if price is None:
        return "N/A"
    if price >= 1000:
        return f"${price:,.2f}"
    if price >= 1:
        return f"${price:.4f}"
    return f"${price:.8f}"


def format_change(change: float) -> str:
    """Format a percentage change with an explicit sign.

    >>> format_change(1.234)
    '+1.23%'
    >>> format_change(-0.5)
    '-0.50%'
    """
    sign = "+" if change >= 0 else ""
    return f"{sign}{change:.2f}%"
