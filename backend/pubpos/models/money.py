from __future__ import annotations

from decimal import Decimal


def format_cents(cents: int | None) -> str | None:
    """Render integer cents as a two-decimal amount string ("250.00")."""
    if cents is None:
        return None
    return str((Decimal(cents) / 100).quantize(Decimal("0.01")))
