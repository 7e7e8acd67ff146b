"""Round-down rule for reward arithmetic.

Every share is truncated, never rounded up, so that the sum of shares
can never exceed the budget they were carved from. Division runs in a
wide context that itself truncates, so a computed quotient is never
larger than the exact one.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Context, Decimal, localcontext
from typing import Iterable


# Wide enough for 38-digit on-chain amounts multiplied by 38-digit
# liquidity figures without losing integer digits.
ALLOCATION_CONTEXT = Context(prec=100, rounding=ROUND_DOWN)


def round_down(value: Decimal, scale: int = 0) -> Decimal:
    """Truncate ``value`` to ``scale`` fractional digits.

    Equivalent to floor for the non-negative amounts used here. The
    result always carries exactly ``scale`` fractional digits, so
    ``round_down(Decimal("100"), 2) == Decimal("100.00")``.
    """
    quantum = Decimal(1).scaleb(-scale)
    return value.quantize(quantum, rounding=ROUND_DOWN, context=ALLOCATION_CONTEXT)


def proportional_share(amount: Decimal, numerator: Decimal, denominator: Decimal) -> Decimal:
    """Return ``round_down(amount * numerator / denominator, 0)``.

    Multiplication happens before division to keep the truncation
    error to a single step.
    """
    with localcontext(ALLOCATION_CONTEXT):
        return round_down(amount * numerator / denominator, 0)


def add_exact(*values: Decimal) -> Decimal:
    """Sum ``values`` in the allocation context.

    The default context keeps 28 significant digits, which would round
    large integer totals to a positive exponent.
    """
    with localcontext(ALLOCATION_CONTEXT):
        return sum(values, Decimal("0"))


def sum_exact(values: Iterable[Decimal]) -> Decimal:
    """Sum an iterable of amounts in the allocation context."""
    return add_exact(*values)
