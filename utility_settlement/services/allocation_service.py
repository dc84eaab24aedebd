"""Allocation service for splitting money across tenants without losing cents.

All amounts are rounded half-up to the smallest currency unit and the rounding
slack is reconciled by largest remainder, so allocations always sum to the
amount being split.
"""

from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Dict, Hashable, Iterable, Mapping, TypeVar

from utility_settlement.config import settings

CENT = settings.currency_quantum
ZERO = Decimal("0.00")

K = TypeVar("K", bound=Hashable)


def quantize_money(value: Decimal | Fraction | str | int | None) -> Decimal:
    """Round to the currency unit using round-half-up."""
    if isinstance(value, Fraction):
        value = Decimal(value.numerator) / Decimal(value.denominator)
    return Decimal(value or ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def to_fraction(value: Decimal | int | str) -> Fraction:
    """Exact rational representation of a Decimal amount."""
    return Fraction(Decimal(str(value)))


class AllocationService:
    """Money distribution with exact remainder reconciliation."""

    def reconcile(self, exact: Mapping[K, Fraction], total_amount: Decimal) -> Dict[K, Decimal]:
        """Round exact allocations and push rounding slack onto the largest remainders.

        Ensures: sum(result) == total_amount (zero money loss/creation)

        Algorithm:
        1. Round each exact allocation half-up to the currency unit
        2. Compute slack = total - sum(rounded), in whole cents (may be negative)
        3. Positive slack: +1 cent to keys rounded down the most
        4. Negative slack: -1 cent from keys rounded up the most
        Ties prefer the larger exact share, then insertion order.

        Args:
            exact: Mapping of key to unrounded allocation
            total_amount: Amount the allocations must add up to (already rounded)

        Returns:
            Dict mapping key to rounded allocation, in the order of ``exact``
        """
        if not exact:
            return {}

        rounded = {key: quantize_money(value) for key, value in exact.items()}
        slack_cents = int((Decimal(total_amount) - sum(rounded.values(), ZERO)) / CENT)
        if slack_cents == 0:
            return rounded

        order = list(exact.keys())
        remainders = {key: exact[key] - to_fraction(rounded[key]) for key in order}
        if slack_cents > 0:
            candidates = sorted(
                order,
                key=lambda k: (-remainders[k], -exact[k], order.index(k)),
            )
            step = CENT
        else:
            candidates = sorted(
                order,
                key=lambda k: (remainders[k], -exact[k], order.index(k)),
            )
            step = -CENT

        for i in range(abs(slack_cents)):
            key = candidates[i % len(candidates)]
            rounded[key] += step

        return rounded

    def distribute_with_remainder(
        self,
        total_amount: Decimal,
        shares: Mapping[K, Decimal | Fraction | int],
    ) -> Dict[K, Decimal]:
        """Distribute amount by share weights.

        Args:
            total_amount: Total to distribute (Decimal, already in currency units)
            shares: Dict mapping key to share weight

        Returns:
            Dict mapping key to allocated amount; all zero when weights sum to zero
        """
        if not shares:
            return {}

        weights = {
            k: v if isinstance(v, Fraction) else to_fraction(v) for k, v in shares.items()
        }
        total_weight = sum(weights.values(), Fraction(0))
        if total_weight == 0:
            return {k: ZERO for k in weights}

        total = to_fraction(total_amount)
        exact = {k: total * w / total_weight for k, w in weights.items()}
        return self.reconcile(exact, quantize_money(total_amount))

    def allocate_equal(self, total_amount: Decimal, keys: Iterable[K]) -> Dict[K, Decimal]:
        """Allocate equally across keys (per-person and equal splits)."""
        return self.distribute_with_remainder(total_amount, {k: 1 for k in keys})


__all__ = ["AllocationService", "quantize_money", "to_fraction", "CENT", "ZERO"]
