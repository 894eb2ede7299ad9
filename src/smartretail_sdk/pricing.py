from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from .models_cart import NO_DISCOUNT, CartLine, Discount, DiscountPolicy
from .money import HUNDRED, ZERO, round2

DISCOUNT_EXCEEDS_TOTAL = "DISCOUNT_EXCEEDS_TOTAL"


@dataclass(frozen=True)
class PricingWarning:
    code: str
    message: str


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    tax_total: Decimal
    discount_total: Decimal
    total: Decimal
    warnings: list[PricingWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


def discount_amount(discount: Discount, subtotal: Decimal) -> Decimal:
    if discount.policy is DiscountPolicy.PERCENT:
        return subtotal * discount.value / HUNDRED
    return discount.value


def compute_totals(lines: Iterable[CartLine], discount: Discount = NO_DISCOUNT) -> CartTotals:
    subtotal = ZERO
    tax_total = ZERO
    for line in lines:
        subtotal += line.line_subtotal
        tax_total += line.line_tax
    discount_total = discount_amount(discount, subtotal)
    raw_total = round2(subtotal + tax_total - discount_total)
    warnings: list[PricingWarning] = []
    total = raw_total
    if raw_total < ZERO:
        total = round2(ZERO)
        warnings.append(
            PricingWarning(
                code=DISCOUNT_EXCEEDS_TOTAL,
                message=(
                    f"discount {round2(discount_total)} exceeds subtotal plus tax "
                    f"{round2(subtotal + tax_total)}"
                ),
            )
        )
    return CartTotals(
        subtotal=subtotal,
        tax_total=tax_total,
        discount_total=discount_total,
        total=total,
        warnings=warnings,
    )
